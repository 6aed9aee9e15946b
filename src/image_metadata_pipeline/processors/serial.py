"""Serial processor implementation - handles queue messages one by one."""

from typing import Any, Callable, List, Mapping

from ..core.models import MessageResult

RecordHandler = Callable[[Mapping[str, Any]], MessageResult]


def process_batch(
    batch: List[Mapping[str, Any]], handle_record: RecordHandler
) -> List[MessageResult]:
    """
    Processes a delivered batch serially, in the current thread.

    Args:
        batch: Raw transport records of one delivery.
        handle_record: Per-message handler returning a `MessageResult`.

    Returns:
        A list of `MessageResult` objects in batch order.
    """
    results = []

    for record in batch:
        results.append(handle_record(record))

    return results
