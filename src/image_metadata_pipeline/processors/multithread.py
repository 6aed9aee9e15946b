"""Multithreaded processor implementation - uses a thread pool per batch."""

from typing import Any, Dict, List, Mapping
from concurrent.futures import ThreadPoolExecutor, as_completed

from ..core.models import MessageResult, Outcome
from .serial import RecordHandler


def process_batch(
    batch: List[Mapping[str, Any]],
    handle_record: RecordHandler,
    max_workers: int = 8,
) -> List[MessageResult]:
    """
    Process a delivered batch using a thread pool.

    Messages are independent, so completion order does not matter; results
    are still returned in batch order.

    Args:
        batch: Raw transport records of one delivery
        handle_record: Per-message handler (boto3 clients are thread-safe)
        max_workers: Upper bound on threads

    Returns:
        List of message results
    """
    if not batch:
        return []

    results: Dict[int, MessageResult] = {}
    workers = min(max_workers, len(batch))

    with ThreadPoolExecutor(max_workers=workers) as executor:
        future_to_index = {
            executor.submit(handle_record, record): index
            for index, record in enumerate(batch)
        }

        for future in as_completed(future_to_index):
            index = future_to_index[future]
            try:
                results[index] = future.result()
            except Exception as e:
                # Handlers report their own failures; this is a last resort
                results[index] = MessageResult(
                    message_id=str(batch[index].get("messageId", index)),
                    outcome=Outcome.RETRYABLE,
                    error=str(e),
                )

    return [results[index] for index in range(len(batch))]
