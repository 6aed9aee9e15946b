# src/image_metadata_pipeline/core/error_handling.py

import functools
import logging
from typing import Any, Callable, Dict, List, Type, TypeVar

from botocore.exceptions import BotoCoreError, ClientError

from .exceptions import MetadataPipelineError

F = TypeVar("F", bound=Callable[..., Any])


def client_error_code(error: BaseException) -> str:
    """Return the AWS error code carried by a botocore ClientError, or ''."""
    if isinstance(error, ClientError):
        return error.response.get("Error", {}).get("Code", "")
    return ""


def with_error_handling(error_cls: Type[MetadataPipelineError]) -> Callable[[F], F]:
    """
    Decorator translating AWS client failures at an adapter seam.

    Pipeline errors pass through untouched. botocore errors and anything else
    unexpected are logged and re-raised as ``error_cls`` so callers only ever
    see the pipeline's own exception hierarchy.
    """
    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            logger = logging.getLogger(func.__module__ + "." + func.__name__)
            try:
                return func(*args, **kwargs)
            except MetadataPipelineError:
                raise
            except (ClientError, BotoCoreError) as e:
                code = client_error_code(e) or type(e).__name__
                logger.error(f"AWS call failed in '{func.__name__}' ({code}): {e}")
                raise error_cls(f"{func.__name__} failed: {e}") from e
            except Exception as e:  # noqa: BLE001
                logger.error(f"Unexpected error in '{func.__name__}': {e}", exc_info=True)
                raise error_cls(f"{func.__name__} failed: {e}") from e
        return wrapper  # type: ignore[return-value]
    return decorator


class BatchOperationContextManager:
    """
    Context manager for one delivered batch, collecting per-message errors.
    """
    def __init__(self, operation_name: str = "Batch Operation"):
        self.operation_name = operation_name
        self.errors: List[Dict[str, str]] = []
        self.logger = logging.getLogger(self.__class__.__module__ + '.' + self.__class__.__name__)

    def __enter__(self) -> "BatchOperationContextManager":
        self.logger.info(f"Starting {self.operation_name}.")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        if self.errors:
            self.logger.warning(
                f"{self.operation_name} completed with {len(self.errors)} error(s)."
            )
            for i, error_detail in enumerate(self.errors):
                self.logger.error(
                    f"  Error {i+1}/{len(self.errors)} for item "
                    f"'{error_detail['item']}': {error_detail['error']}"
                )
        elif exc_type:
            self.logger.error(
                f"{self.operation_name} failed due to an unhandled exception: {exc_val}",
                exc_info=(exc_type, exc_val, exc_tb)
            )
        else:
            self.logger.info(f"{self.operation_name} completed successfully.")

        return False

    def add_error(self, error_message: Any, item_identifier: str = "Unknown item") -> None:
        """
        Report an error for a specific item within the 'with' block.

        Args:
            error_message: The error message or exception.
            item_identifier: The message id or object key that failed.
        """
        self.errors.append({"item": item_identifier, "error": str(error_message)})
        self.logger.debug(f"Error added for item '{item_identifier}' in {self.operation_name}: {error_message}")
