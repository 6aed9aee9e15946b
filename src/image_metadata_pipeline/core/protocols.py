"""Protocol definitions for dependency injection and testability."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, BinaryIO, Dict, List, Mapping, Optional, Protocol

from .models import ImageRecord


class S3ClientProtocol(Protocol):
    """Protocol for the S3 client operations the pipeline uses."""

    def get_object(self, Bucket: str, Key: str) -> Dict[str, Any]:
        """Get object from S3."""
        ...


class DynamoDBClientProtocol(Protocol):
    """Protocol for the low-level DynamoDB client operations the pipeline uses."""

    def update_item(self, **kwargs: Any) -> Dict[str, Any]:
        """Update (or create) one item."""
        ...

    def delete_item(self, **kwargs: Any) -> Dict[str, Any]:
        """Delete one item."""
        ...

    def get_item(self, **kwargs: Any) -> Dict[str, Any]:
        """Read one item."""
        ...


class SESClientProtocol(Protocol):
    """Protocol for SES email sending."""

    def send_email(self, **kwargs: Any) -> Dict[str, Any]:
        """Send one email."""
        ...


class LoggerProtocol(Protocol):
    """Protocol for context-aware logging operations."""

    def debug(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log debug message."""
        ...

    def info(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log info message."""
        ...

    def warning(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log warning message."""
        ...

    def error(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log error message."""
        ...


@dataclass(frozen=True)
class FieldUpdate:
    """A single-attribute SET expression ready for a conditional update."""

    update_expression: str
    value: str
    attribute_names: Dict[str, str] = field(default_factory=dict)


class ObjectStore(ABC):
    """Abstract read access to stored objects."""

    @abstractmethod
    def get_object(self, bucket: str, key: str) -> BinaryIO:
        """Open an object's content as a byte stream."""
        ...

    @abstractmethod
    def stream_length(self, stream: BinaryIO) -> int:
        """Count the bytes of a stream by reading it to the end."""
        ...


class RecordStore(ABC):
    """Abstract keyed metadata record store."""

    @abstractmethod
    def put(self, key: str, fields: Mapping[str, Any]) -> None:
        """Set the given attributes on the record, creating it when absent."""
        ...

    @abstractmethod
    def update_if_exists(self, key: str, update: FieldUpdate) -> None:
        """Apply an update only when the record exists."""
        ...

    @abstractmethod
    def delete_if_exists(self, key: str) -> None:
        """Delete the record; an absent record is not an error."""
        ...

    @abstractmethod
    def get(self, key: str) -> Optional[ImageRecord]:
        """Read the record, or None when absent."""
        ...


class NotificationTransport(ABC):
    """Abstract outbound email transport."""

    @abstractmethod
    def publish(self, subject: str, html_body: str, recipients: List[str]) -> str:
        """Send one notification and return the transport's message id."""
        ...
