"""Exception hierarchy for the image metadata pipeline.

Every error carries a ``retryable`` flag. Retryable errors escape the
per-message handler so the queue's redelivery and dead-letter policy decides
what happens next; non-retryable ones are absorbed where they are raised.
"""

from __future__ import annotations


class MetadataPipelineError(Exception):
    """Base exception for all image metadata pipeline errors."""

    retryable: bool = True


class ConfigurationError(MetadataPipelineError):
    """Error raised for missing or invalid configuration."""

    retryable = False


class MalformedEventError(MetadataPipelineError):
    """Error raised when a transport envelope cannot be decoded."""


class InvalidFileTypeError(MetadataPipelineError):
    """Error raised when an object key does not carry an allowed extension."""

    def __init__(self, object_key: str, extension: str = "") -> None:
        self.object_key = object_key
        self.extension = extension
        super().__init__(f"Invalid file type for file: {object_key}")


class FetchFailedError(MetadataPipelineError):
    """Error raised when an object cannot be read from the object store."""


class TransportError(MetadataPipelineError):
    """Error raised when a notification cannot be sent."""


class RecordStoreError(MetadataPipelineError):
    """Error raised for record store failures other than a missing record."""


class RecordNotFoundError(MetadataPipelineError):
    """Error raised when a conditional update targets an absent record."""

    retryable = False

    def __init__(self, image_name: str) -> None:
        self.image_name = image_name
        super().__init__(f"No metadata record for image: {image_name}")
