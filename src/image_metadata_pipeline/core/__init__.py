"""Core components of the image metadata pipeline."""

from .logging_config import get_logger, setup_logger
from .exceptions import (
    MetadataPipelineError,
    ConfigurationError,
    MalformedEventError,
    InvalidFileTypeError,
    FetchFailedError,
    TransportError,
    RecordStoreError,
    RecordNotFoundError,
)
from .models import (
    BatchResult,
    EnrichmentField,
    EventKind,
    ImageRecord,
    MessageResult,
    MetadataUpdateMessage,
    ObjectEvent,
    Outcome,
    PipelineConfig,
    RawObjectRecord,
)
from .classifier import classify, decode_object_key
from .normalizer import normalize_batch, normalize_message, normalize_update_record
from .validation import ImageValidator, extract_extension
from .retry import RedrivePolicy

__all__ = [
    "setup_logger",
    "get_logger",
    "MetadataPipelineError",
    "ConfigurationError",
    "MalformedEventError",
    "InvalidFileTypeError",
    "FetchFailedError",
    "TransportError",
    "RecordStoreError",
    "RecordNotFoundError",
    "BatchResult",
    "EnrichmentField",
    "EventKind",
    "ImageRecord",
    "MessageResult",
    "MetadataUpdateMessage",
    "ObjectEvent",
    "Outcome",
    "PipelineConfig",
    "RawObjectRecord",
    "classify",
    "decode_object_key",
    "normalize_batch",
    "normalize_message",
    "normalize_update_record",
    "ImageValidator",
    "extract_extension",
    "RedrivePolicy",
]
