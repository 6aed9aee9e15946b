"""Classification of raw S3 records into creation and removal events."""

from typing import Optional
from urllib.parse import unquote_plus

from .exceptions import MalformedEventError
from .models import EventKind, ObjectEvent, RawObjectRecord

CREATED_MARKER = "ObjectCreated"
REMOVED_MARKER = "ObjectRemoved"


def decode_object_key(raw_key: str) -> str:
    """Decode an S3 notification key: '+' becomes a space, then percent-decoding."""
    return unquote_plus(raw_key)


def classify_event_name(event_name: str) -> Optional[EventKind]:
    """Map an S3 event name to an EventKind, or None when it is not handled."""
    if REMOVED_MARKER in event_name:
        return EventKind.REMOVED
    if CREATED_MARKER in event_name:
        return EventKind.CREATED
    return None


def classify(record: RawObjectRecord) -> Optional[ObjectEvent]:
    """
    Turn a raw S3 record into an ObjectEvent.

    Returns None for event types the pipeline does not handle (for example
    ``ObjectRestore:Post``); callers skip those without side effects.

    Raises:
        MalformedEventError: If the key decodes to an empty string.
    """
    kind = classify_event_name(record.event_name)
    if kind is None:
        return None

    object_key = decode_object_key(record.object_key)
    if not object_key:
        raise MalformedEventError(
            f"Empty object key in {record.event_name} event for bucket {record.bucket_name}"
        )

    return ObjectEvent(
        bucket_name=record.bucket_name,
        object_key=object_key,
        kind=kind,
        event_name=record.event_name,
    )
