"""Decoding of nested SQS/SNS/S3 envelopes into flat pipeline records.

Object notifications arrive as SQS records whose body is an SNS
notification whose ``Message`` is an S3 notification carrying ``Records``.
Metadata updates arrive as SNS notifications (delivered directly or through
SQS) whose message is ``{"id": ..., "value": ...}`` with the field name in
the ``metadata_type`` message attribute.
"""

import json
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .exceptions import MalformedEventError
from .models import MetadataUpdateMessage, RawObjectRecord

METADATA_TYPE_ATTRIBUTE = "metadata_type"


def _load_object(payload: Any, what: str) -> Dict[str, Any]:
    if isinstance(payload, dict):
        return payload
    if not isinstance(payload, (str, bytes)):
        raise MalformedEventError(f"{what} is missing or not a JSON document")
    try:
        value = json.loads(payload)
    except ValueError as exc:
        raise MalformedEventError(f"{what} is not valid JSON: {exc}") from exc
    if not isinstance(value, dict):
        raise MalformedEventError(f"{what} is not a JSON object")
    return value


def _s3_notification(body: Dict[str, Any]) -> Dict[str, Any]:
    if "Message" in body:
        return _load_object(body["Message"], "SNS message")
    if "Records" in body or "Event" in body:
        # Raw message delivery, or S3 writing to the queue directly
        return body
    raise MalformedEventError("Message body is neither an SNS nor an S3 notification")


def _raw_object_record(entry: Any) -> RawObjectRecord:
    if not isinstance(entry, dict):
        raise MalformedEventError("S3 event record is not an object")
    try:
        s3 = entry["s3"]
        bucket_name = s3["bucket"]["name"]
        object_key = s3["object"]["key"]
    except (KeyError, TypeError) as exc:
        raise MalformedEventError(f"S3 event record is missing {exc}") from exc
    if not isinstance(bucket_name, str) or not isinstance(object_key, str):
        raise MalformedEventError("S3 bucket name and object key must be strings")

    size = s3["object"].get("size")
    return RawObjectRecord(
        bucket_name=bucket_name,
        object_key=object_key,
        event_name=str(entry.get("eventName", "")),
        size=size if isinstance(size, int) else None,
    )


def normalize_message(record: Mapping[str, Any]) -> List[RawObjectRecord]:
    """Unwrap one SQS record into its S3 object records, in order."""
    body = _load_object(record.get("body"), "Message body")
    notification = _s3_notification(body)

    # s3:TestEvent and other notifications without records carry no objects
    entries = notification.get("Records")
    if entries is None:
        return []
    if not isinstance(entries, list):
        raise MalformedEventError("S3 notification Records is not a list")
    return [_raw_object_record(entry) for entry in entries]


def normalize_batch(records: Iterable[Mapping[str, Any]]) -> List[RawObjectRecord]:
    """Flatten a batch of SQS records, preserving batch order."""
    flattened: List[RawObjectRecord] = []
    for record in records:
        flattened.extend(normalize_message(record))
    return flattened


def _attribute_value(attributes: Any, name: str) -> Optional[str]:
    if not isinstance(attributes, dict):
        return None
    attribute = attributes.get(name)
    if not isinstance(attribute, dict):
        return None
    # SNS uses "Value", SQS raw delivery uses "stringValue"
    value = attribute.get("Value", attribute.get("stringValue"))
    return value if isinstance(value, str) else None


def normalize_update_record(record: Mapping[str, Any]) -> MetadataUpdateMessage:
    """Decode a metadata-update notification from an SNS or SQS record."""
    if "Sns" in record:
        sns = record["Sns"]
        if not isinstance(sns, dict):
            raise MalformedEventError("SNS record is not an object")
        message = sns.get("Message")
        attributes = sns.get("MessageAttributes")
    elif "body" in record:
        body = _load_object(record["body"], "Message body")
        if "Message" in body:
            message = body["Message"]
            attributes = body.get("MessageAttributes")
        else:
            message = body
            attributes = record.get("messageAttributes")
    else:
        raise MalformedEventError("Record is neither an SNS nor an SQS record")

    payload = _load_object(message, "Update message")
    field_name = _attribute_value(attributes, METADATA_TYPE_ATTRIBUTE)
    if field_name is None:
        raise MalformedEventError(f"Update message has no {METADATA_TYPE_ATTRIBUTE} attribute")

    image_name = payload.get("id")
    value = payload.get("value")
    if not isinstance(image_name, str) or not image_name:
        raise MalformedEventError("Update message has no image id")
    if not isinstance(value, str):
        raise MalformedEventError("Update message value must be a string")

    return MetadataUpdateMessage(
        target_image_name=image_name, field_name=field_name, field_value=value
    )
