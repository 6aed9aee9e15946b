"""Shared data models for the image metadata pipeline."""

import os
from enum import Enum
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Tuple

from pydantic import BaseModel, Field, field_validator

from .exceptions import ConfigurationError


class EventKind(str, Enum):
    """Lifecycle event kinds the pipeline acts on."""

    CREATED = "Created"
    REMOVED = "Removed"


class EnrichmentField(str, Enum):
    """Metadata fields that may be set after ingestion."""

    DATE = "Date"
    CAPTION = "Caption"
    PHOTOGRAPHER = "Photographer"


class Outcome(str, Enum):
    """Result of handling one delivered message."""

    SUCCEEDED = "succeeded"
    SKIPPED = "skipped"
    ABSORBED = "absorbed"
    RETRYABLE = "retryable"


class RawObjectRecord(BaseModel):
    """A per-object record as found in an S3 notification, not yet classified."""

    bucket_name: str
    object_key: str
    event_name: str = ""
    size: Optional[int] = None


class ObjectEvent(BaseModel):
    """An object being created in or removed from the store."""

    bucket_name: str
    object_key: str = Field(min_length=1)
    kind: EventKind
    event_name: str = ""

    @property
    def source_uri(self) -> str:
        return f"s3://{self.bucket_name}/{self.object_key}"


class ImageRecord(BaseModel):
    """The metadata row kept for one image."""

    image_name: str
    file_size: Optional[int] = None
    file_extension: Optional[str] = None
    enrichment: Dict[str, str] = Field(default_factory=dict)


class MetadataUpdateMessage(BaseModel):
    """Instruction to set one enrichment field on an existing record.

    ``field_name`` is kept as a plain string: names outside
    :class:`EnrichmentField` are ignored by the updater, not rejected here.
    """

    target_image_name: str
    field_name: str
    field_value: str


class MessageResult(BaseModel):
    """Outcome of processing a single queue message."""

    message_id: str
    outcome: Outcome = Outcome.SUCCEEDED
    error: str = ""
    processing_time: float = 0.0

    @property
    def failed(self) -> bool:
        return self.outcome == Outcome.RETRYABLE


class BatchResult(BaseModel):
    """Outcomes for every message of one delivered batch."""

    results: List[MessageResult] = Field(default_factory=list)

    @property
    def failures(self) -> List[MessageResult]:
        return [result for result in self.results if result.failed]

    def count(self, outcome: Outcome) -> int:
        return sum(1 for result in self.results if result.outcome == outcome)

    def to_batch_response(self) -> Dict[str, Any]:
        """Render the SQS partial batch response for failed messages."""
        return {
            "batchItemFailures": [
                {"itemIdentifier": result.message_id} for result in self.failures
            ]
        }


def _split_list(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


class PipelineConfig(BaseModel):
    """Runtime configuration shared by the pipeline consumers."""

    table_name: Optional[str] = None
    allowed_extensions: Tuple[str, ...] = ("jpeg", "png")
    email_from: Optional[str] = None
    email_to: List[str] = Field(default_factory=list)
    region: Optional[str] = None
    max_receive_count: int = Field(default=3, ge=1)
    processor: str = "serial"
    max_workers: int = Field(default=8, ge=1)

    # Environment variable each required field is read from
    ENV_NAMES: ClassVar[Mapping[str, str]] = {
        "table_name": "TABLE_NAME",
        "allowed_extensions": "ALLOWED_EXTENSIONS",
        "email_from": "SES_EMAIL_FROM",
        "email_to": "SES_EMAIL_TO",
    }

    @field_validator("allowed_extensions", mode="before")
    @classmethod
    def _normalize_extensions(cls, value: Any) -> Tuple[str, ...]:
        if isinstance(value, str):
            value = _split_list(value)
        return tuple(ext.lower().lstrip(".") for ext in value)

    @field_validator("processor")
    @classmethod
    def _check_processor(cls, value: str) -> str:
        if value not in ("serial", "multithread"):
            raise ValueError(f"Unknown batch processor: {value}")
        return value

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "PipelineConfig":
        """Build configuration from environment variables."""
        env = os.environ if environ is None else environ
        values: Dict[str, Any] = {
            "table_name": env.get("TABLE_NAME") or env.get("IMAGE_TABLE_NAME"),
            "email_from": env.get("SES_EMAIL_FROM"),
            "email_to": _split_list(env.get("SES_EMAIL_TO")),
            "region": env.get("SES_REGION") or env.get("REGION"),
        }
        if "ALLOWED_EXTENSIONS" in env:
            values["allowed_extensions"] = env["ALLOWED_EXTENSIONS"]
        if "MAX_RECEIVE_COUNT" in env:
            values["max_receive_count"] = env["MAX_RECEIVE_COUNT"]
        if "BATCH_PROCESSOR" in env:
            values["processor"] = env["BATCH_PROCESSOR"]
        if "MAX_WORKERS" in env:
            values["max_workers"] = env["MAX_WORKERS"]

        try:
            return cls(**values)
        except ValueError as exc:
            raise ConfigurationError(f"Invalid pipeline configuration: {exc}") from exc

    def require(self, *fields: str) -> "PipelineConfig":
        """Raise ConfigurationError unless every named field is set."""
        for name in fields:
            if not getattr(self, name):
                env_name = self.ENV_NAMES.get(name, name.upper())
                raise ConfigurationError(f"Environment variable {env_name} is not set")
        return self
