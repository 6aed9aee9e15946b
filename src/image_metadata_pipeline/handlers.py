"""
AWS Lambda entry points, one per queue.

Each consumer (and its boto3 clients) is built on the first invocation and
reused for the life of the Lambda process. Configuration is read from the
environment at that point. A missing required variable raises
``ConfigurationError``; failed builds are not cached, so every invocation
fails the same way until the variable is set, and the first invocation after
that succeeds without a restart.

SQS-triggered handlers return a partial batch response so only failed
messages are redelivered (the event source mapping must enable
``ReportBatchItemFailures``). SNS-triggered invocations have no such
response and raise instead.
"""

import functools
from typing import Any, Dict, Mapping

from .core.consumers import (
    ImageIngestConsumer,
    MailerConsumer,
    MetadataUpdateConsumer,
    QueueConsumer,
    RejectionConsumer,
)
from .core.exceptions import MetadataPipelineError
from .core.factories import PipelineFactory
from .core.logging_config import bind_request_id, get_logger
from .core.models import BatchResult, PipelineConfig


@functools.lru_cache(maxsize=None)
def _config() -> PipelineConfig:
    return PipelineConfig.from_env()


@functools.lru_cache(maxsize=None)
def ingest_consumer() -> ImageIngestConsumer:
    return PipelineFactory.create_ingest_consumer(_config())


@functools.lru_cache(maxsize=None)
def mailer_consumer() -> MailerConsumer:
    return PipelineFactory.create_mailer_consumer(_config())


@functools.lru_cache(maxsize=None)
def metadata_update_consumer() -> MetadataUpdateConsumer:
    return PipelineFactory.create_metadata_update_consumer(_config())


@functools.lru_cache(maxsize=None)
def rejection_consumer() -> RejectionConsumer:
    return PipelineFactory.create_rejection_consumer(_config())


def _is_sqs_event(event: Mapping[str, Any]) -> bool:
    records = event.get("Records") or []
    return bool(records) and all(record.get("eventSource") == "aws:sqs" for record in records)


def _respond(consumer: QueueConsumer, event: Mapping[str, Any]) -> Dict[str, Any]:
    logger = get_logger("image-metadata-pipeline.handlers")
    result: BatchResult = consumer.process(event)
    logger.info(
        f"{consumer.component}: {len(result.results)} message(s), "
        f"{len(result.failures)} failed"
    )

    if _is_sqs_event(event) or not result.failures:
        return result.to_batch_response()

    errors = "; ".join(f"{r.message_id}: {r.error}" for r in result.failures)
    raise MetadataPipelineError(f"{len(result.failures)} message(s) failed: {errors}")


def ingest_handler(event: Dict[str, Any], context: Any = None) -> Dict[str, Any]:
    """Image-process queue: validate uploads and maintain metadata records."""
    bind_request_id(context)
    return _respond(ingest_consumer(), event)


def mailer_handler(event: Dict[str, Any], context: Any = None) -> Dict[str, Any]:
    """Mailer queue: upload confirmation emails."""
    bind_request_id(context)
    return _respond(mailer_consumer(), event)


def metadata_update_handler(event: Dict[str, Any], context: Any = None) -> Dict[str, Any]:
    """Metadata-update topic or queue: enrichment field updates."""
    bind_request_id(context)
    return _respond(metadata_update_consumer(), event)


def rejection_handler(event: Dict[str, Any], context: Any = None) -> Dict[str, Any]:
    """Dead-letter queue: rejection and removal-failure emails."""
    bind_request_id(context)
    return _respond(rejection_consumer(), event)
