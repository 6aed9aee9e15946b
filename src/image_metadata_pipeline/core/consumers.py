"""Queue consumers: one per subscription of the image topic.

Each consumer turns a delivered batch into per-message outcomes. Errors
escaping the per-message handler are classified by the redrive policy
instead of failing the whole batch, so a bad message is redelivered (and
eventually dead-lettered) on its own.
"""

import time
import uuid
from abc import ABC, abstractmethod
from typing import Any, Callable, List, Mapping, Optional

from ..processors.serial import process_batch as serial_process_batch
from .classifier import classify
from .error_handling import BatchOperationContextManager
from .models import BatchResult, EventKind, MessageResult, ObjectEvent, Outcome
from .normalizer import normalize_message, normalize_update_record
from .notifications import NotificationDispatcher, RejectionNotifier
from .observability import LogContext, MetricsCollector, PerformanceMetrics
from .protocols import LoggerProtocol
from .retry import RedrivePolicy, classify_failure, receive_count
from .services import MetadataFieldUpdater, MetadataStoreWriter
from .validation import ImageValidator

ProcessBatchFunction = Callable[
    [List[Mapping[str, Any]], Callable[[Mapping[str, Any]], MessageResult]],
    List[MessageResult],
]


def message_id_of(record: Mapping[str, Any]) -> str:
    """Identify a record by its SQS messageId or SNS MessageId."""
    if record.get("messageId"):
        return str(record["messageId"])
    sns = record.get("Sns")
    if isinstance(sns, dict) and sns.get("MessageId"):
        return str(sns["MessageId"])
    return str(uuid.uuid4())


class QueueConsumer(ABC):
    """Common batch handling for every pipeline consumer."""

    component = "consumer"

    def __init__(
        self,
        logger: LoggerProtocol,
        redrive_policy: Optional[RedrivePolicy] = None,
        process_batch_fn: Optional[ProcessBatchFunction] = None,
        metrics_collector: Optional[MetricsCollector] = None,
    ):
        self._logger = logger
        self._redrive_policy = redrive_policy or RedrivePolicy()
        self._process_batch_fn = process_batch_fn or serial_process_batch
        self._metrics_collector = metrics_collector

    @abstractmethod
    def handle_message(self, record: Mapping[str, Any], context: LogContext) -> Outcome:
        """Process one transport record; raise to fail it."""
        ...

    def process(self, event: Mapping[str, Any]) -> BatchResult:
        """Process every record of a delivered batch."""
        records = list(event.get("Records") or [])

        with BatchOperationContextManager(f"{self.component} batch ({len(records)} messages)") as batch:
            results = self._process_batch_fn(records, self.process_record)
            for result in results:
                if result.failed:
                    batch.add_error(result.error, result.message_id)

        return BatchResult(results=results)

    def process_record(self, record: Mapping[str, Any]) -> MessageResult:
        """Run the handler for one record and capture its outcome."""
        message_id = message_id_of(record)
        attempt = receive_count(record)
        context = LogContext(
            correlation_id=message_id,
            operation="handle_message",
            component=self.component,
        ).with_metadata(receive_count=attempt)

        start_time = time.time()
        error = ""
        try:
            outcome = self.handle_message(record, context)
        except Exception as e:
            outcome = classify_failure(e)
            error = f"{type(e).__name__}: {e}"
            self._report_failure(outcome, error, attempt, context)
        end_time = time.time()

        if self._metrics_collector is not None:
            self._metrics_collector.record_metric(
                PerformanceMetrics(
                    operation=self.component,
                    start_time=start_time,
                    end_time=end_time,
                    success=outcome != Outcome.RETRYABLE,
                    error_message=error or None,
                    metadata={"message_id": message_id, "outcome": outcome.value},
                )
            )

        return MessageResult(
            message_id=message_id,
            outcome=outcome,
            error=error,
            processing_time=end_time - start_time,
        )

    def _report_failure(
        self, outcome: Outcome, error: str, attempt: int, context: LogContext
    ) -> None:
        if outcome == Outcome.ABSORBED:
            self._logger.warning(f"Message failed and will not be retried: {error}", context)
        elif self._redrive_policy.is_final_attempt(attempt):
            self._logger.error(
                f"Message failed on its final attempt and will be dead-lettered: {error}",
                context,
            )
        else:
            self._logger.warning(
                f"Message failed and will be redelivered: {error}",
                context,
                attempts_remaining=self._redrive_policy.attempts_remaining(attempt),
            )

    def _object_events(self, record: Mapping[str, Any], context: LogContext) -> List[ObjectEvent]:
        """Decode and classify the S3 events of one record, dropping unhandled types."""
        events = []
        for raw in normalize_message(record):
            event = classify(raw)
            if event is None:
                self._logger.debug(
                    f"Skipping unhandled event type '{raw.event_name}'",
                    context,
                    object_key=raw.object_key,
                )
                continue
            events.append(event)
        return events


class ImageIngestConsumer(QueueConsumer):
    """Creates and removes metadata records from object notifications."""

    component = "image_ingest"

    def __init__(self, writer: MetadataStoreWriter, logger: LoggerProtocol, **kwargs: Any):
        super().__init__(logger, **kwargs)
        self._writer = writer

    def handle_message(self, record: Mapping[str, Any], context: LogContext) -> Outcome:
        """Apply every event of the message, then fail it if any event failed."""
        events = self._object_events(record, context)
        failures: List[Exception] = []
        for event in events:
            event_context = context.with_metadata(object_key=event.object_key, kind=event.kind.value)
            self._logger.info(f"Processing file: {event.object_key} in bucket: {event.bucket_name}", event_context)
            try:
                self._writer.handle(event, event_context)
            except Exception as e:
                self._logger.warning(f"Failed to process {event.object_key}: {e}", event_context)
                failures.append(e)

        if failures:
            raise failures[0]
        return Outcome.SUCCEEDED if events else Outcome.SKIPPED


class MailerConsumer(QueueConsumer):
    """Emails a success notification for each accepted upload."""

    component = "mailer"

    def __init__(
        self,
        dispatcher: NotificationDispatcher,
        validator: ImageValidator,
        logger: LoggerProtocol,
        **kwargs: Any,
    ):
        super().__init__(logger, **kwargs)
        self._dispatcher = dispatcher
        self._validator = validator

    def handle_message(self, record: Mapping[str, Any], context: LogContext) -> Outcome:
        sent = 0
        for event in self._object_events(record, context):
            if event.kind != EventKind.CREATED:
                continue
            if not self._validator.is_valid(event.object_key):
                # Reported through the rejection path once retries run out
                self._logger.info(f"No upload notification for rejected file {event.object_key}", context)
                continue
            self._dispatcher.notify_ingested(event, context)
            sent += 1
        return Outcome.SUCCEEDED if sent else Outcome.SKIPPED


class MetadataUpdateConsumer(QueueConsumer):
    """Applies enrichment updates to existing records."""

    component = "metadata_update"

    def __init__(self, updater: MetadataFieldUpdater, logger: LoggerProtocol, **kwargs: Any):
        super().__init__(logger, **kwargs)
        self._updater = updater

    def handle_message(self, record: Mapping[str, Any], context: LogContext) -> Outcome:
        message = normalize_update_record(record)
        return self._updater.apply(
            message,
            context.with_metadata(image_name=message.target_image_name),
        )


class RejectionConsumer(QueueConsumer):
    """Emails a failure notice for the events of every dead-lettered message."""

    component = "rejection_mailer"

    def __init__(self, notifier: RejectionNotifier, logger: LoggerProtocol, **kwargs: Any):
        super().__init__(logger, **kwargs)
        self._notifier = notifier

    def handle_message(self, record: Mapping[str, Any], context: LogContext) -> Outcome:
        events = self._object_events(record, context)
        if not events:
            self._logger.error(
                f"Dead-lettered message carries no object events: {record.get('body', '')}",
                context,
            )
            return Outcome.ABSORBED

        for event in self._notifier.events_to_report(events):
            self._notifier.notify_rejected(
                event, context=context.with_metadata(object_key=event.object_key)
            )
        return Outcome.SUCCEEDED
