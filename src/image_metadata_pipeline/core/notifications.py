"""Success and rejection email notifications."""

from html import escape
from typing import List, Optional, Tuple

from .exceptions import InvalidFileTypeError
from .models import EventKind, ObjectEvent
from .observability import LogContext
from .protocols import LoggerProtocol, NotificationTransport
from .validation import ImageValidator

SUCCESS_SUBJECT = "New Image Upload"
REJECTION_SUBJECT = "Image Upload Rejected"
GENERIC_FAILURE_REASON = "processing failed after repeated attempts"
REMOVAL_FAILURE_SUBJECT = "Image Removal Failed"
REMOVAL_FAILURE_REASON = "removal could not be applied after repeated attempts"


def render_success_email(event: ObjectEvent) -> Tuple[str, str]:
    """Return (subject, html body) for an upload that passed validation."""
    body = (
        "<html><body>"
        "<h2>Image received</h2>"
        f"<p>Your image <strong>{escape(event.object_key)}</strong> was received "
        "and accepted for processing.</p>"
        f"<p>Location: {escape(event.source_uri)}</p>"
        "</body></html>"
    )
    return SUCCESS_SUBJECT, body


def render_rejection_email(event: ObjectEvent, reason: str) -> Tuple[str, str]:
    """Return (subject, html body) for an event the pipeline gave up on."""
    if event.kind == EventKind.REMOVED:
        subject, heading, what = REMOVAL_FAILURE_SUBJECT, "Image removal failed", "removal of"
    else:
        subject, heading, what = REJECTION_SUBJECT, "Image rejected", "upload"
    body = (
        "<html><body>"
        f"<h2>{heading}</h2>"
        f"<p>The {what} <strong>{escape(event.object_key)}</strong> could not be "
        f"processed: {escape(reason)}.</p>"
        f"<p>Location: {escape(event.source_uri)}</p>"
        "</body></html>"
    )
    return subject, body


class NotificationDispatcher:
    """Sends one success notification per accepted upload."""

    def __init__(
        self,
        transport: NotificationTransport,
        recipients: List[str],
        logger: LoggerProtocol,
    ):
        self._transport = transport
        self._recipients = list(recipients)
        self._logger = logger

    def notify_ingested(self, event: ObjectEvent, context: Optional[LogContext] = None) -> str:
        """Send the success email; TransportError propagates."""
        subject, body = render_success_email(event)
        message_id = self._transport.publish(subject, body, self._recipients)
        self._logger.info(
            f"Sent upload notification for {event.object_key}",
            context,
            ses_message_id=message_id,
        )
        return message_id


class RejectionNotifier:
    """Sends rejection emails for messages that exhausted their retries."""

    def __init__(
        self,
        transport: NotificationTransport,
        recipients: List[str],
        validator: ImageValidator,
        logger: LoggerProtocol,
    ):
        self._transport = transport
        self._recipients = list(recipients)
        self._validator = validator
        self._logger = logger

    def rejection_reason(self, event: ObjectEvent) -> str:
        """Summarize why an event most likely failed.

        Dead-lettered messages carry no error, so the file-type policy is
        re-checked; anything that passes it failed for another reason.
        """
        if event.kind == EventKind.REMOVED:
            return REMOVAL_FAILURE_REASON
        try:
            self._validator.validate(event.object_key)
        except InvalidFileTypeError as e:
            if e.extension:
                return f"unsupported file type '.{e.extension}'"
            return "file has no extension"
        return GENERIC_FAILURE_REASON

    def events_to_report(self, events: List[ObjectEvent]) -> List[ObjectEvent]:
        """Pick the events of a dead-lettered message that most likely failed.

        The ingest consumer applies every event of a message before failing
        it, so when some creation events break the file-type policy those are
        the failures and the rest were applied. Otherwise every event is
        reported.
        """
        invalid = [
            event
            for event in events
            if event.kind == EventKind.CREATED
            and not self._validator.is_valid(event.object_key)
        ]
        return invalid or list(events)

    def notify_rejected(
        self,
        event: ObjectEvent,
        reason: Optional[str] = None,
        context: Optional[LogContext] = None,
    ) -> str:
        """Send the rejection email; TransportError propagates."""
        reason = reason or self.rejection_reason(event)
        subject, body = render_rejection_email(event, reason)
        message_id = self._transport.publish(subject, body, self._recipients)
        self._logger.warning(
            f"Sent rejection notification for {event.object_key}",
            context,
            reason=reason,
            ses_message_id=message_id,
        )
        return message_id
