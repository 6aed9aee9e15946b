"""Redelivery budget and outcome classification for queue consumers.

Backoff between attempts belongs to the queue (visibility timeout); this
module only decides how an error counts and when a message is spent.
"""

import json
from typing import Any, Mapping

from pydantic import BaseModel, Field

from .exceptions import MetadataPipelineError
from .models import Outcome

DEFAULT_MAX_RECEIVE_COUNT = 3
RECEIVE_COUNT_ATTRIBUTE = "ApproximateReceiveCount"


class RedrivePolicy(BaseModel):
    """How many receives a message gets before it moves to the dead-letter queue."""

    max_receive_count: int = Field(default=DEFAULT_MAX_RECEIVE_COUNT, ge=1)

    def should_dead_letter(self, receive_count: int) -> bool:
        """True once a message has been received more times than allowed."""
        return receive_count > self.max_receive_count

    def attempts_remaining(self, receive_count: int) -> int:
        return max(self.max_receive_count - receive_count, 0)

    def is_final_attempt(self, receive_count: int) -> bool:
        return receive_count >= self.max_receive_count

    def to_queue_attribute(self, dead_letter_queue_arn: str) -> str:
        """Render the SQS ``RedrivePolicy`` queue attribute."""
        return json.dumps(
            {
                "deadLetterTargetArn": dead_letter_queue_arn,
                "maxReceiveCount": str(self.max_receive_count),
            }
        )


def receive_count(record: Mapping[str, Any]) -> int:
    """Read the SQS receive count of a record; 1 when the transport omits it."""
    attributes = record.get("attributes") or {}
    try:
        return max(int(attributes.get(RECEIVE_COUNT_ATTRIBUTE, 1)), 1)
    except (TypeError, ValueError):
        return 1


def classify_failure(error: BaseException) -> Outcome:
    """
    Decide whether an error escaping a message handler uses up an attempt.

    Pipeline errors declare this themselves; anything unexpected is retried.
    """
    if isinstance(error, MetadataPipelineError) and not error.retryable:
        return Outcome.ABSORBED
    return Outcome.RETRYABLE
