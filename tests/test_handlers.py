"""Tests for the Lambda entry points."""

from types import SimpleNamespace

import pytest

from image_metadata_pipeline import handlers
from image_metadata_pipeline.core.exceptions import ConfigurationError, MetadataPipelineError
from image_metadata_pipeline.core.factories import AWSClientFactory
from image_metadata_pipeline.core.logging_config import current_request_id
from image_metadata_pipeline.testing.events import (
    object_event_record,
    sns_event,
    sns_update_record,
    sqs_event,
)
from image_metadata_pipeline.testing.fakes import setup_test_environment


def _clear_caches():
    for cached in (
        handlers._config,
        handlers.ingest_consumer,
        handlers.mailer_consumer,
        handlers.metadata_update_consumer,
        handlers.rejection_consumer,
    ):
        cached.cache_clear()


@pytest.fixture
def env(monkeypatch):
    env = setup_test_environment()
    monkeypatch.setenv("TABLE_NAME", env["table_name"])
    monkeypatch.setenv("SES_EMAIL_FROM", "noreply@example.com")
    monkeypatch.setenv("SES_EMAIL_TO", "owner@example.com")
    monkeypatch.setenv("SES_REGION", "eu-west-1")
    monkeypatch.setattr(AWSClientFactory, "create_s3_client", lambda *args, **kwargs: env["s3"])
    monkeypatch.setattr(AWSClientFactory, "create_dynamodb_client", lambda *args, **kwargs: env["dynamodb"])
    monkeypatch.setattr(AWSClientFactory, "create_ses_client", lambda *args, **kwargs: env["ses"])
    _clear_caches()
    yield env
    _clear_caches()


class TestIngestHandler:
    """Tests for ingest_handler."""

    def test_partial_batch_response(self, env):
        response = handlers.ingest_handler(
            sqs_event(
                object_event_record("images", "sunset.png", message_id="ok"),
                object_event_record("images", "notes.pdf", message_id="bad"),
            )
        )

        assert response == {"batchItemFailures": [{"itemIdentifier": "bad"}]}
        assert env["dynamodb"].plain_item(env["table_name"], "sunset.png") is not None

    def test_consumer_is_reused(self, env):
        assert handlers.ingest_consumer() is handlers.ingest_consumer()

    def test_missing_table_name_fails(self, env, monkeypatch):
        monkeypatch.delenv("TABLE_NAME")
        monkeypatch.delenv("IMAGE_TABLE_NAME", raising=False)
        _clear_caches()

        with pytest.raises(ConfigurationError, match="TABLE_NAME"):
            handlers.ingest_handler(sqs_event(object_event_record("images", "sunset.png")))

    def test_missing_config_fails_every_invocation_until_set(self, env, monkeypatch):
        monkeypatch.delenv("TABLE_NAME")
        monkeypatch.delenv("IMAGE_TABLE_NAME", raising=False)
        _clear_caches()
        event = sqs_event(object_event_record("images", "sunset.png"))

        for _ in range(2):
            with pytest.raises(ConfigurationError):
                handlers.ingest_handler(event)

        monkeypatch.setenv("TABLE_NAME", env["table_name"])

        assert handlers.ingest_handler(event) == {"batchItemFailures": []}

    def test_binds_lambda_request_id(self, env):
        context = SimpleNamespace(aws_request_id="req-123")

        handlers.ingest_handler(sqs_event(object_event_record("images", "sunset.png")), context)

        assert current_request_id() == "req-123"


class TestMailerHandlers:
    """Tests for mailer_handler and rejection_handler."""

    def test_mailer_sends_success_email(self, env):
        handlers.mailer_handler(sqs_event(object_event_record("images", "beach.jpeg")))

        assert [email["Subject"] for email in env["ses"].sent] == ["New Image Upload"]

    def test_rejection_handler_sends_rejection_email(self, env):
        response = handlers.rejection_handler(sqs_event(object_event_record("images", "notes.pdf")))

        assert response == {"batchItemFailures": []}
        assert [email["Subject"] for email in env["ses"].sent] == ["Image Upload Rejected"]

    def test_missing_recipients_fail(self, env, monkeypatch):
        monkeypatch.delenv("SES_EMAIL_TO")
        _clear_caches()

        with pytest.raises(ConfigurationError, match="SES_EMAIL_TO"):
            handlers.mailer_handler(sqs_event())


class TestMetadataUpdateHandler:
    """Tests for metadata_update_handler."""

    def test_sns_update(self, env):
        handlers.ingest_handler(sqs_event(object_event_record("images", "sunset.png")))

        response = handlers.metadata_update_handler(
            sns_event(sns_update_record("sunset.png", "Caption", "Golden hour"))
        )

        assert response == {"batchItemFailures": []}
        assert env["dynamodb"].plain_item(env["table_name"], "sunset.png")["Caption"] == "Golden hour"

    def test_sns_failure_raises(self, env):
        env["dynamodb"].set_failure_mode(True, "Throttled", code="ThrottlingException")

        with pytest.raises(MetadataPipelineError, match="1 message"):
            handlers.metadata_update_handler(
                sns_event(sns_update_record("sunset.png", "Caption", "Golden hour", message_id="m-1"))
            )

    def test_missing_record_does_not_raise(self, env):
        response = handlers.metadata_update_handler(
            sns_event(sns_update_record("ghost.png", "Caption", "Nobody home"))
        )

        assert response == {"batchItemFailures": []}
