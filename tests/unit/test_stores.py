"""Unit tests for the boto3 store adapters."""

import io
from unittest.mock import Mock

import pytest

from image_metadata_pipeline.core.exceptions import (
    FetchFailedError,
    RecordNotFoundError,
    RecordStoreError,
    TransportError,
)
from image_metadata_pipeline.core.protocols import FieldUpdate
from image_metadata_pipeline.core.stores import (
    DynamoDBRecordStore,
    S3ObjectStore,
    SESNotificationTransport,
)
from image_metadata_pipeline.testing.fakes import (
    FakeDynamoDBClient,
    FakeS3Client,
    FakeSESClient,
    client_error,
)


class TestS3ObjectStore:
    """Tests for S3ObjectStore."""

    def test_fetch_size_counts_streamed_bytes(self):
        s3 = FakeS3Client()
        s3.create_bucket("images").add_object("big.png", b"a" * 200_000)
        store = S3ObjectStore(s3, chunk_size=1024)

        assert store.fetch_size("images", "big.png") == 200_000

    def test_stream_length_empty_object(self):
        store = S3ObjectStore(FakeS3Client())

        assert store.stream_length(io.BytesIO(b"")) == 0

    def test_stream_length_closes_stream(self):
        stream = io.BytesIO(b"abc")
        S3ObjectStore(FakeS3Client()).stream_length(stream)

        assert stream.closed

    @pytest.mark.parametrize(
        "bucket,key",
        [("images", "missing.png"), ("no-such-bucket", "sunset.png")],
    )
    def test_get_object_not_found(self, bucket, key):
        s3 = FakeS3Client()
        s3.create_bucket("images")
        store = S3ObjectStore(s3)

        with pytest.raises(FetchFailedError):
            store.get_object(bucket, key)

    def test_access_denied_is_fetch_failure(self):
        s3 = FakeS3Client()
        s3.set_failure_mode(True, "Access Denied", "AccessDenied")

        with pytest.raises(FetchFailedError, match="Access Denied"):
            S3ObjectStore(s3).fetch_size("images", "sunset.png")

    def test_read_error_is_fetch_failure(self):
        body = Mock()
        body.read.side_effect = IOError("connection reset")

        with pytest.raises(FetchFailedError, match="connection reset"):
            S3ObjectStore(FakeS3Client()).stream_length(body)
        body.close.assert_called_once()


class TestDynamoDBRecordStore:
    """Tests for DynamoDBRecordStore."""

    @pytest.fixture
    def client(self):
        client = FakeDynamoDBClient()
        client.create_table("ImageTable")
        return client

    @pytest.fixture
    def store(self, client):
        return DynamoDBRecordStore(client, "ImageTable")

    def test_put_then_get(self, store):
        store.put("sunset.png", {"metadata": {"fileSize": 2048, "fileExtension": "png"}})

        record = store.get("sunset.png")

        assert record.image_name == "sunset.png"
        assert record.file_size == 2048
        assert record.file_extension == "png"
        assert record.enrichment == {}

    def test_put_uses_update_item_with_aliases(self, client, store):
        store.put("a.png", {"metadata": {"fileSize": 1, "fileExtension": "png"}})

        call = client.calls[-1]
        assert call["operation"] == "UpdateItem"
        assert call["UpdateExpression"] == "SET #f0 = :v0"
        assert call["ExpressionAttributeNames"] == {"#f0": "metadata"}
        assert call["ConditionExpression"] is None

    def test_get_missing_returns_none(self, store):
        assert store.get("nothing.png") is None

    def test_update_if_exists_sets_enrichment(self, store):
        store.put("sunset.png", {"metadata": {"fileSize": 2048, "fileExtension": "png"}})

        store.update_if_exists(
            "sunset.png",
            FieldUpdate("SET #date = :value", "2024-06-01", {"#date": "Date"}),
        )

        assert store.get("sunset.png").enrichment == {"Date": "2024-06-01"}

    def test_update_if_exists_omits_empty_attribute_names(self, client, store):
        store.put("sunset.png", {"metadata": {"fileSize": 1, "fileExtension": "png"}})

        store.update_if_exists("sunset.png", FieldUpdate("SET Caption = :value", "Hi"))

        call = client.calls[-1]
        assert call["ExpressionAttributeNames"] is None
        assert call["ConditionExpression"] == "attribute_exists(ImageName)"

    def test_update_if_exists_missing_record(self, client, store):
        with pytest.raises(RecordNotFoundError) as exc_info:
            store.update_if_exists("ghost.png", FieldUpdate("SET Caption = :value", "x"))

        assert exc_info.value.image_name == "ghost.png"
        assert client.tables["ImageTable"] == {}

    def test_delete_if_exists_is_idempotent(self, client, store):
        store.put("a.png", {"metadata": {"fileSize": 1, "fileExtension": "png"}})

        store.delete_if_exists("a.png")
        store.delete_if_exists("a.png")

        assert client.tables["ImageTable"] == {}

    def test_unknown_table_is_store_error(self, client):
        store = DynamoDBRecordStore(client, "OtherTable")

        with pytest.raises(RecordStoreError, match="Requested resource not found"):
            store.delete_if_exists("a.png")

    def test_client_error_translation_with_mock(self):
        client = Mock()
        client.update_item.side_effect = client_error(
            "ConditionalCheckFailedException", "The conditional request failed", "UpdateItem"
        )
        store = DynamoDBRecordStore(client, "ImageTable")

        with pytest.raises(RecordNotFoundError):
            store.update_if_exists("x.png", FieldUpdate("SET Caption = :value", "x"))


class TestSESNotificationTransport:
    """Tests for SESNotificationTransport."""

    def test_publish_sends_html_email(self):
        ses = FakeSESClient()
        transport = SESNotificationTransport(ses, "sender@example.com")

        message_id = transport.publish("Subject", "<p>Hi</p>", ["a@example.com", "b@example.com"])

        assert message_id == ses.sent[0]["MessageId"]
        assert ses.sent[0]["Source"] == "sender@example.com"
        assert ses.sent[0]["ToAddresses"] == ["a@example.com", "b@example.com"]
        assert ses.sent[0]["Html"] == "<p>Hi</p>"

    def test_publish_failure_is_transport_error(self):
        ses = FakeSESClient()
        ses.set_failure_mode(True, "Email address is not verified", "MessageRejected")

        with pytest.raises(TransportError, match="not verified"):
            SESNotificationTransport(ses, "sender@example.com").publish("S", "B", ["a@example.com"])

    def test_publish_without_recipients(self):
        ses = FakeSESClient()

        with pytest.raises(TransportError):
            SESNotificationTransport(ses, "sender@example.com").publish("S", "B", [])
        assert ses.sent == []
