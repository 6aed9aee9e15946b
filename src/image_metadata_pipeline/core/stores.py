"""boto3-backed adapters for the object store, record store and email transport."""

from typing import Any, BinaryIO, Dict, List, Mapping, Optional

from boto3.dynamodb.types import TypeDeserializer, TypeSerializer
from botocore.exceptions import ClientError

from .error_handling import client_error_code, with_error_handling
from .exceptions import (
    FetchFailedError,
    RecordNotFoundError,
    RecordStoreError,
    TransportError,
)
from .models import EnrichmentField, ImageRecord
from .protocols import (
    DynamoDBClientProtocol,
    FieldUpdate,
    NotificationTransport,
    ObjectStore,
    RecordStore,
    S3ClientProtocol,
    SESClientProtocol,
)

PARTITION_KEY = "ImageName"
METADATA_ATTRIBUTE = "metadata"
RECORD_EXISTS_CONDITION = f"attribute_exists({PARTITION_KEY})"
STREAM_CHUNK_SIZE = 64 * 1024


class S3ObjectStore(ObjectStore):
    """Reads object content from S3."""

    def __init__(self, s3_client: S3ClientProtocol, chunk_size: int = STREAM_CHUNK_SIZE):
        self._s3_client = s3_client
        self._chunk_size = chunk_size

    @with_error_handling(FetchFailedError)
    def get_object(self, bucket: str, key: str) -> BinaryIO:
        response = self._s3_client.get_object(Bucket=bucket, Key=key)
        return response["Body"]

    @with_error_handling(FetchFailedError)
    def stream_length(self, stream: BinaryIO) -> int:
        total = 0
        try:
            while True:
                chunk = stream.read(self._chunk_size)
                if not chunk:
                    break
                total += len(chunk)
        finally:
            stream.close()
        return total

    def fetch_size(self, bucket: str, key: str) -> int:
        """Stream an object and return its length in bytes."""
        return self.stream_length(self.get_object(bucket, key))


class DynamoDBRecordStore(RecordStore):
    """Image metadata records in a DynamoDB table keyed by ``ImageName``."""

    def __init__(self, dynamodb_client: DynamoDBClientProtocol, table_name: str):
        self._client = dynamodb_client
        self._table_name = table_name
        self._serializer = TypeSerializer()
        self._deserializer = TypeDeserializer()

    @property
    def table_name(self) -> str:
        return self._table_name

    def _key(self, key: str) -> Dict[str, Any]:
        return {PARTITION_KEY: {"S": key}}

    @with_error_handling(RecordStoreError)
    def put(self, key: str, fields: Mapping[str, Any]) -> None:
        # UpdateItem upserts and leaves attributes it does not name alone
        names: Dict[str, str] = {}
        values: Dict[str, Any] = {}
        assignments: List[str] = []
        for index, (name, value) in enumerate(fields.items()):
            names[f"#f{index}"] = name
            values[f":v{index}"] = self._serializer.serialize(value)
            assignments.append(f"#f{index} = :v{index}")

        self._client.update_item(
            TableName=self._table_name,
            Key=self._key(key),
            UpdateExpression="SET " + ", ".join(assignments),
            ExpressionAttributeNames=names,
            ExpressionAttributeValues=values,
        )

    @with_error_handling(RecordStoreError)
    def update_if_exists(self, key: str, update: FieldUpdate) -> None:
        params: Dict[str, Any] = {
            "TableName": self._table_name,
            "Key": self._key(key),
            "UpdateExpression": update.update_expression,
            "ConditionExpression": RECORD_EXISTS_CONDITION,
            "ExpressionAttributeValues": {":value": {"S": update.value}},
        }
        # DynamoDB rejects an empty ExpressionAttributeNames map
        if update.attribute_names:
            params["ExpressionAttributeNames"] = dict(update.attribute_names)

        try:
            self._client.update_item(**params)
        except ClientError as e:
            if client_error_code(e) == "ConditionalCheckFailedException":
                raise RecordNotFoundError(key) from e
            raise

    @with_error_handling(RecordStoreError)
    def delete_if_exists(self, key: str) -> None:
        self._client.delete_item(TableName=self._table_name, Key=self._key(key))

    @with_error_handling(RecordStoreError)
    def get(self, key: str) -> Optional[ImageRecord]:
        response = self._client.get_item(
            TableName=self._table_name, Key=self._key(key), ConsistentRead=True
        )
        item = response.get("Item")
        if not item:
            return None

        plain = {name: self._deserializer.deserialize(value) for name, value in item.items()}
        metadata = plain.get(METADATA_ATTRIBUTE) or {}
        file_size = metadata.get("fileSize")
        return ImageRecord(
            image_name=plain[PARTITION_KEY],
            file_size=int(file_size) if file_size is not None else None,
            file_extension=metadata.get("fileExtension"),
            enrichment={
                field.value: str(plain[field.value])
                for field in EnrichmentField
                if field.value in plain
            },
        )


class SESNotificationTransport(NotificationTransport):
    """Sends HTML email through Amazon SES."""

    def __init__(self, ses_client: SESClientProtocol, sender: str):
        self._client = ses_client
        self._sender = sender

    @with_error_handling(TransportError)
    def publish(self, subject: str, html_body: str, recipients: List[str]) -> str:
        if not recipients:
            raise TransportError("No recipients configured for notification")

        response = self._client.send_email(
            Source=self._sender,
            Destination={"ToAddresses": list(recipients)},
            Message={
                "Subject": {"Charset": "UTF-8", "Data": subject},
                "Body": {"Html": {"Charset": "UTF-8", "Data": html_body}},
            },
        )
        return response.get("MessageId", "")
