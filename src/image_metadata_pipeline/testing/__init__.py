"""Testing utilities and fakes for the image metadata pipeline."""

from .fakes import (
    FakeS3Client,
    FakeDynamoDBClient,
    FakeSESClient,
    FakeLogger,
    FakeTopic,
    InMemoryQueue,
    S3Object,
    S3Bucket,
    client_error,
    setup_test_environment,
)

__all__ = [
    "FakeS3Client",
    "FakeDynamoDBClient",
    "FakeSESClient",
    "FakeLogger",
    "FakeTopic",
    "InMemoryQueue",
    "S3Object",
    "S3Bucket",
    "client_error",
    "setup_test_environment",
]
