"""Factory classes for creating configured consumers and their dependencies.

Clients are created once per process and injected; nothing here keeps
module-level client state.
"""

import functools
from typing import Any, Optional

import boto3

from ..processors import multithread_process_batch, serial_process_batch
from .consumers import (
    ImageIngestConsumer,
    MailerConsumer,
    MetadataUpdateConsumer,
    ProcessBatchFunction,
    RejectionConsumer,
)
from .models import PipelineConfig
from .notifications import NotificationDispatcher, RejectionNotifier
from .observability import MetricsCollector, StructuredLogger
from .protocols import (
    DynamoDBClientProtocol,
    LoggerProtocol,
    S3ClientProtocol,
    SESClientProtocol,
)
from .retry import RedrivePolicy
from .services import MetadataFieldUpdater, MetadataStoreWriter
from .stores import DynamoDBRecordStore, S3ObjectStore, SESNotificationTransport
from .validation import ImageValidator


class LoggerFactory:
    """Factory for creating logger instances."""

    @staticmethod
    def create_logger(name: str, level: Optional[str] = None) -> LoggerProtocol:
        """Create a configured structured logger."""
        return StructuredLogger(name, level=level)


class AWSClientFactory:
    """Factory for boto3 client instances."""

    @staticmethod
    def _client(service_name: str, region: Optional[str] = None, **kwargs: Any) -> Any:
        session = boto3.Session()
        if region:
            kwargs["region_name"] = region
        return session.client(service_name, **kwargs)

    @classmethod
    def create_s3_client(cls, region: Optional[str] = None, **kwargs: Any) -> S3ClientProtocol:
        """Create S3 client with optional configuration."""
        return cls._client("s3", region, **kwargs)

    @classmethod
    def create_dynamodb_client(
        cls, region: Optional[str] = None, **kwargs: Any
    ) -> DynamoDBClientProtocol:
        """Create a low-level DynamoDB client."""
        return cls._client("dynamodb", region, **kwargs)

    @classmethod
    def create_ses_client(cls, region: Optional[str] = None, **kwargs: Any) -> SESClientProtocol:
        """Create an SES client."""
        return cls._client("ses", region, **kwargs)


class PipelineFactory:
    """Factory for the four pipeline consumers."""

    @staticmethod
    def create_batch_processor(config: PipelineConfig) -> ProcessBatchFunction:
        """Pick the batch strategy named by the configuration."""
        if config.processor == "multithread":
            return functools.partial(
                multithread_process_batch, max_workers=config.max_workers
            )
        return serial_process_batch

    @classmethod
    def _consumer_options(
        cls, config: PipelineConfig, metrics_collector: Optional[MetricsCollector]
    ) -> dict:
        return {
            "redrive_policy": RedrivePolicy(max_receive_count=config.max_receive_count),
            "process_batch_fn": cls.create_batch_processor(config),
            "metrics_collector": metrics_collector,
        }

    @classmethod
    def create_ingest_consumer(
        cls,
        config: PipelineConfig,
        s3_client: Optional[S3ClientProtocol] = None,
        dynamodb_client: Optional[DynamoDBClientProtocol] = None,
        logger: Optional[LoggerProtocol] = None,
        metrics_collector: Optional[MetricsCollector] = None,
    ) -> ImageIngestConsumer:
        """Create the consumer that records and removes image metadata."""
        config.require("table_name", "allowed_extensions")

        if s3_client is None:
            s3_client = AWSClientFactory.create_s3_client(config.region)
        if dynamodb_client is None:
            dynamodb_client = AWSClientFactory.create_dynamodb_client(config.region)
        if logger is None:
            logger = LoggerFactory.create_logger("image-metadata-pipeline.ingest")

        writer = MetadataStoreWriter(
            object_store=S3ObjectStore(s3_client),
            record_store=DynamoDBRecordStore(dynamodb_client, config.table_name),
            validator=ImageValidator(config.allowed_extensions),
            logger=logger,
        )
        return ImageIngestConsumer(
            writer, logger, **cls._consumer_options(config, metrics_collector)
        )

    @classmethod
    def create_mailer_consumer(
        cls,
        config: PipelineConfig,
        ses_client: Optional[SESClientProtocol] = None,
        logger: Optional[LoggerProtocol] = None,
        metrics_collector: Optional[MetricsCollector] = None,
    ) -> MailerConsumer:
        """Create the consumer that sends upload success emails."""
        config.require("email_from", "email_to", "allowed_extensions")

        if ses_client is None:
            ses_client = AWSClientFactory.create_ses_client(config.region)
        if logger is None:
            logger = LoggerFactory.create_logger("image-metadata-pipeline.mailer")

        dispatcher = NotificationDispatcher(
            SESNotificationTransport(ses_client, config.email_from),
            config.email_to,
            logger,
        )
        return MailerConsumer(
            dispatcher,
            ImageValidator(config.allowed_extensions),
            logger,
            **cls._consumer_options(config, metrics_collector),
        )

    @classmethod
    def create_metadata_update_consumer(
        cls,
        config: PipelineConfig,
        dynamodb_client: Optional[DynamoDBClientProtocol] = None,
        logger: Optional[LoggerProtocol] = None,
        metrics_collector: Optional[MetricsCollector] = None,
    ) -> MetadataUpdateConsumer:
        """Create the consumer that applies enrichment updates."""
        config.require("table_name")

        if dynamodb_client is None:
            dynamodb_client = AWSClientFactory.create_dynamodb_client(config.region)
        if logger is None:
            logger = LoggerFactory.create_logger("image-metadata-pipeline.update")

        updater = MetadataFieldUpdater(
            DynamoDBRecordStore(dynamodb_client, config.table_name), logger
        )
        return MetadataUpdateConsumer(
            updater, logger, **cls._consumer_options(config, metrics_collector)
        )

    @classmethod
    def create_rejection_consumer(
        cls,
        config: PipelineConfig,
        ses_client: Optional[SESClientProtocol] = None,
        logger: Optional[LoggerProtocol] = None,
        metrics_collector: Optional[MetricsCollector] = None,
    ) -> RejectionConsumer:
        """Create the dead-letter consumer that sends rejection emails."""
        config.require("email_from", "email_to", "allowed_extensions")

        if ses_client is None:
            ses_client = AWSClientFactory.create_ses_client(config.region)
        if logger is None:
            logger = LoggerFactory.create_logger("image-metadata-pipeline.rejection")

        notifier = RejectionNotifier(
            SESNotificationTransport(ses_client, config.email_from),
            config.email_to,
            ImageValidator(config.allowed_extensions),
            logger,
        )
        return RejectionConsumer(
            notifier, logger, **cls._consumer_options(config, metrics_collector)
        )
