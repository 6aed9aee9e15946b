"""Event-driven image metadata pipeline (S3 → SNS → SQS → DynamoDB / SES)."""

__version__ = "0.1.0"
