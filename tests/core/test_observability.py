"""Tests for context-aware logging and metrics collection."""

from unittest.mock import patch

from image_metadata_pipeline.core.observability import (
    LogContext,
    MetricsCollector,
    PerformanceMetrics,
    StructuredLogger,
)


class TestLogContext:
    """Tests for LogContext."""

    def test_with_metadata_copies(self):
        base = LogContext(correlation_id="m-1", operation="handle_message", component="mailer")

        derived = base.with_metadata(object_key="a.png")

        assert derived.metadata == {"object_key": "a.png"}
        assert base.metadata == {}
        assert derived.correlation_id == "m-1"
        assert derived.component == "mailer"


class TestStructuredLogger:
    """Tests for StructuredLogger."""

    def test_formats_context_and_kwargs(self):
        logger = StructuredLogger("test-structured-logger")
        context = LogContext(correlation_id="m-1", operation="handle_message").with_metadata(
            receive_count=2
        )

        with patch.object(logger.logger, "warning") as warning:
            logger.warning("Message failed", context, attempts_remaining=1)

        warning.assert_called_once_with(
            "[handle_message] [m-1] Message failed (receive_count=2, attempts_remaining=1)"
        )

    def test_plain_message(self):
        logger = StructuredLogger("test-structured-plain")

        with patch.object(logger.logger, "info") as info:
            logger.info("hello")

        info.assert_called_once_with("hello")


class TestMetricsCollector:
    """Tests for MetricsCollector."""

    def test_summary(self):
        collector = MetricsCollector()
        collector.record_metric(PerformanceMetrics("image_ingest", 0.0, 1.0, True))
        collector.record_metric(PerformanceMetrics("image_ingest", 0.0, 3.0, False, "boom"))
        collector.record_metric(PerformanceMetrics("mailer", 0.0, 2.0, True))

        summary = collector.get_summary("image_ingest")

        assert summary["total_operations"] == 2
        assert summary["failed_operations"] == 1
        assert summary["success_rate"] == 0.5
        assert summary["avg_duration"] == 2.0
        assert summary["max_duration"] == 3.0
        assert collector.get_summary()["total_operations"] == 3

    def test_empty_summary(self):
        collector = MetricsCollector()
        collector.record_metric(PerformanceMetrics("mailer", 0.0, 1.0, True))
        collector.clear_metrics()

        assert collector.get_summary() == {}
