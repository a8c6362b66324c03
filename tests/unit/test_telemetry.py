"""Unit tests for operation spans and their structured log events."""

from __future__ import annotations

import pytest

from kindling.errors import ClusterDeletionError
from kindling.telemetry import (
    LoggingTelemetryClient,
    NullTelemetryClient,
    Operation,
    Span,
    TelemetryEventType,
)
from tests.helpers.femtologging_capture import capture_femto_logs


class TestLoggingTelemetryClient:
    """Tests for femtologging-backed spans."""

    def test_successful_span_emits_started_and_completed(self) -> None:
        """A span logs a start event and a completion event with attributes."""
        client = LoggingTelemetryClient()

        with capture_femto_logs("kindling.telemetry") as capture:
            with client.span(Operation.UNINSTALL) as span:
                span.set_attribute("persisted", True)
            capture.wait_for_count(2)
            started, completed = capture.records[:2]

        assert TelemetryEventType.OPERATION_STARTED in started.message, (
            "Expected a start event"
        )
        assert completed.level == "INFO", "Expected completion at INFO"
        assert TelemetryEventType.OPERATION_COMPLETED in completed.message, (
            "Expected a completion event"
        )
        assert "operation=uninstall" in completed.message, "Expected operation name"
        assert "persisted=True" in completed.message, "Expected span attributes"

    def test_failed_span_records_error_and_reraises(self) -> None:
        """An exception ends the span as failed and propagates unchanged."""
        client = LoggingTelemetryClient()
        error = ClusterDeletionError.for_cluster("test-kindling")

        with capture_femto_logs("kindling.telemetry") as capture:
            with pytest.raises(ClusterDeletionError) as excinfo:
                with client.span(Operation.UNINSTALL):
                    raise error
            capture.wait_for_count(2)
            failed = capture.records[1]

        assert excinfo.value is error, "Expected the original exception"
        assert failed.level == "ERROR", "Expected failure at ERROR"
        assert TelemetryEventType.OPERATION_FAILED in failed.message, (
            "Expected a failure event"
        )
        assert "error_type=ClusterDeletionError" in failed.message, (
            "Expected the error type"
        )

    def test_wrap_returns_result(self) -> None:
        """wrap runs the callable inside a span and returns its value."""
        assert LoggingTelemetryClient().wrap("status", lambda: 42) == 42, (
            "Expected the wrapped result"
        )


class TestNullTelemetryClient:
    """Tests for the silent telemetry client."""

    def test_closes_spans_without_keeping_them(self) -> None:
        """Spans are closed on exit and carry any error, but are not retained."""
        client = NullTelemetryClient()
        error = RuntimeError("boom")

        with pytest.raises(RuntimeError), client.span(Operation.INSTALL) as span:
            raise error

        assert not hasattr(client, "spans"), "Expected no span history"
        assert span.name == "install", "Expected the operation name"
        assert span.ended, "Expected the span to be closed"
        assert span.error is error, "Expected the error to be recorded"


def test_span_end_is_idempotent() -> None:
    """Only the first end call emits an event."""
    span = Span("status")

    with capture_femto_logs("kindling.telemetry") as capture:
        span.end()
        span.end()
        capture.wait_for_count(1)
        count = len(capture.records)

    assert span.ended, "Expected the span to be ended"
    assert count == 1, "Expected a single completion event"
