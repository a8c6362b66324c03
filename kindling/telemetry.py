"""Emit structured telemetry for lifecycle operations.

Operations are measured in spans. A span records attributes while it is
open and emits one ``operation.completed`` or ``operation.failed`` event when
it ends. Events are structured femtologging records; shipping them to a
backend is left to the log pipeline.

Usage
-----
Wrap an operation so its outcome and duration are recorded:

>>> telemetry = LoggingTelemetryClient()
>>> telemetry.wrap("uninstall", lambda: None)

Or hold a span open across several steps:

>>> with telemetry.span("local uninstall") as span:
...     span.set_attribute("persisted", True)

"""

from __future__ import annotations

import contextlib
import dataclasses
import enum
import time
import typing as typ

from kindling.logging import get_logger, log_error, log_info

if typ.TYPE_CHECKING:
    import collections.abc as cabc

logger = get_logger(__name__)

T = typ.TypeVar("T")

AttributeValue = str | bool | int | float


class TelemetryEventType(enum.StrEnum):
    """Structured log event types for operation spans."""

    OPERATION_STARTED = "operation.started"
    OPERATION_COMPLETED = "operation.completed"
    OPERATION_FAILED = "operation.failed"


class Operation(enum.StrEnum):
    """Operation names reported to telemetry."""

    INSTALL = "install"
    UNINSTALL = "uninstall"
    STATUS = "status"


def _format_attributes(attributes: cabc.Mapping[str, AttributeValue]) -> str:
    return " ".join(f"{key}={value}" for key, value in sorted(attributes.items()))


@dataclasses.dataclass(slots=True)
class Span:
    """A measured region around one operation invocation.

    ``end`` is idempotent; only the first call emits an event.
    """

    name: str
    attributes: dict[str, AttributeValue] = dataclasses.field(default_factory=dict)
    started_at: float = dataclasses.field(default_factory=time.monotonic)
    error: BaseException | None = None
    ended: bool = False

    def set_attribute(self, key: str, value: AttributeValue) -> None:
        """Attach an attribute reported when the span ends."""
        self.attributes[key] = value

    def record_error(self, error: BaseException) -> None:
        """Mark the span as failed with ``error``."""
        self.error = error

    def end(self) -> None:
        """Close the span and emit its completion event."""
        if self.ended:
            return
        self.ended = True
        duration = time.monotonic() - self.started_at
        if self.error is None:
            log_info(
                logger,
                "[%s] operation=%s duration_seconds=%.3f %s",
                TelemetryEventType.OPERATION_COMPLETED,
                self.name,
                duration,
                _format_attributes(self.attributes),
            )
            return
        log_error(
            logger,
            "[%s] operation=%s duration_seconds=%.3f error_type=%s "
            "error_message=%s %s",
            TelemetryEventType.OPERATION_FAILED,
            self.name,
            duration,
            type(self.error).__name__,
            str(self.error),
            _format_attributes(self.attributes),
        )


class TelemetryClient(typ.Protocol):
    """Telemetry collaborator used by the orchestrator."""

    def span(self, name: str) -> typ.ContextManager[Span]: ...

    def wrap(self, name: str, func: cabc.Callable[[], T]) -> T: ...


class LoggingTelemetryClient:
    """Telemetry client emitting spans as femtologging events."""

    @contextlib.contextmanager
    def span(self, name: str) -> cabc.Iterator[Span]:
        """Open a span that is ended on every exit path."""
        span = Span(name)
        log_info(
            logger,
            "[%s] operation=%s",
            TelemetryEventType.OPERATION_STARTED,
            name,
        )
        try:
            yield span
        except BaseException as exc:
            span.record_error(exc)
            raise
        finally:
            span.end()

    def wrap(self, name: str, func: cabc.Callable[[], T]) -> T:
        """Run ``func`` inside a span named ``name`` and return its result."""
        with self.span(name):
            return func()


class NullTelemetryClient:
    """Telemetry client that emits and keeps nothing."""

    @contextlib.contextmanager
    def span(self, name: str) -> cabc.Iterator[Span]:
        """Open a span that is discarded on exit."""
        span = Span(name)
        try:
            yield span
        except BaseException as exc:
            span.record_error(exc)
            raise
        finally:
            span.ended = True

    def wrap(self, name: str, func: cabc.Callable[[], T]) -> T:
        """Run ``func`` inside a discarded span."""
        with self.span(name):
            return func()
