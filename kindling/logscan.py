"""Classify process output into leveled log lines.

Application containers log structured JSON events, but their output is often
interleaved with plain-text banners and stack traces from other subsystems.
:class:`LogScanner` reads such a mixed stream one line at a time: JSON
events surface their ``level`` and ``message`` fields, anything else becomes
a message with an empty level.

Examples
--------
Pull-style use:

    scanner = LogScanner(stream)
    while scanner.scan():
        print(scanner.line.level, scanner.line.message)
    if scanner.err is not None:
        raise scanner.err

Iterator use:

    for line in LogScanner(stream):
        ...

"""

from __future__ import annotations

import dataclasses
import typing as typ

import msgspec

from kindling.errors import LogReadError

if typ.TYPE_CHECKING:
    import collections.abc as cabc


class LogCaller(msgspec.Struct, kw_only=True):
    """Source location attached to a structured log event."""

    class_name: str | None = msgspec.field(name="className", default="")
    method_name: str | None = msgspec.field(name="methodName", default="")
    line_number: int | None = msgspec.field(name="lineNumber", default=0)
    thread_name: str | None = msgspec.field(name="threadName", default="")


class JavaLogRecord(msgspec.Struct, kw_only=True):
    """One structured log event as emitted by the application's JVM services.

    JSON ``null`` is accepted for every field and read as empty.
    """

    timestamp: int | str | None = None
    message: str | None = ""
    level: str | None = ""
    log_source: str | None = msgspec.field(name="logSource", default="")
    caller: LogCaller | None = None
    throwable: typ.Any = None


@dataclasses.dataclass(frozen=True, slots=True)
class LogLine:
    """A classified line. ``level`` is empty for unstructured input."""

    level: str
    message: str


_DECODER = msgspec.json.Decoder(JavaLogRecord)


def classify(raw: str) -> LogLine:
    """Classify a single line of output."""
    try:
        record = _DECODER.decode(raw)
    except msgspec.DecodeError:
        return LogLine(level="", message=raw)
    return LogLine(level=record.level or "", message=record.message or "")


class LogScanner:
    """Pull-style scanner over a text stream.

    ``scan`` advances to the next line and returns False at end of input or
    when the stream fails. ``err`` is set only for read failures; lines that
    are not structured JSON are not errors.
    """

    def __init__(self, stream: cabc.Iterable[str]) -> None:
        """Scan lines from any iterable of text, such as an open file."""
        self._lines = iter(stream)
        self.line = LogLine(level="", message="")
        self.err: LogReadError | None = None
        self._done = False

    def scan(self) -> bool:
        """Advance to the next line.

        Returns
        -------
        bool
            True if :attr:`line` now holds a new record.

        """
        if self._done:
            return False
        try:
            raw = next(self._lines)
        except StopIteration:
            self._done = True
            return False
        except (OSError, UnicodeDecodeError) as exc:
            self._done = True
            self.err = LogReadError(f"unable to read log stream: {exc}")
            self.err.__cause__ = exc
            return False

        self.line = classify(raw.rstrip("\r\n"))
        return True

    def __iter__(self) -> cabc.Iterator[LogLine]:
        """Yield classified lines until the stream ends or fails."""
        while self.scan():
            yield self.line
