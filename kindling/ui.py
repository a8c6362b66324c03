"""Operator-facing progress output.

Reporters are purely observational: nothing they do affects control flow.
"""

from __future__ import annotations

import enum
import typing as typ


class MessageKind(enum.StrEnum):
    """Kinds of progress message."""

    STATUS = "status"
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class ProgressReporter(typ.Protocol):
    """Receives status updates and terminal announcements."""

    def update(self, text: str) -> None: ...

    def info(self, text: str) -> None: ...

    def success(self, text: str) -> None: ...

    def warning(self, text: str) -> None: ...

    def error(self, text: str) -> None: ...


_PREFIXES: dict[MessageKind, str] = {
    MessageKind.STATUS: "...",
    MessageKind.INFO: " INFO ",
    MessageKind.SUCCESS: " SUCCESS ",
    MessageKind.WARNING: " WARNING ",
    MessageKind.ERROR: " ERROR ",
}


class ConsoleReporter:
    """Print progress lines to stdout."""

    def _print(self, kind: MessageKind, text: str) -> None:
        print(f"{_PREFIXES[kind]} {text}")

    def update(self, text: str) -> None:
        """Show the step currently in progress."""
        self._print(MessageKind.STATUS, text)

    def info(self, text: str) -> None:
        """Show an informational line."""
        self._print(MessageKind.INFO, text)

    def success(self, text: str) -> None:
        """Announce a successful outcome."""
        self._print(MessageKind.SUCCESS, text)

    def warning(self, text: str) -> None:
        """Announce a tolerated problem."""
        self._print(MessageKind.WARNING, text)

    def error(self, text: str) -> None:
        """Announce a fatal problem."""
        self._print(MessageKind.ERROR, text)

