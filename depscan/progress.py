"""Progress notifications for long-running analysis."""

from __future__ import annotations

import sys
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Protocol, TextIO


@dataclass(frozen=True)
class ProgressEvent:
    """Position of a module within the current run."""

    index: int
    total: int
    name: str
    done: bool = False

    def describe(self) -> str:
        verb = "Analyzed" if self.done else "Analyzing"
        return f"{verb} module ({self.index}/{self.total}): {self.name}"


class ProgressSink(Protocol):
    """Receives progress updates; implementations must tolerate any call order."""

    def notify(self, event: ProgressEvent) -> None:
        """Report progress for a single module."""

    def status(self, message: str) -> None:
        """Report a free-form status line."""

    def clear(self) -> None:
        """Remove any progress output."""


class NullProgress:
    """Discards progress updates."""

    def notify(self, event: ProgressEvent) -> None:
        return None

    def status(self, message: str) -> None:
        return None

    def clear(self) -> None:
        return None


class TerminalProgress:
    """Writes a single, rewritten progress line to a terminal stream."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream or sys.stderr
        self._lock = threading.Lock()
        self._width = 0

    def notify(self, event: ProgressEvent) -> None:
        self.status(event.describe())

    def status(self, message: str) -> None:
        with self._lock:
            if self._interactive():
                padding = " " * max(0, self._width - len(message))
                self._stream.write(f"\r{message}{padding}")
                self._width = len(message)
            else:
                self._stream.write(f"{message}\n")
            self._stream.flush()

    def clear(self) -> None:
        with self._lock:
            if self._interactive() and self._width:
                self._stream.write("\r" + " " * self._width + "\r")
                self._stream.flush()
            self._width = 0

    def _interactive(self) -> bool:
        isatty = getattr(self._stream, "isatty", None)
        return bool(isatty and isatty())


@contextmanager
def progress_scope(sink: ProgressSink) -> Iterator[ProgressSink]:
    """Yield ``sink`` and clear it exactly once however the block exits."""
    try:
        yield sink
    finally:
        sink.clear()


__all__ = [
    "NullProgress",
    "ProgressEvent",
    "ProgressSink",
    "TerminalProgress",
    "progress_scope",
]
