"""Progress sinks.

A sink receives integer percentages (0-100) from a ProgressTracker. The
tracker guarantees values are monotonically increasing, so sinks only
display or forward them.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from collections.abc import Callable
from typing import Protocol, TextIO

logger = logging.getLogger(__name__)


class ProgressSink(Protocol):
    """Protocol for receiving export progress.

    Implementations provide context-specific delivery:
    - CLI: in-place stderr line
    - Server: per-job asyncio queue feeding SSE subscribers
    - Tests: callback or null sink
    """

    def emit(self, percent: int) -> None:
        """Deliver one progress value.

        Args:
            percent: Overall progress percentage (0-100).
        """
        ...


class NullProgressSink:
    """Sink that discards all progress."""

    def emit(self, percent: int) -> None:
        pass


class CallbackProgressSink:
    """Sink that forwards every value to a callable."""

    def __init__(self, callback: Callable[[int], None]) -> None:
        self._callback = callback

    def emit(self, percent: int) -> None:
        self._callback(percent)


class QueueProgressSink:
    """Sink that puts values on an asyncio queue.

    Must be used from the event loop thread that owns the queue.
    """

    def __init__(self, queue: asyncio.Queue[int | None] | None = None) -> None:
        self.queue: asyncio.Queue[int | None] = queue or asyncio.Queue()

    def emit(self, percent: int) -> None:
        self.queue.put_nowait(percent)

    def close(self) -> None:
        """Signal consumers that no more values will arrive."""
        self.queue.put_nowait(None)


class StderrProgressSink:
    """Sink that renders an in-place progress line on stderr."""

    def __init__(
        self, label: str = "Exporting", enabled: bool = True, stream: TextIO | None = None
    ) -> None:
        """Initialize stderr progress sink.

        Args:
            label: Text shown before the percentage.
            enabled: If False, suppresses output (for JSON mode or tests).
            stream: Output stream, defaults to sys.stderr.
        """
        self.label = label
        self.enabled = enabled
        self._stream = stream
        self._started = False

    @property
    def stream(self) -> TextIO:
        return self._stream or sys.stderr

    def emit(self, percent: int) -> None:
        if not self.enabled:
            return
        self._started = True
        self.stream.write(f"\r{self.label}: {percent:3d}%")
        self.stream.flush()

    def close(self) -> None:
        """Terminate the progress line with a newline."""
        if self.enabled and self._started:
            self.stream.write("\n")
            self.stream.flush()


class CompositeProgressSink:
    """Sink that fans out to several sinks.

    A failing sink is logged and skipped so one broken consumer cannot
    stop progress delivery to the others.
    """

    def __init__(self, *sinks: ProgressSink) -> None:
        self.sinks = list(sinks)

    def emit(self, percent: int) -> None:
        for sink in self.sinks:
            try:
                sink.emit(percent)
            except Exception as e:
                logger.warning(
                    "Progress sink %s failed: %s", type(sink).__name__, e
                )
