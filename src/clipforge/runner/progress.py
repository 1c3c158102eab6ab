"""FFmpeg progress parsing and window mapping.

ffmpeg reports elapsed output time on stderr, either as key=value lines
from ``-progress pipe:2`` or as the classic stats line
(``frame=... time=00:01:23.45 ...``). The tracker turns those into integer
percentages inside a ProgressWindow, so several sequential invocations can
share one 0-100 bar.
"""

from __future__ import annotations

import logging
import math
import re
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from clipforge.errors import ProgressParseAnomaly

if TYPE_CHECKING:
    from clipforge.runner.sinks import ProgressSink

logger = logging.getLogger(__name__)

# Default minimum interval between emitted updates (seconds)
DEFAULT_THROTTLE_SECONDS = 0.1

_CLOCK = re.compile(r"^(\d+):(\d{1,2}):(\d{1,2}(?:\.\d+)?)$")
_STATS_TIME = re.compile(r"(?:^|\s)time=\s*(\S+)")


@dataclass(frozen=True)
class ProgressWindow:
    """A sub-range [offset, offset + range] of the overall 0-100 scale."""

    offset: int
    range: int

    def __post_init__(self) -> None:
        if self.offset < 0 or self.range < 0:
            raise ValueError(
                f"window must be non-negative, got ({self.offset}, {self.range})"
            )
        if self.offset + self.range > 100:
            raise ValueError(
                f"window ({self.offset}, {self.range}) extends past 100"
            )

    @property
    def end(self) -> int:
        return self.offset + self.range

    def map(self, phase_percent: float) -> int:
        """Map a 0-100 phase percentage into this window."""
        value = math.floor(self.offset + phase_percent / 100 * self.range)
        return max(self.offset, min(self.end, value))


FULL_WINDOW = ProgressWindow(0, 100)


def _parse_clock(value: str) -> float | None:
    match = _CLOCK.match(value)
    if not match:
        return None
    hours, minutes, seconds = match.groups()
    return int(hours) * 3600 + int(minutes) * 60 + float(seconds)


def _parse_microseconds(key: str, value: str) -> float:
    try:
        micros = int(value)
    except ValueError:
        raise ProgressParseAnomaly(f"{key} has non-integer value {value!r}") from None
    if micros < 0:
        raise ProgressParseAnomaly(f"{key} is negative: {micros}")
    return micros / 1_000_000


def parse_elapsed_seconds(line: str) -> float | None:
    """Extract elapsed output time from one ffmpeg stderr line.

    Args:
        line: Raw stderr line.

    Returns:
        Elapsed seconds, or None if the line carries no time information.

    Raises:
        ProgressParseAnomaly: If a time key is present but its value is
            unusable (N/A, negative or malformed).
    """
    line = line.strip()
    if not line:
        return None

    key, sep, value = line.partition("=")
    key = key.strip()
    value = value.strip()

    if sep and key in ("out_time_us", "out_time_ms"):
        # ffmpeg writes out_time_ms in microseconds as well
        return _parse_microseconds(key, value)

    if sep and key == "out_time":
        seconds = _parse_clock(value)
        if seconds is None:
            raise ProgressParseAnomaly(f"out_time has unusable value {value!r}")
        return seconds

    stats = _STATS_TIME.search(line)
    if stats:
        seconds = _parse_clock(stats.group(1))
        if seconds is None:
            raise ProgressParseAnomaly(f"time has unusable value {stats.group(1)!r}")
        return seconds

    return None


class ProgressTracker:
    """Convert stderr lines into monotonic window-mapped percentages.

    Values reach the sink only when they are strictly greater than the
    last emitted value and the throttle interval has passed. finish()
    always emits the window end once.
    """

    def __init__(
        self,
        total_duration: float,
        window: ProgressWindow,
        sink: ProgressSink,
        throttle_seconds: float = DEFAULT_THROTTLE_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.total_duration = total_duration
        self.window = window
        self._sink = sink
        self._throttle = throttle_seconds
        self._clock = clock
        self._last_emitted: int | None = None
        self._last_emit_time: float | None = None
        self._finished = False

    @property
    def last_emitted(self) -> int | None:
        return self._last_emitted

    def _emit(self, value: int) -> None:
        self._last_emitted = value
        self._last_emit_time = self._clock()
        self._sink.emit(value)

    def feed(self, line: str) -> int | None:
        """Process one stderr line.

        Returns:
            The emitted percentage, or None if nothing was emitted.
        """
        if self._finished:
            return None
        try:
            elapsed = parse_elapsed_seconds(line)
        except ProgressParseAnomaly as e:
            logger.debug("Discarding progress line: %s", e.message)
            return None
        if elapsed is None or self.total_duration <= 0:
            return None

        phase = min(100.0, elapsed / self.total_duration * 100)
        value = self.window.map(phase)

        if self._last_emitted is not None and value <= self._last_emitted:
            return None
        if (
            self._last_emit_time is not None
            and self._clock() - self._last_emit_time < self._throttle
        ):
            return None

        self._emit(value)
        return value

    def finish(self) -> int:
        """Emit the window end and stop accepting lines."""
        if not self._finished:
            self._finished = True
            if self._last_emitted is None or self._last_emitted < self.window.end:
                self._emit(self.window.end)
        return self.window.end
