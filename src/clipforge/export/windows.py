"""Progress window allocation for multi-clip exports."""

from __future__ import annotations

import math
from collections.abc import Sequence

from clipforge.errors import InvalidInputError
from clipforge.runner.progress import ProgressWindow

# Share of the overall bar given to per-clip preprocessing; the rest is concat
PREPROCESS_SHARE = 90
CONCAT_WINDOW = ProgressWindow(PREPROCESS_SHARE, 100 - PREPROCESS_SHARE)


def allocate_progress_windows(durations: Sequence[float]) -> list[ProgressWindow]:
    """Split the progress bar across clips in proportion to their durations.

    Each clip gets floor(duration / total * 90) points and the last clip
    absorbs the rounding residual, so clip windows cover exactly 0-90.
    The final element is the concatenation window (90, 10).

    Args:
        durations: Trimmed duration of each clip, in export order.

    Returns:
        One window per clip followed by the concat window.

    Raises:
        InvalidInputError: If durations is empty or contains a
            non-positive value.
    """
    if not durations:
        raise InvalidInputError("Cannot allocate progress for zero clips")
    if any(d <= 0 for d in durations):
        raise InvalidInputError("Every clip duration must be positive")

    total = sum(durations)
    ranges = [math.floor(d / total * PREPROCESS_SHARE) for d in durations]
    ranges[-1] += PREPROCESS_SHARE - sum(ranges)

    windows: list[ProgressWindow] = []
    offset = 0
    for size in ranges:
        windows.append(ProgressWindow(offset, size))
        offset += size
    windows.append(CONCAT_WINDOW)
    return windows
