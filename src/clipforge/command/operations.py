"""Declarative ffmpeg operations.

Each operation is an immutable value describing one part of an ffmpeg
invocation. FFmpegCommandBuilder collects them and decides the final
argument order, so callers never reason about flag placement.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ScaleMode(Enum):
    """How a Scale operation fits the source into the target size."""

    EXACT = "exact"  # Stretch to W:H (height optional, even-rounded)
    PAD = "pad"  # Fit inside W:H, letterbox with black bars
    CROP = "crop"  # Fill W:H, crop the overflow
    EVEN = "even"  # Keep size, round both dimensions down to even


@dataclass(frozen=True)
class Trim:
    """Seek to start and keep duration seconds of every input."""

    start: float
    duration: float

    def __post_init__(self) -> None:
        if self.start < 0:
            raise ValueError(f"trim start must be >= 0, got {self.start}")
        if self.duration <= 0:
            raise ValueError(f"trim duration must be > 0, got {self.duration}")


@dataclass(frozen=True)
class Scale:
    width: int
    height: int | None = None
    mode: ScaleMode = ScaleMode.EXACT

    def __post_init__(self) -> None:
        if self.mode != ScaleMode.EVEN and self.width <= 0:
            raise ValueError(f"scale width must be positive, got {self.width}")
        if self.height is not None and self.height <= 0:
            raise ValueError(f"scale height must be positive, got {self.height}")
        if self.mode in (ScaleMode.PAD, ScaleMode.CROP) and self.height is None:
            raise ValueError(f"{self.mode.value} scaling requires a height")


@dataclass(frozen=True)
class Crop:
    """Crop to width x height at (x, y); centered when x/y are None."""

    width: int
    height: int
    x: int | None = None
    y: int | None = None

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(
                f"crop size must be positive, got {self.width}x{self.height}"
            )


@dataclass(frozen=True)
class Volume:
    """Audio gain; levels outside 0.0-1.0 are clamped."""

    level: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "level", min(1.0, max(0.0, float(self.level))))


@dataclass(frozen=True)
class Mute:
    pass


@dataclass(frozen=True)
class StreamCopy:
    pass


@dataclass(frozen=True)
class Encode:
    """Encoder settings used whenever streams are re-encoded."""

    video_codec: str = "libx264"
    audio_codec: str = "aac"
    preset: str = "medium"
    crf: int = 23
    audio_bitrate: str = "128k"
    pixel_format: str | None = None

    def __post_init__(self) -> None:
        if not 0 <= self.crf <= 51:
            raise ValueError(f"crf must be between 0 and 51, got {self.crf}")


@dataclass(frozen=True)
class FilterGraph:
    """A multi-input filter graph whose final video label is mapped."""

    expression: str
    output_label: str
    audio_map: str | None = "0:a?"


@dataclass(frozen=True)
class Thumbnail:
    timestamp: float

    def __post_init__(self) -> None:
        if self.timestamp < 0:
            raise ValueError(f"thumbnail timestamp must be >= 0, got {self.timestamp}")


@dataclass(frozen=True)
class Concat:
    """Read the single input as a concat demuxer list file."""


@dataclass(frozen=True)
class ExtractAudio:
    sample_rate: int = 16000
    channels: int = 1
    bitrate: str = "128k"


@dataclass(frozen=True)
class Progress:
    """Emit machine-readable progress on stderr."""


Operation = (
    Trim
    | Scale
    | Crop
    | Volume
    | Mute
    | StreamCopy
    | Encode
    | FilterGraph
    | Thumbnail
    | Concat
    | ExtractAudio
    | Progress
)
