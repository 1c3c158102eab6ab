"""Export request and job models."""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

from clipforge.errors import ClipforgeError, InvalidInputError

# Named output resolutions (width, height)
RESOLUTION_PRESETS: dict[str, tuple[int, int]] = {
    "480p": (854, 480),
    "720p": (1280, 720),
    "1080p": (1920, 1080),
    "4K": (3840, 2160),
}


@dataclass(frozen=True)
class Resolution:
    """Target output resolution.

    "source" has no fixed size; it is resolved by probing the first clip.
    """

    name: str
    width: int | None = None
    height: int | None = None

    @property
    def is_source(self) -> bool:
        return self.width is None

    @classmethod
    def parse(cls, value: str | Resolution) -> Resolution:
        """Parse a resolution name ("source", "480p", "720p", "1080p", "4K").

        Raises:
            InvalidInputError: If the name is not recognised.
        """
        if isinstance(value, Resolution):
            return value
        text = str(value).strip()
        if text.casefold() == "source":
            return cls("source")
        for name, (width, height) in RESOLUTION_PRESETS.items():
            if text.casefold() == name.casefold():
                return cls(name, width, height)
        valid = ", ".join(["source", *RESOLUTION_PRESETS])
        raise InvalidInputError(f"Unknown resolution '{value}' (expected one of {valid})")

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class ClipExportInfo:
    """One source clip with its trim points and audio settings.

    Raises:
        InvalidInputError: If trim points or volume are out of range.
    """

    path: Path
    trim_start: float
    trim_end: float
    volume: float = 1.0
    muted: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "path", Path(self.path))
        if self.trim_start < 0:
            raise InvalidInputError(
                f"Trim start must be non-negative, got {self.trim_start}"
            )
        if self.trim_start >= self.trim_end:
            raise InvalidInputError(
                f"Trim start ({self.trim_start}) must be less than "
                f"trim end ({self.trim_end})"
            )
        if not 0.0 <= self.volume <= 1.0:
            raise InvalidInputError(
                f"Volume must be between 0.0 and 1.0, got {self.volume}"
            )

    @property
    def duration(self) -> float:
        return self.trim_end - self.trim_start

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": str(self.path),
            "trim_start": self.trim_start,
            "trim_end": self.trim_end,
            "volume": self.volume,
            "muted": self.muted,
        }


class JobState(Enum):
    """Lifecycle of an export job."""

    CREATED = "created"
    PREPROCESSING = "preprocessing"
    CONCATENATING = "concatenating"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_STATES


_TERMINAL_STATES = frozenset({JobState.SUCCEEDED, JobState.FAILED, JobState.CANCELLED})

# Forward transitions; FAILED and CANCELLED are reachable from any
# non-terminal state.
_TRANSITIONS: dict[JobState, frozenset[JobState]] = {
    JobState.CREATED: frozenset({JobState.PREPROCESSING}),
    JobState.PREPROCESSING: frozenset({JobState.CONCATENATING, JobState.SUCCEEDED}),
    JobState.CONCATENATING: frozenset({JobState.SUCCEEDED}),
}


class InvalidTransitionError(ValueError):
    """Raised when a job is moved to a state it cannot reach."""


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ExportJob:
    """A single export request and its progress."""

    clips: tuple[ClipExportInfo, ...]
    output: Path
    resolution: Resolution
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    state: JobState = JobState.CREATED
    current_clip: int | None = None
    progress: int = 0
    error: str | None = None
    error_kind: str | None = None
    created_at: datetime = field(default_factory=_now)
    started_at: datetime | None = None
    finished_at: datetime | None = None

    @classmethod
    def create(
        cls,
        clips: Sequence[ClipExportInfo],
        output: Path | str,
        resolution: str | Resolution = "source",
    ) -> ExportJob:
        """Create a job, validating the request.

        Raises:
            InvalidInputError: If there are no clips or the resolution is unknown.
        """
        if not clips:
            raise InvalidInputError("At least one clip is required for export")
        return cls(
            clips=tuple(clips),
            output=Path(output),
            resolution=Resolution.parse(resolution),
        )

    @property
    def is_terminal(self) -> bool:
        return self.state.is_terminal

    @property
    def total_duration(self) -> float:
        return sum(clip.duration for clip in self.clips)

    def transition(self, new_state: JobState) -> None:
        """Move the job to a new state.

        Raises:
            InvalidTransitionError: If the state machine forbids the move.
        """
        if self.state.is_terminal:
            raise InvalidTransitionError(
                f"Job {self.id} is already {self.state.value}"
            )
        allowed = _TRANSITIONS.get(self.state, frozenset())
        if new_state not in allowed and new_state not in (
            JobState.FAILED,
            JobState.CANCELLED,
        ):
            raise InvalidTransitionError(
                f"Cannot move job {self.id} from {self.state.value} "
                f"to {new_state.value}"
            )

        if self.state == JobState.CREATED:
            self.started_at = _now()
        self.state = new_state
        if new_state.is_terminal:
            self.finished_at = _now()
            self.current_clip = None
            if new_state == JobState.SUCCEEDED:
                self.progress = 100

    def fail(self, error: BaseException, message: str) -> None:
        """Record an error and move to FAILED."""
        self.error = message
        if isinstance(error, ClipforgeError):
            self.error_kind = error.kind.value
        self.transition(JobState.FAILED)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "state": self.state.value,
            "progress": self.progress,
            "current_clip": self.current_clip,
            "clip_count": len(self.clips),
            "clips": [clip.to_dict() for clip in self.clips],
            "output": str(self.output),
            "resolution": str(self.resolution),
            "error": self.error,
            "error_kind": self.error_kind,
            "created_at": self.created_at.isoformat(),
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
        }
