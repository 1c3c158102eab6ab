"""ffprobe-based media metadata extraction."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

from clipforge.command.models import CommandSpec
from clipforge.errors import InvalidInputError
from clipforge.runner.process import ProcessRunner

logger = logging.getLogger(__name__)

PROBE_ENTRIES = (
    "stream=width,height,duration,codec_name,r_frame_rate,bit_rate"
    ":format=duration"
)


@dataclass(frozen=True)
class MediaMetadata:
    """Video stream properties of a media file."""

    path: Path
    duration: float
    width: int
    height: int
    codec: str
    fps: float
    bit_rate: int | None = None
    file_size: int | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["path"] = str(self.path)
        return data


def build_probe_command(path: Path) -> CommandSpec:
    """Build the ffprobe invocation for the first video stream."""
    args = (
        "-v",
        "error",
        "-select_streams",
        "v:0",
        "-show_entries",
        PROBE_ENTRIES,
        "-of",
        "json",
        str(path),
    )
    return CommandSpec(tool="ffprobe", inputs=(path,), args=args)


def _parse_float(value: Any) -> float | None:
    if value in (None, "", "N/A"):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _parse_int(value: Any) -> int | None:
    parsed = _parse_float(value)
    return int(parsed) if parsed is not None else None


def parse_frame_rate(value: str | None) -> float:
    """Parse an ffprobe rational like "30000/1001" into frames per second."""
    if not value:
        return 0.0
    num, _, den = value.partition("/")
    try:
        if not den:
            return float(num)
        denominator = float(den)
        return float(num) / denominator if denominator else 0.0
    except ValueError:
        return 0.0


def parse_probe_output(data: dict[str, Any], path: Path) -> MediaMetadata:
    """Convert ffprobe JSON output into MediaMetadata.

    Stream duration falls back to the container duration when absent.

    Raises:
        InvalidInputError: If there is no usable video stream.
    """
    streams = data.get("streams") or []
    if not streams:
        raise InvalidInputError(f"No video stream found in {path}")
    stream = streams[0]

    width = _parse_int(stream.get("width"))
    height = _parse_int(stream.get("height"))
    if not width or not height:
        raise InvalidInputError(f"Video stream of {path} has no dimensions")

    duration = _parse_float(stream.get("duration"))
    if duration is None:
        duration = _parse_float((data.get("format") or {}).get("duration"))

    try:
        file_size: int | None = path.stat().st_size
    except OSError:
        file_size = None

    return MediaMetadata(
        path=path,
        duration=duration or 0.0,
        width=width,
        height=height,
        codec=stream.get("codec_name") or "unknown",
        fps=parse_frame_rate(stream.get("r_frame_rate")),
        bit_rate=_parse_int(stream.get("bit_rate")),
        file_size=file_size,
    )


class FFprobeIntrospector:
    """Reads media metadata through ffprobe."""

    def __init__(self, ffprobe_path: Path, timeout: float | None = None) -> None:
        """Initialize the introspector.

        Args:
            ffprobe_path: Resolved path to ffprobe.
            timeout: Optional per-invocation timeout in seconds.
        """
        self._runner = ProcessRunner(ffprobe_path, timeout=timeout)

    async def get_metadata(self, path: Path) -> MediaMetadata:
        """Probe a media file.

        Raises:
            InvalidInputError: If the file is missing or has no video stream.
            ExecutionFailedError: If ffprobe fails.
        """
        if not path.exists():
            raise InvalidInputError(f"File not found: {path}")

        output = await self._runner.run(build_probe_command(path))
        try:
            data = json.loads(output.stdout or "{}")
        except json.JSONDecodeError as e:
            raise InvalidInputError(f"Invalid ffprobe output for {path}: {e}") from e

        metadata = parse_probe_output(data, path)
        logger.debug(
            "Probed %s: %dx%d %.2fs %s",
            path,
            metadata.width,
            metadata.height,
            metadata.duration,
            metadata.codec,
        )
        return metadata
