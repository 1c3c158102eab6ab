"""Media introspection via ffprobe."""

from clipforge.introspector.probe import (
    FFprobeIntrospector,
    MediaMetadata,
    build_probe_command,
    parse_frame_rate,
    parse_probe_output,
)

__all__ = [
    "FFprobeIntrospector",
    "MediaMetadata",
    "build_probe_command",
    "parse_frame_rate",
    "parse_probe_output",
]
