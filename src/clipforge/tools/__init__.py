"""External tool resolution (ffmpeg, ffprobe)."""

from clipforge.tools.models import ToolInfo, ToolSource, ToolStatus
from clipforge.tools.resolver import (
    BinaryResolver,
    detect_tool,
    find_binary,
    parse_version_string,
    platform_binary_name,
    resolve_binary,
)

__all__ = [
    "BinaryResolver",
    "ToolInfo",
    "ToolSource",
    "ToolStatus",
    "detect_tool",
    "find_binary",
    "parse_version_string",
    "platform_binary_name",
    "resolve_binary",
]
