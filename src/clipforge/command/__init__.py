"""Declarative ffmpeg command building."""

from clipforge.command.builder import FFmpegCommandBuilder, format_seconds
from clipforge.command.filters import (
    overlay,
    side_by_side,
    thumbnail_dimensions,
    write_concat_list,
)
from clipforge.command.models import CommandSpec
from clipforge.command.operations import (
    Concat,
    Crop,
    Encode,
    ExtractAudio,
    FilterGraph,
    Mute,
    Operation,
    Progress,
    Scale,
    ScaleMode,
    StreamCopy,
    Thumbnail,
    Trim,
    Volume,
)

__all__ = [
    "CommandSpec",
    "Concat",
    "Crop",
    "Encode",
    "ExtractAudio",
    "FFmpegCommandBuilder",
    "FilterGraph",
    "Mute",
    "Operation",
    "Progress",
    "Scale",
    "ScaleMode",
    "StreamCopy",
    "Thumbnail",
    "Trim",
    "Volume",
    "format_seconds",
    "overlay",
    "side_by_side",
    "thumbnail_dimensions",
    "write_concat_list",
]
