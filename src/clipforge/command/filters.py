"""Filter expression helpers.

Builds the filter strings used by FFmpegCommandBuilder and the canned
multi-input graphs (side-by-side, picture-in-picture overlay).
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from pathlib import Path

from clipforge.command.operations import Crop, FilterGraph, Scale, ScaleMode

logger = logging.getLogger(__name__)

# Trailing run of [label] groups at the end of a filter chain segment
_TRAILING_LABELS = re.compile(r"((?:\[[^\[\]]+\]\s*)+)$")
_LABEL = re.compile(r"\[([^\[\]]+)\]")


def scale_filter(scale: Scale) -> str:
    """Render a Scale operation as a -vf filter."""
    w, h = scale.width, scale.height
    if scale.mode == ScaleMode.EVEN:
        return "scale=trunc(iw/2)*2:trunc(ih/2)*2"
    if scale.mode == ScaleMode.PAD:
        return (
            f"scale={w}:{h}:force_original_aspect_ratio=decrease,"
            f"pad={w}:{h}:(ow-iw)/2:(oh-ih)/2:black"
        )
    if scale.mode == ScaleMode.CROP:
        return (
            f"scale={w}:{h}:force_original_aspect_ratio=increase,"
            f"crop={w}:{h}:(iw-{w})/2:(ih-{h})/2"
        )
    if h is None:
        return f"scale={w}:trunc(ih/2)*2"
    return f"scale={w}:{h}"


def crop_filter(crop: Crop) -> str:
    """Render a Crop operation, centering it when no offset is given."""
    if crop.x is not None and crop.y is not None:
        return f"crop={crop.width}:{crop.height}:{crop.x}:{crop.y}"
    return (
        f"crop={crop.width}:{crop.height}:"
        f"(iw-{crop.width})/2:(ih-{crop.height})/2"
    )


def graph_output_labels(expression: str) -> set[str]:
    """Return the labels produced by the chains of a filter graph.

    Input labels lead a chain and output labels trail it, so only the
    trailing labels of each ';'-separated chain are collected.
    """
    labels: set[str] = set()
    for chain in expression.split(";"):
        match = _TRAILING_LABELS.search(chain.strip())
        if match:
            labels.update(_LABEL.findall(match.group(1)))
    return labels


def _normalize_input(index: int, width: int, height: int, label: str) -> str:
    return f"[{index}:v]scale={width}:{height},format=yuv420p[{label}]"


def side_by_side(count: int, width: int, height: int) -> FilterGraph:
    """Lay out count inputs horizontally, each scaled to width x height.

    Args:
        count: Number of video inputs (at least 2).
        width: Width of each tile.
        height: Height of each tile.

    Returns:
        FilterGraph mapping the stacked video as [vout].
    """
    if count < 2:
        raise ValueError(f"side_by_side needs at least 2 inputs, got {count}")
    chains = [_normalize_input(i, width, height, f"v{i}") for i in range(count)]
    stacked = "".join(f"[v{i}]" for i in range(count))
    chains.append(f"{stacked}hstack=inputs={count}[vout]")
    return FilterGraph(expression=";".join(chains), output_label="vout")


def overlay(
    width: int,
    height: int,
    overlay_width: int,
    overlay_height: int,
    x: int | str = "W-w-10",
    y: int | str = "H-h-10",
) -> FilterGraph:
    """Place input 1 over input 0 (picture-in-picture).

    The base is scaled to width x height and the overlay to
    overlay_width x overlay_height; the default position is the
    bottom-right corner with a 10px margin.
    """
    chains = [
        _normalize_input(0, width, height, "base"),
        _normalize_input(1, overlay_width, overlay_height, "pip"),
        f"[base][pip]overlay={x}:{y}[vout]",
    ]
    return FilterGraph(expression=";".join(chains), output_label="vout")


def thumbnail_dimensions(
    source_width: int, source_height: int, box_width: int, box_height: int
) -> tuple[int, int]:
    """Fit a source frame into a thumbnail box preserving aspect ratio.

    Landscape sources take the full box width, everything else the full
    box height. Neither dimension drops below 1px.
    """
    if source_width <= 0 or source_height <= 0:
        raise ValueError(
            f"source dimensions must be positive, got {source_width}x{source_height}"
        )
    aspect = source_width / source_height
    if aspect > 1:
        return box_width, max(1, round(box_width / aspect))
    return max(1, round(box_height * aspect)), box_height


def _escape_concat_path(path: Path) -> str:
    return str(path).replace("'", "'\\''")


def write_concat_list(paths: Iterable[Path], list_path: Path) -> Path:
    """Write a concat demuxer list file.

    Args:
        paths: Segment files in playback order.
        list_path: Where to write the list.

    Returns:
        The list path.
    """
    lines = [f"file '{_escape_concat_path(Path(p).resolve())}'" for p in paths]
    if not lines:
        raise ValueError("concat list requires at least one file")
    list_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    logger.debug("Wrote concat list with %d entries: %s", len(lines), list_path)
    return list_path
