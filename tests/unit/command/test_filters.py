"""Unit tests for filter expression helpers."""

from pathlib import Path

import pytest

from clipforge.command.filters import (
    crop_filter,
    graph_output_labels,
    overlay,
    scale_filter,
    side_by_side,
    thumbnail_dimensions,
    write_concat_list,
)
from clipforge.command.operations import Crop, Scale, ScaleMode


class TestScaleFilter:
    """Tests for scale_filter()."""

    def test_exact(self) -> None:
        assert scale_filter(Scale(1280, 720)) == "scale=1280:720"

    def test_width_only_keeps_even_height(self) -> None:
        assert scale_filter(Scale(640)) == "scale=640:trunc(ih/2)*2"

    def test_pad(self) -> None:
        """Pad fits inside the box and letterboxes."""
        assert scale_filter(Scale(854, 480, ScaleMode.PAD)) == (
            "scale=854:480:force_original_aspect_ratio=decrease,"
            "pad=854:480:(ow-iw)/2:(oh-ih)/2:black"
        )

    def test_crop(self) -> None:
        """Crop fills the box and trims the overflow around the center."""
        assert scale_filter(Scale(1080, 1920, ScaleMode.CROP)) == (
            "scale=1080:1920:force_original_aspect_ratio=increase,"
            "crop=1080:1920:(iw-1080)/2:(ih-1920)/2"
        )

    def test_even(self) -> None:
        assert scale_filter(Scale(0, None, ScaleMode.EVEN)) == (
            "scale=trunc(iw/2)*2:trunc(ih/2)*2"
        )


class TestCropFilter:
    """Tests for crop_filter()."""

    def test_explicit_offset(self) -> None:
        assert crop_filter(Crop(100, 50, 4, 8)) == "crop=100:50:4:8"

    def test_centered(self) -> None:
        assert crop_filter(Crop(100, 50)) == "crop=100:50:(iw-100)/2:(ih-50)/2"


class TestGraphOutputLabels:
    """Tests for graph_output_labels()."""

    def test_only_trailing_labels(self) -> None:
        """Input labels at the head of a chain are not outputs."""
        expr = "[0:v]scale=10:10[a];[1:v]scale=10:10[b];[a][b]hstack=inputs=2[vout]"
        assert graph_output_labels(expr) == {"a", "b", "vout"}

    def test_chain_without_output(self) -> None:
        assert graph_output_labels("[0:v]null") == set()


class TestCannedGraphs:
    """Tests for side_by_side() and overlay()."""

    def test_side_by_side(self) -> None:
        graph = side_by_side(3, 640, 360)
        assert graph.output_label == "vout"
        assert graph.expression.split(";") == [
            "[0:v]scale=640:360,format=yuv420p[v0]",
            "[1:v]scale=640:360,format=yuv420p[v1]",
            "[2:v]scale=640:360,format=yuv420p[v2]",
            "[v0][v1][v2]hstack=inputs=3[vout]",
        ]

    def test_side_by_side_needs_two_inputs(self) -> None:
        with pytest.raises(ValueError):
            side_by_side(1, 640, 360)

    def test_overlay_defaults_bottom_right(self) -> None:
        graph = overlay(1280, 720, 320, 180)
        assert graph.expression.endswith("[base][pip]overlay=W-w-10:H-h-10[vout]")
        assert "vout" in graph_output_labels(graph.expression)


class TestThumbnailDimensions:
    """Tests for thumbnail_dimensions()."""

    def test_landscape_takes_box_width(self) -> None:
        assert thumbnail_dimensions(1920, 1080, 320, 180) == (320, 180)

    def test_portrait_takes_box_height(self) -> None:
        assert thumbnail_dimensions(1080, 1920, 320, 180) == (101, 180)

    def test_square_takes_box_height(self) -> None:
        assert thumbnail_dimensions(500, 500, 320, 180) == (180, 180)

    def test_extreme_aspect_never_zero(self) -> None:
        assert thumbnail_dimensions(10000, 1, 320, 180) == (320, 1)

    def test_invalid_source(self) -> None:
        with pytest.raises(ValueError):
            thumbnail_dimensions(0, 1080, 320, 180)


class TestWriteConcatList:
    """Tests for write_concat_list()."""

    def test_writes_absolute_quoted_paths(self, tmp_path: Path) -> None:
        segments = [tmp_path / "clip_000.mp4", tmp_path / "it's.mp4"]
        list_path = write_concat_list(segments, tmp_path / "concat_list.txt")

        lines = list_path.read_text().splitlines()
        assert lines[0] == f"file '{segments[0].resolve()}'"
        assert lines[1] == "file '" + str(segments[1].resolve()).replace(
            "'", "'\\''"
        ) + "'"

    def test_empty_list_rejected(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError):
            write_concat_list([], tmp_path / "concat_list.txt")
