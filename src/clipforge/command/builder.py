"""FFmpeg command construction.

FFmpegCommandBuilder accumulates declarative operations and resolves them
into an argument list. Emission order is fixed regardless of the order in
which operations were declared:

1. global flags (-hide_banner -y)
2. per-input options and -i
3. video filtering (-vf or -filter_complex with -map)
4. audio filtering (-af)
5. codecs
6. frame/audio extraction options
7. progress reporting
8. output path
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from clipforge.command.filters import crop_filter, graph_output_labels, scale_filter
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


def format_seconds(value: float) -> str:
    """Format a time or level without float noise ("1.0" -> "1")."""
    text = f"{value:.6f}".rstrip("0").rstrip(".")
    return text or "0"


class FFmpegCommandBuilder:
    """Fluent builder for ffmpeg invocations.

    Each method records one operation and returns the builder. Declaring
    the same kind of operation twice keeps the last declaration.

    Example:
        spec = (
            FFmpegCommandBuilder()
            .trim(2.0, 5.0)
            .scale(1280, 720, ScaleMode.PAD)
            .volume(0.5)
            .progress()
            .build([source], output)
        )
    """

    def __init__(self) -> None:
        self._ops: dict[type, Operation] = {}

    def add(self, operation: Operation) -> FFmpegCommandBuilder:
        self._ops[type(operation)] = operation
        return self

    def trim(self, start: float, duration: float) -> FFmpegCommandBuilder:
        return self.add(Trim(start, duration))

    def scale(
        self, width: int, height: int | None = None, mode: ScaleMode = ScaleMode.EXACT
    ) -> FFmpegCommandBuilder:
        return self.add(Scale(width, height, mode))

    def scale_even(self) -> FFmpegCommandBuilder:
        return self.add(Scale(0, None, ScaleMode.EVEN))

    def crop(
        self, width: int, height: int, x: int | None = None, y: int | None = None
    ) -> FFmpegCommandBuilder:
        return self.add(Crop(width, height, x, y))

    def volume(self, level: float) -> FFmpegCommandBuilder:
        return self.add(Volume(level))

    def mute(self) -> FFmpegCommandBuilder:
        return self.add(Mute())

    def stream_copy(self) -> FFmpegCommandBuilder:
        return self.add(StreamCopy())

    def encode(self, **settings) -> FFmpegCommandBuilder:  # noqa: ANN003
        return self.add(Encode(**settings))

    def filter_graph(
        self, expression: str, output_label: str, audio_map: str | None = "0:a?"
    ) -> FFmpegCommandBuilder:
        return self.add(FilterGraph(expression, output_label, audio_map))

    def thumbnail(self, timestamp: float) -> FFmpegCommandBuilder:
        return self.add(Thumbnail(timestamp))

    def concat(self) -> FFmpegCommandBuilder:
        return self.add(Concat())

    def extract_audio(
        self, sample_rate: int = 16000, channels: int = 1, bitrate: str = "128k"
    ) -> FFmpegCommandBuilder:
        return self.add(ExtractAudio(sample_rate, channels, bitrate))

    def progress(self) -> FFmpegCommandBuilder:
        return self.add(Progress())

    def _get(self, kind: type):  # noqa: ANN202
        return self._ops.get(kind)

    def _validate(self, inputs: tuple[Path, ...]) -> None:
        if not inputs:
            raise ValueError("at least one input is required")

        graph = self._get(FilterGraph)
        if len(inputs) > 1 and graph is None:
            raise ValueError(
                f"{len(inputs)} inputs given without a filter graph to combine them"
            )
        if graph is not None:
            if graph.output_label not in graph_output_labels(graph.expression):
                raise ValueError(
                    f"filter graph does not produce label [{graph.output_label}]"
                )
            if self._get(Scale) or self._get(Crop):
                raise ValueError("scale/crop cannot be combined with a filter graph")

        if self._get(Concat) is not None:
            if len(inputs) != 1:
                raise ValueError("concat takes exactly one list file input")
            if self._get(Trim) or self._get(Thumbnail):
                raise ValueError("concat cannot be combined with trim or thumbnail")

        if self._get(Thumbnail) and self._get(ExtractAudio):
            raise ValueError("thumbnail and audio extraction are exclusive")

    def _input_args(self, inputs: tuple[Path, ...]) -> list[str]:
        if self._get(Concat) is not None:
            return ["-f", "concat", "-safe", "0", "-i", str(inputs[0])]

        trim: Trim | None = self._get(Trim)
        thumbnail: Thumbnail | None = self._get(Thumbnail)
        seek = thumbnail.timestamp if thumbnail else (trim.start if trim else None)

        args: list[str] = []
        for path in inputs:
            if seek is not None:
                args.extend(["-ss", format_seconds(seek)])
            if trim is not None:
                args.extend(["-t", format_seconds(trim.duration)])
            args.extend(["-i", str(path)])
        return args

    def _video_filter_args(self) -> list[str]:
        graph: FilterGraph | None = self._get(FilterGraph)
        if graph is not None:
            args = ["-filter_complex", graph.expression, "-map", f"[{graph.output_label}]"]
            if graph.audio_map:
                args.extend(["-map", graph.audio_map])
            return args

        filters: list[str] = []
        crop = self._get(Crop)
        if crop is not None:
            filters.append(crop_filter(crop))
        scale = self._get(Scale)
        if scale is not None:
            filters.append(scale_filter(scale))
        if filters:
            return ["-vf", ",".join(filters)]
        return []

    def _audio_filter(self) -> str | None:
        if self._get(Mute) is not None:
            return "volume=0"
        volume: Volume | None = self._get(Volume)
        if volume is not None:
            return f"volume={format_seconds(volume.level)}"
        return None

    @staticmethod
    def _video_encode_args(encode: Encode) -> list[str]:
        args = ["-c:v", encode.video_codec, "-preset", encode.preset]
        args.extend(["-crf", str(encode.crf)])
        if encode.pixel_format:
            args.extend(["-pix_fmt", encode.pixel_format])
        return args

    @staticmethod
    def _audio_encode_args(encode: Encode) -> list[str]:
        return ["-c:a", encode.audio_codec, "-b:a", encode.audio_bitrate]

    def _codec_args(self, has_video_filter: bool, audio_filter: str | None) -> list[str]:
        # Still frames and audio extraction let ffmpeg pick the muxer default
        if self._get(Thumbnail) is not None or self._get(ExtractAudio) is not None:
            return []

        encode: Encode = self._get(Encode) or Encode()

        if self._get(StreamCopy) is None:
            return self._video_encode_args(encode) + self._audio_encode_args(encode)

        if not has_video_filter and audio_filter is None:
            return ["-c", "copy", "-avoid_negative_ts", "make_zero"]

        args = (
            self._video_encode_args(encode) if has_video_filter else ["-c:v", "copy"]
        )
        if audio_filter is not None:
            args.extend(self._audio_encode_args(encode))
        else:
            args.extend(["-c:a", "copy"])
        args.extend(["-avoid_negative_ts", "make_zero"])
        return args

    def build(self, inputs: Sequence[Path | str], output: Path | str) -> CommandSpec:
        """Resolve the declared operations into a CommandSpec.

        Args:
            inputs: Input files in order (a single list file for concat).
            output: Output file path.

        Returns:
            CommandSpec for the "ffmpeg" tool.

        Raises:
            ValueError: If the operations cannot be combined for these inputs.
        """
        input_paths = tuple(Path(p) for p in inputs)
        self._validate(input_paths)

        args = ["-hide_banner", "-y"]
        args.extend(self._input_args(input_paths))

        video_args = self._video_filter_args()
        args.extend(video_args)

        audio_filter = self._audio_filter()
        if audio_filter is not None:
            args.extend(["-af", audio_filter])

        args.extend(self._codec_args(bool(video_args), audio_filter))

        if self._get(Thumbnail) is not None:
            args.extend(["-vframes", "1"])
        extract: ExtractAudio | None = self._get(ExtractAudio)
        if extract is not None:
            args.extend(["-vn", "-ar", str(extract.sample_rate)])
            args.extend(["-ac", str(extract.channels), "-b:a", extract.bitrate])

        progress = self._get(Progress) is not None
        if progress:
            args.extend(["-progress", "pipe:2", "-nostats"])

        output_path = Path(output)
        args.append(str(output_path))

        return CommandSpec(
            tool="ffmpeg",
            inputs=input_paths,
            args=tuple(args),
            output=output_path,
            progress=progress,
        )
