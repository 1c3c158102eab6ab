"""Single-file commands: probe, trim, thumbnail and extract-audio."""

from __future__ import annotations

from pathlib import Path

import click

from clipforge.cli.output import CLIResult, success_output
from clipforge.cli.runtime import get_orchestrator, run_operation
from clipforge.runner.sinks import StderrProgressSink

_JSON_OPTION = click.option(
    "--json",
    "json_output",
    is_flag=True,
    help="Output result as JSON.",
)


def _format_metadata(data: dict) -> str:
    lines = [
        f"File:       {data['path']}",
        f"Duration:   {data['duration']:.3f}s",
        f"Resolution: {data['width']}x{data['height']}",
        f"Codec:      {data['codec']}",
        f"Frame rate: {data['fps']:.3f} fps",
    ]
    if data.get("bit_rate"):
        lines.append(f"Bit rate:   {data['bit_rate'] // 1000} kb/s")
    if data.get("file_size"):
        lines.append(f"Size:       {data['file_size']} bytes")
    return "\n".join(lines)


@click.command("probe")
@click.argument("file", type=click.Path(path_type=Path))
@_JSON_OPTION
@click.pass_context
def probe_command(ctx: click.Context, file: Path, json_output: bool) -> None:
    """Show duration, dimensions, codec and frame rate of FILE."""
    orchestrator = get_orchestrator(ctx)
    metadata = run_operation(orchestrator.probe(file), json_output)
    data = metadata.to_dict()
    success_output(
        CLIResult(message=_format_metadata(data), data=data),
        json_output,
    )


@click.command("trim")
@click.argument("input_path", metavar="INPUT", type=click.Path(path_type=Path))
@click.argument("output", type=click.Path(dir_okay=False, path_type=Path))
@click.option("--start", type=float, required=True, help="Start time in seconds.")
@click.option("--end", type=float, required=True, help="End time in seconds.")
@click.option(
    "--volume",
    type=click.FloatRange(0.0, 1.0),
    default=None,
    help="Audio volume between 0.0 and 1.0 (re-encodes audio).",
)
@click.option("--mute", is_flag=True, help="Silence the audio track.")
@_JSON_OPTION
@click.pass_context
def trim_command(
    ctx: click.Context,
    input_path: Path,
    output: Path,
    start: float,
    end: float,
    volume: float | None,
    mute: bool,
    json_output: bool,
) -> None:
    """Cut INPUT between --start and --end into OUTPUT.

    Video is stream-copied; audio is re-encoded only for volume or mute.
    """
    orchestrator = get_orchestrator(ctx)
    sink = StderrProgressSink("Trimming", enabled=not json_output)
    try:
        result = run_operation(
            orchestrator.trim(
                input_path, output, start, end, volume=volume, muted=mute, sink=sink
            ),
            json_output,
        )
    finally:
        sink.close()
    success_output(
        CLIResult(
            message=f"Trimmed {input_path} to {result}",
            data={"output": str(result), "start": start, "end": end},
        ),
        json_output,
    )


@click.command("thumbnail")
@click.argument("input_path", metavar="INPUT", type=click.Path(path_type=Path))
@click.option("--at", "timestamp", type=float, default=None, help="Timestamp in seconds.")
@click.option("--width", type=click.IntRange(min=1), default=None, help="Box width.")
@click.option("--height", type=click.IntRange(min=1), default=None, help="Box height.")
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Output JPEG (default: <input stem>_thumb.jpg).",
)
@_JSON_OPTION
@click.pass_context
def thumbnail_command(
    ctx: click.Context,
    input_path: Path,
    timestamp: float | None,
    width: int | None,
    height: int | None,
    output: Path | None,
    json_output: bool,
) -> None:
    """Extract one frame of INPUT as a JPEG thumbnail.

    The frame is scaled to fit a box (default from configuration, 320x180)
    keeping its aspect ratio.
    """
    orchestrator = get_orchestrator(ctx)
    thumbnails = orchestrator.config.thumbnails
    box = (width or thumbnails.width, height or thumbnails.height)
    result = run_operation(
        orchestrator.generate_thumbnail(input_path, timestamp, box, output),
        json_output,
    )
    success_output(
        CLIResult(
            message=f"Thumbnail written to {result}",
            data={"output": str(result)},
        ),
        json_output,
    )


@click.command("extract-audio")
@click.argument("input_path", metavar="INPUT", type=click.Path(path_type=Path))
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Output MP3 (default: INPUT with .mp3 suffix).",
)
@_JSON_OPTION
@click.pass_context
def extract_audio_command(
    ctx: click.Context, input_path: Path, output: Path | None, json_output: bool
) -> None:
    """Extract the audio of INPUT as 16kHz mono MP3 for transcription."""
    orchestrator = get_orchestrator(ctx)
    sink = StderrProgressSink("Extracting", enabled=not json_output)
    try:
        result = run_operation(
            orchestrator.extract_audio(input_path, output, sink), json_output
        )
    finally:
        sink.close()
    success_output(
        CLIResult(
            message=f"Audio written to {result}",
            data={"output": str(result)},
        ),
        json_output,
    )
