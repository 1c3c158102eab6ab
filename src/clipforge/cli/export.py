"""clipforge export command."""

from __future__ import annotations

from pathlib import Path

import click

from clipforge.cli.exit_codes import ExitCode
from clipforge.cli.output import (
    CLIResult,
    error_exit,
    failure_exit,
    success_output,
    warning_output,
)
from clipforge.cli.runtime import get_orchestrator, run_operation
from clipforge.errors import ClipforgeError, InvalidInputError
from clipforge.export.models import RESOLUTION_PRESETS, ClipExportInfo, ExportJob
from clipforge.export.schema import load_job_file
from clipforge.runner.sinks import StderrProgressSink


def parse_clip_argument(value: str) -> ClipExportInfo:
    """Parse a PATH:START:END clip argument.

    The path may itself contain colons; the last two fields are the
    trim points in seconds.

    Raises:
        InvalidInputError: If the argument is malformed.
    """
    parts = value.rsplit(":", 2)
    if len(parts) != 3 or not parts[0]:
        raise InvalidInputError(f"Clip must be PATH:START:END, got '{value}'")
    path, start, end = parts
    try:
        trim_start = float(start)
        trim_end = float(end)
    except ValueError:
        raise InvalidInputError(
            f"Clip trim points must be numbers, got '{value}'"
        ) from None
    return ClipExportInfo(Path(path).expanduser(), trim_start, trim_end)


def _collect_request(
    clip_args: tuple[str, ...],
    job_file: Path | None,
    output: Path | None,
    resolution: str | None,
) -> tuple[list[ClipExportInfo], Path, str | None]:
    if job_file is not None and clip_args:
        raise InvalidInputError("Pass either CLIP arguments or --job, not both")

    if job_file is not None:
        request = load_job_file(job_file)
        clips = request.to_clips(base_dir=job_file.parent)
        if output is None and request.output is not None:
            output = request.output.expanduser()
            if not output.is_absolute():
                output = job_file.parent / output
        resolution = resolution or request.resolution
    else:
        clips = [parse_clip_argument(arg) for arg in clip_args]

    if not clips:
        raise InvalidInputError("At least one clip is required for export")
    if output is None:
        raise InvalidInputError("An output path is required (--output)")
    return clips, output, resolution


@click.command("export")
@click.argument("clip_args", metavar="[CLIP]...", nargs=-1)
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Destination file (may come from the job file).",
)
@click.option(
    "--resolution",
    "-r",
    type=click.Choice(["source", *RESOLUTION_PRESETS], case_sensitive=False),
    default=None,
    help="Output resolution (default: export.default_resolution).",
)
@click.option(
    "--job",
    "job_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="YAML or JSON job file describing clips, output and resolution.",
)
@click.option(
    "--json",
    "json_output",
    is_flag=True,
    help="Output the finished job as JSON.",
)
@click.pass_context
def export_command(
    ctx: click.Context,
    clip_args: tuple[str, ...],
    output: Path | None,
    resolution: str | None,
    job_file: Path | None,
    json_output: bool,
) -> None:
    """Export one or more clips into a single video.

    Each CLIP is PATH:START:END with times in seconds, e.g.
    intro.mp4:0:4.5. Multiple clips are scaled to the same resolution and
    joined in order.

    \b
    Examples:
      clipforge export a.mp4:0:4 b.mp4:10:12 -o out.mp4 -r 720p
      clipforge export --job project.yaml
    """
    orchestrator = get_orchestrator(ctx)
    try:
        clips, output, resolution = _collect_request(
            clip_args, job_file, output, resolution
        )
        job = ExportJob.create(
            clips,
            output,
            resolution or orchestrator.config.export.default_resolution,
        )
    except ClipforgeError as e:
        failure_exit(e, json_output)

    if job.output.exists() and any(
        job.output.resolve() == clip.path.resolve() for clip in job.clips
    ):
        error_exit(
            f"Output would overwrite an input clip: {job.output}",
            ExitCode.INVALID_INPUT,
            json_output,
        )

    if job.output.exists():
        warning_output(f"Overwriting existing file {job.output}", json_output)

    sink = StderrProgressSink(enabled=not json_output)
    try:
        run_operation(orchestrator.export(job, sink), json_output)
    finally:
        sink.close()

    success_output(
        CLIResult(
            message=(
                f"Exported {len(job.clips)} clip(s) "
                f"({job.total_duration:.2f}s) to {job.output}"
            ),
            data={"job": job.to_dict()},
        ),
        json_output,
    )
