"""Export orchestration.

ExportOrchestrator turns editing intent (clips with trim points, volume
and a target resolution) into a sequence of ffmpeg invocations:

- single clip: one trim + scale + encode pass straight into the output;
- multiple clips: every clip is normalized into the job workspace, then
  the segments are joined with the concat demuxer using stream copy.

Progress from every invocation is mapped into its share of one 0-100 bar.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Callable, Sequence
from pathlib import Path

from clipforge.command import FFmpegCommandBuilder, ScaleMode, write_concat_list
from clipforge.command.filters import thumbnail_dimensions
from clipforge.command.models import CommandSpec
from clipforge.config.models import ClipforgeConfig
from clipforge.errors import (
    ClipforgeError,
    ExecutionFailedError,
    ExportCancelledError,
    InvalidInputError,
    OutputValidationError,
    describe_error,
)
from clipforge.export.models import (
    ClipExportInfo,
    ExportJob,
    JobState,
    Resolution,
)
from clipforge.export.windows import allocate_progress_windows
from clipforge.export.workspace import JobWorkspace
from clipforge.introspector.probe import FFprobeIntrospector, MediaMetadata
from clipforge.logging.context import job_context, set_job_context
from clipforge.runner.files import remove_file
from clipforge.runner.process import ProcessRunner
from clipforge.runner.progress import FULL_WINDOW
from clipforge.runner.sinks import (
    CallbackProgressSink,
    CompositeProgressSink,
    NullProgressSink,
    ProgressSink,
)
from clipforge.tools.resolver import BinaryResolver

logger = logging.getLogger(__name__)

# Slack allowed between a trim end and the probed duration (seconds)
DURATION_TOLERANCE = 0.05

# Fallback positions tried when extracting a thumbnail
THUMBNAIL_FALLBACK_POSITIONS = (1.0, 0.1, 0.5, 0.0)

StageCallback = Callable[[JobState, int | None], None]


def _even(value: int) -> int:
    return max(2, value - value % 2)


class ExportOrchestrator:
    """Drives ffmpeg/ffprobe for exports and single-file operations."""

    def __init__(
        self,
        config: ClipforgeConfig | None = None,
        resolver: BinaryResolver | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            config: Configuration; defaults are used when None.
            resolver: Binary resolver; built from config.tools when None.
        """
        self.config = config or ClipforgeConfig()
        self.resolver = resolver or BinaryResolver.from_config(self.config.tools)

    # Tool access. Binaries are resolved on every call, never cached.

    def _runner(self, name: str) -> ProcessRunner:
        return ProcessRunner(
            self.resolver.resolve(name),
            timeout=self.config.export.process_timeout,
            throttle_seconds=self.config.export.throttle_seconds,
        )

    def _introspector(self) -> FFprobeIntrospector:
        return FFprobeIntrospector(
            self.resolver.resolve("ffprobe"),
            timeout=self.config.export.process_timeout,
        )

    @staticmethod
    def _require_file(path: Path) -> None:
        if not path.is_file():
            raise InvalidInputError(f"Input file not found: {path}")

    @staticmethod
    def _refuse_overwrite(output: Path, inputs: Sequence[Path]) -> None:
        # A failed run removes its output, which must never be a source file
        target = output.resolve()
        if any(target == Path(path).resolve() for path in inputs):
            raise InvalidInputError(f"Output would overwrite an input: {output}")

    async def probe(self, path: Path) -> MediaMetadata:
        """Read duration, dimensions, codec and frame rate of a media file."""
        path = Path(path)
        self._require_file(path)
        return await self._introspector().get_metadata(path)

    @staticmethod
    def _check_bounds(clip: ClipExportInfo, metadata: MediaMetadata) -> None:
        if metadata.duration > 0 and clip.trim_end > metadata.duration + DURATION_TOLERANCE:
            raise InvalidInputError(
                f"Trim end {clip.trim_end:.2f}s exceeds duration "
                f"{metadata.duration:.2f}s of {clip.path}"
            )

    @staticmethod
    def _target_size(
        resolution: Resolution, source: MediaMetadata
    ) -> tuple[int, int]:
        if resolution.is_source:
            # libx264 with yuv420p needs even dimensions
            return _even(source.width), _even(source.height)
        assert resolution.width is not None and resolution.height is not None
        return resolution.width, resolution.height

    def _clip_command(
        self, clip: ClipExportInfo, output: Path, width: int, height: int
    ) -> CommandSpec:
        builder = (
            FFmpegCommandBuilder()
            .trim(clip.trim_start, clip.duration)
            .scale(width, height, ScaleMode.PAD)
            .add(self.config.export.encode_settings())
            .progress()
        )
        if clip.muted:
            builder.mute()
        elif clip.volume < 1.0:
            builder.volume(clip.volume)
        return builder.build([clip.path], output)

    async def _probe_clips(
        self, clips: Sequence[ClipExportInfo], output: Path
    ) -> list[MediaMetadata]:
        self._refuse_overwrite(output, [clip.path for clip in clips])
        introspector = self._introspector()
        metadata = []
        for clip in clips:
            self._require_file(clip.path)
            info = await introspector.get_metadata(clip.path)
            self._check_bounds(clip, info)
            metadata.append(info)
        return metadata

    async def export_single(
        self,
        clip: ClipExportInfo,
        output: Path,
        resolution: str | Resolution = "source",
        sink: ProgressSink | None = None,
    ) -> Path:
        """Export one clip with a single ffmpeg pass.

        Args:
            clip: Source clip with trim and audio settings.
            output: Destination file.
            resolution: Target resolution name or Resolution.
            sink: Receiver of progress (0-100).

        Returns:
            The output path.

        Raises:
            ClipforgeError: Any orchestration failure. The partial output
                file is removed.
        """
        resolution = Resolution.parse(resolution)
        output = Path(output)
        ffmpeg = self._runner("ffmpeg")
        (metadata,) = await self._probe_clips([clip], output)
        width, height = self._target_size(resolution, metadata)

        logger.info(
            "Exporting %s (%.2fs-%.2fs) to %s at %dx%d",
            clip.path,
            clip.trim_start,
            clip.trim_end,
            output,
            width,
            height,
        )
        output.parent.mkdir(parents=True, exist_ok=True)
        spec = self._clip_command(clip, output, width, height)
        try:
            await ffmpeg.run_with_progress(spec, clip.duration, FULL_WINDOW, sink)
        except BaseException:
            remove_file(output)
            raise
        return output

    async def export_multi(
        self,
        clips: Sequence[ClipExportInfo],
        output: Path,
        resolution: str | Resolution = "source",
        sink: ProgressSink | None = None,
        job_id: str | None = None,
        on_stage: StageCallback | None = None,
    ) -> Path:
        """Export several clips joined in order.

        Each clip is trimmed, scaled and encoded into the job workspace,
        then the segments are concatenated with stream copy. The workspace
        is always removed.

        Args:
            clips: Clips in playback order.
            output: Destination file.
            resolution: Target resolution name or Resolution.
            sink: Receiver of progress (0-100).
            job_id: Identifier used to name the workspace; a fresh one is
                generated when omitted.
            on_stage: Called with (state, clip index) as stages begin.

        Returns:
            The output path.
        """
        if not clips:
            raise InvalidInputError("At least one clip is required for export")
        resolution = Resolution.parse(resolution)
        output = Path(output)
        windows = allocate_progress_windows([clip.duration for clip in clips])
        ffmpeg = self._runner("ffmpeg")
        metadata = await self._probe_clips(clips, output)
        width, height = self._target_size(resolution, metadata[0])
        total_duration = sum(clip.duration for clip in clips)

        logger.info(
            "Exporting %d clips (%.2fs) to %s at %dx%d",
            len(clips),
            total_duration,
            output,
            width,
            height,
        )
        output.parent.mkdir(parents=True, exist_ok=True)

        workspace = JobWorkspace(
            job_id or uuid.uuid4().hex, self.config.export.temp_directory
        )
        with workspace:
            try:
                segments: list[Path] = []
                for index, (clip, window) in enumerate(zip(clips, windows)):
                    if on_stage is not None:
                        on_stage(JobState.PREPROCESSING, index)
                    segment = workspace.path / f"clip_{index:03d}.mp4"
                    logger.debug(
                        "Preprocessing clip %d/%d: %s", index + 1, len(clips), clip.path
                    )
                    await ffmpeg.run_with_progress(
                        self._clip_command(clip, segment, width, height),
                        clip.duration,
                        window,
                        sink,
                    )
                    segments.append(segment)

                list_path = write_concat_list(
                    segments, workspace.path / "concat_list.txt"
                )
                if on_stage is not None:
                    on_stage(JobState.CONCATENATING, None)
                concat = (
                    FFmpegCommandBuilder()
                    .concat()
                    .stream_copy()
                    .progress()
                    .build([list_path], output)
                )
                await ffmpeg.run_with_progress(
                    concat, total_duration, windows[-1], sink
                )
            except BaseException:
                remove_file(output)
                raise
        return output

    async def export(self, job: ExportJob, sink: ProgressSink | None = None) -> ExportJob:
        """Run an ExportJob, driving its state machine.

        The job's progress follows the sink values. On failure the job is
        moved to FAILED with a user-facing message and the error is
        re-raised; on cancellation it is moved to CANCELLED.
        """
        progress_sink = CompositeProgressSink(
            CallbackProgressSink(lambda value: setattr(job, "progress", value)),
            sink or NullProgressSink(),
        )

        def on_stage(state: JobState, clip_index: int | None) -> None:
            if job.state != state:
                job.transition(state)
            job.current_clip = clip_index
            set_job_context(job.id, state.value)

        with job_context(job.id, JobState.PREPROCESSING.value):
            try:
                job.transition(JobState.PREPROCESSING)
                if len(job.clips) == 1:
                    job.current_clip = 0
                    await self.export_single(
                        job.clips[0], job.output, job.resolution, progress_sink
                    )
                else:
                    await self.export_multi(
                        job.clips,
                        job.output,
                        job.resolution,
                        progress_sink,
                        job_id=job.id,
                        on_stage=on_stage,
                    )
                job.transition(JobState.SUCCEEDED)
                logger.info("Export finished: %s", job.output)
            except asyncio.CancelledError:
                cancelled = ExportCancelledError("Export cancelled")
                job.error = cancelled.message
                job.error_kind = cancelled.kind.value
                job.transition(JobState.CANCELLED)
                logger.info("Export cancelled")
                raise
            except Exception as e:
                job.fail(e, describe_error(e))
                logger.error(
                    "Export failed: %s",
                    e,
                    extra={
                        "error_kind": job.error_kind,
                        "output": str(job.output),
                    },
                )
                raise
        return job

    async def trim(
        self,
        input_path: Path,
        output: Path,
        start: float,
        end: float,
        volume: float | None = None,
        muted: bool = False,
        sink: ProgressSink | None = None,
    ) -> Path:
        """Cut [start, end) out of a file using stream copy.

        Audio is re-encoded only when a volume change or mute is requested.
        """
        clip = ClipExportInfo(
            Path(input_path),
            start,
            end,
            volume=1.0 if volume is None else volume,
            muted=muted,
        )
        output = Path(output)
        ffmpeg = self._runner("ffmpeg")
        self._require_file(clip.path)
        self._refuse_overwrite(output, [clip.path])
        self._check_bounds(clip, await self._introspector().get_metadata(clip.path))

        builder = (
            FFmpegCommandBuilder()
            .trim(clip.trim_start, clip.duration)
            .stream_copy()
            .add(self.config.export.encode_settings())
            .progress()
        )
        if muted:
            builder.mute()
        elif volume is not None:
            builder.volume(volume)

        output.parent.mkdir(parents=True, exist_ok=True)
        try:
            await ffmpeg.run_with_progress(
                builder.build([clip.path], output), clip.duration, FULL_WINDOW, sink
            )
        except BaseException:
            remove_file(output)
            raise
        return output

    def _thumbnail_output(self, input_path: Path) -> Path:
        directory = self.config.thumbnails.directory or input_path.parent
        return directory / f"{input_path.stem}_thumb.jpg"

    @staticmethod
    def _thumbnail_positions(timestamp: float | None, duration: float) -> list[float]:
        one_sec, tenth, half_sec, start = THUMBNAIL_FALLBACK_POSITIONS
        candidates = [one_sec, duration * tenth, half_sec, start]
        if timestamp is not None:
            candidates.insert(0, timestamp)
        positions: list[float] = []
        for position in candidates:
            if duration > 0 and position >= duration:
                continue
            if position not in positions:
                positions.append(position)
        return positions

    async def generate_thumbnail(
        self,
        input_path: Path,
        timestamp: float | None = None,
        box: tuple[int, int] | None = None,
        output: Path | None = None,
    ) -> Path:
        """Extract a single JPEG frame fitted inside a box.

        Tries the requested timestamp, then 1s, 10% of the duration, 0.5s
        and the first frame, skipping positions past the end.

        Raises:
            ExecutionFailedError: If every position failed; carries the last
                diagnostic.
        """
        input_path = Path(input_path)
        box_width, box_height = box or (
            self.config.thumbnails.width,
            self.config.thumbnails.height,
        )
        ffmpeg = self._runner("ffmpeg")
        metadata = await self.probe(input_path)
        width, height = thumbnail_dimensions(
            metadata.width, metadata.height, box_width, box_height
        )
        output = Path(output) if output else self._thumbnail_output(input_path)
        self._refuse_overwrite(output, [input_path])
        output.parent.mkdir(parents=True, exist_ok=True)

        last_error: ClipforgeError | None = None
        for position in self._thumbnail_positions(timestamp, metadata.duration):
            spec = (
                FFmpegCommandBuilder()
                .thumbnail(position)
                .scale(width, height)
                .build([input_path], output)
            )
            try:
                await ffmpeg.run(spec)
            except (ExecutionFailedError, OutputValidationError) as e:
                logger.debug("Thumbnail at %.2fs failed: %s", position, e)
                last_error = e
                continue
            logger.info("Generated thumbnail %s at %.2fs", output, position)
            return output

        if isinstance(last_error, ExecutionFailedError):
            raise last_error
        raise ExecutionFailedError(
            -1,
            last_error.message if last_error else "no usable thumbnail position",
        )

    async def extract_audio(
        self,
        input_path: Path,
        output: Path | None = None,
        sink: ProgressSink | None = None,
    ) -> Path:
        """Extract a 16kHz mono MP3 suitable for speech transcription."""
        input_path = Path(input_path)
        ffmpeg = self._runner("ffmpeg")
        self._require_file(input_path)
        output = Path(output) if output else input_path.with_suffix(".mp3")
        self._refuse_overwrite(output, [input_path])

        metadata_duration = 0.0
        try:
            metadata_duration = (await self.probe(input_path)).duration
        except InvalidInputError:
            # Audio-only input has no video stream to probe
            logger.debug("No video stream in %s, progress unavailable", input_path)

        spec = FFmpegCommandBuilder().extract_audio().progress().build(
            [input_path], output
        )
        output.parent.mkdir(parents=True, exist_ok=True)
        try:
            await ffmpeg.run_with_progress(spec, metadata_duration, FULL_WINDOW, sink)
        except BaseException:
            remove_file(output)
            raise
        return output
