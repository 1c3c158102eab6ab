"""Tests for ExportOrchestrator against the fake ffmpeg and ffprobe."""

import asyncio
from pathlib import Path
from unittest.mock import patch

import pytest

from clipforge.config.models import ClipforgeConfig, ToolPathsConfig
from clipforge.errors import (
    BinaryNotFoundError,
    ExecutionFailedError,
    InvalidInputError,
    SpawnFailedError,
)
from clipforge.export import ClipExportInfo, ExportJob, ExportOrchestrator, JobState
from clipforge.runner import CallbackProgressSink


def _arg_after(args: list[str], flag: str) -> str:
    return args[args.index(flag) + 1]


@pytest.fixture
def orchestrator(fake_config: ClipforgeConfig) -> ExportOrchestrator:
    return ExportOrchestrator(fake_config)


class TestProbe:
    """Tests for ExportOrchestrator.probe()."""

    @pytest.mark.asyncio
    async def test_probe(
        self, orchestrator: ExportOrchestrator, media_file: Path
    ) -> None:
        metadata = await orchestrator.probe(media_file)
        assert (metadata.width, metadata.height, metadata.duration) == (1280, 720, 10.0)

    @pytest.mark.asyncio
    async def test_missing_input(
        self, orchestrator: ExportOrchestrator, tmp_path: Path
    ) -> None:
        with pytest.raises(InvalidInputError, match="not found"):
            await orchestrator.probe(tmp_path / "missing.mp4")


class TestExportSingle:
    """Tests for single-clip exports."""

    @pytest.mark.asyncio
    async def test_one_pass_with_progress(
        self,
        orchestrator: ExportOrchestrator,
        media_file: Path,
        tmp_path: Path,
        ffmpeg_calls,
    ) -> None:
        """A single clip is trimmed, scaled and encoded in one invocation."""
        received: list[int] = []
        output = tmp_path / "out" / "single.mp4"
        clip = ClipExportInfo(media_file, 2.0, 6.0, volume=0.5)

        result = await orchestrator.export_single(
            clip, output, "720p", CallbackProgressSink(received.append)
        )

        assert result == output
        assert output.read_bytes() == b"fake media data"
        assert received == [25, 50, 75, 100]

        (args,) = ffmpeg_calls()
        assert _arg_after(args, "-ss") == "2"
        assert _arg_after(args, "-t") == "4"
        assert _arg_after(args, "-vf").startswith(
            "scale=1280:720:force_original_aspect_ratio=decrease,pad=1280:720"
        )
        assert _arg_after(args, "-af") == "volume=0.5"
        assert args[-1] == str(output)

    @pytest.mark.asyncio
    async def test_source_resolution_rounds_to_even(
        self,
        orchestrator: ExportOrchestrator,
        media_file: Path,
        tmp_path: Path,
        ffmpeg_calls,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setenv("FAKE_WIDTH", "1281")
        monkeypatch.setenv("FAKE_HEIGHT", "721")

        await orchestrator.export_single(
            ClipExportInfo(media_file, 0, 1), tmp_path / "o.mp4", "source"
        )

        (args,) = ffmpeg_calls()
        assert _arg_after(args, "-vf").startswith("scale=1280:720:")

    @pytest.mark.asyncio
    async def test_muted_clip(
        self,
        orchestrator: ExportOrchestrator,
        media_file: Path,
        tmp_path: Path,
        ffmpeg_calls,
    ) -> None:
        await orchestrator.export_single(
            ClipExportInfo(media_file, 0, 1, volume=0.3, muted=True),
            tmp_path / "o.mp4",
        )
        (args,) = ffmpeg_calls()
        assert _arg_after(args, "-af") == "volume=0"

    @pytest.mark.asyncio
    async def test_trim_past_duration_rejected(
        self,
        orchestrator: ExportOrchestrator,
        media_file: Path,
        tmp_path: Path,
        ffmpeg_calls,
    ) -> None:
        """Trim points past the probed duration fail before ffmpeg runs."""
        with pytest.raises(InvalidInputError, match="exceeds duration"):
            await orchestrator.export_single(
                ClipExportInfo(media_file, 5, 12), tmp_path / "o.mp4"
            )
        assert ffmpeg_calls() == []

    @pytest.mark.asyncio
    async def test_failure_removes_partial_output(
        self,
        orchestrator: ExportOrchestrator,
        media_file: Path,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        output = tmp_path / "o.mp4"
        output.write_bytes(b"stale")
        monkeypatch.setenv("FAKE_FFMPEG_FAIL", "1")

        with pytest.raises(ExecutionFailedError):
            await orchestrator.export_single(ClipExportInfo(media_file, 0, 1), output)

        assert not output.exists()


class TestExportMulti:
    """Tests for multi-clip exports."""

    @pytest.mark.asyncio
    async def test_preprocess_then_concat(
        self,
        orchestrator: ExportOrchestrator,
        fake_config: ClipforgeConfig,
        media_file: Path,
        tmp_path: Path,
        ffmpeg_calls,
    ) -> None:
        """Clips are normalized into the workspace and joined with stream copy."""
        received: list[int] = []
        stages: list[tuple[JobState, int | None]] = []
        clips = [
            ClipExportInfo(media_file, 0, 4),
            ClipExportInfo(media_file, 2, 4),
            ClipExportInfo(media_file, 0, 4),
        ]
        output = tmp_path / "joined.mp4"

        await orchestrator.export_multi(
            clips,
            output,
            "480p",
            CallbackProgressSink(received.append),
            job_id="job1",
            on_stage=lambda state, index: stages.append((state, index)),
        )

        assert received == [9, 18, 27, 36, 40, 45, 49, 54, 63, 72, 81, 90, 100]
        assert stages == [
            (JobState.PREPROCESSING, 0),
            (JobState.PREPROCESSING, 1),
            (JobState.PREPROCESSING, 2),
            (JobState.CONCATENATING, None),
        ]

        calls = ffmpeg_calls()
        assert len(calls) == 4
        workspace = fake_config.export.temp_directory / "clipforge-job1"
        for index, args in enumerate(calls[:3]):
            assert args[-1] == str(workspace / f"clip_{index:03d}.mp4")
            assert _arg_after(args, "-vf").startswith("scale=854:480:")
        concat = calls[3]
        assert concat[concat.index("-f") : concat.index("-f") + 4] == [
            "-f",
            "concat",
            "-safe",
            "0",
        ]
        assert _arg_after(concat, "-c") == "copy"
        assert concat[-1] == str(output)

        assert output.exists()
        assert not workspace.exists()

    @pytest.mark.asyncio
    async def test_failure_cleans_workspace_and_output(
        self,
        orchestrator: ExportOrchestrator,
        fake_config: ClipforgeConfig,
        media_file: Path,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setenv("FAKE_FFMPEG_FAIL_ON", "clip_001")
        output = tmp_path / "joined.mp4"
        clips = [ClipExportInfo(media_file, 0, 1), ClipExportInfo(media_file, 1, 2)]

        with pytest.raises(ExecutionFailedError):
            await orchestrator.export_multi(clips, output, job_id="job2")

        assert not output.exists()
        assert list(fake_config.export.temp_directory.iterdir()) == []

    @pytest.mark.asyncio
    async def test_concurrent_exports_without_job_id(
        self,
        orchestrator: ExportOrchestrator,
        fake_config: ClipforgeConfig,
        media_file: Path,
        tmp_path: Path,
        ffmpeg_calls,
    ) -> None:
        """Each call gets its own workspace when no job id is given."""
        clips = [ClipExportInfo(media_file, 0, 1), ClipExportInfo(media_file, 1, 2)]

        results = await asyncio.gather(
            orchestrator.export_multi(clips, tmp_path / "a.mp4"),
            orchestrator.export_multi(clips, tmp_path / "b.mp4"),
        )

        assert results == [tmp_path / "a.mp4", tmp_path / "b.mp4"]
        workspaces = {Path(args[-1]).parent for args in ffmpeg_calls()}
        workspaces.discard(tmp_path)
        assert len(workspaces) == 2
        assert list(fake_config.export.temp_directory.iterdir()) == []

    @pytest.mark.asyncio
    async def test_existing_workspace_keeps_output(
        self,
        orchestrator: ExportOrchestrator,
        fake_config: ClipforgeConfig,
        media_file: Path,
        tmp_path: Path,
        ffmpeg_calls,
    ) -> None:
        stale = fake_config.export.temp_directory / "clipforge-job3"
        stale.mkdir(parents=True)
        output = tmp_path / "joined.mp4"
        output.write_bytes(b"previous export")
        clips = [ClipExportInfo(media_file, 0, 1), ClipExportInfo(media_file, 1, 2)]

        with pytest.raises(SpawnFailedError):
            await orchestrator.export_multi(clips, output, job_id="job3")

        assert output.read_bytes() == b"previous export"
        assert stale.is_dir()
        assert ffmpeg_calls() == []


class TestExportJob:
    """Tests for ExportOrchestrator.export() driving a job."""

    @pytest.mark.asyncio
    async def test_successful_job(
        self, orchestrator: ExportOrchestrator, media_file: Path, tmp_path: Path
    ) -> None:
        job = ExportJob.create(
            [ClipExportInfo(media_file, 0, 2), ClipExportInfo(media_file, 2, 4)],
            tmp_path / "out.mp4",
        )

        await orchestrator.export(job)

        assert job.state == JobState.SUCCEEDED
        assert job.progress == 100
        assert job.error is None

    @pytest.mark.asyncio
    async def test_failed_job_records_friendly_error(
        self,
        orchestrator: ExportOrchestrator,
        media_file: Path,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setenv("FAKE_FFMPEG_FAIL", "1")
        job = ExportJob.create([ClipExportInfo(media_file, 0, 2)], tmp_path / "o.mp4")

        with pytest.raises(ExecutionFailedError):
            await orchestrator.export(job)

        assert job.state == JobState.FAILED
        assert job.error == "File is corrupted or not a supported media format"
        assert job.error_kind == "execution_failed"

    @pytest.mark.asyncio
    async def test_missing_binary(self, media_file: Path, tmp_path: Path) -> None:
        config = ClipforgeConfig(
            tools=ToolPathsConfig(
                ffmpeg=tmp_path / "nope", ffprobe=tmp_path / "nope", resource_dir=None
            )
        )
        job = ExportJob.create([ClipExportInfo(media_file, 0, 2)], tmp_path / "o.mp4")

        with patch("clipforge.tools.resolver.shutil.which", return_value=None):
            with pytest.raises(BinaryNotFoundError):
                await ExportOrchestrator(config).export(job)

        assert job.error_kind == "binary_not_found"


class TestTrim:
    """Tests for ExportOrchestrator.trim()."""

    @pytest.mark.asyncio
    async def test_stream_copy(
        self,
        orchestrator: ExportOrchestrator,
        media_file: Path,
        tmp_path: Path,
        ffmpeg_calls,
    ) -> None:
        await orchestrator.trim(media_file, tmp_path / "t.mp4", 1.0, 3.5)

        (args,) = ffmpeg_calls()
        assert _arg_after(args, "-t") == "2.5"
        assert _arg_after(args, "-c") == "copy"
        assert "-af" not in args

    @pytest.mark.asyncio
    async def test_volume_reencodes_audio(
        self,
        orchestrator: ExportOrchestrator,
        media_file: Path,
        tmp_path: Path,
        ffmpeg_calls,
    ) -> None:
        await orchestrator.trim(media_file, tmp_path / "t.mp4", 0, 2, volume=0.25)

        (args,) = ffmpeg_calls()
        assert _arg_after(args, "-c:v") == "copy"
        assert _arg_after(args, "-c:a") == "aac"
        assert _arg_after(args, "-af") == "volume=0.25"

    @pytest.mark.asyncio
    async def test_invalid_range(
        self, orchestrator: ExportOrchestrator, media_file: Path, tmp_path: Path
    ) -> None:
        with pytest.raises(InvalidInputError):
            await orchestrator.trim(media_file, tmp_path / "t.mp4", 3, 1)

    @pytest.mark.asyncio
    async def test_window_past_duration(
        self,
        orchestrator: ExportOrchestrator,
        media_file: Path,
        tmp_path: Path,
        ffmpeg_calls,
    ) -> None:
        """The window is checked against the probed duration before ffmpeg runs."""
        with pytest.raises(InvalidInputError, match="exceeds duration"):
            await orchestrator.trim(media_file, tmp_path / "t.mp4", 20.0, 30.0)

        assert ffmpeg_calls() == []
        assert not (tmp_path / "t.mp4").exists()

    @pytest.mark.asyncio
    async def test_output_is_input(
        self, orchestrator: ExportOrchestrator, media_file: Path, ffmpeg_calls
    ) -> None:
        """A failed trim removes its output, so the input is never a target."""
        with pytest.raises(InvalidInputError, match="overwrite"):
            await orchestrator.trim(media_file, media_file, 0, 1)

        assert media_file.exists()
        assert ffmpeg_calls() == []


class TestThumbnail:
    """Tests for ExportOrchestrator.generate_thumbnail()."""

    @pytest.mark.asyncio
    async def test_default_output_and_size(
        self,
        orchestrator: ExportOrchestrator,
        media_file: Path,
        ffmpeg_calls,
    ) -> None:
        output = await orchestrator.generate_thumbnail(media_file)

        assert output == media_file.parent / "input_thumb.jpg"
        (args,) = ffmpeg_calls()
        assert _arg_after(args, "-ss") == "1"
        assert _arg_after(args, "-vf") == "scale=320:180"
        assert _arg_after(args, "-vframes") == "1"

    @pytest.mark.asyncio
    async def test_falls_back_to_next_position(
        self,
        orchestrator: ExportOrchestrator,
        media_file: Path,
        tmp_path: Path,
        ffmpeg_calls,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """A failing position is retried at the next candidate."""
        monkeypatch.setenv("FAKE_FFMPEG_FAIL_ON", "-ss 3 ")

        output = await orchestrator.generate_thumbnail(
            media_file, timestamp=3.0, box=(160, 90), output=tmp_path / "t.jpg"
        )

        assert output.exists()
        calls = ffmpeg_calls()
        assert [_arg_after(args, "-ss") for args in calls] == ["3", "1"]
        assert _arg_after(calls[-1], "-vf") == "scale=160:90"

    @pytest.mark.asyncio
    async def test_all_positions_fail(
        self,
        orchestrator: ExportOrchestrator,
        media_file: Path,
        ffmpeg_calls,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setenv("FAKE_FFMPEG_FAIL", "1")

        with pytest.raises(ExecutionFailedError):
            await orchestrator.generate_thumbnail(media_file)

        # 1s, 10% of 10s (also 1s, deduplicated), 0.5s and 0s
        assert len(ffmpeg_calls()) == 3


class TestExtractAudio:
    """Tests for ExportOrchestrator.extract_audio()."""

    @pytest.mark.asyncio
    async def test_default_output(
        self,
        orchestrator: ExportOrchestrator,
        media_file: Path,
        ffmpeg_calls,
    ) -> None:
        output = await orchestrator.extract_audio(media_file)

        assert output == media_file.with_suffix(".mp3")
        (args,) = ffmpeg_calls()
        assert "-vn" in args
        assert _arg_after(args, "-ar") == "16000"
        assert _arg_after(args, "-ac") == "1"

    @pytest.mark.asyncio
    async def test_refuses_to_overwrite_input(
        self, orchestrator: ExportOrchestrator, tmp_path: Path
    ) -> None:
        source = tmp_path / "voice.mp3"
        source.write_bytes(b"id3")
        with pytest.raises(InvalidInputError, match="overwrite"):
            await orchestrator.extract_audio(source)

    @pytest.mark.asyncio
    async def test_audio_only_input(
        self,
        orchestrator: ExportOrchestrator,
        media_file: Path,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Inputs without a video stream still extract."""
        monkeypatch.setenv("FAKE_NO_VIDEO", "1")
        output = await orchestrator.extract_audio(media_file, tmp_path / "a.mp3")
        assert output.exists()
