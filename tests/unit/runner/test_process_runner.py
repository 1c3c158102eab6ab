"""Unit tests for ProcessRunner against fake tool executables."""

import asyncio
import json
from pathlib import Path

import pytest

from clipforge.command import FFmpegCommandBuilder
from clipforge.command.models import CommandSpec
from clipforge.errors import (
    ErrorKind,
    ExecutionFailedError,
    OutputValidationError,
    SpawnFailedError,
    describe_error,
)
from clipforge.runner import CallbackProgressSink, ProcessRunner, ProgressWindow


def _trim_spec(media_file: Path, output: Path, duration: float = 4.0) -> CommandSpec:
    return (
        FFmpegCommandBuilder()
        .trim(0, duration)
        .progress()
        .build([media_file], output)
    )


class TestRun:
    """Tests for ProcessRunner.run()."""

    @pytest.mark.asyncio
    async def test_captures_stdout(self, tools_dir: Path, media_file: Path) -> None:
        """stdout is returned decoded for ffprobe-style invocations."""
        spec = CommandSpec(
            tool="ffprobe",
            inputs=(media_file,),
            args=("-v", "error", "-of", "json", str(media_file)),
        )
        runner = ProcessRunner(tools_dir / "ffprobe")

        output = await runner.run(spec)

        assert output.returncode == 0
        assert json.loads(output.stdout)["streams"][0]["width"] == 1280

    @pytest.mark.asyncio
    async def test_spawn_failure(self, tmp_path: Path, media_file: Path) -> None:
        """A missing executable raises SpawnFailedError."""
        runner = ProcessRunner(tmp_path / "does-not-exist")

        with pytest.raises(SpawnFailedError) as exc_info:
            await runner.run(_trim_spec(media_file, tmp_path / "out.mp4"))

        assert exc_info.value.kind == ErrorKind.SPAWN_FAILED


class TestRunWithProgress:
    """Tests for ProcessRunner.run_with_progress()."""

    @pytest.mark.asyncio
    async def test_progress_mapped_into_window(
        self, tools_dir: Path, tmp_path: Path, media_file: Path
    ) -> None:
        """Progress lines are mapped into the window and end at its edge."""
        received: list[int] = []
        runner = ProcessRunner(tools_dir / "ffmpeg", throttle_seconds=0)
        output_path = tmp_path / "out.mp4"

        await runner.run_with_progress(
            _trim_spec(media_file, output_path),
            total_duration=4.0,
            window=ProgressWindow(0, 36),
            sink=CallbackProgressSink(received.append),
        )

        assert received == [9, 18, 27, 36]
        assert output_path.read_bytes() == b"fake media data"

    @pytest.mark.asyncio
    async def test_nonzero_exit(
        self,
        tools_dir: Path,
        tmp_path: Path,
        media_file: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """A failing tool raises ExecutionFailedError with its stderr."""
        monkeypatch.setenv("FAKE_FFMPEG_FAIL", "1")
        runner = ProcessRunner(tools_dir / "ffmpeg")

        with pytest.raises(ExecutionFailedError) as exc_info:
            await runner.run_with_progress(
                _trim_spec(media_file, tmp_path / "out.mp4"), total_duration=4.0
            )

        error = exc_info.value
        assert error.returncode == 1
        assert "Invalid data found" in error.stderr_text
        assert describe_error(error) == (
            "File is corrupted or not a supported media format"
        )

    @pytest.mark.asyncio
    async def test_missing_output(
        self,
        tools_dir: Path,
        tmp_path: Path,
        media_file: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Exit code 0 without the declared output is still a failure."""
        monkeypatch.setenv("FAKE_FFMPEG_NO_OUTPUT", "1")
        runner = ProcessRunner(tools_dir / "ffmpeg")

        with pytest.raises(OutputValidationError):
            await runner.run_with_progress(
                _trim_spec(media_file, tmp_path / "out.mp4"), total_duration=4.0
            )

    @pytest.mark.asyncio
    async def test_timeout_kills_process(
        self,
        tools_dir: Path,
        tmp_path: Path,
        media_file: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """An invocation over the time limit fails with returncode -1."""
        monkeypatch.setenv("FAKE_FFMPEG_SLEEP", "20")
        runner = ProcessRunner(tools_dir / "ffmpeg", timeout=0.5)

        with pytest.raises(ExecutionFailedError) as exc_info:
            await runner.run_with_progress(
                _trim_spec(media_file, tmp_path / "out.mp4"), total_duration=4.0
            )

        assert exc_info.value.returncode == -1
        assert "timed out" in exc_info.value.stderr_text

    @pytest.mark.asyncio
    async def test_cancel_kills_process(
        self,
        tools_dir: Path,
        tmp_path: Path,
        media_file: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Cancelling the awaiting task terminates the child."""
        monkeypatch.setenv("FAKE_FFMPEG_SLEEP", "20")
        runner = ProcessRunner(tools_dir / "ffmpeg")
        output_path = tmp_path / "out.mp4"

        task = asyncio.create_task(
            runner.run_with_progress(
                _trim_spec(media_file, output_path), total_duration=4.0
            )
        )
        await asyncio.sleep(0.5)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await asyncio.wait_for(task, 5)
        assert not output_path.exists()
