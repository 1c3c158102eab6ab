"""Child process execution with streamed progress.

ProcessRunner spawns one tool invocation, drains its stderr on a
background task (feeding a ProgressTracker when progress is requested)
and reports the outcome as a ProcessOutput or a typed ClipforgeError.
The runner never interprets stderr content; translation happens at the
CLI and HTTP boundaries.
"""

from __future__ import annotations

import asyncio
import codecs
import logging
import re
from collections import deque
from dataclasses import dataclass
from pathlib import Path

from clipforge.command.models import CommandSpec
from clipforge.errors import ExecutionFailedError, OutputValidationError, SpawnFailedError
from clipforge.runner.files import validate_output
from clipforge.runner.progress import (
    DEFAULT_THROTTLE_SECONDS,
    FULL_WINDOW,
    ProgressTracker,
    ProgressWindow,
)
from clipforge.runner.sinks import NullProgressSink, ProgressSink

logger = logging.getLogger(__name__)

_READ_CHUNK = 64 * 1024
_LINE_BREAK = re.compile(r"\r\n|\r|\n")


@dataclass(frozen=True)
class ProcessOutput:
    """Result of a successful invocation."""

    returncode: int
    stdout: str
    stderr: str


class ProcessRunner:
    """Runs CommandSpecs against a resolved executable."""

    STDERR_TAIL_LINES: int = 50  # Lines kept for diagnostics
    STDERR_DRAIN_TIMEOUT: float = 5.0  # Timeout for draining stderr after exit

    def __init__(
        self,
        executable: Path | str,
        timeout: float | None = None,
        throttle_seconds: float = DEFAULT_THROTTLE_SECONDS,
    ) -> None:
        """Initialize the runner.

        Args:
            executable: Resolved path to the tool binary.
            timeout: Maximum seconds per invocation. None means no limit.
            throttle_seconds: Minimum interval between progress updates.
        """
        self.executable = Path(executable)
        self.timeout = timeout
        self.throttle_seconds = throttle_seconds

    async def run(self, spec: CommandSpec) -> ProcessOutput:
        """Run a command capturing stdout (used for ffprobe)."""
        return await self._execute(spec, capture_stdout=True, tracker=None)

    async def run_with_progress(
        self,
        spec: CommandSpec,
        total_duration: float,
        window: ProgressWindow = FULL_WINDOW,
        sink: ProgressSink | None = None,
    ) -> ProcessOutput:
        """Run a command and stream its progress into a window.

        Args:
            spec: Command to run; should include the Progress operation.
            total_duration: Seconds of output the command will produce.
            window: Slice of the overall 0-100 scale for this invocation.
            sink: Receiver of the mapped percentages.

        Returns:
            ProcessOutput with the retained stderr tail.

        Raises:
            SpawnFailedError: If the process could not start.
            ExecutionFailedError: On non-zero exit or timeout.
            OutputValidationError: If the declared output is missing.
        """
        tracker = ProgressTracker(
            total_duration,
            window,
            sink or NullProgressSink(),
            throttle_seconds=self.throttle_seconds,
        )
        output = await self._execute(spec, capture_stdout=False, tracker=tracker)
        tracker.finish()
        return output

    async def _spawn(
        self, argv: list[str], capture_stdout: bool
    ) -> asyncio.subprocess.Process:
        try:
            return await asyncio.create_subprocess_exec(  # nosec B603
                *argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=(
                    asyncio.subprocess.PIPE
                    if capture_stdout
                    else asyncio.subprocess.DEVNULL
                ),
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            logger.error(
                "Failed to spawn %s: %s",
                argv[0],
                e,
                extra={"executable": argv[0]},
            )
            raise SpawnFailedError(f"{argv[0]}: {e}") from e

    @staticmethod
    def _feed(tracker: ProgressTracker | None, line: str) -> None:
        if tracker is None:
            return
        try:
            tracker.feed(line)
        except Exception as e:
            logger.warning("Progress callback error: %s", e)

    async def _read_stderr(
        self,
        stream: asyncio.StreamReader,
        tail: deque[str],
        tracker: ProgressTracker | None,
    ) -> None:
        """Read stderr until EOF, retaining a tail and feeding the tracker."""
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        pending = ""
        while True:
            chunk = await stream.read(_READ_CHUNK)
            if not chunk:
                break
            pending += decoder.decode(chunk)
            # Stats lines are separated by carriage returns, -progress by newlines
            *lines, pending = _LINE_BREAK.split(pending)
            for line in lines:
                self._handle_line(line, tail, tracker)
        pending += decoder.decode(b"", final=True)
        self._handle_line(pending, tail, tracker)

    def _handle_line(
        self, line: str, tail: deque[str], tracker: ProgressTracker | None
    ) -> None:
        if not line.strip():
            return
        tail.append(line)
        self._feed(tracker, line)

    @staticmethod
    async def _kill(process: asyncio.subprocess.Process) -> None:
        if process.returncode is None:
            try:
                process.kill()
            except ProcessLookupError:
                pass
        await process.wait()

    @staticmethod
    def _cancel_tasks(*tasks: asyncio.Task | None) -> None:
        for task in tasks:
            if task is not None and not task.done():
                task.cancel()

    async def _drain(self, task: asyncio.Task | None, description: str):  # noqa: ANN202
        if task is None:
            return None
        try:
            return await asyncio.wait_for(task, self.STDERR_DRAIN_TIMEOUT)
        except asyncio.TimeoutError:
            logger.warning(
                "%s reader did not finish within %.1fs after exit",
                description,
                self.STDERR_DRAIN_TIMEOUT,
            )
            return None

    async def _execute(
        self,
        spec: CommandSpec,
        capture_stdout: bool,
        tracker: ProgressTracker | None,
    ) -> ProcessOutput:
        argv = spec.argv(self.executable)
        logger.debug("Running %s: %s", spec.tool, " ".join(argv))

        process = await self._spawn(argv, capture_stdout)
        tail: deque[str] = deque(maxlen=self.STDERR_TAIL_LINES)

        assert process.stderr is not None
        stderr_task = asyncio.create_task(
            self._read_stderr(process.stderr, tail, tracker)
        )
        stdout_task = None
        if capture_stdout:
            assert process.stdout is not None
            stdout_task = asyncio.create_task(process.stdout.read())

        try:
            if self.timeout is not None:
                returncode = await asyncio.wait_for(process.wait(), self.timeout)
            else:
                returncode = await process.wait()
        except asyncio.TimeoutError:
            logger.warning(
                "%s timed out after %s seconds", spec.tool, self.timeout
            )
            await self._kill(process)
            self._cancel_tasks(stderr_task, stdout_task)
            raise ExecutionFailedError(
                -1, "\n".join([*tail, f"timed out after {self.timeout} seconds"])
            ) from None
        except asyncio.CancelledError:
            logger.info("Cancelling %s (pid %s)", spec.tool, process.pid)
            await self._kill(process)
            self._cancel_tasks(stderr_task, stdout_task)
            raise

        await self._drain(stderr_task, "stderr")
        stdout_bytes = await self._drain(stdout_task, "stdout")
        stderr_text = "\n".join(tail)

        if returncode != 0:
            logger.error(
                "%s exited with code %d",
                spec.tool,
                returncode,
                extra={"returncode": returncode, "stderr_tail": list(tail)[-5:]},
            )
            raise ExecutionFailedError(returncode, stderr_text)

        if spec.output is not None:
            valid, message = validate_output(spec.output)
            if not valid:
                raise OutputValidationError(message or str(spec.output))

        return ProcessOutput(
            returncode=returncode,
            stdout=(stdout_bytes or b"").decode("utf-8", errors="replace"),
            stderr=stderr_text,
        )
