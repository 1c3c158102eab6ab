"""Export session registry.

SessionManager owns every export job started by a host process (the HTTP
server, or a long-lived embedding application). It schedules jobs on the
event loop, limits how many run at once, fans progress out to subscribers
and supports cancellation.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from pathlib import Path

from clipforge.errors import ClipforgeError, InvalidInputError
from clipforge.export.models import ClipExportInfo, ExportJob, JobState, Resolution
from clipforge.export.orchestrator import ExportOrchestrator

logger = logging.getLogger(__name__)


class _JobProgressSink:
    """Forwards one job's progress to its subscribers."""

    def __init__(self, manager: SessionManager, job_id: str) -> None:
        self._manager = manager
        self._job_id = job_id

    def emit(self, percent: int) -> None:
        for queue in self._manager._subscribers.get(self._job_id, []):
            queue.put_nowait(percent)


class SessionManager:
    """Registry and scheduler for export jobs.

    Must be used from a running event loop.
    """

    def __init__(
        self, orchestrator: ExportOrchestrator, max_concurrent: int | None = None
    ) -> None:
        """Initialize the manager.

        Args:
            orchestrator: Orchestrator that runs the jobs.
            max_concurrent: Jobs allowed to run at once; defaults to
                export.max_concurrent_jobs from the orchestrator config.

        Raises:
            ValueError: If the limit is below 1.
        """
        self.orchestrator = orchestrator
        limit = max_concurrent
        if limit is None:
            limit = orchestrator.config.export.max_concurrent_jobs
        if limit < 1:
            raise ValueError(f"max_concurrent must be at least 1, got {limit}")
        self._semaphore = asyncio.Semaphore(limit)
        self._jobs: dict[str, ExportJob] = {}
        self._tasks: dict[str, asyncio.Task[None]] = {}
        self._subscribers: dict[str, list[asyncio.Queue[int | None]]] = {}

    def submit(
        self,
        clips: Sequence[ClipExportInfo],
        output: Path | str,
        resolution: str | Resolution = "source",
    ) -> ExportJob:
        """Register a job and schedule it.

        Raises:
            InvalidInputError: If the request is invalid.
        """
        job = ExportJob.create(clips, output, resolution)
        self._jobs[job.id] = job
        self._subscribers[job.id] = []
        self._tasks[job.id] = asyncio.create_task(
            self._run(job), name=f"export-{job.id[:8]}"
        )
        logger.info(
            "Submitted export job %s (%d clips -> %s)",
            job.id,
            len(job.clips),
            job.output,
        )
        return job

    async def _run(self, job: ExportJob) -> None:
        sink = _JobProgressSink(self, job.id)
        try:
            async with self._semaphore:
                await self.orchestrator.export(job, sink)
        except asyncio.CancelledError:
            # Cancelled while still queued behind the semaphore
            if not job.is_terminal:
                job.error = "Export cancelled"
                job.transition(JobState.CANCELLED)
        except ClipforgeError:
            # Recorded on the job by the orchestrator
            pass
        except Exception:
            logger.exception("Unexpected error in export job %s", job.id)
            if not job.is_terminal:
                job.fail(RuntimeError("internal error"), "Internal error during export")
        finally:
            self._close_subscribers(job.id)

    def _close_subscribers(self, job_id: str) -> None:
        for queue in self._subscribers.get(job_id, []):
            queue.put_nowait(None)
        self._subscribers[job_id] = []

    def get(self, job_id: str) -> ExportJob | None:
        return self._jobs.get(job_id)

    def jobs(self) -> list[ExportJob]:
        """All known jobs, newest first."""
        return sorted(self._jobs.values(), key=lambda j: j.created_at, reverse=True)

    def subscribe(self, job_id: str) -> asyncio.Queue[int | None]:
        """Get a queue receiving the job's progress, then None at the end.

        A subscriber joining late first receives the current progress.

        Raises:
            KeyError: If the job is unknown.
        """
        job = self._jobs[job_id]
        queue: asyncio.Queue[int | None] = asyncio.Queue()
        if job.progress > 0:
            queue.put_nowait(job.progress)
        if job.is_terminal:
            queue.put_nowait(None)
        else:
            self._subscribers[job_id].append(queue)
        return queue

    def unsubscribe(self, job_id: str, queue: asyncio.Queue[int | None]) -> None:
        queues = self._subscribers.get(job_id, [])
        if queue in queues:
            queues.remove(queue)

    async def wait(self, job_id: str) -> ExportJob:
        """Wait for a job to reach a terminal state.

        Raises:
            KeyError: If the job is unknown.
        """
        job = self._jobs[job_id]
        task = self._tasks.get(job_id)
        if task is not None:
            await asyncio.wait([task])
        return job

    async def cancel(self, job_id: str) -> bool:
        """Cancel a job, killing its running process.

        The job workspace and partial output are removed before this
        returns.

        Returns:
            True if the job was cancelled, False if it had already finished.

        Raises:
            KeyError: If the job is unknown.
        """
        job = self._jobs[job_id]
        if job.is_terminal:
            return False
        task = self._tasks[job_id]
        task.cancel()
        await asyncio.wait([task])
        if not job.is_terminal:
            # Task was cancelled before its coroutine started
            job.error = "Export cancelled"
            job.transition(JobState.CANCELLED)
            self._close_subscribers(job_id)
        logger.info("Cancelled export job %s", job_id)
        return True

    def remove(self, job_id: str) -> ExportJob:
        """Forget a finished job.

        Raises:
            KeyError: If the job is unknown.
            InvalidInputError: If the job is still running.
        """
        job = self._jobs[job_id]
        if not job.is_terminal:
            raise InvalidInputError(f"Job {job_id} is still {job.state.value}")
        del self._jobs[job_id]
        self._tasks.pop(job_id, None)
        self._subscribers.pop(job_id, None)
        return job

    async def shutdown(self) -> None:
        """Cancel every running job."""
        running = [job_id for job_id, job in self._jobs.items() if not job.is_terminal]
        for job_id in running:
            await self.cancel(job_id)
