"""Job context for structured logging.

Propagates the current export job and phase through contextvars so every
log record emitted while a job runs carries job_id and phase. Each asyncio
task gets its own copy of the context, so concurrent jobs do not bleed into
each other's records.
"""

from __future__ import annotations

import contextvars
import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Generator

_job_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "job_id", default=None
)
_phase: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "phase", default=None
)


def set_job_context(job_id: str, phase: str | None = None) -> None:
    _job_id.set(job_id)
    _phase.set(phase)


def clear_job_context() -> None:
    _job_id.set(None)
    _phase.set(None)


@contextmanager
def job_context(job_id: str, phase: str | None = None) -> Generator[None, None, None]:
    """Context manager for job processing context.

    Sets job context on entry and restores the previous one on exit.

    Example:
        with job_context(job.id, "preprocess"):
            logger.info("Trimming clip")  # Tagged [Jab12cd34:preprocess]
    """
    old_job_id = _job_id.get()
    old_phase = _phase.get()
    try:
        set_job_context(job_id, phase)
        yield
    finally:
        _job_id.set(old_job_id)
        _phase.set(old_phase)


def get_job_context() -> tuple[str | None, str | None]:
    """Return (job_id, phase), either may be None."""
    return _job_id.get(), _phase.get()


class JobContextFilter(logging.Filter):
    """Logging filter that injects job context into log records.

    Adds job_id and phase attributes for JSON output and a compact
    job_tag such as ``[Jab12cd34:concat] `` for text output.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        job_id, phase = get_job_context()

        record.job_id = job_id
        record.phase = phase

        if job_id:
            short_id = job_id[:8]
            if phase:
                record.job_tag = f"[J{short_id}:{phase}] "
            else:
                record.job_tag = f"[J{short_id}] "
        else:
            record.job_tag = ""

        return True  # Never filter out records
