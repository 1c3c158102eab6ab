"""Per-job temporary workspace."""

from __future__ import annotations

import logging
import shutil
import tempfile
from pathlib import Path
from types import TracebackType

from clipforge.errors import CleanupFailedError, SpawnFailedError

logger = logging.getLogger(__name__)


class JobWorkspace:
    """A uniquely named directory holding one job's intermediate files.

    The directory and everything in it are removed on exit, whether the
    job succeeded, failed or was cancelled. A removal failure is logged
    as CleanupFailedError and never replaces the job's own outcome.

    Example:
        with JobWorkspace(job.id, root) as workspace:
            segment = workspace.path / "clip_000.mp4"
    """

    def __init__(self, job_id: str, root: Path | None = None) -> None:
        self.root = root if root is not None else Path(tempfile.gettempdir())
        self.path = self.root / f"clipforge-{job_id}"

    def __enter__(self) -> JobWorkspace:
        try:
            self.path.mkdir(parents=True, exist_ok=False)
        except OSError as e:
            # No process can run without its workspace
            raise SpawnFailedError(
                f"Could not create workspace {self.path}: {e}"
            ) from e
        logger.debug("Created job workspace %s", self.path)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.cleanup()

    def cleanup(self) -> CleanupFailedError | None:
        """Remove the workspace.

        Returns:
            The logged CleanupFailedError, or None on success.
        """
        if not self.path.exists():
            return None
        try:
            shutil.rmtree(self.path)
            logger.debug("Removed job workspace %s", self.path)
            return None
        except OSError as e:
            error = CleanupFailedError(f"Could not remove workspace {self.path}: {e}")
            logger.warning(
                "%s",
                error.message,
                extra={"workspace": str(self.path), "error_kind": error.kind.value},
            )
            return error
