"""Export orchestration, job models and session management."""

from clipforge.export.models import (
    RESOLUTION_PRESETS,
    ClipExportInfo,
    ExportJob,
    InvalidTransitionError,
    JobState,
    Resolution,
)
from clipforge.export.orchestrator import ExportOrchestrator
from clipforge.export.session import SessionManager
from clipforge.export.windows import allocate_progress_windows
from clipforge.export.workspace import JobWorkspace

__all__ = [
    "RESOLUTION_PRESETS",
    "ClipExportInfo",
    "ExportJob",
    "ExportOrchestrator",
    "InvalidTransitionError",
    "JobState",
    "JobWorkspace",
    "Resolution",
    "SessionManager",
    "allocate_progress_windows",
]
