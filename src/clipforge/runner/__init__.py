"""Process execution and progress reporting."""

from clipforge.runner.process import ProcessOutput, ProcessRunner
from clipforge.runner.progress import (
    FULL_WINDOW,
    ProgressTracker,
    ProgressWindow,
    parse_elapsed_seconds,
)
from clipforge.runner.sinks import (
    CallbackProgressSink,
    CompositeProgressSink,
    NullProgressSink,
    ProgressSink,
    QueueProgressSink,
    StderrProgressSink,
)

__all__ = [
    "FULL_WINDOW",
    "CallbackProgressSink",
    "CompositeProgressSink",
    "NullProgressSink",
    "ProcessOutput",
    "ProcessRunner",
    "ProgressSink",
    "ProgressTracker",
    "ProgressWindow",
    "QueueProgressSink",
    "StderrProgressSink",
    "parse_elapsed_seconds",
]
