"""Error taxonomy for the orchestration layer.

Every fallible operation raises a subclass of ClipforgeError carrying an
ErrorKind. Callers branch on the kind; text for end users is produced only
at the outer boundary (CLI, HTTP) via describe_error().
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(Enum):
    """Closed set of failure categories."""

    BINARY_NOT_FOUND = "binary_not_found"
    INVALID_INPUT = "invalid_input"
    SPAWN_FAILED = "spawn_failed"
    EXECUTION_FAILED = "execution_failed"
    OUTPUT_VALIDATION = "output_validation"
    CLEANUP_FAILED = "cleanup_failed"
    PROGRESS_PARSE_ANOMALY = "progress_parse_anomaly"
    CANCELLED = "cancelled"


class ClipforgeError(Exception):
    """Base exception for all orchestration errors.

    Attributes:
        kind: The error category.
        message: Human-readable detail (not yet translated for end users).
    """

    kind: ErrorKind = ErrorKind.EXECUTION_FAILED

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class BinaryNotFoundError(ClipforgeError):
    """Raised when an external executable cannot be located."""

    kind = ErrorKind.BINARY_NOT_FOUND

    def __init__(self, binary: str, platform_name: str | None = None) -> None:
        self.binary = binary
        self.platform_name = platform_name or binary
        super().__init__(
            f"Binary '{binary}' (platform: {self.platform_name}) "
            "not found in bundle or system PATH"
        )


class InvalidInputError(ClipforgeError):
    """Raised when a request is rejected before any process is spawned."""

    kind = ErrorKind.INVALID_INPUT


class SpawnFailedError(ClipforgeError):
    """Raised when the child process could not be started."""

    kind = ErrorKind.SPAWN_FAILED


class ExecutionFailedError(ClipforgeError):
    """Raised when the external tool ran and reported failure.

    Attributes:
        returncode: Exit status of the process (-1 on timeout).
        stderr_text: Raw diagnostic output from the tool.
    """

    kind = ErrorKind.EXECUTION_FAILED

    def __init__(self, returncode: int, stderr_text: str) -> None:
        self.returncode = returncode
        self.stderr_text = stderr_text
        super().__init__(f"exited with code {returncode}: {stderr_text.strip()}")


class OutputValidationError(ClipforgeError):
    """Raised when the tool succeeded but its declared output is missing."""

    kind = ErrorKind.OUTPUT_VALIDATION


class CleanupFailedError(ClipforgeError):
    """Temporary artifact removal failed. Logged, never raised past a job."""

    kind = ErrorKind.CLEANUP_FAILED


class ProgressParseAnomaly(ClipforgeError):
    """A progress line carried a recognised key with an unusable value."""

    kind = ErrorKind.PROGRESS_PARSE_ANOMALY


class ExportCancelledError(ClipforgeError):
    """Raised to report that a job was cancelled by its owner."""

    kind = ErrorKind.CANCELLED


# Known ffmpeg/ffprobe diagnostics and the message shown in their place.
_STDERR_TRANSLATIONS: tuple[tuple[str, str], ...] = (
    ("No such file or directory", "Input file not found or no longer accessible"),
    (
        "Invalid data found when processing input",
        "File is corrupted or not a supported media format",
    ),
    ("Permission denied", "Permission denied while reading or writing media"),
    ("No space left on device", "Not enough disk space to complete the export"),
    ("does not contain any stream", "File contains no usable audio or video"),
)


def translate_stderr(stderr_text: str) -> str | None:
    """Return a friendly message for a known tool diagnostic, if any."""
    folded = stderr_text.casefold()
    for needle, friendly in _STDERR_TRANSLATIONS:
        if needle.casefold() in folded:
            return friendly
    return None


def describe_error(exc: BaseException) -> str:
    """Convert an exception into the single string shown to end users.

    Args:
        exc: Exception raised by the orchestration layer.

    Returns:
        Human-readable description.
    """
    if isinstance(exc, ExecutionFailedError):
        friendly = translate_stderr(exc.stderr_text)
        if friendly:
            return friendly
        tail = exc.stderr_text.strip().splitlines()[-1:] or [""]
        detail = tail[0] or f"exit code {exc.returncode}"
        return f"FFmpeg execution failed: {detail}"
    if isinstance(exc, SpawnFailedError):
        return f"Failed to spawn FFmpeg: {exc.message}"
    if isinstance(exc, OutputValidationError):
        return f"Output validation failed: {exc.message}"
    if isinstance(exc, BinaryNotFoundError):
        return (
            f"{exc.binary} not found. Install via: brew install ffmpeg (macOS), "
            "apt install ffmpeg (Linux) or download from ffmpeg.org (Windows)"
        )
    if isinstance(exc, ClipforgeError):
        return exc.message
    return str(exc) or exc.__class__.__name__
