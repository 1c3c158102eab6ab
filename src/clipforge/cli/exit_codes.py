"""Centralized exit codes for all CLI commands.

Exit code ranges:
    0: Success
    1-9: General errors
    10-19: Validation errors (config, input)
    20-29: Target/file errors
    30-39: Tool/dependency errors
    40-49: Operation errors
"""

from enum import IntEnum

from clipforge.errors import ClipforgeError, ErrorKind


class ExitCode(IntEnum):
    """Exit codes for clipforge CLI commands."""

    # Success (0)
    SUCCESS = 0

    # General errors (1-9)
    GENERAL_ERROR = 1
    INTERRUPTED = 2

    # Validation errors (10-19)
    INVALID_INPUT = 10
    CONFIG_ERROR = 11

    # Target/file errors (20-29)
    TARGET_NOT_FOUND = 20
    OUTPUT_VALIDATION_FAILED = 21

    # Tool/dependency errors (30-39)
    TOOL_NOT_AVAILABLE = 30
    SPAWN_FAILED = 31

    # Operation errors (40-49)
    OPERATION_FAILED = 40
    CANCELLED = 41


_KIND_EXIT_CODES: dict[ErrorKind, ExitCode] = {
    ErrorKind.BINARY_NOT_FOUND: ExitCode.TOOL_NOT_AVAILABLE,
    ErrorKind.INVALID_INPUT: ExitCode.INVALID_INPUT,
    ErrorKind.SPAWN_FAILED: ExitCode.SPAWN_FAILED,
    ErrorKind.EXECUTION_FAILED: ExitCode.OPERATION_FAILED,
    ErrorKind.OUTPUT_VALIDATION: ExitCode.OUTPUT_VALIDATION_FAILED,
    ErrorKind.CLEANUP_FAILED: ExitCode.OPERATION_FAILED,
    ErrorKind.PROGRESS_PARSE_ANOMALY: ExitCode.OPERATION_FAILED,
    ErrorKind.CANCELLED: ExitCode.CANCELLED,
}


def exit_code_for(error: ClipforgeError) -> ExitCode:
    """Map an orchestration error to the CLI exit code."""
    return _KIND_EXIT_CODES.get(error.kind, ExitCode.GENERAL_ERROR)
