"""Standardized API error response helper.

All error responses include:
- ``error``: Human-readable error message
- ``code``: Machine-readable error code string
- ``details`` (optional): Additional context for the error

Usage:
    from clipforge.server.api.errors import api_error, VALIDATION_FAILED

    return api_error("output is required", code=VALIDATION_FAILED)
"""

from __future__ import annotations

from typing import Any

from aiohttp import web

from clipforge.errors import ClipforgeError, ErrorKind, describe_error

# --- Error code constants ---

INVALID_JSON = "INVALID_JSON"
NOT_FOUND = "NOT_FOUND"
SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
VALIDATION_FAILED = "VALIDATION_FAILED"
OPERATION_FAILED = "OPERATION_FAILED"
INTERNAL_ERROR = "INTERNAL_ERROR"

# ErrorKind -> (HTTP status, code)
_KIND_RESPONSES: dict[ErrorKind, tuple[int, str]] = {
    ErrorKind.BINARY_NOT_FOUND: (503, SERVICE_UNAVAILABLE),
    ErrorKind.INVALID_INPUT: (400, VALIDATION_FAILED),
    ErrorKind.SPAWN_FAILED: (503, SERVICE_UNAVAILABLE),
    ErrorKind.EXECUTION_FAILED: (422, OPERATION_FAILED),
    ErrorKind.OUTPUT_VALIDATION: (422, OPERATION_FAILED),
}


def api_error(
    message: str,
    *,
    code: str,
    status: int = 400,
    details: Any = None,
) -> web.Response:
    """Create a standardized JSON error response.

    Args:
        message: Human-readable error description.
        code: Machine-readable error code (use constants from this module).
        status: HTTP status code (default 400).
        details: Optional additional context (string, list, or dict).

    Returns:
        aiohttp JSON response with ``{"error": ..., "code": ...}`` body.
    """
    body: dict[str, Any] = {"error": message, "code": code}
    if details is not None:
        body["details"] = details
    return web.json_response(body, status=status)


def clipforge_error(error: ClipforgeError) -> web.Response:
    """Create an error response for an orchestration failure."""
    status, code = _KIND_RESPONSES.get(error.kind, (500, INTERNAL_ERROR))
    return api_error(
        describe_error(error),
        code=code,
        status=status,
        details={"kind": error.kind.value},
    )
