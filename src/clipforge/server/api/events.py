"""Server-Sent Events (SSE) API handlers.

Endpoints:
    GET /api/exports/{job_id}/events - progress stream for one export job

Stream format: one ``progress`` event per emitted percentage
(``{"job_id": ..., "progress": 42}``), ``heartbeat`` events while the job
is quiet, then a single ``status`` event carrying the final job.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from aiohttp import web

from clipforge.server.api.errors import NOT_FOUND, api_error
from clipforge.server.api.exports import get_session

logger = logging.getLogger(__name__)

# SSE configuration
SSE_HEARTBEAT_INTERVAL = 15  # seconds
SSE_WRITE_TIMEOUT = 5.0  # seconds - timeout for writing to slow clients

SSE_HEADERS = {
    "Content-Type": "text/event-stream",
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",  # Disable nginx buffering
}


async def _write_sse_event(
    response: web.StreamResponse,
    event_type: str,
    data: dict[str, Any],
    timeout: float = SSE_WRITE_TIMEOUT,
) -> bool:
    """Write an SSE event to the response stream.

    Args:
        response: The streaming response object.
        event_type: Event type name (e.g., 'progress', 'heartbeat').
        data: Event data to JSON-serialize.
        timeout: Write timeout in seconds.

    Returns:
        True if write succeeded, False if connection was closed or timed out.
    """
    payload = f"event: {event_type}\ndata: {json.dumps(data)}\n\n"
    try:
        await asyncio.wait_for(
            response.write(payload.encode("utf-8")),
            timeout=timeout,
        )
        return True
    except asyncio.TimeoutError:
        logger.warning("SSE write timeout - slow client")
        return False
    except (ConnectionResetError, ConnectionAbortedError, BrokenPipeError):
        logger.debug("SSE client disconnected")
        return False


async def sse_export_events_handler(request: web.Request) -> web.StreamResponse:
    """Handle GET /api/exports/{job_id}/events.

    A client connecting after the job finished receives the last progress
    value and the status event immediately.
    """
    job_id = request.match_info["job_id"]
    session = get_session(request)
    job = session.get(job_id)
    if job is None:
        return api_error(f"Export job not found: {job_id}", code=NOT_FOUND, status=404)

    response = web.StreamResponse(status=200, headers=SSE_HEADERS)
    await response.prepare(request)

    queue = session.subscribe(job_id)
    logger.debug("SSE subscriber attached to job %s", job_id)
    try:
        while True:
            try:
                value = await asyncio.wait_for(
                    queue.get(), timeout=SSE_HEARTBEAT_INTERVAL
                )
            except asyncio.TimeoutError:
                if not await _write_sse_event(response, "heartbeat", {}):
                    return response
                continue

            if value is None:
                break
            if not await _write_sse_event(
                response, "progress", {"job_id": job_id, "progress": value}
            ):
                return response

        await _write_sse_event(response, "status", job.to_dict())
    finally:
        session.unsubscribe(job_id, queue)
        logger.debug("SSE subscriber detached from job %s", job_id)

    return response


def setup_events_routes(app: web.Application) -> None:
    """Register SSE routes with the application."""
    app.router.add_get("/api/exports/{job_id}/events", sse_export_events_handler)
