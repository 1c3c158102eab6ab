"""API handlers for export job endpoints.

Endpoints:
    POST /api/exports - Submit an export job
    GET /api/exports - List export jobs
    GET /api/exports/{job_id} - Get job detail
    DELETE /api/exports/{job_id} - Cancel a running job or forget a finished one
"""

from __future__ import annotations

import json
import logging

from aiohttp import web

from clipforge.errors import ClipforgeError
from clipforge.export.schema import parse_export_request
from clipforge.export.session import SessionManager
from clipforge.server.api.errors import (
    INVALID_JSON,
    NOT_FOUND,
    VALIDATION_FAILED,
    api_error,
    clipforge_error,
)

logger = logging.getLogger(__name__)


def get_session(request: web.Request) -> SessionManager:
    return request.app["session"]


def _job_not_found(job_id: str) -> web.Response:
    return api_error(f"Export job not found: {job_id}", code=NOT_FOUND, status=404)


async def api_export_submit_handler(request: web.Request) -> web.Response:
    """Handle POST /api/exports.

    Body is an export request (clips, output, optional resolution). The job
    is scheduled immediately and returned with status 202.
    """
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return api_error("Invalid JSON payload", code=INVALID_JSON)

    session = get_session(request)
    try:
        export_request = parse_export_request(body)
        if export_request.output is None:
            return api_error("output is required", code=VALIDATION_FAILED)
        job = session.submit(
            export_request.to_clips(),
            export_request.output,
            export_request.resolution
            or session.orchestrator.config.export.default_resolution,
        )
    except ClipforgeError as e:
        return clipforge_error(e)

    return web.json_response(job.to_dict(), status=202)


async def api_exports_handler(request: web.Request) -> web.Response:
    """Handle GET /api/exports - all known jobs, newest first."""
    jobs = get_session(request).jobs()
    return web.json_response({"jobs": [job.to_dict() for job in jobs]})


async def api_export_detail_handler(request: web.Request) -> web.Response:
    """Handle GET /api/exports/{job_id}."""
    job_id = request.match_info["job_id"]
    job = get_session(request).get(job_id)
    if job is None:
        return _job_not_found(job_id)
    return web.json_response(job.to_dict())


async def api_export_delete_handler(request: web.Request) -> web.Response:
    """Handle DELETE /api/exports/{job_id}.

    A running job is cancelled (its process is killed and partial files
    removed) and stays listed as cancelled; a finished job is forgotten.
    """
    job_id = request.match_info["job_id"]
    session = get_session(request)
    job = session.get(job_id)
    if job is None:
        return _job_not_found(job_id)

    if job.is_terminal:
        session.remove(job_id)
        logger.info("Removed export job %s", job_id)
        return web.json_response({"removed": True, "job": job.to_dict()})

    await session.cancel(job_id)
    return web.json_response({"removed": False, "job": job.to_dict()})


def setup_export_routes(app: web.Application) -> None:
    """Register export API routes with the application."""
    app.router.add_post("/api/exports", api_export_submit_handler)
    app.router.add_get("/api/exports", api_exports_handler)
    app.router.add_get("/api/exports/{job_id}", api_export_detail_handler)
    app.router.add_delete("/api/exports/{job_id}", api_export_delete_handler)
