"""API handlers for tool status and media probing.

Endpoints:
    GET /api/tools - Resolution and version of ffmpeg/ffprobe
    POST /api/probe - Metadata of a media file
"""

from __future__ import annotations

import asyncio
import json

from aiohttp import web
from pydantic import ValidationError

from clipforge.errors import ClipforgeError
from clipforge.server.api.errors import (
    INVALID_JSON,
    VALIDATION_FAILED,
    api_error,
    clipforge_error,
)
from clipforge.server.api.exports import get_session
from clipforge.server.api.models import ProbeRequestModel

TOOL_NAMES = ("ffmpeg", "ffprobe")


async def api_tools_handler(request: web.Request) -> web.Response:
    """Handle GET /api/tools.

    Detection runs the binaries with -version, so it happens off the
    event loop.
    """
    resolver = get_session(request).orchestrator.resolver
    tools = {}
    for name in TOOL_NAMES:
        info = await asyncio.to_thread(resolver.detect, name)
        tools[name] = info.to_dict()
    return web.json_response({"tools": tools})


async def api_probe_handler(request: web.Request) -> web.Response:
    """Handle POST /api/probe with body {"path": "..."}."""
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return api_error("Invalid JSON payload", code=INVALID_JSON)

    try:
        probe_request = ProbeRequestModel.model_validate(body)
    except ValidationError as e:
        return api_error(
            "Invalid probe request",
            code=VALIDATION_FAILED,
            details=[err["msg"] for err in e.errors()],
        )

    orchestrator = get_session(request).orchestrator
    try:
        metadata = await orchestrator.probe(probe_request.path)
    except ClipforgeError as e:
        return clipforge_error(e)
    return web.json_response(metadata.to_dict())


def setup_tool_routes(app: web.Application) -> None:
    """Register tool and probe API routes with the application."""
    app.router.add_get("/api/tools", api_tools_handler)
    app.router.add_post("/api/probe", api_probe_handler)
