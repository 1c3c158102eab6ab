"""JSON API route modules for the clipforge notification server.

- exports.py: Export job submission, listing, detail and cancellation
- events.py: Server-Sent Events with per-job progress
- tools.py: Tool status and media probing
"""

from aiohttp import web

from clipforge.server.api.events import setup_events_routes
from clipforge.server.api.exports import setup_export_routes
from clipforge.server.api.tools import setup_tool_routes

__all__ = [
    "setup_api_routes",
]


def setup_api_routes(app: web.Application) -> None:
    """Register all API routes with the application."""
    setup_export_routes(app)
    setup_events_routes(app)
    setup_tool_routes(app)
