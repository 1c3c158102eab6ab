"""aiohttp application factory.

This module provides the aiohttp Application with the health check endpoint
and the export API. The application owns one SessionManager, which is shut
down (running jobs cancelled) when the application is cleaned up.
"""

from __future__ import annotations

import logging

from aiohttp import web

from clipforge import __version__
from clipforge.export.session import SessionManager
from clipforge.server.api import setup_api_routes

logger = logging.getLogger(__name__)


def create_app(session: SessionManager) -> web.Application:
    """Create and configure the aiohttp Application.

    Args:
        session: Session manager that runs submitted export jobs.

    Returns:
        Configured aiohttp Application instance.
    """
    app = web.Application()
    app["session"] = session

    app.router.add_get("/health", health_handler)
    setup_api_routes(app)

    app.on_cleanup.append(_shutdown_session)
    return app


async def _shutdown_session(app: web.Application) -> None:
    """Cancel running export jobs."""
    session: SessionManager = app["session"]
    await session.shutdown()
    logger.debug("Export session shut down")


async def health_handler(request: web.Request) -> web.Response:
    """Handle GET /health requests."""
    session: SessionManager = request.app["session"]
    jobs = session.jobs()
    return web.json_response(
        {
            "status": "healthy",
            "version": __version__,
            "jobs_total": len(jobs),
            "jobs_running": sum(1 for job in jobs if not job.is_terminal),
        }
    )
