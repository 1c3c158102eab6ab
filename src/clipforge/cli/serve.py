"""CLI serve command for the notification server.

Runs the aiohttp server that lets a host application submit exports and
follow their progress over Server-Sent Events.
"""

from __future__ import annotations

import asyncio
import errno
import logging
import os
import sys

import click

from clipforge.cli.exit_codes import ExitCode
from clipforge.cli.runtime import get_orchestrator
from clipforge.export.orchestrator import ExportOrchestrator

logger = logging.getLogger(__name__)


async def run_server(
    host: str,
    port: int,
    orchestrator: ExportOrchestrator,
    shutdown_event: asyncio.Event | None = None,
) -> int:
    """Run the server until a shutdown signal arrives.

    Args:
        host: Address to bind to.
        port: Port to bind to.
        orchestrator: Orchestrator backing the session manager.
        shutdown_event: Event that stops the server; created (and wired to
            SIGTERM/SIGINT) when None.

    Returns:
        Exit code (0 for clean shutdown, non-zero for errors).
    """
    from aiohttp import web

    from clipforge.export.session import SessionManager
    from clipforge.server.app import create_app
    from clipforge.server.signals import (
        remove_signal_handlers,
        setup_signal_handlers,
    )

    loop = asyncio.get_running_loop()
    if shutdown_event is None:
        shutdown_event = asyncio.Event()
        setup_signal_handlers(loop, shutdown_event)

    app = create_app(SessionManager(orchestrator))
    runner = web.AppRunner(app)
    await runner.setup()

    try:
        site = web.TCPSite(runner, host, port)
        await site.start()

        logger.info(
            "clipforge server started on http://%s:%d (PID %d)",
            host,
            port,
            os.getpid(),
        )
        logger.info("Health endpoint: http://%s:%d/health", host, port)

        await shutdown_event.wait()
        logger.info("Shutdown initiated, cancelling running exports")

    except OSError as e:
        if e.errno == errno.EADDRINUSE:
            logger.error("Port %d is already in use", port)
            return ExitCode.GENERAL_ERROR
        if e.errno == errno.EADDRNOTAVAIL:
            logger.error("Cannot bind to address %s", host)
            return ExitCode.GENERAL_ERROR
        logger.error("Server error: %s", e)
        return ExitCode.GENERAL_ERROR
    finally:
        remove_signal_handlers(loop)
        await runner.cleanup()
        logger.info("clipforge server stopped")

    return ExitCode.SUCCESS


@click.command("serve")
@click.option(
    "--host",
    type=str,
    default=None,
    help="Address to bind to (default: server.host, 127.0.0.1).",
)
@click.option(
    "--port",
    "-p",
    type=click.IntRange(1, 65535),
    default=None,
    help="Port to bind to (default: server.port, 8765).",
)
@click.pass_context
def serve_command(ctx: click.Context, host: str | None, port: int | None) -> None:
    """Run the export notification server.

    Exposes /health and the /api/exports endpoints. Binds to localhost by
    default; override with --host to expose on other interfaces.

    \b
    Examples:
        clipforge serve
        clipforge serve --port 9000
    """
    orchestrator = get_orchestrator(ctx)
    server = orchestrator.config.server
    bind = host if host is not None else server.host
    bind_port = port if port is not None else server.port

    logger.info("Starting clipforge server (host=%s, port=%d)", bind, bind_port)
    try:
        exit_code = asyncio.run(run_server(bind, bind_port, orchestrator))
    except KeyboardInterrupt:
        exit_code = ExitCode.INTERRUPTED
    sys.exit(exit_code)
