"""Helpers shared by commands that drive the orchestrator."""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from collections.abc import Coroutine
from pathlib import Path
from typing import Any, TypeVar

import click

from clipforge.cli.exit_codes import ExitCode
from clipforge.cli.output import error_exit, failure_exit
from clipforge.config.models import ClipforgeConfig, LoggingConfig
from clipforge.errors import ClipforgeError
from clipforge.export.orchestrator import ExportOrchestrator

logger = logging.getLogger(__name__)

T = TypeVar("T")


def get_cli_config(ctx: click.Context) -> ClipforgeConfig:
    """Return the configuration loaded by the main group."""
    obj = ctx.find_root().obj or {}
    config = obj.get("config")
    return config if config is not None else ClipforgeConfig()


def get_orchestrator(ctx: click.Context) -> ExportOrchestrator:
    """Return the orchestrator for this invocation (tests may inject one)."""
    obj = ctx.find_root().obj or {}
    orchestrator = obj.get("orchestrator")
    if orchestrator is None:
        orchestrator = ExportOrchestrator(get_cli_config(ctx))
    return orchestrator


def run_operation(
    coro: Coroutine[Any, Any, T], json_output: bool = False
) -> T:
    """Run an orchestrator coroutine, exiting with a mapped code on failure."""
    try:
        return asyncio.run(coro)
    except ClipforgeError as e:
        logger.debug("Operation failed: %s", e, exc_info=True)
        failure_exit(e, json_output)
    except KeyboardInterrupt:
        error_exit("Interrupted", ExitCode.INTERRUPTED, json_output)


def apply_logging_options(
    base: LoggingConfig,
    log_level: str | None = None,
    log_file: Path | None = None,
    log_json: bool = False,
) -> LoggingConfig:
    """Apply the global --log-level/--log-file/--log-json options.

    Options left unset keep the configured value; --log-json can only
    switch JSON on. The result is validated like any LoggingConfig.
    """
    overrides: dict[str, Any] = {}
    if log_level is not None:
        overrides["level"] = log_level
    if log_file is not None:
        overrides["file"] = log_file
    if log_json:
        overrides["format"] = "json"
    return dataclasses.replace(base, **overrides)
