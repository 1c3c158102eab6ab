"""CLI module for clipforge."""

import logging
from pathlib import Path

import click

from clipforge.cli.exit_codes import ExitCode
from clipforge.cli.output import error_exit
from clipforge.cli.runtime import apply_logging_options
from clipforge.config import ConfigFileError, get_config
from clipforge.logging import configure_logging

logger = logging.getLogger(__name__)


@click.group()
@click.version_option(package_name="clipforge")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Path to configuration file (default: ~/.clipforge/config.toml).",
)
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default=None,
    help="Override log level (default: info).",
)
@click.option(
    "--log-file",
    type=click.Path(path_type=Path),
    default=None,
    help="Override log file path.",
)
@click.option(
    "--log-json",
    is_flag=True,
    default=False,
    help="Use JSON log format.",
)
@click.pass_context
def main(
    ctx: click.Context,
    config_path: Path | None,
    log_level: str | None,
    log_file: Path | None,
    log_json: bool,
) -> None:
    """clipforge - Trim, join and export video clips with ffmpeg."""
    ctx.ensure_object(dict)

    # Preserve a config injected by tests
    if "config" not in ctx.obj:
        try:
            ctx.obj["config"] = get_config(config_path, strict=True)
        except (ConfigFileError, ValueError) as e:
            error_exit(f"Invalid configuration: {e}", ExitCode.CONFIG_ERROR)

    configure_logging(
        apply_logging_options(ctx.obj["config"].logging, log_level, log_file, log_json)
    )
    logger.debug("clipforge starting (command=%s)", ctx.invoked_subcommand)


# Defer import to avoid circular dependency
def _register_commands():
    from clipforge.cli.doctor import doctor_command
    from clipforge.cli.export import export_command
    from clipforge.cli.media import (
        extract_audio_command,
        probe_command,
        thumbnail_command,
        trim_command,
    )
    from clipforge.cli.serve import serve_command

    main.add_command(doctor_command)
    main.add_command(probe_command)
    main.add_command(trim_command)
    main.add_command(thumbnail_command)
    main.add_command(extract_audio_command)
    main.add_command(export_command)
    main.add_command(serve_command)


_register_commands()
