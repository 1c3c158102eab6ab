"""clipforge doctor command for checking external tool health."""

import json
import sys

import click

from clipforge.cli.exit_codes import ExitCode
from clipforge.cli.runtime import get_cli_config
from clipforge.tools import BinaryResolver, ToolInfo, platform_binary_name

REQUIRED_TOOLS = ("ffmpeg", "ffprobe")


def _format_status(available: bool) -> str:
    return "✓" if available else "✗"


def _format_source(info: ToolInfo) -> str:
    return info.source.value if info.source else "-"


@click.command("doctor")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Show binary paths and resolution sources.",
)
@click.option(
    "--json",
    "json_output",
    is_flag=True,
    help="Output results as JSON.",
)
@click.pass_context
def doctor_command(ctx: click.Context, verbose: bool, json_output: bool) -> None:
    """Check that ffmpeg and ffprobe can be resolved and run.

    Binaries are looked up in the configured paths, then the bundled
    resource directory, then the system PATH.

    Exit codes:
      0  - All tools available
      30 - A required tool is missing or broken
    """
    config = get_cli_config(ctx)
    resolver = BinaryResolver.from_config(config.tools)
    results = {name: resolver.detect(name) for name in REQUIRED_TOOLS}
    healthy = all(info.is_available() for info in results.values())

    if json_output:
        click.echo(
            json.dumps(
                {name: info.to_dict() for name, info in results.items()}, indent=2
            )
        )
    else:
        click.echo("clipforge External Tool Health Check")
        click.echo("=" * 40)
        click.echo()
        for name, info in results.items():
            version = info.version or "not found"
            click.echo(f"  {_format_status(info.is_available())} {name}: {version}")
            if verbose and info.path:
                click.echo(f"    ├─ Path: {info.path}")
                click.echo(f"    └─ Source: {_format_source(info)}")
            if not info.is_available():
                click.echo(f"    └─ {info.status_message}")
        click.echo()

        if verbose:
            click.echo("Configuration:")
            click.echo("-" * 20)
            click.echo(f"  Platform binary: {platform_binary_name('ffmpeg')}")
            click.echo(f"  Resource dir: {config.tools.resource_dir or '(none)'}")
            click.echo()

        if healthy:
            click.echo("✓ All tools available and ready.")
        else:
            click.echo("⚠ Required tools are missing. Install ffmpeg to continue.")

    sys.exit(ExitCode.SUCCESS if healthy else ExitCode.TOOL_NOT_AVAILABLE)
