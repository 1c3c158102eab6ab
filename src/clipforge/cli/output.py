"""Unified CLI output formatting for JSON and human-readable output."""

from __future__ import annotations

import json
import sys
from dataclasses import dataclass, field
from typing import Any, NoReturn

import click

from clipforge.cli.exit_codes import ExitCode, exit_code_for
from clipforge.errors import ClipforgeError, describe_error


@dataclass
class CLIResult:
    """Successful command result.

    The message is printed in text mode; JSON mode prints the message and
    data under a "completed" status.
    """

    message: str
    data: dict[str, Any] = field(default_factory=dict)

    def to_json(self) -> str:
        return json.dumps(
            {"status": "completed", "message": self.message, **self.data}, indent=2
        )


def _error_payload(code_name: str, message: str) -> str:
    return json.dumps(
        {"status": "failed", "error": {"code": code_name, "message": message}}
    )


def error_exit(
    message: str,
    code: ExitCode | int,
    json_output: bool = False,
) -> NoReturn:
    """Print an error to stderr and exit.

    Args:
        message: Error message to display.
        code: Exit code to use (ExitCode enum or int).
        json_output: Whether to format output as JSON.
    """
    code_name = code.name if isinstance(code, ExitCode) else "UNKNOWN_ERROR"
    if json_output:
        click.echo(_error_payload(code_name, message), err=True)
    else:
        click.echo(f"Error: {message}", err=True)
    sys.exit(int(code))


def failure_exit(error: ClipforgeError, json_output: bool = False) -> NoReturn:
    """Exit with the user-facing description of an orchestration error."""
    error_exit(describe_error(error), exit_code_for(error), json_output)


def success_output(result: CLIResult, json_output: bool = False) -> None:
    """Output successful result in appropriate format."""
    if json_output:
        click.echo(result.to_json())
    else:
        click.echo(result.message)


def warning_output(message: str, json_output: bool = False) -> None:
    """Output a warning message (suppressed in JSON mode)."""
    if not json_output:
        click.echo(f"Warning: {message}", err=True)
