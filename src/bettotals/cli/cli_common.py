"""Common CLI utilities: JSON output, stable exit codes, error mapping."""

from __future__ import annotations

import functools
import json
import traceback
import uuid
from enum import IntEnum
from typing import Any

import click

from ..config.settings import ConfigError
from ..core.errors import InvalidObservation, NotFound, StorageUnavailable
from ..observability.loguru_config import get_logger

logger = get_logger("engine")


class ExitCode(IntEnum):
    """Stable exit codes for CLI commands."""

    SUCCESS = 0
    VALIDATION_ERROR = 2  # Malformed observation or argument
    NOT_FOUND = 4  # Subject has no record
    IO_LOCK_ERROR = 5  # Storage or lock unavailable
    CONFIG_ERROR = 6  # Missing or invalid settings
    UNKNOWN_ERROR = 7


class CLIContext:
    """Context for CLI execution with JSON output and a trace ID."""

    def __init__(
        self,
        json_output: bool = False,
        yes: bool = False,
        trace_id: str | None = None,
        verbose: bool = False,
    ):
        """Initialize CLI context.

        Args:
            json_output: Enable JSON output mode
            yes: Non-interactive mode (assume yes)
            trace_id: Trace ID for correlation
            verbose: Verbose output
        """
        self.json_output = json_output
        self.yes = yes
        self.trace_id = trace_id or f"trace-{uuid.uuid4().hex[:12]}"
        self.verbose = verbose

    def output(
        self, data: Any, status: str = "success", error: str | None = None, meta: dict[str, Any] | None = None
    ) -> None:
        """Output result in appropriate format.

        Args:
            data: Result data
            status: Status ("success", "error", "warning")
            error: Error message if status is error
            meta: Additional metadata
        """
        if self.json_output:
            result: dict[str, Any] = {"status": status, "trace_id": self.trace_id}

            if error:
                result["error"] = error
            else:
                result["data"] = data

            if meta:
                result["meta"] = meta

            click.echo(json.dumps(result, ensure_ascii=False, indent=2))
        else:
            if status == "error":
                click.echo(f"❌ {error}", err=True)
            elif status == "warning":
                click.echo(f"⚠️  {data}")
            elif isinstance(data, dict):
                for key, value in data.items():
                    click.echo(f"{key}: {value}")
            elif isinstance(data, list):
                for item in data:
                    click.echo(f"  - {item}")
            else:
                click.echo(data)

    def confirm(self, message: str) -> bool:
        """Ask for confirmation (or auto-confirm in yes mode)."""
        if self.yes:
            return True

        if self.json_output:
            raise click.ClickException("Cannot confirm in --json mode. Use --yes for non-interactive execution.")

        return click.confirm(message)


def cli_command(func):
    """Decorator adding the common options to a command.

    Adds ``--json``, ``--yes``, ``--trace-id`` and ``--verbose``, injects a
    :class:`CLIContext` as first argument and turns a non-zero return value
    into the process exit code.
    """

    @click.option("--json", "json_output", is_flag=True, help="Output as JSON (machine-readable)")
    @click.option("--yes", is_flag=True, help="Non-interactive mode (assume yes)")
    @click.option("--trace-id", type=str, help="Trace ID for correlation")
    @click.option("--verbose", "-v", is_flag=True, help="Verbose output")
    @functools.wraps(func)
    def wrapper(
        json_output: bool,
        yes: bool,
        trace_id: str | None,
        verbose: bool,
        *args: Any,
        **kwargs: Any,
    ) -> int:
        ctx = CLIContext(json_output=json_output, yes=yes, trace_id=trace_id, verbose=verbose)
        code = func(ctx, *args, **kwargs)
        if code:
            click.get_current_context().exit(int(code))
        return int(ExitCode.SUCCESS)

    return wrapper


def exit_code_for(exc: Exception) -> ExitCode:
    """Map an exception to its stable exit code."""
    if isinstance(exc, InvalidObservation | ValueError):
        return ExitCode.VALIDATION_ERROR
    if isinstance(exc, NotFound):
        return ExitCode.NOT_FOUND
    if isinstance(exc, StorageUnavailable | OSError):
        return ExitCode.IO_LOCK_ERROR
    if isinstance(exc, ConfigError):
        return ExitCode.CONFIG_ERROR
    return ExitCode.UNKNOWN_ERROR


def handle_cli_error(ctx: CLIContext, exc: Exception, cmd: str) -> int:
    """Report an error and return its exit code.

    Args:
        ctx: CLI context
        exc: Exception to handle
        cmd: Command name (e.g., "totals.apply")

    Returns:
        Appropriate exit code
    """
    exit_code = exit_code_for(exc)
    error_msg = str(exc)

    if exit_code == ExitCode.UNKNOWN_ERROR:
        logger.exception(f"{cmd} failed [{ctx.trace_id}]")
    else:
        logger.debug(f"{cmd} failed with {type(exc).__name__} [{ctx.trace_id}]: {error_msg}")

    meta: dict[str, Any] = {"exit_code": int(exit_code), "error_type": type(exc).__name__}
    if isinstance(exc, InvalidObservation) and exc.errors:
        meta["errors"] = list(exc.errors)

    ctx.output(None, status="error", error=error_msg, meta=meta)

    if ctx.verbose and not ctx.json_output:
        click.echo("\nTraceback:", err=True)
        click.echo("".join(traceback.format_exception(exc)), err=True)

    return int(exit_code)


def handle_cli_success(ctx: CLIContext, data: Any, meta: dict[str, Any] | None = None) -> int:
    """Output a result and return the success code."""
    ctx.output(data, status="success", meta=meta)
    return int(ExitCode.SUCCESS)
