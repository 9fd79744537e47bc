#!/usr/bin/env python3
"""Main CLI module for bettotals."""

from __future__ import annotations

import sys
from pathlib import Path

import click

from ..config.settings import Settings, generate_example_env, load_settings
from ..core.errors import NotFound
from ..core.time import format_utc_iso8601, get_current_utc, parse_utc_iso8601
from ..engine import TotalsEngine, create_engine
from ..observability.loguru_config import configure_loguru
from ..rollups.backfill import load_history_jsonl
from ..rollups.queries import DEFAULT_PAGE_SIZE, DEFAULT_TOP_LIMIT
from ..rollups.record import BUCKETS
from ..rollups.time_windows import CalendarResolver
from .cli_common import CLIContext, ExitCode, cli_command, handle_cli_error, handle_cli_success

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}
EPILOG = """
Examples:
  bettotals apply alice 100          # Record a bet of 100 for alice
  bettotals show alice               # alice's all/day/week/month totals
  bettotals top --period week        # Weekly leaderboard
  bettotals list --page 2            # Second page ordered by all-time total
  bettotals refresh                  # Roll over every stale bucket
  bettotals labels --at 2024-06-01T17:30:00Z
  bettotals rebuild history.jsonl --yes
""".strip()


def _load_settings(ctx: CLIContext) -> Settings:
    settings = load_settings()
    # JSON mode keeps stderr quiet apart from errors
    configure_loguru(
        log_dir=settings.log_dir,
        level="ERROR" if ctx.json_output else settings.log_level,
    )
    return settings


def _open_engine(ctx: CLIContext) -> TotalsEngine:
    return create_engine(_load_settings(ctx))


@click.group(
    context_settings=CONTEXT_SETTINGS,
    help="bettotals - rolling day/week/month bet totals per user",
    epilog=EPILOG,
)
def cli() -> None:
    """Root CLI command."""


@cli.command("apply")
@click.argument("subject")
@click.argument("amount", type=float)
@cli_command
def apply_command(ctx: CLIContext, subject: str, amount: float) -> int:
    """Add AMOUNT to every bucket of SUBJECT."""
    # Whole amounts stay integers
    value: int | float = int(amount) if amount.is_integer() else amount

    try:
        with _open_engine(ctx) as engine:
            record = engine.apply(subject, value)
        return handle_cli_success(ctx, record.to_dict())
    except Exception as exc:
        return handle_cli_error(ctx, exc, "totals.apply")


@cli.command("show")
@click.argument("subject")
@cli_command
def show_command(ctx: CLIContext, subject: str) -> int:
    """Show the reconciled totals of SUBJECT."""
    try:
        with _open_engine(ctx) as engine:
            record = engine.get(subject)
        return handle_cli_success(ctx, record.to_dict())
    except Exception as exc:
        return handle_cli_error(ctx, exc, "totals.show")


@cli.command("top")
@click.option(
    "--period",
    type=click.Choice(BUCKETS, case_sensitive=False),
    default="all",
    show_default=True,
    help="Bucket to rank by",
)
@click.option("--limit", type=int, default=DEFAULT_TOP_LIMIT, show_default=True, help="Maximum entries")
@cli_command
def top_command(ctx: CLIContext, period: str, limit: int) -> int:
    """Leaderboard by one bucket."""
    try:
        with _open_engine(ctx) as engine:
            entries = engine.top(period, limit)

        if ctx.json_output:
            return handle_cli_success(ctx, [entry.to_dict() for entry in entries], meta={"period": period.lower()})

        if not entries:
            click.echo("No totals recorded")
            return int(ExitCode.SUCCESS)

        for entry in entries:
            click.echo(f"{entry.rank:>3}. {entry.subject:<24} {entry.total}")
        return int(ExitCode.SUCCESS)
    except Exception as exc:
        return handle_cli_error(ctx, exc, "totals.top")


@cli.command("list")
@click.option("--page", type=int, default=1, show_default=True)
@click.option("--page-size", type=int, default=DEFAULT_PAGE_SIZE, show_default=True)
@cli_command
def list_command(ctx: CLIContext, page: int, page_size: int) -> int:
    """Every subject, ordered by all-time total."""
    try:
        with _open_engine(ctx) as engine:
            result = engine.list_page(page, page_size)

        if ctx.json_output:
            return handle_cli_success(ctx, result.to_dict())

        click.echo(f"Page {result.page}/{result.total_pages} ({result.total_items} subjects)")
        for record in result.items:
            click.echo(
                f"  {record.subject:<24} all={record.total_all} day={record.total_day} "
                f"week={record.total_week} month={record.total_month}"
            )
        return int(ExitCode.SUCCESS)
    except Exception as exc:
        return handle_cli_error(ctx, exc, "totals.list")


@cli.command("refresh")
@click.argument("subject", required=False)
@cli_command
def refresh_command(ctx: CLIContext, subject: str | None) -> int:
    """Roll over stale buckets of SUBJECT, or of every subject."""
    try:
        with _open_engine(ctx) as engine:
            if subject:
                record = engine.refresh_one(subject)
                if record is None:
                    return handle_cli_success(ctx, {"subject": subject, "found": False})
                return handle_cli_success(ctx, record.to_dict())

            report = engine.refresh_all()

        if not report.ok:
            if ctx.json_output:
                ctx.output(report.to_dict(), status="warning", meta={"exit_code": int(ExitCode.IO_LOCK_ERROR)})
            else:
                for failure in report.failures:
                    click.echo(f"⚠️  {failure.subject}: {failure.error}", err=True)
            return int(ExitCode.IO_LOCK_ERROR)

        return handle_cli_success(ctx, report.to_dict())
    except Exception as exc:
        return handle_cli_error(ctx, exc, "totals.refresh")


@cli.command("summary")
@cli_command
def summary_command(ctx: CLIContext) -> int:
    """Grand totals per bucket across every subject."""
    try:
        with _open_engine(ctx) as engine:
            summary = engine.summary()
        return handle_cli_success(ctx, summary.to_dict())
    except Exception as exc:
        return handle_cli_error(ctx, exc, "totals.summary")


@cli.command("labels")
@click.option("--at", "at", type=str, help="ISO-8601 instant (default: now); no offset means UTC")
@cli_command
def labels_command(ctx: CLIContext, at: str | None) -> int:
    """Period labels current at an instant."""
    try:
        settings = _load_settings(ctx)
        instant = parse_utc_iso8601(at) if at else get_current_utc()
        resolver = CalendarResolver(settings.timezone, settings.week_start_on)

        data = resolver.resolve(instant).to_dict()
        data["instant"] = format_utc_iso8601(instant)
        data["timezone"] = settings.timezone
        return handle_cli_success(ctx, data)
    except Exception as exc:
        return handle_cli_error(ctx, exc, "totals.labels")


@cli.command("rebuild")
@click.argument("history", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@cli_command
def rebuild_command(ctx: CLIContext, history: Path) -> int:
    """Recompute totals from a JSON-lines bet history.

    Each line holds subject (or username), amount and occurred_at (or time).
    Records of subjects present in the history are replaced.
    """
    if not ctx.confirm(f"Replace totals for every subject in {history}?"):
        ctx.output("Aborted", status="warning")
        return int(ExitCode.SUCCESS)

    try:
        with _open_engine(ctx) as engine:
            records = engine.rebuild(load_history_jsonl(history))
        return handle_cli_success(
            ctx,
            {"subjects": len(records), "history": str(history)},
        )
    except Exception as exc:
        return handle_cli_error(ctx, exc, "totals.rebuild")


@cli.command("purge")
@click.argument("subject")
@cli_command
def purge_command(ctx: CLIContext, subject: str) -> int:
    """Delete the record of SUBJECT."""
    if not ctx.confirm(f"Delete every total recorded for {subject}?"):
        ctx.output("Aborted", status="warning")
        return int(ExitCode.SUCCESS)

    try:
        with _open_engine(ctx) as engine:
            deleted = engine.purge(subject)
        if not deleted:
            raise NotFound(subject)
        return handle_cli_success(ctx, {"subject": subject, "deleted": True})
    except Exception as exc:
        return handle_cli_error(ctx, exc, "totals.purge")


@cli.command("init-env")
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path), default=Path(".env"), show_default=True)
@click.option("--force", is_flag=True, help="Overwrite an existing file")
def init_env_command(output: Path, force: bool) -> None:
    """Write an example .env file."""
    if output.exists() and not force:
        raise click.ClickException(f"{output} already exists (use --force to overwrite)")

    generate_example_env(output)
    click.echo(f"✅ Wrote {output}")


def main(args: list[str] | None = None) -> int:
    """Main CLI function."""
    try:
        normalized_args = list(args) if args is not None else None
        return cli.main(args=normalized_args, standalone_mode=False)
    except click.ClickException as exc:
        exc.show()
        return exc.exit_code
    except SystemExit as exc:  # pragma: no cover - click normalizes the exit code
        return int(exc.code) if exc.code is not None else 0


if __name__ == "__main__":  # pragma: no cover - executable module
    sys.exit(main())
