from __future__ import annotations

import logging
import signal
import socket
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import NoReturn, Optional

import typer

from cli.render import render_report
from datastore.sample_store import SampleStore, build_engine
from errors import ConfigurationError, DiskFreeError, InsufficientData, StorageError
from logging_config import configure_logging
from services.reporter import TrendReporter
from services.retention import Retention
from services.sampler import CapacitySampler
from services.scheduler import SamplingService
from settings import Settings, get_settings

logger = logging.getLogger(__name__)


@dataclass
class CLIState:
    settings: Settings
    store: SampleStore


app = typer.Typer(
    help="Record filesystem capacity over time and report its growth.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def build_store(settings: Settings) -> SampleStore:
    return SampleStore(engine=build_engine(settings.database_url))


def build_sampler(settings: Settings) -> CapacitySampler:
    return CapacitySampler(timeout=settings.df_timeout)


def _fail(message: str) -> NoReturn:
    typer.secho(message, fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        _fail("CLI state is uninitialized.")
    return state


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        help="Logging level (defaults to LOG_LEVEL env or INFO).",
    ),
) -> None:
    """Entry point for the CLI."""
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit(code=0)

    try:
        settings = get_settings()
        configure_logging(log_level)
        store = build_store(settings)
    except ConfigurationError as exc:
        _fail(f"Configuration error: {exc}")
    ctx.obj = CLIState(settings=settings, store=store)
    ctx.call_on_close(store.close)


@app.command("service")
def service_command(
    ctx: typer.Context,
    cycles: Optional[int] = typer.Option(
        None,
        "--cycles",
        min=1,
        help="Stop after this many sampling cycles (default: run until interrupted).",
    ),
) -> None:
    """Sample filesystem capacity forever, storing one batch per interval."""
    state = _get_state(ctx)
    service = SamplingService(
        sampler=build_sampler(state.settings),
        store=state.store,
        interval_seconds=state.settings.check_seconds,
        max_consecutive_failures=state.settings.max_consecutive_failures,
    )

    def _handle_signal(signum: int, _frame: object) -> None:
        logger.info("Shutting down")
        service.stop()

    previous = {
        sig: signal.signal(sig, _handle_signal) for sig in (signal.SIGTERM, signal.SIGINT)
    }
    try:
        state.store.ensure_schema()
        service.run_forever(max_cycles=cycles)
    except DiskFreeError as exc:
        _fail(f"Service stopped: {exc}")
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)


@app.command("report")
def report_command(
    ctx: typer.Context,
    hours: Optional[str] = typer.Argument(
        None, help="Hours of history to compare (defaults to DISKFREE_REPORT_HOURS or 24)."
    ),
    host: Optional[str] = typer.Option(
        None, "--host", help="Host to report on (defaults to the local host)."
    ),
) -> None:
    """Report filesystem growth over the last HOURS hours.

    Growth% is rounded half-up to two decimal places, or shown as "-" when
    either snapshot reports no used space.
    """
    state = _get_state(ctx)
    window = state.settings.report_hours
    if hours is not None:
        try:
            window = Decimal(hours)
        except InvalidOperation as exc:
            raise typer.BadParameter(f"{hours!r} is not a number.", param_hint="HOURS") from exc

    hostname = host or socket.gethostname()
    try:
        if not state.store.has_schema():
            _fail("Could not find the table. Run 'service' first.")
        result = TrendReporter(state.store).report(hostname, window)
    except InsufficientData:
        _fail("We don't have enough data to report.")
    except DiskFreeError as exc:
        _fail(str(exc))
    render_report(result)


@app.command("cleanup")
def cleanup_command(
    ctx: typer.Context,
    keep_days: Optional[int] = typer.Argument(
        None, min=0, help="Days of samples to keep (defaults to DISKFREE_KEEP_DAYS or 30)."
    ),
) -> None:
    """Delete samples older than KEEP_DAYS days."""
    state = _get_state(ctx)
    retention = Retention(state.store, default_keep_days=state.settings.keep_days)
    try:
        removed = retention.purge(keep_days)
    except StorageError as exc:
        _fail(str(exc))
    if removed > 0:
        typer.echo(f"Cleaned up {removed} old entries.")
    else:
        typer.echo("No old entries to clean up.")
