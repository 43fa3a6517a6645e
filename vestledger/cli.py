"""
Vestledger command-line tool — inspect schedules and persisted ledgers.

Usage:
    python -m vestledger.cli schedule --start 1700000000
    python -m vestledger.cli projection --start 1700000000 --step-days 30
    python -m vestledger.cli status --database-url sqlite:///vestledger.db --at 1705000000
"""

from __future__ import annotations

import argparse
import sys
import time
from collections.abc import Sequence
from datetime import datetime, timezone
from decimal import Decimal

import structlog
from rich.console import Console
from rich.table import Table

from vestledger.config import settings
from vestledger.logs import configure_logging
from vestledger.storage.repository import LedgerRepository
from vestledger.vesting.builder import build_schedule
from vestledger.vesting.calculator import daily_rate, find_tranche, total_vested
from vestledger.vesting.errors import ScheduleConfigError
from vestledger.vesting.schema import ONE_DAY, Tranche

console = Console()


def format_amount(amount: int, decimals: int | None = None) -> str:
    """Render atomic units as whole tokens."""
    decimals = settings.token_decimals if decimals is None else decimals
    value = Decimal(amount).scaleb(-decimals)
    return f"{value:,.6f}".rstrip("0").rstrip(".")


def format_timestamp(timestamp: int) -> str:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


def _schedule_table(schedule: Sequence[Tranche]) -> Table:
    table = Table(show_lines=False)
    table.add_column("#", style="cyan", width=4)
    table.add_column("Amount", style="green", justify="right")
    table.add_column("Start (UTC)", width=20)
    table.add_column("End (UTC)", width=20)
    table.add_column("Days", justify="right")
    table.add_column("Daily rate", style="yellow", justify="right")
    for tranche in schedule:
        table.add_row(
            str(tranche.index),
            format_amount(tranche.total_amount),
            format_timestamp(tranche.start_time),
            format_timestamp(tranche.end_time),
            f"{tranche.duration / ONE_DAY:g}",
            format_amount(daily_rate(schedule, tranche.start_time)),
        )
    return table


def run_schedule(start: int, pool: int) -> int:
    """Print the tranches built from the configured table."""
    schedule = build_schedule(start, pool, settings.tranches)
    console.print(f"\n[bold blue]═══ Vesting Schedule ({settings.token_symbol}) ═══[/bold blue]")
    console.print(f"  Pool: [bold]{format_amount(pool)}[/bold]  Tranches: [bold]{len(schedule)}[/bold]\n")
    console.print(_schedule_table(schedule))
    return 0


def run_projection(start: int, pool: int, step_days: int) -> int:
    """Print the cumulative vested amount at regular steps until the end."""
    schedule = build_schedule(start, pool, settings.tranches)
    end = schedule[-1].end_time
    step = max(step_days, 1) * ONE_DAY

    table = Table()
    table.add_column("Day", style="cyan", justify="right")
    table.add_column("Date (UTC)", width=20)
    table.add_column("Tranche", justify="right")
    table.add_column("Vested", style="green", justify="right")
    table.add_column("Vested %", justify="right")

    t = start
    while True:
        tranche = find_tranche(schedule, t)
        vested = total_vested(schedule, t)
        table.add_row(
            str((t - start) // ONE_DAY),
            format_timestamp(t),
            "—" if tranche is None else str(tranche.index),
            format_amount(vested),
            f"{Decimal(vested) * 100 / pool:.2f}" if pool else "—",
        )
        if t >= end:
            break
        t = min(t + step, end)

    console.print(f"\n[bold blue]═══ Vesting Projection ═══[/bold blue]\n")
    console.print(table)
    return 0


def run_status(database_url: str, ledger_id: str, at: int | None = None) -> int:
    """Print a persisted ledger's state, release summary and events."""
    log = structlog.get_logger()
    repository = LedgerRepository(database_url)
    repository.initialize()

    stored = repository.load(ledger_id)
    if stored is None:
        console.print(f"[bold red]✗ Ledger '{ledger_id}' not found[/bold red]")
        log.warning("vestledger.cli.ledger_not_found", ledger_id=ledger_id)
        return 1

    state, events = stored
    console.print(f"\n[bold blue]═══ Vesting Ledger '{ledger_id}' ═══[/bold blue]")
    console.print(f"  Status:      [bold]{state.status.value}[/bold]")
    console.print(f"  Beneficiary: {state.beneficiary or '—'}")

    if not state.initialized:
        console.print("[yellow]⚠ Ledger is not initialized — no schedule yet[/yellow]")
        return 0

    at = int(time.time()) if at is None else at
    vested = total_vested(state.schedule, at)
    releasable = max(0, vested - state.total_released)
    console.print(f"  Start:       {format_timestamp(state.global_start_time)}")
    console.print(f"  Pool:        {format_amount(state.total_vesting_pool)}")
    console.print(f"  As of:       {format_timestamp(at)}")
    console.print(f"  Vested:      {format_amount(vested)}")
    console.print(f"  Released:    [green]{format_amount(state.total_released)}[/green]")
    console.print(f"  Releasable:  [yellow]{format_amount(releasable)}[/yellow]")
    console.print(f"  Daily rate:  {format_amount(daily_rate(state.schedule, at))}\n")
    console.print(_schedule_table(state.schedule))

    if events:
        table = Table(title="Release events")
        table.add_column("Seq", style="cyan", width=6)
        table.add_column("Beneficiary", style="yellow")
        table.add_column("Amount", style="green", justify="right")
        table.add_column("Time (UTC)", width=20)
        for seq, event in enumerate(events):
            table.add_row(
                str(seq), event.beneficiary, format_amount(event.amount), format_timestamp(event.timestamp)
            )
        console.print(table)

    log.info(
        "vestledger.cli.status",
        ledger_id=ledger_id,
        status=state.status.value,
        events=len(events),
    )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Vestledger token vesting tool")
    parser.add_argument("--log-level", default=None, help="Overrides VESTLEDGER_LOG_LEVEL")
    subparsers = parser.add_subparsers(dest="command", required=True)

    schedule = subparsers.add_parser("schedule", help="Show the tranche schedule")
    schedule.add_argument("--start", type=int, required=True, help="Unix start timestamp")
    schedule.add_argument("--pool", type=int, default=None, help="Pool in atomic units")

    projection = subparsers.add_parser("projection", help="Show vested amounts over time")
    projection.add_argument("--start", type=int, required=True, help="Unix start timestamp")
    projection.add_argument("--pool", type=int, default=None, help="Pool in atomic units")
    projection.add_argument("--step-days", type=int, default=30)

    status = subparsers.add_parser("status", help="Show a persisted ledger")
    status.add_argument(
        "--database-url",
        default=None,
        help="SQLAlchemy connection string (defaults to .env settings)",
    )
    status.add_argument("--ledger-id", default=None)
    status.add_argument("--at", type=int, default=None, help="Evaluate at this timestamp")

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(level=args.log_level)

    try:
        if args.command == "schedule":
            pool = settings.total_vesting_pool if args.pool is None else args.pool
            return run_schedule(args.start, pool)
        if args.command == "projection":
            pool = settings.total_vesting_pool if args.pool is None else args.pool
            return run_projection(args.start, pool, args.step_days)
        return run_status(
            args.database_url or settings.database_url,
            args.ledger_id or settings.ledger_id,
            at=args.at,
        )
    except ScheduleConfigError as exc:
        console.print(f"[bold red]✗ Invalid schedule:[/bold red] {exc}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
