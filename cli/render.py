from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional

import typer

from services.reporter import ReportResult, TrendRow

ROW_HEADINGS = ("1K-Used", "1K-Free", "Use%", "1K-Change", "Growth%", "Mounted on")


def format_timestamp(value: datetime) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S %Z").strip()


def format_growth(value: Optional[Decimal]) -> str:
    return "-" if value is None else f"{value}%"


def format_row(
    used: object, free: object, use: object, change: object, growth: object, mount_point: object
) -> str:
    return f"{used!s:>12} {free!s:>12} {use!s:>5} {change!s:>12} {growth!s:>8} {mount_point}"


def echo_key_values(pairs: Iterable[tuple[str, object]], width: int = 8) -> None:
    for key, value in pairs:
        typer.echo(f"{key:>{width}}: {value}")


def render_row(row: TrendRow) -> str:
    return format_row(
        row.used_kb,
        row.free_kb,
        f"{row.used_percent}%",
        row.change_kb,
        format_growth(row.growth_percent),
        row.mount_point,
    )


def render_report(result: ReportResult) -> None:
    echo_key_values(
        [
            ("Hostname", result.hostname),
            ("From", format_timestamp(result.then)),
            ("To", format_timestamp(result.now)),
            ("Hours", result.elapsed_hours),
        ]
    )
    if result.window_shortened:
        typer.secho(
            f"Less than {result.window_hours} hours of history stored; "
            "compared against the oldest sample.",
            fg=typer.colors.YELLOW,
        )
    typer.echo()
    typer.secho(format_row(*ROW_HEADINGS), bold=True)
    for row in result.rows:
        typer.echo(render_row(row))
