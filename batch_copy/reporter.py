from __future__ import annotations

from typing import Optional, Sequence

from rich import box
from rich.console import Console
from rich.table import Table

from batch_copy.engine.actor import FlushStats
from batch_copy.producers import CopyReport
from batch_copy.utils.profiler import ProfileStats


def build_report_table(
    reports: Sequence[CopyReport],
    profile: ProfileStats,
    flush_stats: Optional[FlushStats] = None,
) -> Table:
    """
    Build a rich table with one line per producer and the run totals as caption.

    Producers are sorted by rows sent (descending).
    """
    caption = profile.summary()
    if flush_stats is not None:
        caption = (
            f"{caption}\n{flush_stats.flushes} flushes, "
            f"{flush_stats.rows_committed:,} rows committed, "
            f"{flush_stats.rows_discarded:,} discarded"
        )

    table = Table(title=f"batch-copy: {profile.label}", box=box.ROUNDED, caption=caption)
    table.add_column("Source", style="cyan", no_wrap=True)
    table.add_column("Sent", justify="right", style="magenta")
    table.add_column("Skipped", justify="right", style="yellow")

    for report in sorted(reports, key=lambda r: r.sent, reverse=True):
        table.add_row(report.source, f"{report.sent:,}", f"{report.skipped:,}")
    return table


def print_report(
    reports: Sequence[CopyReport],
    profile: ProfileStats,
    flush_stats: Optional[FlushStats] = None,
    console: Optional[Console] = None,
) -> None:
    """
    Render a load run as a rich table.
    """
    console = console or Console()
    if not reports:
        console.print("[yellow]No producers ran.[/yellow]")
        console.print(profile.summary())
        return
    console.print(build_report_table(reports, profile, flush_stats))


__all__ = ["build_report_table", "print_report"]
