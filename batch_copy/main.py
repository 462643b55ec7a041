from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import List, Optional, Tuple

import typer

from batch_copy.config import Configuration, get_settings
from batch_copy.domain.models import EXAMPLE_TABLES, SpotPrice, UserEvent
from batch_copy.engine.actor import FlushStats
from batch_copy.errors import BatchCopyError
from batch_copy.handler import Handler
from batch_copy.infrastructure.db_factory import get_sync_connection
from batch_copy.producers import CopyReport, copy_csv, emit_user_events
from batch_copy.reporter import print_report
from batch_copy.utils.logging import configure_logging
from batch_copy.utils.profiler import profile_block

app = typer.Typer(help="batch-copy CLI: buffered binary COPY loading into PostgreSQL.")


def _configure() -> None:
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)


def _config(
    flush_timer_ms: Optional[int],
    max_rows_per_batch: Optional[int],
    max_channel_capacity: Optional[int],
) -> Configuration:
    return get_settings().to_configuration(
        flush_timer_ms=flush_timer_ms,
        max_rows_per_batch=max_rows_per_batch,
        max_channel_capacity=max_channel_capacity,
    )


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    cfg = get_settings().to_configuration()
    typer.echo(
        f"rows_per_batch={cfg.max_rows_per_batch} channel={cfg.max_channel_capacity} "
        f"flush_timer_ms={cfg.flush_timer_ms} pool=(max={cfg.pool_max_size}, "
        f"lifetime={cfg.pool_max_lifetime_sec}s, timeout={cfg.pool_connect_timeout_sec}s) "
        f"flush_on_close={cfg.flush_on_close}"
    )


@app.command("init-db")
def init_db(
    tables: Optional[List[str]] = typer.Option(
        None,
        "--table",
        "-t",
        help=f"Example table(s) to create ({', '.join(EXAMPLE_TABLES)}); default all.",
    ),
) -> None:
    """
    Create the example tables used by load-csv and generate.
    """
    _configure()
    names = tables or list(EXAMPLE_TABLES)
    unknown = [name for name in names if name not in EXAMPLE_TABLES]
    if unknown:
        raise typer.BadParameter(f"Unknown table(s): {', '.join(unknown)}")

    with get_sync_connection(get_settings().database_url) as conn:
        with conn.cursor() as cur:
            for name in names:
                cur.execute(EXAMPLE_TABLES[name])
        conn.commit()
    typer.echo(f"Created tables: {', '.join(names)}")


async def _load_csv(cfg: Configuration, paths: List[Path]) -> Tuple[List[CopyReport], FlushStats]:
    copier = await Handler.create(cfg, SpotPrice)
    async with copier:
        producers = [copy_csv(path, copier.clone()) for path in paths]
        reports = await asyncio.gather(*producers)
        # Important: one final flush so everything is written before exit
        await copier.flush()
    return list(reports), copier.stats


@app.command("load-csv")
def load_csv(
    paths: List[Path] = typer.Argument(..., exists=True, dir_okay=False, help="Spot price CSV files."),
    flush_timer_ms: Optional[int] = typer.Option(2000, "--flush-timer-ms"),
    max_rows_per_batch: Optional[int] = typer.Option(80_000, "--max-rows-per-batch"),
    max_channel_capacity: Optional[int] = typer.Option(80_000, "--max-channel-capacity"),
) -> None:
    """
    Load headerless spot price CSV files, one producer task per file.
    """
    _configure()
    cfg = _config(flush_timer_ms, max_rows_per_batch, max_channel_capacity)
    with profile_block("load-csv") as stats:
        try:
            reports, flush_stats = asyncio.run(_load_csv(cfg, paths))
        except BatchCopyError as exc:
            typer.echo(f"Cannot start copier: {exc}", err=True)
            raise typer.Exit(code=1) from exc

    stats.rows = sum(report.sent for report in reports)
    print_report(reports, stats, flush_stats)


async def _generate(
    cfg: Configuration, producers: int, rows_per_producer: int
) -> Tuple[List[CopyReport], FlushStats]:
    copier = await Handler.create(cfg, UserEvent)
    async with copier:
        tasks = [
            asyncio.create_task(emit_user_events(i, copier.clone(), rows_per_producer))
            for i in range(producers)
        ]
        reports = await asyncio.gather(*tasks)
        await copier.flush()
    return list(reports), copier.stats


@app.command()
def generate(
    producers: int = typer.Option(2048, "--producers", "-p", help="Concurrent producer tasks."),
    rows_per_producer: int = typer.Option(20, "--rows", "-r", help="Rows emitted by each producer."),
    flush_timer_ms: Optional[int] = typer.Option(None, "--flush-timer-ms"),
    max_rows_per_batch: Optional[int] = typer.Option(None, "--max-rows-per-batch"),
    max_channel_capacity: Optional[int] = typer.Option(None, "--max-channel-capacity"),
) -> None:
    """
    Synthetic load: many producer tasks sharing one copier.
    """
    _configure()
    cfg = _config(flush_timer_ms, max_rows_per_batch, max_channel_capacity)
    with profile_block("generate") as stats:
        try:
            reports, flush_stats = asyncio.run(_generate(cfg, producers, rows_per_producer))
        except BatchCopyError as exc:
            typer.echo(f"Cannot start copier: {exc}", err=True)
            raise typer.Exit(code=1) from exc
    stats.rows = sum(report.sent for report in reports)
    typer.echo(stats.summary())
    typer.echo(
        f"{flush_stats.flushes} flushes, {flush_stats.rows_committed:,} rows committed, "
        f"{flush_stats.rows_discarded:,} discarded"
    )


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
