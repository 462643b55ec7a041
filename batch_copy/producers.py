"""
Example producers that feed a `Handler`.

- `copy_csv`: stream a spot-price CSV file into the copier, one row at a time
- `emit_user_events`: synthetic load, one task per simulated producer

Both only enqueue; the caller issues the final flush once every producer is done.
"""

from __future__ import annotations

import csv
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Sequence

from batch_copy.domain.models import SpotPrice, UserEvent
from batch_copy.handler import Handler
from batch_copy.utils.logging import get_logger

log = get_logger(__name__)

SPOT_PRICE_TIME_FORMAT = "%Y-%m-%d %H:%M:%S%z"


@dataclass
class CopyReport:
    """Per-producer outcome."""

    source: str
    sent: int = 0
    skipped: int = 0


def parse_spot_price(fields: Sequence[str]) -> SpotPrice:
    """
    Parse one headerless CSV record: ``timestamp,instance,os,region+az,price``.

    The availability zone is the last character of the fourth field
    (``us-east-1a`` -> region ``us-east-1``, az ``a``).

    Raises
    ------
    ValueError
        If the record has the wrong shape or any field fails to parse.
    """
    if len(fields) != 5:
        raise ValueError(f"expected 5 fields, got {len(fields)}")
    dtstr, instance, os_name, region_az, price = fields
    dt = datetime.strptime(dtstr.strip(), SPOT_PRICE_TIME_FORMAT)
    region_az = region_az.strip()
    if len(region_az) < 2:
        raise ValueError(f"cannot split region and az from {region_az!r}")
    return SpotPrice(
        dt=dt,
        instance=instance.strip(),
        os=os_name.strip(),
        region=region_az[:-1],
        az=region_az[-1:],
        price=float(price),
    )


async def copy_csv(path: Path, copier: Handler[SpotPrice]) -> CopyReport:
    """
    Send every parseable row of `path` to `copier`, skipping bad rows.

    The producer owns `copier` and closes it when done.
    """
    report = CopyReport(source=str(path))
    log.info(f"Started copy of {path}", extra={"path": str(path)})
    async with copier:
        with path.open("r", newline="", encoding="utf-8") as f:
            for lineno, fields in enumerate(csv.reader(f), start=1):
                try:
                    row = parse_spot_price(fields)
                except ValueError as exc:
                    log.debug(f"{path}:{lineno}: invalid row, skipping ({exc})")
                    report.skipped += 1
                    continue
                await copier.enqueue(row)
                report.sent += 1
    return report


async def emit_user_events(producer_id: int, copier: Handler[UserEvent], count: int) -> CopyReport:
    """Enqueue `count` synthetic events tagged with `producer_id`, then close `copier`."""
    report = CopyReport(source=f"task-{producer_id}")
    async with copier:
        for id2 in range(count):
            await copier.enqueue(
                UserEvent(id=producer_id, id2=id2, name=f"task {producer_id} emitting message {id2}")
            )
            report.sent += 1
    return report


__all__ = ["CopyReport", "SPOT_PRICE_TIME_FORMAT", "copy_csv", "emit_user_events", "parse_spot_price"]
