from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from batch_copy.domain.models import SpotPrice, UserEvent
from batch_copy.handler import Handler
from batch_copy.producers import copy_csv, emit_user_events, parse_spot_price

SPOT_CSV = """\
2023-05-01 12:00:00+0000,m5.large,Linux/UNIX,us-east-1a,0.0321
not-a-date,m5.large,Linux/UNIX,us-east-1b,0.0321
2023-05-01 12:05:00+0200,c5.xlarge,Windows,eu-west-2c,0.1900
2023-05-01 12:10:00+0000,c5.xlarge,Windows,eu-west-2c
"""


def test_parse_spot_price_splits_region_and_zone():
    row = parse_spot_price(
        ["2023-05-01 12:05:00+0200", "c5.xlarge", "Windows", "eu-west-2c", "0.1900"]
    )

    assert row.region == "eu-west-2"
    assert row.az == "c"
    assert row.price == pytest.approx(0.19)
    assert row.dt == datetime(2023, 5, 1, 12, 5, tzinfo=timezone(timedelta(hours=2)))


@pytest.mark.parametrize(
    "fields",
    [
        ["2023-05-01 12:00:00+0000", "m5.large", "Linux/UNIX", "us-east-1a"],
        ["yesterday", "m5.large", "Linux/UNIX", "us-east-1a", "0.03"],
        ["2023-05-01 12:00:00+0000", "m5.large", "Linux/UNIX", "a", "0.03"],
        ["2023-05-01 12:00:00+0000", "m5.large", "Linux/UNIX", "us-east-1a", "cheap"],
    ],
)
def test_parse_spot_price_rejects_bad_records(fields):
    with pytest.raises(ValueError):
        parse_spot_price(fields)


@pytest.mark.asyncio
async def test_copy_csv_sends_valid_rows_and_closes_its_handle(
    tmp_path: Path, fake_pool, engine_config
):
    csv_path = tmp_path / "spotprice-1.csv"
    csv_path.write_text(SPOT_CSV, encoding="utf-8")
    copier = Handler.from_pool(engine_config, SpotPrice, fake_pool)
    producer_handle = copier.clone()

    report = await copy_csv(csv_path, producer_handle)
    written = await copier.flush()

    assert (report.sent, report.skipped) == (2, 2)
    assert producer_handle.closed is True
    assert written == 2
    assert [row[1] for row in fake_pool.db.committed] == ["m5.large", "c5.xlarge"]
    assert fake_pool.db.types == list(SpotPrice.TYPES)
    await copier.close()


@pytest.mark.asyncio
async def test_emit_user_events_enqueues_sequence(fake_pool, engine_config):
    copier = Handler.from_pool(engine_config, UserEvent, fake_pool)

    report = await emit_user_events(7, copier.clone(), count=3)
    await copier.flush()

    assert report.sent == 3
    assert fake_pool.db.committed == [
        (7, 0, "task 7 emitting message 0"),
        (7, 1, "task 7 emitting message 1"),
        (7, 2, "task 7 emitting message 2"),
    ]
    await copier.close()
