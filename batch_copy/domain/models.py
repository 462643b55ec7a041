"""
Example record types for batch-copy.

Each model is a frozen pydantic model (records are immutable once enqueued)
that implements the `BatchCopyRow` contract for one table. `EXAMPLE_TABLES`
holds the matching DDL so the CLI can create them.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, ClassVar, Dict, Sequence

from pydantic import BaseModel, Field

_FROZEN = {
    "frozen": True,
    "populate_by_name": True,
    "arbitrary_types_allowed": False,
}


class RequestMetric(BaseModel):
    """
    One HTTP request latency sample, copied into the `metrics` table.
    """

    CHECK_STATEMENT: ClassVar[str] = "SELECT url, latency_ms FROM metrics LIMIT 0"
    COPY_STATEMENT: ClassVar[str] = "COPY metrics (url, latency_ms) FROM STDIN (FORMAT binary)"
    TYPES: ClassVar[Sequence[str]] = ("text", "int8")

    url: str = Field(..., description="Request path.")
    latency_ms: int = Field(..., description="Observed latency in milliseconds.")

    model_config = _FROZEN

    def copy_values(self) -> Sequence[Any]:
        return (self.url, self.latency_ms)


class SpotPrice(BaseModel):
    """
    One cloud spot price observation, copied into the `spotprices` table.
    """

    CHECK_STATEMENT: ClassVar[str] = (
        "SELECT dt, instance, os, region, az, price FROM spotprices LIMIT 0"
    )
    COPY_STATEMENT: ClassVar[str] = (
        "COPY spotprices (dt, instance, os, region, az, price) FROM STDIN (FORMAT binary)"
    )
    TYPES: ClassVar[Sequence[str]] = ("timestamptz", "text", "text", "text", "text", "float8")

    dt: datetime = Field(..., description="Observation time (timezone aware).")
    instance: str = Field(..., description="Instance type, e.g. m5.large.")
    os: str = Field(..., description="Product description / operating system.")
    region: str = Field(..., description="Region, e.g. us-east-1.")
    az: str = Field(..., description="Availability zone suffix, e.g. a.")
    price: float = Field(..., description="Hourly price in USD.")

    model_config = _FROZEN

    def copy_values(self) -> Sequence[Any]:
        return (self.dt, self.instance, self.os, self.region, self.az, self.price)


class UserEvent(BaseModel):
    """
    Synthetic event emitted by load-generating producers into `users`.
    """

    CHECK_STATEMENT: ClassVar[str] = "SELECT id, id2, name FROM users LIMIT 0"
    COPY_STATEMENT: ClassVar[str] = "COPY users (id, id2, name) FROM STDIN (FORMAT binary)"
    TYPES: ClassVar[Sequence[str]] = ("int8", "int8", "text")

    id: int = Field(..., description="Producer id.")
    id2: int = Field(..., description="Sequence number within the producer.")
    name: str = Field(..., description="Free-form label.")

    model_config = _FROZEN

    def copy_values(self) -> Sequence[Any]:
        return (self.id, self.id2, self.name)


EXAMPLE_TABLES: Dict[str, str] = {
    "metrics": "CREATE TABLE IF NOT EXISTS metrics (url TEXT, latency_ms BIGINT)",
    "spotprices": (
        "CREATE TABLE IF NOT EXISTS spotprices ("
        "dt TIMESTAMPTZ, instance TEXT, os TEXT, region TEXT, az TEXT, price DOUBLE PRECISION)"
    ),
    "users": "CREATE TABLE IF NOT EXISTS users (id BIGINT, id2 BIGINT, name TEXT)",
}


__all__ = ["EXAMPLE_TABLES", "RequestMetric", "SpotPrice", "UserEvent"]
