"""Messages carried from handles to the engine, in FIFO order."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Union


@dataclass(frozen=True)
class InsertRow:
    """Append `row` to the pending batch; `done` resolves once it is accepted."""

    row: Any
    done: "asyncio.Future[int]"


@dataclass(frozen=True)
class FlushRequest:
    """Flush unconditionally; `done` resolves with the rows committed."""

    done: "asyncio.Future[int]"


@dataclass(frozen=True)
class Shutdown:
    """Queued by the last handle to close, behind everything it already sent."""


Message = Union[InsertRow, FlushRequest, Shutdown]


def resolve(done: "asyncio.Future[int]", value: int) -> None:
    """Fire a completion signal unless its waiter has already gone away."""
    if not done.done():
        done.set_result(value)


def reject(done: "asyncio.Future[int]", exc: BaseException) -> None:
    if not done.done():
        done.set_exception(exc)


__all__ = ["FlushRequest", "InsertRow", "Message", "Shutdown", "reject", "resolve"]
