"""
The batch copy actor: receives messages, buffers rows, and periodically flushes
them to PostgreSQL using binary COPY.

Exactly one task runs `run_batch_copy_actor`; the pending rows and the pool are
only ever touched from that task, so no locks are involved. A flush detaches the
pending rows before any I/O, which lets producers keep queueing into a fresh
batch while the previous one is being written.
"""

from __future__ import annotations

import asyncio
import dataclasses
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, List, Optional, Sequence, TypeVar

from psycopg_pool import AsyncConnectionPool

from batch_copy.engine.channel import Channel
from batch_copy.engine.messages import FlushRequest, InsertRow, Message, reject, resolve
from batch_copy.errors import ChannelClosedError
from batch_copy.utils.logging import get_logger

log = get_logger(__name__)

RowT = TypeVar("RowT")


class FlushPhase(str, Enum):
    """Where a flush was when it failed."""

    ACQUIRE = "acquire"
    OPEN = "open"
    WRITE = "write"
    COMMIT = "commit"


_FAILURE_MESSAGES = {
    FlushPhase.ACQUIRE: "could not acquire a connection or begin a transaction",
    FlushPhase.OPEN: "terminating transaction, COPY is invalid",
    FlushPhase.WRITE: "error in COPY, terminating transaction, data loss has occurred!",
    FlushPhase.COMMIT: "COPY finish or commit failed, data loss has occurred!",
}


@dataclass
class FlushStats:
    """
    Cumulative counters kept by the actor.

    Attributes
    ----------
    flushes : int
        Flush attempts that had at least one row.
    rows_committed : int
        Rows made durable by a committed transaction.
    rows_discarded : int
        Rows dropped by a failed flush or by shutdown without a final flush.
    failed_flushes : int
        Flush attempts that ended without a commit.
    last_flush_seconds : float
        Wall-clock duration of the most recent flush attempt.
    """

    flushes: int = 0
    rows_committed: int = 0
    rows_discarded: int = 0
    failed_flushes: int = 0
    last_flush_seconds: float = 0.0


class BatchCopyActor(Generic[RowT]):
    """
    Owns the pending batch and the pool handle for its whole life.

    Parameters
    ----------
    channel : Channel
        Receiving side of the handle channel.
    pool : AsyncConnectionPool
        Pool used for every flush; at most one connection is held at a time.
    row_type : type
        Record type implementing the row contract.
    rows_per_batch : int
        Pending row count that triggers a flush before the insert is acknowledged.
    flush_on_close : bool
        Flush pending rows when the channel closes instead of discarding them.
    owns_pool : bool
        Close `pool` when the actor stops.
    """

    def __init__(
        self,
        channel: Channel,
        pool: AsyncConnectionPool,
        row_type: type[RowT],
        rows_per_batch: int,
        flush_on_close: bool = False,
        owns_pool: bool = True,
    ) -> None:
        self.channel = channel
        self._pool = pool
        self._row_type = row_type
        self._types: Sequence[Any] = list(row_type.TYPES)  # type: ignore[attr-defined]
        self._copy_statement: str = row_type.COPY_STATEMENT  # type: ignore[attr-defined]
        self._rows: List[RowT] = []
        self._rows_per_batch = rows_per_batch
        self._flush_on_close = flush_on_close
        self._owns_pool = owns_pool
        self.stats = FlushStats()

    @property
    def pending(self) -> int:
        """Number of rows accepted but not yet flushed."""
        return len(self._rows)

    @property
    def rows_per_batch(self) -> int:
        return self._rows_per_batch

    def snapshot(self) -> FlushStats:
        return dataclasses.replace(self.stats)

    async def flush(self) -> int:
        """
        Write the pending batch in one transaction and return the rows committed.

        All-or-nothing: any failure abandons the transaction, discards the whole
        detached batch, logs it, and returns 0. Nothing is retried or re-queued.
        """
        # Swap out rows so new inserts land in a fresh batch
        rows, self._rows = self._rows, []
        if not rows:
            return 0

        nrows = len(rows)
        self.stats.flushes += 1
        start = time.perf_counter()
        phase = FlushPhase.ACQUIRE
        try:
            async with self._pool.connection() as conn:
                async with conn.transaction():
                    phase = FlushPhase.OPEN
                    async with conn.cursor() as cur:
                        async with cur.copy(self._copy_statement) as copy:
                            phase = FlushPhase.WRITE
                            copy.set_types(self._types)
                            for row in rows:
                                await copy.write_row(self._encode(row))
                            phase = FlushPhase.COMMIT
        except Exception as exc:  # noqa: BLE001 - flush failures are logged, never raised
            self._record_failure(phase, nrows, exc, time.perf_counter() - start)
            return 0

        duration = time.perf_counter() - start
        self.stats.rows_committed += nrows
        self.stats.last_flush_seconds = duration
        log.info(
            f"[FLUSH] committed {nrows} rows in {duration:.3f}s",
            extra={"rows": nrows, "duration": round(duration, 3)},
        )
        return nrows

    def _encode(self, row: RowT) -> Sequence[Any]:
        values = row.copy_values()  # type: ignore[attr-defined]
        if len(values) != len(self._types):
            raise ValueError(
                f"{type(row).__name__}.copy_values() returned {len(values)} values "
                f"for {len(self._types)} column types"
            )
        return values

    def _record_failure(
        self, phase: FlushPhase, nrows: int, exc: BaseException, duration: float
    ) -> None:
        self.stats.failed_flushes += 1
        self.stats.rows_discarded += nrows
        self.stats.last_flush_seconds = duration
        log.error(
            f"[FLUSH] {_FAILURE_MESSAGES[phase]} {nrows} rows discarded: {exc}",
            extra={"phase": phase.value, "discarded": nrows, "error": str(exc)},
        )

    async def on_timer_tick(self) -> int:
        if not self._rows:
            return 0
        return await self.flush()

    async def handle_message(self, msg: Message) -> bool:
        """
        Serve one message. Returns False once the channel has shut down.
        """
        if isinstance(msg, InsertRow):
            self._rows.append(msg.row)
            if len(self._rows) >= self._rows_per_batch:
                await self.flush()
            # accepted into the buffer, not necessarily persisted
            resolve(msg.done, 1)
            return True
        if isinstance(msg, FlushRequest):
            written = await self.flush()
            resolve(msg.done, written)
            return True
        return False

    def discard_pending(self, reason: str) -> int:
        nrows = len(self._rows)
        if nrows:
            self._rows = []
            self.stats.rows_discarded += nrows
            log.warning(
                f"[SHUTDOWN] {reason}, {nrows} pending rows discarded without a flush",
                extra={"discarded": nrows},
            )
        return nrows

    async def stop(self) -> None:
        """Final flush (if configured), reject stragglers, release the pool."""
        if self._flush_on_close:
            await self.flush()
        else:
            self.discard_pending("channel closed")
        self.channel.drain_closed()
        if self._owns_pool:
            await self._pool.close()
        log.info("[ENGINE] stopped", extra={**dataclasses.asdict(self.stats)})


def _next_tick(previous: float, period: float, now: float) -> float:
    """Advance the timer by one period, skipping ticks missed during a slow flush."""
    following = previous + period
    if following <= now:
        following = now + period
    return following


def _abandon_receive(receiving: "asyncio.Future[Message]") -> None:
    """Stop a receive the loop will not serve; a message it already holds is rejected."""
    if not receiving.done():
        # Queue.get leaves the item queued when cancelled, drain_closed rejects it
        receiving.cancel()
        return
    if receiving.cancelled() or receiving.exception() is not None:
        return
    msg = receiving.result()
    if isinstance(msg, (InsertRow, FlushRequest)):
        reject(msg.done, ChannelClosedError("engine stopped before serving this message"))


async def run_batch_copy_actor(actor: BatchCopyActor[Any], flush_timer_ms: int) -> None:
    """
    Serve channel messages and timer ticks until the channel closes.

    Whichever source is ready first is served; a due tick is never starved by a
    busy channel because the remaining time is recomputed on every iteration.

    The pending receive outlives a timer tick: it is awaited with `asyncio.wait`,
    which never cancels it, so a message already taken off the queue is always
    handled on a later iteration.
    """
    loop = asyncio.get_running_loop()
    period = flush_timer_ms / 1000.0
    next_tick = loop.time() + period
    log.info(
        "[ENGINE] started",
        extra={"flush_timer_ms": flush_timer_ms, "rows_per_batch": actor.rows_per_batch},
    )
    receiving: Optional["asyncio.Future[Message]"] = None
    try:
        while True:
            remaining = next_tick - loop.time()
            if remaining <= 0:
                await actor.on_timer_tick()
                next_tick = _next_tick(next_tick, period, loop.time())
                continue
            if receiving is None:
                receiving = asyncio.ensure_future(actor.channel.recv())
            done, _ = await asyncio.wait({receiving}, timeout=remaining)
            if not done:
                continue
            msg = receiving.result()
            receiving = None
            if not await actor.handle_message(msg):
                break
    except asyncio.CancelledError:
        actor.discard_pending("engine cancelled")
        raise
    finally:
        if receiving is not None:
            _abandon_receive(receiving)
        await actor.stop()


__all__ = ["BatchCopyActor", "FlushPhase", "FlushStats", "run_batch_copy_actor"]
