"""
In-memory stand-ins for the psycopg async pool, connection, cursor and COPY.

The fakes keep the psycopg call shapes the engine relies on:
``pool.connection()`` -> ``conn.transaction()`` -> ``conn.cursor()`` ->
``cur.copy(statement)`` -> ``copy.set_types()`` / ``copy.write_row()``.
Rows written through COPY only reach ``FakeDatabase.committed`` when the
transaction exits cleanly.
"""

from __future__ import annotations

import asyncio
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from typing import Any, ClassVar, List, Optional, Sequence

import pytest

from batch_copy.config import Configuration
from batch_copy.domain.row import AbstractBatchCopyRow


@dataclass(frozen=True)
class SampleRow(AbstractBatchCopyRow):
    CHECK_STATEMENT: ClassVar[str] = "SELECT a, b FROM testtable LIMIT 0"
    COPY_STATEMENT: ClassVar[str] = "COPY testtable (a, b) FROM STDIN (FORMAT binary)"
    TYPES: ClassVar[Sequence[str]] = ("text", "int8")

    a: str
    b: int

    def copy_values(self) -> Sequence[Any]:
        return (self.a, self.b)


@dataclass(frozen=True)
class ExplodingRow(SampleRow):
    """Encoding fails for b == 3."""

    def copy_values(self) -> Sequence[Any]:
        if self.b == 3:
            raise ValueError("cannot encode row 3")
        return (self.a, self.b)


@dataclass(frozen=True)
class ShortRow(SampleRow):
    """Returns fewer values than declared column types."""

    def copy_values(self) -> Sequence[Any]:
        return (self.a,)


class FakeDatabase:
    def __init__(self) -> None:
        self.committed: List[tuple] = []
        self.copy_statements: List[str] = []
        self.types: Optional[List[Any]] = None
        self.executed: List[str] = []
        self.check_rows: List[tuple] = []
        self.check_error: Optional[Exception] = None
        self.reject_copy: Optional[Exception] = None
        self.fail_commit: Optional[Exception] = None
        self.acquire_error: Optional[Exception] = None
        self.gate: Optional[asyncio.Event] = None
        self.acquisitions = 0
        self.in_use = 0
        self.max_in_use = 0
        self.commits = 0
        self.rollbacks = 0


class _FakeCopy:
    def __init__(self, db: FakeDatabase) -> None:
        self._db = db
        self.rows: List[tuple] = []

    def set_types(self, types: Sequence[Any]) -> None:
        self._db.types = list(types)

    async def write_row(self, row: Sequence[Any]) -> None:
        self.rows.append(tuple(row))


class _FakeCopyContext(AbstractAsyncContextManager[_FakeCopy]):
    def __init__(self, conn: _FakeConnection, statement: str) -> None:
        self._conn = conn
        self._statement = statement
        self._copy = _FakeCopy(conn.db)

    async def __aenter__(self) -> _FakeCopy:
        self._conn.db.copy_statements.append(self._statement)
        if self._conn.db.reject_copy is not None:
            raise self._conn.db.reject_copy
        return self._copy

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        del exc_type, tb
        if exc is None:
            self._conn.staged.extend(self._copy.rows)
        return False


class _FakeCursor(AbstractAsyncContextManager["_FakeCursor"]):
    def __init__(self, conn: _FakeConnection) -> None:
        self._conn = conn
        self.description: Optional[tuple] = None

    async def __aenter__(self) -> _FakeCursor:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        del exc_type, exc, tb
        return False

    def copy(self, statement: str) -> _FakeCopyContext:
        return _FakeCopyContext(self._conn, statement)

    async def execute(self, statement: str) -> _FakeCursor:
        self._conn.db.executed.append(statement)
        if self._conn.db.check_error is not None:
            raise self._conn.db.check_error
        self.description = (("a",), ("b",))
        return self

    async def fetchall(self) -> List[tuple]:
        return list(self._conn.db.check_rows)


class _FakeTransaction(AbstractAsyncContextManager[None]):
    def __init__(self, conn: _FakeConnection) -> None:
        self._conn = conn

    async def __aenter__(self) -> None:
        self._conn.staged = []

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        del exc_type, tb
        db = self._conn.db
        if exc is None and db.fail_commit is not None:
            self._conn.staged = []
            db.rollbacks += 1
            raise db.fail_commit
        if exc is None:
            db.committed.extend(self._conn.staged)
            db.commits += 1
        else:
            db.rollbacks += 1
        self._conn.staged = []
        return False


class _FakeConnection:
    def __init__(self, db: FakeDatabase) -> None:
        self.db = db
        self.staged: List[tuple] = []

    def transaction(self) -> _FakeTransaction:
        return _FakeTransaction(self)

    def cursor(self) -> _FakeCursor:
        return _FakeCursor(self)


class _AcquireContext(AbstractAsyncContextManager[_FakeConnection]):
    def __init__(self, pool: FakePool) -> None:
        self._pool = pool

    async def __aenter__(self) -> _FakeConnection:
        db = self._pool.db
        if self._pool.closed:
            raise RuntimeError("pool is already closed")
        if db.gate is not None:
            await db.gate.wait()
        if db.acquire_error is not None:
            raise db.acquire_error
        db.acquisitions += 1
        db.in_use += 1
        db.max_in_use = max(db.max_in_use, db.in_use)
        return _FakeConnection(db)

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        del exc_type, exc, tb
        self._pool.db.in_use -= 1
        return False


class FakePool:
    def __init__(self) -> None:
        self.db = FakeDatabase()
        self.closed = False
        self.close_calls = 0

    def connection(self) -> _AcquireContext:
        return _AcquireContext(self)

    async def close(self) -> None:
        self.close_calls += 1
        self.closed = True


@pytest.fixture
def fake_pool() -> FakePool:
    return FakePool()


@pytest.fixture
def row_type() -> type[SampleRow]:
    return SampleRow


@pytest.fixture
def exploding_row_type() -> type[ExplodingRow]:
    return ExplodingRow


@pytest.fixture
def short_row_type() -> type[ShortRow]:
    return ShortRow


@pytest.fixture
def engine_config() -> Configuration:
    """Timer far enough out that it never fires unless a test asks for it."""
    return Configuration(database_url="postgresql://test", flush_timer_ms=60_000)
