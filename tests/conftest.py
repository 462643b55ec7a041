"""
Pytest configuration for batch-copy.

Provides fixtures for:
- Database connection management
- A scratch `testtable` for integration tests
- Settings override for integration tests
"""

from __future__ import annotations

import os
from typing import Generator

import psycopg
import pytest

from batch_copy.config import DEFAULT_DATABASE_URL, Configuration

TEST_TABLE_DDL = "CREATE TABLE testtable (a TEXT, b BIGINT)"


@pytest.fixture(scope="session")
def test_dsn() -> str:
    """
    Database connection string for tests.

    Can be overridden via DATABASE_URL in CI or local testing.
    """
    return os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)


@pytest.fixture(scope="session")
def db_connection_available(test_dsn: str) -> bool:
    """
    Check if database is reachable.

    Used to conditionally skip integration tests when DB is not available.
    """
    try:
        with psycopg.connect(test_dsn, connect_timeout=5) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1;")
                cur.fetchone()
        return True
    except psycopg.Error:
        return False


@pytest.fixture(scope="session")
def db_connection(
    test_dsn: str, db_connection_available: bool
) -> Generator[psycopg.Connection, None, None]:
    """
    Provide a session-scoped autocommit connection for integration tests.

    Skips tests if database is not available.
    """
    if not db_connection_available:
        pytest.skip("Database not available for integration tests")

    conn = psycopg.connect(test_dsn, autocommit=True)
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture(scope="function")
def clean_test_table(db_connection: psycopg.Connection) -> Generator[None, None, None]:
    """
    Recreate an empty `testtable (a TEXT, b BIGINT)` for each test function.
    """
    with db_connection.cursor() as cur:
        cur.execute("DROP TABLE IF EXISTS testtable;")
        cur.execute(TEST_TABLE_DDL)
    yield
    with db_connection.cursor() as cur:
        cur.execute("DROP TABLE IF EXISTS testtable;")


@pytest.fixture(scope="function")
def integration_config(test_dsn: str) -> Configuration:
    """
    Small batches and a long timer so tests decide when rows are written.
    """
    return Configuration(database_url=test_dsn, flush_timer_ms=60_000)


@pytest.fixture(scope="function")
def table_rows(db_connection: psycopg.Connection):
    """
    Return a callable reading back every `testtable` row ordered by `b`.
    """

    def _read() -> list[tuple]:
        with db_connection.cursor() as cur:
            cur.execute("SELECT a, b FROM testtable ORDER BY b;")
            return cur.fetchall()

    return _read
