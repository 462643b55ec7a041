"""
Database connection factory utilities for batch-copy.

Builds the async connection pool an engine writes through and runs the
pre-flight table check. Also offers a retrying one-off blocking connection for
setup work (CLI, integration fixtures); the engine itself never retries.
"""

from __future__ import annotations

from typing import Any, List

import psycopg
from psycopg import Connection
from psycopg_pool import AsyncConnectionPool, PoolTimeout
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from batch_copy.config import Configuration
from batch_copy.errors import BadConnectionError, BadTableError
from batch_copy.utils.logging import get_logger

log = get_logger(__name__)


async def open_pool(config: Configuration) -> AsyncConnectionPool:
    """
    Create and open the internal database pool.

    Connections are checked on checkout, recycled after
    `pool_max_lifetime_sec`, and waited for at most `pool_connect_timeout_sec`.

    Parameters
    ----------
    config : Configuration
        Engine configuration.

    Returns
    -------
    AsyncConnectionPool
        An open pool holding at least one live connection.

    Raises
    ------
    BadConnectionError
        If no connection could be established within the connect timeout.
    """
    pool = AsyncConnectionPool(
        conninfo=config.database_url,
        min_size=1,
        max_size=config.pool_max_size,
        max_lifetime=float(config.pool_max_lifetime_sec),
        timeout=float(config.pool_connect_timeout_sec),
        check=AsyncConnectionPool.check_connection,
        name="batch-copy",
        open=False,
    )
    try:
        await pool.open(wait=True, timeout=float(config.pool_connect_timeout_sec))
    except PoolTimeout as exc:
        await pool.close()
        raise BadConnectionError() from exc
    log.debug(
        "[POOL] opened",
        extra={"max_size": config.pool_max_size, "timeout": config.pool_connect_timeout_sec},
    )
    return pool


async def check_table(pool: AsyncConnectionPool, row_type: type) -> None:
    """
    Run the row type's check statement and bail in case of fatal errors.

    The statement must succeed and return no rows.

    Raises
    ------
    BadConnectionError
        If no pooled connection is available.
    BadTableError
        If the statement fails or returns rows.
    """
    statement: str = row_type.CHECK_STATEMENT  # type: ignore[attr-defined]
    try:
        async with pool.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(statement)
                rows: List[Any] = await cur.fetchall() if cur.description is not None else []
    except PoolTimeout as exc:
        raise BadConnectionError() from exc
    except psycopg.Error as exc:
        raise BadTableError(f"check statement failed for {row_type.__name__}: {exc}") from exc
    if rows:
        raise BadTableError(
            f"check statement for {row_type.__name__} returned {len(rows)} row(s), expected none"
        )


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((psycopg.OperationalError, psycopg.InterfaceError)),
    reraise=True,
)
def get_sync_connection(dsn: str) -> Connection:
    """
    Acquire a dedicated synchronous connection with automatic retry.

    Retries up to 3 times with exponential backoff for transient connection errors.
    Use this for one-off setup work such as creating tables.

    Raises
    ------
    psycopg.OperationalError
        If connection fails after all retry attempts.
    """
    return psycopg.connect(dsn)


__all__ = ["check_table", "get_sync_connection", "open_pool"]
