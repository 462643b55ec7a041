"""
Infrastructure package for batch-copy.

Centralizes database connectivity concerns (pool construction, pre-flight
checks, one-off connections). Keep this layer focused on I/O and resource
management, decoupled from the engine's batching logic.
"""

from batch_copy.infrastructure.db_factory import check_table, get_sync_connection, open_pool

__all__ = [
    "check_table",
    "get_sync_connection",
    "open_pool",
]
