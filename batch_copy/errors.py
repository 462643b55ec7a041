"""
Error taxonomy for batch-copy.

Only construction-time failures and "channel closed" ever reach callers.
Everything that goes wrong while a batch is being written is logged by the
engine and reported as a flush of zero rows instead.
"""

from __future__ import annotations


class BatchCopyError(Exception):
    """Base class for every error raised by this package."""


class BatchCopyDatabaseError(BatchCopyError):
    """The database could not be prepared for bulk loading."""


class BadConnectionError(BatchCopyDatabaseError):
    """No pooled connection could be established within the connect timeout."""

    def __init__(self, message: str = "Database connection is not valid, timeout reached.") -> None:
        super().__init__(message)


class BadTableError(BatchCopyDatabaseError):
    """The row type's check statement failed or the table shape does not match."""


class ConfigurationError(BatchCopyError, ValueError):
    """A configuration value or row type cannot be used to start an engine."""


class ChannelClosedError(BatchCopyError, RuntimeError):
    """The engine is gone; the handle can no longer deliver messages."""


__all__ = [
    "BatchCopyError",
    "BatchCopyDatabaseError",
    "BadConnectionError",
    "BadTableError",
    "ConfigurationError",
    "ChannelClosedError",
]
