"""
Utilities package for batch-copy.

Exports shared helpers for logging and profiling. Keep this package
lightweight and free of engine-specific logic.
"""

from batch_copy.utils.logging import configure_logging, get_logger
from batch_copy.utils.profiler import ProfileStats, profile_block

__all__ = [
    "configure_logging",
    "get_logger",
    "ProfileStats",
    "profile_block",
]
