"""
Domain package for batch-copy.

Exports the row contract the engine is written against and the example
record types used by the CLI. Keep this package focused on data definitions
and validation concerns.
"""

from batch_copy.domain.models import EXAMPLE_TABLES, RequestMetric, SpotPrice, UserEvent
from batch_copy.domain.row import AbstractBatchCopyRow, BatchCopyRow, validate_row_type

__all__ = [
    "AbstractBatchCopyRow",
    "BatchCopyRow",
    "EXAMPLE_TABLES",
    "RequestMetric",
    "SpotPrice",
    "UserEvent",
    "validate_row_type",
]
