"""
The row contract every record type must implement to be bulk loaded.

A record type describes its table through three class attributes and turns
one instance into an ordered sequence of column values. The engine is written
once against this interface and never inspects concrete record types.
"""

from __future__ import annotations

import abc
from typing import Any, ClassVar, Protocol, Sequence, runtime_checkable

from batch_copy.errors import ConfigurationError


@runtime_checkable
class BatchCopyRow(Protocol):
    """
    Translate a record type to PostgreSQL binary COPY details.

    Attributes
    ----------
    CHECK_STATEMENT : str
        Pre-flight query, e.g. ``SELECT a, b FROM t LIMIT 0``. It must succeed
        and return no rows for an engine to start.
    COPY_STATEMENT : str
        ``COPY t (a, b) FROM STDIN (FORMAT binary)``.
    TYPES : Sequence[str | int]
        Column type names or OIDs, in the same order as the COPY column list.
    """

    CHECK_STATEMENT: ClassVar[str]
    COPY_STATEMENT: ClassVar[str]
    TYPES: ClassVar[Sequence[str | int]]

    def copy_values(self) -> Sequence[Any]:
        """
        Return this record's column values, one per entry in ``TYPES``.
        """
        ...


class AbstractBatchCopyRow(abc.ABC):
    """
    Optional ABC helper for class-based records.

    Subclasses set the three class attributes and implement `copy_values`.
    """

    CHECK_STATEMENT: ClassVar[str]
    COPY_STATEMENT: ClassVar[str]
    TYPES: ClassVar[Sequence[str | int]]

    @abc.abstractmethod
    def copy_values(self) -> Sequence[Any]:  # pragma: no cover - interface only
        """Return the ordered column values."""
        raise NotImplementedError


def validate_row_type(row_type: type) -> None:
    """
    Check that `row_type` carries every part of the row contract.

    Raises
    ------
    ConfigurationError
        If a statement is missing or empty, ``TYPES`` is empty, or
        ``copy_values`` is not callable.
    """
    name = getattr(row_type, "__name__", repr(row_type))
    for attr in ("CHECK_STATEMENT", "COPY_STATEMENT"):
        value = getattr(row_type, attr, None)
        if not isinstance(value, str) or not value.strip():
            raise ConfigurationError(f"{name}.{attr} must be a non-empty string")

    types = getattr(row_type, "TYPES", None)
    if isinstance(types, (str, bytes)) or not isinstance(types, Sequence) or not types:
        raise ConfigurationError(f"{name}.TYPES must be a non-empty sequence of type tags")

    if not callable(getattr(row_type, "copy_values", None)):
        raise ConfigurationError(f"{name} must define copy_values()")


__all__ = ["AbstractBatchCopyRow", "BatchCopyRow", "validate_row_type"]
