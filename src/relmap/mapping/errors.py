"""
Error hierarchy raised by the mapper.
"""

from __future__ import annotations

from typing import Any, List, Sequence


class MapperError(Exception):
    """Base class for mapper failures."""


class ArgumentError(MapperError, TypeError):
    """Raised when the mapper or a relation receives an unusable argument."""


class RelationInferenceError(MapperError):
    """Raised when no join can be derived between two tables of a relation."""


class UnknownTableError(RelationInferenceError):
    """Raised when a relation names a table the store does not have."""

    def __init__(self, table: str) -> None:
        self.table = table
        super().__init__(f"Table '{table}' does not exist.")


class StatementExecutionError(MapperError):
    """
    Wraps any failure raised while executing a statement.

    ``params`` holds the redacted parameters; the driver error is chained as
    ``__cause__``.
    """

    def __init__(self, sql: str, params: Sequence[Any], message: str | None = None) -> None:
        self.sql = sql
        self.params: List[Any] = list(params)
        super().__init__(message or f"Statement failed: {sql}")


class CircularDependencyError(MapperError):
    """Raised when pending writes reference each other in a cycle."""

    def __init__(self, tables: Sequence[str]) -> None:
        self.tables = list(tables)
        chain = " -> ".join(self.tables)
        super().__init__(f"Circular dependency between pending writes: {chain}")
