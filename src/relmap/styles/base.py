"""
Naming style capability interface.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class Style(Protocol):
    """
    Pure naming conventions used to infer entities, keys and joins.

    Implementations must be deterministic; the mapper may swap its style at
    any time between operations.
    """

    def table_to_entity(self, name: str) -> str: ...

    def entity_to_table(self, name: str) -> str: ...

    def column_to_property(self, name: str) -> str: ...

    def property_to_column(self, name: str) -> str: ...

    def primary_from_table(self, table: str) -> str: ...

    def is_foreign_column(self, name: str) -> bool: ...

    def table_from_foreign_column(self, name: str) -> str | None: ...

    def foreign_from_table(self, table: str) -> str: ...

    def many_from_left_right(self, left: str, right: str) -> str: ...
