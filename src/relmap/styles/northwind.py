"""
NorthWind naming style: ``Posts`` tables, ``PostID`` keys and foreign keys,
``PostCategories`` junction tables.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

from ..utils.naming import pluralize, singularize

_SUFFIX = "ID"


@dataclass(frozen=True)
class NorthWind:
    name: ClassVar[str] = "northwind"

    def table_to_entity(self, name: str) -> str:
        return singularize(name)

    def entity_to_table(self, name: str) -> str:
        return pluralize(name)

    def column_to_property(self, name: str) -> str:
        return name

    def property_to_column(self, name: str) -> str:
        return name

    def primary_from_table(self, table: str) -> str:
        return f"{singularize(table)}{_SUFFIX}"

    def is_foreign_column(self, name: str) -> bool:
        return len(name) > len(_SUFFIX) and name.endswith(_SUFFIX)

    def table_from_foreign_column(self, name: str) -> str | None:
        if not self.is_foreign_column(name):
            return None
        return pluralize(name[: -len(_SUFFIX)])

    def foreign_from_table(self, table: str) -> str:
        return self.primary_from_table(table)

    def many_from_left_right(self, left: str, right: str) -> str:
        return f"{singularize(left)}{right}"
