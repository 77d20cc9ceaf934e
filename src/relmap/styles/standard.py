"""
Standard naming style: ``post_category`` tables, ``id`` keys, ``post_id`` foreign keys.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

from ..utils.naming import camel_to_snake, snake_to_camel

_SUFFIX = "_id"


@dataclass(frozen=True)
class Standard:
    name: ClassVar[str] = "standard"

    def table_to_entity(self, name: str) -> str:
        return snake_to_camel(name)

    def entity_to_table(self, name: str) -> str:
        return camel_to_snake(name)

    def column_to_property(self, name: str) -> str:
        return name

    def property_to_column(self, name: str) -> str:
        return name

    def primary_from_table(self, table: str) -> str:
        return "id"

    def is_foreign_column(self, name: str) -> bool:
        return len(name) > len(_SUFFIX) and name.endswith(_SUFFIX)

    def table_from_foreign_column(self, name: str) -> str | None:
        if not self.is_foreign_column(name):
            return None
        return name[: -len(_SUFFIX)]

    def foreign_from_table(self, table: str) -> str:
        return f"{table}{_SUFFIX}"

    def many_from_left_right(self, left: str, right: str) -> str:
        return f"{left}_{right}"
