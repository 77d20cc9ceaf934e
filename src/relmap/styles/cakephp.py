"""
CakePHP naming style: plural tables (``posts``), singular ``post_id`` foreign
keys and alphabetically ordered junction tables (``categories_posts``).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

from ..utils.naming import camel_to_snake, pluralize, singularize, snake_to_camel

_SUFFIX = "_id"


def _singular_table(table: str) -> str:
    head, _, last = table.rpartition("_")
    singular = singularize(last)
    return f"{head}_{singular}" if head else singular


def _plural_table(name: str) -> str:
    head, _, last = name.rpartition("_")
    plural = pluralize(last)
    return f"{head}_{plural}" if head else plural


@dataclass(frozen=True)
class CakePHP:
    name: ClassVar[str] = "cakephp"

    def table_to_entity(self, name: str) -> str:
        return snake_to_camel(_singular_table(name))

    def entity_to_table(self, name: str) -> str:
        return _plural_table(camel_to_snake(name))

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
        return _plural_table(name[: -len(_SUFFIX)])

    def foreign_from_table(self, table: str) -> str:
        return f"{_singular_table(table)}{_SUFFIX}"

    def many_from_left_right(self, left: str, right: str) -> str:
        return "_".join(sorted((left, right)))
