"""
SQL compilation of predicate expressions.
"""

from __future__ import annotations

from typing import Any, List, Tuple

from ..dialects.base import Dialect
from .expressions import Q


LOOKUP_OPERATORS = {
    "exact": "=",
    "ne": "<>",
    "iexact": "LIKE",
    "gt": ">",
    "gte": ">=",
    "lt": "<",
    "lte": "<=",
    "contains": "LIKE",
    "in": "IN",
}


class PredicateCompiler:
    """
    Compile ``Q`` trees into WHERE fragments, optionally qualifying columns
    with a table alias.
    """

    def __init__(self, dialect: Dialect) -> None:
        self.dialect = dialect

    def compile(self, q: Q, alias: str | None = None) -> Tuple[str, List[Any]]:
        if not q.children:
            return "", []

        parts: List[str] = []
        params: List[Any] = []

        for child in q.children:
            if isinstance(child, Q):
                child_sql, child_params = self.compile(child, alias)
                if child_sql:
                    parts.append(f"({child_sql})")
                    params.extend(child_params)
            elif isinstance(child, tuple):
                field_lookup, value = child
                sql, child_params = self._compile_lookup(field_lookup, value, alias)
                parts.append(sql)
                params.extend(child_params)

        if not parts:
            return "", []

        separator = f" {q.connector} "
        sql = separator.join(parts)
        if q.negated:
            sql = f"NOT ({sql})"
        return sql, params

    def column(self, name: str, alias: str | None = None) -> str:
        quoted = self.dialect.quote_identifier(name)
        if alias:
            return f"{self.dialect.quote_identifier(alias)}.{quoted}"
        return quoted

    def _compile_lookup(self, field_lookup: str, value: Any, alias: str | None) -> Tuple[str, List[Any]]:
        if "__" in field_lookup:
            field_name, lookup = field_lookup.rsplit("__", 1)
            if lookup not in LOOKUP_OPERATORS:
                field_name, lookup = field_lookup, "exact"
        else:
            field_name, lookup = field_lookup, "exact"

        column = self.column(field_name, alias)
        placeholder = self.dialect.parameter_placeholder()

        if value is None:
            if lookup == "exact":
                return f"{column} IS NULL", []
            if lookup == "ne":
                return f"{column} IS NOT NULL", []
            raise ValueError("NULL comparison only supported for equality.")

        if lookup == "in":
            values = list(value)
            if not values:
                return "1 = 0", []
            placeholders = ", ".join(placeholder for _ in values)
            return f"{column} IN ({placeholders})", values

        operator = LOOKUP_OPERATORS[lookup]
        if lookup == "contains":
            value = f"%{value}%"
        if lookup == "iexact":
            value = value.lower()
            column = f"LOWER({column})"

        return f"{column} {operator} {placeholder}", [value]
