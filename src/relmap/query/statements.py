"""
Statement builders producing SQL text plus ordered bound parameters.

Every builder is pure: calling it twice with the same input yields equal
``Statement`` objects and nothing touches a connection.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Sequence, Tuple, Union

from ..dialects.base import Dialect
from .compiler import PredicateCompiler
from .expressions import Q


@dataclass(frozen=True)
class Statement:
    sql: str
    params: Tuple[Any, ...] = ()

    def __str__(self) -> str:
        return self.sql


@dataclass(frozen=True)
class Fragment:
    """
    Raw statement tail (ordering, limits) appended after the WHERE clause.
    """

    sql: str
    params: Tuple[Any, ...] = ()

    def __str__(self) -> str:
        return self.sql


class Sql:
    """
    Constructors for the extra fragments accepted by ``fetch``/``fetch_all``.
    """

    @staticmethod
    def order_by(*columns: str) -> Fragment:
        if not columns:
            raise ValueError("order_by() requires at least one column.")
        return Fragment("ORDER BY " + ", ".join(columns))

    @staticmethod
    def limit(count: int, offset: int | None = None) -> Fragment:
        sql = f"LIMIT {int(count)}"
        if offset is not None:
            sql += f" OFFSET {int(offset)}"
        return Fragment(sql)

    @staticmethod
    def raw(sql: str, *params: Any) -> Fragment:
        return Fragment(sql, tuple(params))


Extra = Union[Fragment, Statement, str, None]
Predicate = Union[Q, Mapping[str, Any]]


def as_fragment(extra: Extra) -> Fragment | None:
    if extra is None:
        return None
    if isinstance(extra, Fragment):
        return extra
    if isinstance(extra, Statement):
        return Fragment(extra.sql, extra.params)
    if isinstance(extra, str):
        return Fragment(extra)
    raise TypeError(f"Unsupported statement fragment: {type(extra).__name__}")


@dataclass(frozen=True)
class Join:
    table: str
    alias: str
    left_alias: str
    left_column: str
    right_column: str
    kind: str = "INNER"


class InsertBuilder:
    def __init__(self, dialect: Dialect, table: str, returning: str | None = None) -> None:
        self.dialect = dialect
        self.table = table
        self._returning = returning

    def returning(self, column: str) -> "InsertBuilder":
        return InsertBuilder(self.dialect, self.table, returning=column)

    def values(self, fields: Mapping[str, Any]) -> Statement:
        table_sql = self.dialect.format_table(self.table)
        if fields:
            columns = ", ".join(self.dialect.quote_identifier(name) for name in fields)
            placeholders = ", ".join(self.dialect.parameter_placeholder() for _ in fields)
            sql = f"INSERT INTO {table_sql} ({columns}) VALUES ({placeholders})"
        else:
            sql = self.dialect.empty_insert(table_sql)
        if self._returning and self.dialect.capabilities.supports_returning:
            sql += f" RETURNING {self.dialect.quote_identifier(self._returning)}"
        return Statement(sql, tuple(fields.values()))


class UpdateBuilder:
    def __init__(
        self,
        dialect: Dialect,
        table: str,
        fields: Mapping[str, Any] | None = None,
    ) -> None:
        self.dialect = dialect
        self.table = table
        self.fields = dict(fields or {})

    def set(self, fields: Mapping[str, Any]) -> "UpdateBuilder":
        merged = dict(self.fields)
        merged.update(fields)
        return UpdateBuilder(self.dialect, self.table, merged)

    def where(self, predicate: Predicate) -> Statement:
        if not self.fields:
            raise ValueError(f"UPDATE of '{self.table}' has no columns to set.")
        placeholder = self.dialect.parameter_placeholder()
        assignments = ", ".join(
            f"{self.dialect.quote_identifier(name)} = {placeholder}" for name in self.fields
        )
        where_sql, where_params = PredicateCompiler(self.dialect).compile(Q.coerce(predicate))
        sql = f"UPDATE {self.dialect.format_table(self.table)} SET {assignments}"
        if where_sql:
            sql += f" WHERE {where_sql}"
        return Statement(sql, tuple(self.fields.values()) + tuple(where_params))


class DeleteBuilder:
    def __init__(self, dialect: Dialect, table: str) -> None:
        self.dialect = dialect
        self.table = table

    def where(self, predicate: Predicate) -> Statement:
        where_sql, where_params = PredicateCompiler(self.dialect).compile(Q.coerce(predicate))
        sql = f"DELETE FROM {self.dialect.format_table(self.table)}"
        if where_sql:
            sql += f" WHERE {where_sql}"
        return Statement(sql, tuple(where_params))


class StatementBuilder:
    """
    Entry point for building SELECT/INSERT/UPDATE/DELETE statements in one dialect.
    """

    def __init__(self, dialect: Dialect) -> None:
        self.dialect = dialect
        self.compiler = PredicateCompiler(dialect)

    def select(
        self,
        table: str,
        columns: Sequence[Tuple[str, str]] | Sequence[str] | None = None,
        *,
        alias: str | None = None,
        joins: Iterable[Join] = (),
        where: Predicate | Sequence[Tuple[str | None, Predicate]] | None = None,
        extra: Extra = None,
    ) -> Statement:
        select_list = self._select_list(columns)
        sql_parts = [f"SELECT {select_list}", "FROM", self._table_ref(table, alias)]
        params: list[Any] = []

        for join in joins:
            left = self.compiler.column(join.left_column, join.left_alias)
            right = self.compiler.column(join.right_column, join.alias)
            sql_parts.append(
                f"{join.kind} JOIN {self._table_ref(join.table, join.alias)} ON {left} = {right}"
            )

        conditions: list[str] = []
        for predicate_alias, predicate in self._predicates(where, alias or table):
            predicate_sql, predicate_params = self.compiler.compile(Q.coerce(predicate), predicate_alias)
            if predicate_sql:
                conditions.append(predicate_sql)
                params.extend(predicate_params)
        if conditions:
            sql_parts.append("WHERE")
            if len(conditions) == 1:
                sql_parts.append(conditions[0])
            else:
                sql_parts.append(" AND ".join(f"({condition})" for condition in conditions))

        fragment = as_fragment(extra)
        if fragment is not None and fragment.sql:
            sql_parts.append(fragment.sql)
            params.extend(fragment.params)

        return Statement(" ".join(sql_parts), tuple(params))

    def insert_into(self, table: str) -> InsertBuilder:
        return InsertBuilder(self.dialect, table)

    def update(self, table: str) -> UpdateBuilder:
        return UpdateBuilder(self.dialect, table)

    def delete(self, table: str) -> DeleteBuilder:
        return DeleteBuilder(self.dialect, table)

    # Helpers -----------------------------------------------------------
    def _select_list(self, columns: Sequence[Tuple[str, str]] | Sequence[str] | None) -> str:
        if not columns:
            return "*"
        rendered = []
        for column in columns:
            if isinstance(column, tuple):
                column_alias, name = column
                rendered.append(self.compiler.column(name, column_alias))
            else:
                rendered.append(self.compiler.column(column))
        return ", ".join(rendered)

    def _table_ref(self, table: str, alias: str | None) -> str:
        table_sql = self.dialect.format_table(table)
        if alias and alias != table:
            return f"{table_sql} AS {self.dialect.quote_identifier(alias)}"
        return table_sql

    @staticmethod
    def _predicates(
        where: Predicate | Sequence[Tuple[str | None, Predicate]] | None,
        default_alias: str,
    ) -> list[Tuple[str | None, Predicate]]:
        if where is None:
            return []
        if isinstance(where, (Q, Mapping)):
            return [(default_alias, where)]
        return list(where)
