"""
DDL helpers used to lay out tables for examples and tests.
"""

from __future__ import annotations

from typing import List, Mapping, Sequence

from ..dialects.base import Dialect
from ..utils import get_logger


class SchemaBuilder:
    """
    Produces dialect-specific CREATE/DROP statements from column definitions.
    """

    def __init__(self, dialect: Dialect) -> None:
        self.dialect = dialect
        self.logger = get_logger("schema.builder")

    def create_table_sql(
        self,
        table: str,
        columns: Mapping[str, str],
        *,
        unique: Sequence[Sequence[str]] = (),
        if_not_exists: bool = True,
    ) -> str:
        """
        ``columns`` maps each column name to its type and constraints, e.g.
        ``{"id": "INTEGER PRIMARY KEY", "title": "TEXT NOT NULL"}``.
        """

        if not columns:
            raise ValueError(f"Table '{table}' needs at least one column.")
        pieces: List[str] = [
            f"{self.dialect.quote_identifier(name)} {definition}".rstrip()
            for name, definition in columns.items()
        ]
        for group in unique:
            quoted = ", ".join(self.dialect.quote_identifier(name) for name in group)
            pieces.append(f"UNIQUE ({quoted})")
        guard = "IF NOT EXISTS " if if_not_exists else ""
        return f"CREATE TABLE {guard}{self.dialect.format_table(table)} ({', '.join(pieces)})"

    def drop_table_sql(self, table: str, *, force: bool = False) -> str:
        table_sql = self.dialect.format_table(table)
        if not force:
            raise RuntimeError(
                f"Dropping {table_sql} requires explicit confirmation (pass force=True)."
            )
        self.logger.warning("DROP TABLE generated for %s", table_sql)
        return f"DROP TABLE IF EXISTS {table_sql}"
