"""
PostgreSQL database adapter implementation.
"""

from __future__ import annotations

from typing import Any

from ..dialects.postgres import PostgresDialect
from .base import AdapterExecutionError, ConnectionConfig
from .dbapi import DBAPIAdapter


def _load_driver():
    try:
        import psycopg

        return psycopg
    except ImportError:
        return None


class PostgresAdapter(DBAPIAdapter):
    """
    Adapter wrapping the psycopg PostgreSQL driver.

    Generated keys come back through ``INSERT ... RETURNING``, so
    :meth:`last_insert_id` reads the first row of the insert cursor.
    """

    backend = "postgres"
    label = "PostgreSQL"
    missing_driver_message = "psycopg is required to use PostgresAdapter."
    columns_sql = (
        "SELECT column_name FROM information_schema.columns "
        "WHERE table_schema = %s AND table_name = %s ORDER BY ordinal_position"
    )

    def make_dialect(self) -> PostgresDialect:
        return PostgresDialect()

    def load_driver(self) -> Any:
        return _load_driver()

    def open(self, driver: Any, config: ConnectionConfig, options: dict[str, Any]) -> Any:
        connection = driver.connect(config.url, **options)
        connection.autocommit = bool(config.autocommit)
        if config.isolation_level:
            connection.isolation_level = config.isolation_level
        return connection

    def columns_params(self, schema: str, table: str) -> tuple[Any, ...]:
        return (schema or "public", table)

    def last_insert_id(self, cursor: Any, table: str, pk_column: str) -> Any:
        row = cursor.fetchone()
        if not row:
            raise AdapterExecutionError(
                f"No RETURNING data available for last insert id of {table}.{pk_column}."
            )
        return row[0]
