"""
MySQL database adapter implementation.
"""

from __future__ import annotations

from typing import Any

from ..dialects.mysql import MySQLDialect
from .base import AdapterConfigurationError, ConnectionConfig
from .dbapi import DBAPIAdapter


def _load_driver():
    try:
        import pymysql  # type: ignore[import-untyped]

        return pymysql
    except ImportError:
        try:
            import MySQLdb

            return MySQLdb
        except ImportError:
            return None


class MySQLAdapter(DBAPIAdapter):
    """
    Adapter wrapping a MySQL DB-API driver (PyMySQL or mysqlclient).
    """

    backend = "mysql"
    label = "MySQL"
    missing_driver_message = "PyMySQL or mysqlclient is required to use MySQLAdapter."
    begin_sql = "START TRANSACTION"
    columns_sql = (
        "SELECT column_name FROM information_schema.columns "
        "WHERE table_schema = COALESCE(%s, DATABASE()) AND table_name = %s "
        "ORDER BY ordinal_position"
    )

    def make_dialect(self) -> MySQLDialect:
        return MySQLDialect()

    def load_driver(self) -> Any:
        return _load_driver()

    def open(self, driver: Any, config: ConnectionConfig, options: dict[str, Any]) -> Any:
        dsn = config.dsn
        if dsn is None:
            raise AdapterConfigurationError(
                "ConnectionConfig must be built from a DSN for MySQL connections."
            )
        connect_kwargs = {
            "host": dsn.host or "localhost",
            "user": dsn.username,
            "password": dsn.password,
            "database": dsn.database,
            **options,
        }
        if dsn.port:
            connect_kwargs["port"] = dsn.port
        connection = driver.connect(**connect_kwargs)
        if callable(getattr(connection, "autocommit", None)):
            connection.autocommit(config.autocommit)
        return connection

    def columns_params(self, schema: str, table: str) -> tuple[Any, ...]:
        return (schema or None, table)

    def last_insert_id(self, cursor: Any, table: str, pk_column: str) -> Any:
        return cursor.lastrowid
