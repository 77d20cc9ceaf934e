"""
SQLite database adapter implementation.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from typing import Any, Iterable, Sequence

from ..dialects.sqlite import SQLiteDialect
from ..security.redaction import redact_params
from ..utils import get_logger, time_call
from ..utils.performance import resolve_slow_query_ms
from .base import (
    AdapterConnectionError,
    AdapterExecutionError,
    AdapterTransactionError,
    ConnectionConfig,
    DatabaseAdapter,
)

_BEGIN_MODES = {"DEFERRED", "IMMEDIATE", "EXCLUSIVE"}


@dataclass(slots=True)
class SQLiteConnectionState:
    connection: sqlite3.Connection
    owned: bool = True
    begin_mode: str = ""


class SQLiteAdapter(DatabaseAdapter):
    """
    Adapter wrapping the Python stdlib sqlite3 module.

    Connections run with ``isolation_level=None`` so the driver never opens
    implicit transactions; ``begin``/``commit``/``rollback`` are explicit.
    An existing ``sqlite3.Connection`` can be wrapped; it is switched to the
    same mode (which commits anything it had pending) and is not closed by
    :meth:`close`.
    """

    def __init__(
        self,
        connection: sqlite3.Connection | None = None,
        *,
        slow_query_ms: int | None = None,
    ) -> None:
        self.dialect = SQLiteDialect()
        self._state: SQLiteConnectionState | None = None
        self.logger = get_logger("adapters.sqlite")
        self.slow_query_ms = resolve_slow_query_ms(default=100, override=slow_query_ms)
        if connection is not None:
            connection.isolation_level = None
            self._state = SQLiteConnectionState(connection, owned=False)

    # ------------------------------------------------------------------ #
    # Connection management
    # ------------------------------------------------------------------ #
    def connect(self, config: ConnectionConfig) -> sqlite3.Connection:
        path = self._normalize_path(config.url)
        timeout = config.timeout if config.timeout is not None else 5.0
        begin_mode = (config.isolation_level or "").upper()
        if begin_mode and begin_mode not in _BEGIN_MODES:
            raise AdapterConnectionError(
                f"Unsupported SQLite isolation level {config.isolation_level!r}; "
                f"expected one of {sorted(_BEGIN_MODES)}."
            )

        try:
            connection = sqlite3.connect(
                path,
                isolation_level=None,
                timeout=timeout,
                check_same_thread=False,
            )
        except sqlite3.Error as exc:
            raise AdapterConnectionError(f"Failed to open SQLite database {path!r}.") from exc
        connection.row_factory = sqlite3.Row
        connection.execute("PRAGMA foreign_keys = ON")

        self.logger.debug("Opened SQLite database %s", config.descriptive_label())
        self._state = SQLiteConnectionState(connection, owned=True, begin_mode=begin_mode)
        return connection

    def close(self) -> None:
        if self._state:
            if self._state.owned:
                self._state.connection.close()
            self._state = None

    @property
    def connection(self) -> sqlite3.Connection:
        return self._ensure_connection()

    def _ensure_connection(self) -> sqlite3.Connection:
        if not self._state:
            raise AdapterConnectionError("SQLiteAdapter is not connected.")
        return self._state.connection

    # ------------------------------------------------------------------ #
    # Execution helpers
    # ------------------------------------------------------------------ #
    def execute(self, sql: str, params: Sequence[Any] | None = None) -> sqlite3.Cursor:
        connection = self._ensure_connection()
        cursor = connection.cursor()
        params = tuple(params or ())
        with time_call(
            "sqlite.execute",
            self.logger,
            sql=sql,
            params=redact_params(params),
            threshold_ms=self.slow_query_ms,
        ):
            try:
                cursor.execute(sql, params)
            except sqlite3.Error as exc:
                raise AdapterExecutionError(f"SQLite rejected statement: {exc}") from exc
        return cursor

    def executemany(
        self, sql: str, seq_of_params: Sequence[Sequence[Any]] | Iterable[Sequence[Any]]
    ) -> sqlite3.Cursor:
        connection = self._ensure_connection()
        cursor = connection.cursor()
        with time_call("sqlite.executemany", self.logger, sql=sql, threshold_ms=self.slow_query_ms):
            try:
                cursor.executemany(sql, seq_of_params)
            except sqlite3.Error as exc:
                raise AdapterExecutionError(f"SQLite rejected statement: {exc}") from exc
        return cursor

    # ------------------------------------------------------------------ #
    # Transactions
    # ------------------------------------------------------------------ #
    def begin(self) -> None:
        connection = self._ensure_connection()
        mode = self._state.begin_mode if self._state else ""
        statement = f"BEGIN {mode}".strip()
        try:
            connection.execute(statement)
        except sqlite3.Error as exc:
            raise AdapterTransactionError(f"Could not begin transaction: {exc}") from exc

    def commit(self) -> None:
        connection = self._ensure_connection()
        try:
            connection.commit()
        except sqlite3.Error as exc:
            raise AdapterTransactionError(f"Could not commit transaction: {exc}") from exc

    def rollback(self) -> None:
        connection = self._ensure_connection()
        connection.rollback()

    # ------------------------------------------------------------------ #
    # Introspection
    # ------------------------------------------------------------------ #
    def last_insert_id(self, cursor: sqlite3.Cursor, table: str, pk_column: str) -> Any:
        return cursor.lastrowid

    def table_columns(self, table: str) -> list[str] | None:
        connection = self._ensure_connection()
        rows = connection.execute(
            f"PRAGMA table_info({self.dialect.quote_identifier(table)})"
        ).fetchall()
        if not rows:
            return None
        return [row[1] for row in rows]

    @staticmethod
    def _normalize_path(url: str) -> str:
        if url in ("sqlite://", "sqlite:///:memory:", ":memory:"):
            return ":memory:"
        prefix = "sqlite:///"
        if url.startswith(prefix):
            return url[len(prefix) :]
        return url
