"""
Shared plumbing for adapters built on third-party DB-API drivers.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Sequence

from ..security.redaction import redact_params
from ..utils import get_logger, time_call
from ..utils.performance import resolve_slow_query_ms
from .base import (
    AdapterConfigurationError,
    AdapterConnectionError,
    AdapterError,
    AdapterExecutionError,
    ConnectionConfig,
    DatabaseAdapter,
    validate_pyformat_params,
)


@dataclass
class DriverConnection:
    connection: Any
    config: ConnectionConfig
    driver: Any


class DBAPIAdapter(DatabaseAdapter):
    """
    Base for pyformat drivers: subclasses say how to load the driver, open a
    connection, start a transaction and list a table's columns.
    """

    backend = "dbapi"
    label = "database"
    missing_driver_message = "A DB-API driver is required."
    begin_sql = "BEGIN"
    columns_sql = ""

    def __init__(self, slow_query_ms: int | None = None) -> None:
        self.dialect = self.make_dialect()
        self._state: DriverConnection | None = None
        self.logger = get_logger(f"adapters.{self.backend}")
        self.slow_query_ms = resolve_slow_query_ms(default=100, override=slow_query_ms)

    # Subclass hooks -----------------------------------------------------
    def make_dialect(self) -> Any:
        raise NotImplementedError

    def load_driver(self) -> Any:
        raise NotImplementedError

    def open(self, driver: Any, config: ConnectionConfig, options: dict[str, Any]) -> Any:
        raise NotImplementedError

    def columns_params(self, schema: str, table: str) -> tuple[Any, ...]:
        raise NotImplementedError

    # Connection management ----------------------------------------------
    def connect(self, config: ConnectionConfig) -> Any:
        driver = self.load_driver()
        if driver is None:
            raise AdapterConfigurationError(self.missing_driver_message)

        options = dict(config.options or {})
        if config.timeout and "connect_timeout" not in options:
            options["connect_timeout"] = int(config.timeout)

        self.logger.info(
            "Connecting to %s %s (autocommit=%s)",
            self.label,
            config.descriptive_label(),
            config.autocommit,
        )
        try:
            connection = self.open(driver, config, options)
        except AdapterError:
            raise
        except Exception as exc:
            raise AdapterConnectionError(f"Failed to connect to {self.label}.") from exc

        self._state = DriverConnection(connection, config, driver)
        return connection

    def close(self) -> None:
        state, self._state = self._state, None
        if state is not None:
            state.connection.close()

    def _ensure_connection(self) -> Any:
        if self._state is None:
            raise AdapterConnectionError(f"{type(self).__name__} is not connected.")
        return self._state.connection

    # Execution ----------------------------------------------------------
    def execute(self, sql: str, params: Sequence[Any] | None = None) -> Any:
        cursor = self._ensure_connection().cursor()
        params = tuple(params or ())
        validate_pyformat_params(sql, params)
        with time_call(
            f"{self.backend}.execute",
            self.logger,
            sql=sql,
            params=redact_params(params),
            threshold_ms=self.slow_query_ms,
        ):
            try:
                cursor.execute(sql, params)
            except self._driver_errors() as exc:
                raise AdapterExecutionError(f"{self.label} rejected statement: {exc}") from exc
        return cursor

    def executemany(
        self,
        sql: str,
        seq_of_params: Sequence[Sequence[Any]] | Iterable[Sequence[Any]],
    ) -> Any:
        cursor = self._ensure_connection().cursor()
        batch = [tuple(params) for params in seq_of_params]
        for params in batch:
            validate_pyformat_params(sql, params)
        with time_call(
            f"{self.backend}.executemany", self.logger, sql=sql, threshold_ms=self.slow_query_ms
        ):
            try:
                cursor.executemany(sql, batch)
            except self._driver_errors() as exc:
                raise AdapterExecutionError(f"{self.label} rejected statement: {exc}") from exc
        return cursor

    # Transactions -------------------------------------------------------
    def begin(self) -> None:
        if self._state is not None and self._state.config.autocommit:
            return
        self._ensure_connection().cursor().execute(self.begin_sql)

    def commit(self) -> None:
        self._ensure_connection().commit()

    def rollback(self) -> None:
        self._ensure_connection().rollback()

    # Introspection ------------------------------------------------------
    def table_columns(self, table: str) -> list[str] | None:
        schema, _, name = table.rpartition(".")
        cursor = self.execute(self.columns_sql, self.columns_params(schema, name))
        return [row[0] for row in cursor.fetchall()] or None

    def _driver_errors(self) -> tuple[type[BaseException], ...]:
        error = getattr(self._state.driver if self._state else None, "Error", None)
        if isinstance(error, type) and issubclass(error, BaseException):
            return (error,)
        return ()

