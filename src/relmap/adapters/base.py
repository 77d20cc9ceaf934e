"""
Adapter protocol definitions and connection configuration for relmap.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Protocol, Sequence

from ..dialects.base import Dialect
from ..security.dsns import DSNConfig, parse_dsn


class AdapterError(RuntimeError):
    """Base error for adapter-related failures."""


class AdapterConfigurationError(AdapterError):
    """Raised when configuration or required dependencies are invalid."""


class AdapterConnectionError(AdapterError):
    """Raised when establishing or using a connection fails."""


class AdapterExecutionError(AdapterError):
    """Raised when SQL execution or parameter validation fails."""


class AdapterTransactionError(AdapterError):
    """Raised when transaction operations fail."""


_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _pop_bool(query: dict[str, str], key: str) -> bool | None:
    if key not in query:
        return None
    value = query.pop(key)
    normalized = value.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    raise AdapterConfigurationError(f"Invalid boolean value for '{key}': {value!r}")


def _pop_number(query: dict[str, str], key: str, cast: type) -> Any:
    if key not in query:
        return None
    value = query.pop(key)
    try:
        return cast(value)
    except ValueError as exc:
        raise AdapterConfigurationError(
            f"Invalid {cast.__name__} value for '{key}': {value!r}"
        ) from exc


@dataclass
class ConnectionConfig:
    """
    Normalized connection configuration for adapters.
    """

    url: str
    autocommit: bool = False
    isolation_level: str | None = None
    timeout: float | None = None
    options: dict[str, Any] | None = None
    dsn: DSNConfig | None = None
    source: str | None = None

    @classmethod
    def from_dsn(cls, dsn: str, **kwargs: Any) -> "ConnectionConfig":
        """
        Build a connection config by parsing the DSN string.

        ``autocommit``, ``timeout`` and ``isolation_level`` are read from the
        query string; every other query parameter is passed to the driver.
        Keyword arguments override what the DSN says.
        """

        parsed = parse_dsn(dsn)
        query = dict(parsed.query)

        parsed_autocommit = _pop_bool(query, "autocommit")
        parsed_timeout = _pop_number(query, "timeout", float)
        parsed_isolation_level = query.pop("isolation_level", None)
        connect_timeout = _pop_number(query, "connect_timeout", int)

        options: dict[str, Any] = dict(query)
        if connect_timeout is not None:
            options["connect_timeout"] = connect_timeout
        options.update(kwargs.pop("options", None) or {})

        autocommit = kwargs.pop("autocommit", parsed_autocommit)
        return cls(
            url=dsn,
            dsn=parsed,
            autocommit=bool(autocommit),
            isolation_level=kwargs.pop("isolation_level", parsed_isolation_level),
            timeout=kwargs.pop("timeout", parsed_timeout),
            options=options or None,
            **kwargs,
        )

    @classmethod
    def from_env(cls, env_var: str, **kwargs: Any) -> "ConnectionConfig":
        """
        Build a config from an environment variable containing a DSN.
        """

        value = os.getenv(env_var)
        if not value:
            raise AdapterConfigurationError(f"Environment variable {env_var} is not set")
        return cls.from_dsn(value, source=env_var, **kwargs)

    @property
    def backend(self) -> str | None:
        dsn = self.dsn or parse_dsn(self.url)
        return dsn.backend

    def redacted_dsn(self) -> str:
        """
        Return a DSN safe for logging (credentials removed).
        """

        if self.dsn:
            return self.dsn.redacted()
        return self.url

    def descriptive_label(self) -> str:
        redacted = self.redacted_dsn()
        if self.source:
            return f"{self.source} ({redacted})"
        return redacted


class DatabaseAdapter(Protocol):
    """
    Adapter interface exposing the database operations the mapper relies on.
    """

    dialect: Dialect

    def connect(self, config: ConnectionConfig) -> Any:
        """
        Establish a connection handle using the supplied configuration.
        """

    def close(self) -> None:
        """
        Close underlying resources. Implementations should be idempotent.
        """

    def execute(self, sql: str, params: Sequence[Any] | None = None) -> Any:
        """
        Prepare and execute a single statement, returning a DB-API cursor.
        """

    def executemany(self, sql: str, seq_of_params: Sequence[Sequence[Any]]) -> Any:
        """
        Execute a prepared statement against multiple parameter sets.
        """

    def begin(self) -> None:
        """
        Start a transaction.
        """

    def commit(self) -> None:
        """
        Commit the current transaction.
        """

    def rollback(self) -> None:
        """
        Roll back the current transaction.
        """

    def last_insert_id(self, cursor: Any, table: str, pk_column: str) -> Any:
        """
        Retrieve the primary key value generated by the previous insert.
        """

    def table_columns(self, table: str) -> list[str] | None:
        """
        Column names of ``table`` in declaration order, or ``None`` when it does not exist.
        """


REQUIRED_ADAPTER_METHODS = (
    "execute",
    "begin",
    "commit",
    "rollback",
    "last_insert_id",
    "table_columns",
)


def is_adapter(candidate: Any) -> bool:
    if not hasattr(candidate, "dialect"):
        return False
    return all(callable(getattr(candidate, name, None)) for name in REQUIRED_ADAPTER_METHODS)


def count_pyformat_placeholders(sql: str) -> int:
    count = 0
    idx = 0
    while idx < len(sql) - 1:
        if sql[idx] == "%" and sql[idx + 1] == "s":
            count += 1
            idx += 2
            continue
        if sql[idx] == "%" and sql[idx + 1] == "%":
            idx += 2
            continue
        idx += 1
    return count


def validate_pyformat_params(sql: str, params: Sequence[Any]) -> None:
    placeholder_count = count_pyformat_placeholders(sql)
    if placeholder_count == 0:
        if params:
            raise AdapterExecutionError("Parameters provided but SQL statement has no placeholders.")
        return
    if placeholder_count != len(params):
        raise AdapterExecutionError(
            f"Parameter count mismatch: expected {placeholder_count}, received {len(params)}."
        )
