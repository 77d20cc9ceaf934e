"""
Database adapter interfaces and implementations.
"""

from .base import (
    AdapterConfigurationError,
    AdapterConnectionError,
    AdapterError,
    AdapterExecutionError,
    AdapterTransactionError,
    ConnectionConfig,
    DatabaseAdapter,
    is_adapter,
)
from .dbapi import DBAPIAdapter
from .mysql import MySQLAdapter
from .postgres import PostgresAdapter
from .sqlite import SQLiteAdapter

ADAPTERS = {
    "sqlite": SQLiteAdapter,
    "postgres": PostgresAdapter,
    "mysql": MySQLAdapter,
}


def adapter_for(config: ConnectionConfig) -> DatabaseAdapter:
    """
    Instantiate (without connecting) the adapter matching the config's DSN scheme.
    """

    backend = config.backend
    if backend is None or backend not in ADAPTERS:
        raise AdapterConfigurationError(
            f"No adapter registered for DSN {config.redacted_dsn()!r}."
        )
    return ADAPTERS[backend]()


__all__ = [
    "ADAPTERS",
    "ConnectionConfig",
    "DatabaseAdapter",
    "DBAPIAdapter",
    "AdapterError",
    "AdapterConfigurationError",
    "AdapterConnectionError",
    "AdapterExecutionError",
    "AdapterTransactionError",
    "SQLiteAdapter",
    "PostgresAdapter",
    "MySQLAdapter",
    "adapter_for",
    "is_adapter",
]
