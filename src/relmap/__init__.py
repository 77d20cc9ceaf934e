"""
relmap: a relational data mapper.

Relations such as ``mapper.comment.post[5]`` are inferred from naming
conventions, fetched with one joined SELECT, hydrated into identity-mapped
entities, and written back in dependency order inside one transaction.
"""

from .adapters import ConnectionConfig, SQLiteAdapter  # noqa: F401
from .hooks import hooks  # noqa: F401
from .mapping import (  # noqa: F401
    ArgumentError,
    CircularDependencyError,
    MapperError,
    Record,
    Relation,
    RelationInferenceError,
    StatementExecutionError,
    UnknownTableError,
)
from .mapping.mapper import Mapper  # noqa: F401
from .query import Q, Sql, Statement  # noqa: F401
from .schema import SchemaBuilder  # noqa: F401
from .styles import CakePHP, NorthWind, Sakila, Standard, get_style  # noqa: F401

__version__ = "0.1.0"

__all__ = [
    "ArgumentError",
    "CakePHP",
    "CircularDependencyError",
    "ConnectionConfig",
    "Mapper",
    "MapperError",
    "NorthWind",
    "Q",
    "Record",
    "Relation",
    "RelationInferenceError",
    "SQLiteAdapter",
    "Sakila",
    "SchemaBuilder",
    "Sql",
    "Standard",
    "Statement",
    "StatementExecutionError",
    "UnknownTableError",
    "get_style",
    "hooks",
]
