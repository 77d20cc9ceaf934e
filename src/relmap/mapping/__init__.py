"""
Relations, graph inference, hydration and entity records.

:class:`~relmap.mapping.mapper.Mapper` is exported from the top-level package.
"""

from .errors import (
    ArgumentError,
    CircularDependencyError,
    MapperError,
    RelationInferenceError,
    StatementExecutionError,
    UnknownTableError,
)
from .graph import GraphBuilder, GraphNode, JoinKind, RelationGraph
from .hydrator import Hydrator
from .records import Record, fields_of, is_entity
from .relation import Relation

__all__ = [
    "ArgumentError",
    "CircularDependencyError",
    "GraphBuilder",
    "GraphNode",
    "Hydrator",
    "JoinKind",
    "MapperError",
    "Record",
    "Relation",
    "RelationGraph",
    "RelationInferenceError",
    "StatementExecutionError",
    "UnknownTableError",
    "fields_of",
    "is_entity",
]
