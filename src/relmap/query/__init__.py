"""
Statement construction APIs for relmap.
"""

from .compiler import PredicateCompiler
from .expressions import Q
from .statements import (
    DeleteBuilder,
    Fragment,
    InsertBuilder,
    Join,
    Sql,
    Statement,
    StatementBuilder,
    UpdateBuilder,
)

__all__ = [
    "DeleteBuilder",
    "Fragment",
    "InsertBuilder",
    "Join",
    "PredicateCompiler",
    "Q",
    "Sql",
    "Statement",
    "StatementBuilder",
    "UpdateBuilder",
]
