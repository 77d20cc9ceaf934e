"""
Persistence layer components: identity map, write queue, transactions.
"""

from .identity_map import IdentityMap
from .transaction import TransactionError, TransactionManager
from .unit_of_work import PendingWrite, UnitOfWork, WriteKind

__all__ = [
    "IdentityMap",
    "PendingWrite",
    "TransactionError",
    "TransactionManager",
    "UnitOfWork",
    "WriteKind",
]
