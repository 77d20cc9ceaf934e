"""
Transaction scopes: the outermost scope is a real transaction, nested scopes
become savepoints.
"""

from __future__ import annotations

import itertools
from contextlib import contextmanager
from typing import Generator, List

from ..adapters.base import DatabaseAdapter
from ..utils import get_logger


class TransactionError(RuntimeError):
    pass


class TransactionManager:
    """
    Stack of open scopes over one adapter.
    """

    def __init__(self, adapter: DatabaseAdapter) -> None:
        self.adapter = adapter
        self._stack: List[str | None] = []
        self._savepoints = itertools.count(1)
        self.logger = get_logger("persistence.transaction")

    @property
    def depth(self) -> int:
        return len(self._stack)

    @property
    def active(self) -> bool:
        return bool(self._stack)

    def begin(self) -> None:
        if not self._stack:
            self.adapter.begin()
            self._stack.append(None)
            self.logger.debug("Transaction started")
            return

        if not self.adapter.dialect.capabilities.supports_savepoints:
            raise TransactionError(
                f"Nested scopes need savepoints, which {self.adapter.dialect.name} does not offer."
            )
        name = f"relmap_sp_{next(self._savepoints)}"
        self.adapter.execute(f"SAVEPOINT {name}")
        self._stack.append(name)
        self.logger.debug("Savepoint %s opened at depth %s", name, self.depth)

    def commit(self) -> None:
        if not self._stack:
            raise TransactionError("No active transaction to commit.")
        name = self._stack[-1]
        if name is None:
            self.adapter.commit()
            self.logger.debug("Transaction committed")
        else:
            self.adapter.execute(f"RELEASE SAVEPOINT {name}")
        self._stack.pop()

    def rollback(self) -> None:
        if not self._stack:
            raise TransactionError("No active transaction to roll back.")
        name = self._stack.pop()
        if name is None:
            self.adapter.rollback()
            self.logger.debug("Transaction rolled back")
        else:
            self.adapter.execute(f"ROLLBACK TO SAVEPOINT {name}")
            self.adapter.execute(f"RELEASE SAVEPOINT {name}")
            self.logger.debug("Rolled back to savepoint %s", name)

    @contextmanager
    def scope(self) -> Generator[None, None, None]:
        self.begin()
        try:
            yield
            self.commit()
        except BaseException:
            # a failed commit leaves its scope on the stack
            self.rollback()
            raise
