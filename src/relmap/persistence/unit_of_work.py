"""
Unit of Work queueing pending writes and ordering them by dependency.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List

from ..mapping.errors import CircularDependencyError


class WriteKind(Enum):
    SAVE = "save"
    DELETE = "delete"


@dataclass(eq=False)
class PendingWrite:
    """
    One queued entity. Whether a save becomes an INSERT or an UPDATE is only
    decided when the queue is flushed.
    """

    entity: Any
    table: str
    kind: WriteKind = WriteKind.SAVE
    dependencies: List["PendingWrite"] = field(default_factory=list)

    def depends_on(self, other: "PendingWrite") -> None:
        if other is not self and all(dep is not other for dep in self.dependencies):
            self.dependencies.append(other)

    def __repr__(self) -> str:
        return f"PendingWrite({self.kind.value} {self.table})"


class UnitOfWork:
    """
    Queue of pending writes, one entry per entity object.
    """

    def __init__(self) -> None:
        self._writes: Dict[int, PendingWrite] = {}

    def register_save(self, entity: Any, table: str) -> PendingWrite:
        write = self._writes.get(id(entity))
        if write is None:
            write = PendingWrite(entity, table)
            self._writes[id(entity)] = write
        else:
            write.kind = WriteKind.SAVE
            write.table = table
        return write

    def register_delete(self, entity: Any, table: str) -> PendingWrite:
        write = self._writes.get(id(entity))
        if write is None:
            write = PendingWrite(entity, table, WriteKind.DELETE)
            self._writes[id(entity)] = write
        else:
            write.kind = WriteKind.DELETE
            write.table = table
        return write

    def write_for(self, entity: Any) -> PendingWrite | None:
        return self._writes.get(id(entity))

    def is_queued(self, entity: Any) -> bool:
        return id(entity) in self._writes

    def saves(self) -> List[PendingWrite]:
        return [write for write in self._writes.values() if write.kind is WriteKind.SAVE]

    def deletes(self) -> List[PendingWrite]:
        return [write for write in self._writes.values() if write.kind is WriteKind.DELETE]

    def ordered_saves(self, needs_insert: Callable[[PendingWrite], bool] | None = None) -> List[PendingWrite]:
        """
        Saves ordered so each one follows the saves it references.

        Only dependencies that ``needs_insert`` accepts constrain the order:
        a referenced entity that already has its key can be written in any
        position. Queue order is kept wherever the dependencies allow it.
        """

        ordered: List[PendingWrite] = []
        done: set[int] = set()
        visiting: List[PendingWrite] = []

        def visit(write: PendingWrite) -> None:
            if id(write) in done:
                return
            if any(item is write for item in visiting):
                start = next(index for index, item in enumerate(visiting) if item is write)
                cycle = visiting[start:] + [write]
                raise CircularDependencyError([item.table for item in cycle])
            visiting.append(write)
            for dependency in write.dependencies:
                if dependency.kind is not WriteKind.SAVE:
                    continue
                if needs_insert is not None and not needs_insert(dependency):
                    continue
                visit(dependency)
            visiting.pop()
            done.add(id(write))
            ordered.append(write)

        for write in self.saves():
            visit(write)
        return ordered

    def clear(self) -> None:
        self._writes.clear()

    def __len__(self) -> int:
        return len(self._writes)

    def __bool__(self) -> bool:
        return bool(self._writes)
