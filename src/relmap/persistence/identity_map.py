"""
Identity map ensuring a single in-memory object per (table, primary key).
"""

from __future__ import annotations

from threading import RLock
from typing import Any, Dict, List, Tuple

IdentityKey = Tuple[str, Any]


class IdentityMap:
    """
    Stores entities keyed by (table, primary key).

    Alongside each entity it keeps the column snapshot last exchanged with the
    store, used to find changed columns, and the has-many collections gathered
    while hydrating.
    """

    def __init__(self) -> None:
        self._store: Dict[IdentityKey, Any] = {}
        self._keys: Dict[int, IdentityKey] = {}
        self._snapshots: Dict[int, Dict[str, Any]] = {}
        self._collections: Dict[int, Dict[str, List[Any]]] = {}
        self._lock = RLock()

    def track(self, table: str, key: Any, entity: Any, snapshot: Dict[str, Any] | None = None) -> None:
        if key is None:
            raise ValueError(f"Cannot track a '{table}' entity without a primary key.")
        identity = (table, key)
        with self._lock:
            previous = self._store.get(identity)
            if previous is not None and previous is not entity:
                self._forget(previous)
            old_identity = self._keys.get(id(entity))
            if old_identity is not None and old_identity != identity:
                self._store.pop(old_identity, None)
            self._store[identity] = entity
            self._keys[id(entity)] = identity
            if snapshot is not None:
                self._snapshots[id(entity)] = dict(snapshot)

    def get(self, table: str, key: Any) -> Any | None:
        with self._lock:
            return self._store.get((table, key))

    def is_tracked(self, entity: Any) -> bool:
        with self._lock:
            return id(entity) in self._keys

    def key_of(self, entity: Any) -> IdentityKey | None:
        with self._lock:
            return self._keys.get(id(entity))

    def untrack(self, entity: Any) -> None:
        with self._lock:
            self._forget(entity)

    def snapshot_of(self, entity: Any) -> Dict[str, Any]:
        with self._lock:
            return dict(self._snapshots.get(id(entity), {}))

    def update_snapshot(self, entity: Any, snapshot: Dict[str, Any]) -> None:
        with self._lock:
            if id(entity) in self._keys:
                self._snapshots[id(entity)] = dict(snapshot)

    # Collections ------------------------------------------------------
    def attach(self, parent: Any, table: str, child: Any) -> None:
        """
        Record ``child`` in the ``table`` collection of ``parent`` once.
        """

        with self._lock:
            collection = self._collections.setdefault(id(parent), {}).setdefault(table, [])
            if not any(item is child for item in collection):
                collection.append(child)

    def children(self, parent: Any, table: str) -> List[Any]:
        with self._lock:
            return list(self._collections.get(id(parent), {}).get(table, []))

    # Bulk -------------------------------------------------------------
    def values(self) -> List[Any]:
        with self._lock:
            return list(self._store.values())

    def clear(self) -> None:
        with self._lock:
            self._store.clear()
            self._keys.clear()
            self._snapshots.clear()
            self._collections.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    def __contains__(self, entity: Any) -> bool:
        return self.is_tracked(entity)

    def _forget(self, entity: Any) -> None:
        identity = self._keys.pop(id(entity), None)
        if identity is not None and self._store.get(identity) is entity:
            del self._store[identity]
        self._snapshots.pop(id(entity), None)
        self._collections.pop(id(entity), None)
