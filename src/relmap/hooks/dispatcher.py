"""
Hook dispatcher coordinating persistence lifecycle events.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional

HookHandler = Callable[..., None]

EVENTS = frozenset(
    {
        "before_insert",
        "after_insert",
        "before_update",
        "after_update",
        "before_delete",
        "after_delete",
        "after_flush",
        "after_rollback",
    }
)


class HookDispatcher:
    """
    Maintains global and per-table hook handlers.

    Handlers are called as ``handler(entity, **context)``; flush-level events
    pass ``None`` as the entity.
    """

    def __init__(self) -> None:
        self._global_handlers: Dict[str, List[HookHandler]] = defaultdict(list)
        self._table_handlers: Dict[str, Dict[str, List[HookHandler]]] = defaultdict(
            lambda: defaultdict(list)
        )

    def register(self, event: str, handler: HookHandler, *, table: Optional[str] = None) -> None:
        if event not in EVENTS:
            raise ValueError(f"Unknown hook event '{event}'; expected one of {sorted(EVENTS)}.")
        if table:
            self._table_handlers[table][event].append(handler)
        else:
            self._global_handlers[event].append(handler)

    def on(self, event: str, *, table: Optional[str] = None) -> Callable[[HookHandler], HookHandler]:
        """
        Decorator form of :meth:`register`.
        """

        def decorator(handler: HookHandler) -> HookHandler:
            self.register(event, handler, table=table)
            return handler

        return decorator

    def fire(self, event: str, entity: Any = None, *, table: Optional[str] = None, **context: Any) -> None:
        handlers = list(self._global_handlers.get(event, []))
        if table:
            handlers.extend(self._table_handlers.get(table, {}).get(event, []))
        for handler in handlers:
            handler(entity, table=table, **context)

    def clear(self) -> None:
        self._global_handlers.clear()
        self._table_handlers.clear()


hooks = HookDispatcher()
