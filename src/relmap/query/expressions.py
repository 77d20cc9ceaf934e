"""
Predicate expression primitives used as relation filters and write conditions.
"""

from __future__ import annotations

from typing import Any, List, Mapping


AND = "AND"
OR = "OR"


class Q:
    """
    Boolean predicate container in the Django ``Q`` style.

    Keyword lookups are ``column`` or ``column__lookup`` pairs; nested ``Q``
    objects combine with ``&``, ``|`` and ``~``.
    """

    def __init__(self, *children: Any, **lookups: Any) -> None:
        self.children: List[Any] = list(children)
        self.children.extend(lookups.items())
        self.connector = AND
        self.negated = False

    @classmethod
    def coerce(cls, value: "Q | Mapping[str, Any] | None") -> "Q":
        """
        Accept a ``Q``, a column -> value mapping or ``None``.
        """

        if value is None:
            return cls()
        if isinstance(value, Q):
            return value
        if isinstance(value, Mapping):
            return cls(**{str(key): item for key, item in value.items()})
        raise TypeError(f"Cannot build a predicate from {type(value).__name__}")

    def __or__(self, other: "Q") -> "Q":
        return self._combine(other, OR)

    def __and__(self, other: "Q") -> "Q":
        return self._combine(other, AND)

    def __invert__(self) -> "Q":
        q = self._clone()
        q.negated = not q.negated
        return q

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Q):
            return NotImplemented
        return (self.children, self.connector, self.negated) == (
            other.children,
            other.connector,
            other.negated,
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        prefix = "~" if self.negated else ""
        return f"{prefix}Q({self.connector}: {self.children!r})"

    # Internal helpers -------------------------------------------------
    def _clone(self) -> "Q":
        clone = Q()
        clone.children = list(self.children)
        clone.connector = self.connector
        clone.negated = self.negated
        return clone

    def _combine(self, other: "Q", connector: str) -> "Q":
        if other.is_empty():
            return self._clone()
        if self.is_empty():
            return other._clone()
        q = Q()
        q.children = [self._clone(), other._clone()]
        q.connector = connector
        return q

    def is_empty(self) -> bool:
        return not self.children
