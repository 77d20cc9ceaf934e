"""
Fluent, immutable relation expressions.

``mapper.comment.post[5]`` builds a chain of :class:`Relation` nodes without
touching the store; joins are only inferred when the relation is fetched.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Iterator, List, Optional, Tuple

from ..query.expressions import Q
from ..query.statements import Extra, Statement
from .errors import ArgumentError

if TYPE_CHECKING:
    from .mapper import Mapper

_NO_KEY = object()


class Relation:
    """
    One table in a relation path.

    ``parent`` points at the previous table in the chain (``None`` for the
    root); ``children`` are relations passed as call arguments, joined under
    this node before the chain continues. Every refinement returns a new
    node, so a relation can be shared and extended freely.
    """

    __slots__ = ("mapper", "table", "key", "filters", "parent", "children")

    def __init__(
        self,
        mapper: "Mapper",
        table: str,
        *,
        key: Any = _NO_KEY,
        filters: Optional[Q] = None,
        parent: Optional["Relation"] = None,
        children: Tuple["Relation", ...] = (),
    ) -> None:
        if not isinstance(table, str) or not table:
            raise ArgumentError(f"Relation table must be a non-empty string, got {table!r}.")
        object.__setattr__(self, "mapper", mapper)
        object.__setattr__(self, "table", table)
        object.__setattr__(self, "key", key)
        object.__setattr__(self, "filters", filters if filters is not None else Q())
        object.__setattr__(self, "parent", parent)
        object.__setattr__(self, "children", tuple(children))

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"Relation is immutable; cannot set '{name}'.")

    # Building ---------------------------------------------------------
    @property
    def has_key(self) -> bool:
        return self.key is not _NO_KEY

    def join(self, table: str, *args: Any, **lookups: Any) -> "Relation":
        child = Relation(self.mapper, table, parent=self)
        if args or lookups:
            return child.where(*args, **lookups)
        return child

    def where(self, *args: Any, **lookups: Any) -> "Relation":
        """
        Refine this node.

        Relations become joined children, mappings and ``Q`` objects are
        AND-ed into the filter, keyword lookups use the ``column__lookup``
        syntax.
        """

        filters = self.filters
        children = list(self.children)
        for arg in args:
            if isinstance(arg, Relation):
                children.append(arg)
            elif isinstance(arg, (Q, Mapping)):
                filters = filters & Q.coerce(arg)
            else:
                raise ArgumentError(
                    f"Cannot refine relation '{self.table}' with {type(arg).__name__}; "
                    "pass a Relation, a mapping, a Q or keyword lookups."
                )
        if lookups:
            filters = filters & Q(**lookups)
        return self._replace(filters=filters, children=tuple(children))

    __call__ = where

    def __getitem__(self, key: Any) -> "Relation":
        if isinstance(key, slice):
            raise ArgumentError("Relations do not support slicing; use Sql.limit().")
        return self._replace(key=key)

    def __getattr__(self, name: str) -> "Relation":
        if name.startswith("_"):
            raise AttributeError(name)
        return self.join(name)

    def path(self) -> List["Relation"]:
        """
        Nodes from the root of the chain down to this one.
        """

        nodes: List[Relation] = []
        node: Optional[Relation] = self
        while node is not None:
            nodes.append(node)
            node = node.parent
        nodes.reverse()
        return nodes

    @property
    def root(self) -> "Relation":
        return self.path()[0]

    # Execution --------------------------------------------------------
    def fetch(self, extra: Extra = None) -> Any | None:
        return self.mapper.fetch(self, extra, first_only=True)

    def fetch_all(self, extra: Extra = None) -> List[Any]:
        return self.mapper.fetch(self, extra)

    def to_statement(self, extra: Extra = None) -> Statement:
        return self.mapper.statement_for(self, extra)

    def persist(self, entity: Any) -> Any:
        return self.mapper.persist(self, entity)

    def remove(self, entity: Any) -> Any:
        return self.mapper.remove(self.root.table, entity)

    def __iter__(self) -> Iterator[Any]:
        return iter(self.fetch_all())

    # Internals --------------------------------------------------------
    def _replace(self, **changes: Any) -> "Relation":
        values = {
            "key": self.key,
            "filters": self.filters,
            "parent": self.parent,
            "children": self.children,
        }
        values.update(changes)
        return Relation(self.mapper, self.table, **values)

    def __repr__(self) -> str:
        parts = []
        for node in self.path():
            text = node.table
            if node.has_key:
                text += f"[{node.key!r}]"
            if not node.filters.is_empty():
                text += f"({node.filters!r})"
            if node.children:
                text += "(" + ", ".join(repr(child) for child in node.children) + ")"
            parts.append(text)
        return "<Relation " + ".".join(parts) + ">"
