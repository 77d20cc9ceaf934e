"""
Relation graph: the join tree a relation expression resolves to.

Join kinds are inferred from naming conventions checked against the columns
the store reports for each table:

* the parent holds ``style.foreign_from_table(child)``: the parent belongs to
  the child and the nested object replaces that foreign-key field;
* the child holds ``style.foreign_from_table(parent)``: the parent has many
  children, collected on the identity map;
* otherwise a junction table named by ``style.many_from_left_right`` links
  both sides and is joined through a hidden node.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Iterator, List, Optional, Sequence, Tuple

from ..query.expressions import Q
from ..query.statements import Extra, Join, Statement, StatementBuilder
from ..styles.base import Style
from .errors import RelationInferenceError, UnknownTableError

if TYPE_CHECKING:
    from .relation import Relation

ColumnsLookup = Callable[[str], Optional[Sequence[str]]]


class JoinKind(Enum):
    ROOT = "root"
    BELONGS_TO = "belongs_to"
    HAS_MANY = "has_many"
    MANY_TO_MANY = "many_to_many"


@dataclass(eq=False)
class GraphNode:
    table: str
    alias: str
    kind: JoinKind
    columns: List[str]
    primary: str
    parent: Optional["GraphNode"] = None
    parent_column: Optional[str] = None
    column: Optional[str] = None
    predicate: Optional[Q] = None
    hidden: bool = False
    children: List["GraphNode"] = field(default_factory=list)

    @property
    def visible_parent(self) -> Optional["GraphNode"]:
        node = self.parent
        while node is not None and node.hidden:
            node = node.parent
        return node

    @property
    def wires_into_parent(self) -> bool:
        """
        ``True`` when the hydrated object replaces a foreign-key field of its parent.
        """

        return (
            self.kind is JoinKind.BELONGS_TO
            and self.parent is not None
            and not self.parent.hidden
        )

    def walk(self) -> Iterator["GraphNode"]:
        yield self
        for child in self.children:
            yield from child.walk()

    def __repr__(self) -> str:
        return f"GraphNode({self.kind.value} {self.table} AS {self.alias})"


class RelationGraph:
    """
    Resolved join tree plus the SELECT that fetches it in one round trip.
    """

    def __init__(self, root: GraphNode) -> None:
        self.root = root
        self.nodes: List[GraphNode] = list(root.walk())
        self.visible: List[GraphNode] = [node for node in self.nodes if not node.hidden]

    def joins(self) -> List[Join]:
        return [
            Join(
                table=node.table,
                alias=node.alias,
                left_alias=node.parent.alias,
                left_column=node.parent_column,
                right_column=node.column,
            )
            for node in self.nodes
            if node.parent is not None
        ]

    def select_columns(self) -> List[Tuple[str, str]]:
        return [(node.alias, column) for node in self.visible for column in node.columns]

    def predicates(self) -> List[Tuple[str, Q]]:
        return [
            (node.alias, node.predicate)
            for node in self.nodes
            if node.predicate is not None and not node.predicate.is_empty()
        ]

    def statement(self, builder: StatementBuilder, extra: Extra = None) -> Statement:
        return builder.select(
            self.root.table,
            self.select_columns(),
            alias=self.root.alias,
            joins=self.joins(),
            where=self.predicates(),
            extra=extra,
        )

    def split(self, row: Sequence[Any]) -> Iterator[Tuple[GraphNode, List[Any]]]:
        """
        Cut a flat result row into one slice of values per visible node.
        """

        values = list(row)
        offset = 0
        for node in self.visible:
            width = len(node.columns)
            yield node, values[offset : offset + width]
            offset += width


class GraphBuilder:
    """
    Turns a relation expression into a :class:`RelationGraph`.

    ``columns_of`` returns the column names of a table or ``None`` when the
    table does not exist; results are cached for the lifetime of the builder.
    """

    def __init__(self, style: Style, columns_of: ColumnsLookup) -> None:
        self.style = style
        self._columns_of = columns_of
        self._columns: dict[str, Optional[List[str]]] = {}
        self._aliases: Counter[str] = Counter()

    def build(self, relation: "Relation") -> RelationGraph:
        path = relation.path()
        root = self._grow(None, path)
        return RelationGraph(root)

    # Tree construction ------------------------------------------------
    def _grow(self, parent: Optional[GraphNode], path: Sequence["Relation"]) -> GraphNode:
        head = path[0]
        node = self._node_for(parent, head)
        for child in head.children:
            self._grow(node, child.path())
        if len(path) > 1:
            self._grow(node, path[1:])
        return node

    def _node_for(self, parent: Optional[GraphNode], relation: "Relation") -> GraphNode:
        table = relation.table
        columns = self._require(table)
        predicate = relation.filters
        if relation.has_key:
            predicate = Q(**{self.style.primary_from_table(table): relation.key}) & predicate
        if parent is None:
            return self._new_node(table, JoinKind.ROOT, columns, predicate=predicate)

        node = self._attach(parent, table, columns)
        node.predicate = predicate
        return node

    def _attach(self, parent: GraphNode, table: str, columns: List[str]) -> GraphNode:
        style = self.style
        parent_foreign = style.foreign_from_table(table)
        if parent_foreign in parent.columns:
            return self._new_node(
                table,
                JoinKind.BELONGS_TO,
                columns,
                parent=parent,
                parent_column=parent_foreign,
                column=style.primary_from_table(table),
            )

        child_foreign = style.foreign_from_table(parent.table)
        if child_foreign in columns:
            return self._new_node(
                table,
                JoinKind.HAS_MANY,
                columns,
                parent=parent,
                parent_column=parent.primary,
                column=child_foreign,
            )

        junction, junction_columns = self._junction(parent.table, table)
        link = self._new_node(
            junction,
            JoinKind.MANY_TO_MANY,
            junction_columns,
            parent=parent,
            parent_column=parent.primary,
            column=child_foreign,
            hidden=True,
        )
        return self._new_node(
            table,
            JoinKind.BELONGS_TO,
            columns,
            parent=link,
            parent_column=parent_foreign,
            column=style.primary_from_table(table),
        )

    def _junction(self, left: str, right: str) -> Tuple[str, List[str]]:
        style = self.style
        needed = {style.foreign_from_table(left), style.foreign_from_table(right)}
        candidates = dict.fromkeys(
            (style.many_from_left_right(left, right), style.many_from_left_right(right, left))
        )
        found = []
        for name in candidates:
            columns = self._lookup(name)
            if columns and needed.issubset(columns):
                found.append((name, columns))
        if len(found) > 1:
            names = ", ".join(name for name, _ in found)
            raise RelationInferenceError(
                f"Ambiguous relation between '{left}' and '{right}': junction tables {names} both match."
            )
        if not found:
            raise RelationInferenceError(
                f"Cannot relate '{left}' to '{right}': no foreign key or junction table matches "
                f"the {type(style).__name__} naming style."
            )
        return found[0]

    def _new_node(
        self,
        table: str,
        kind: JoinKind,
        columns: List[str],
        *,
        parent: Optional[GraphNode] = None,
        parent_column: Optional[str] = None,
        column: Optional[str] = None,
        predicate: Optional[Q] = None,
        hidden: bool = False,
    ) -> GraphNode:
        self._aliases[table] += 1
        count = self._aliases[table]
        node = GraphNode(
            table=table,
            alias=table if count == 1 else f"{table}{count}",
            kind=kind,
            columns=list(columns),
            primary=self.style.primary_from_table(table),
            parent=parent,
            parent_column=parent_column,
            column=column,
            predicate=predicate,
            hidden=hidden,
        )
        if parent is not None:
            parent.children.append(node)
        return node

    # Introspection ----------------------------------------------------
    def _lookup(self, table: str) -> Optional[List[str]]:
        if table not in self._columns:
            columns = self._columns_of(table)
            self._columns[table] = list(columns) if columns else None
        return self._columns[table]

    def _require(self, table: str) -> List[str]:
        columns = self._lookup(table)
        if not columns:
            raise UnknownTableError(table)
        return columns
