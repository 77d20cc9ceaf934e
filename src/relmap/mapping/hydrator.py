"""
Hydration of flat joined rows into nested, identity-mapped entities.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, List, Mapping

from ..persistence.identity_map import IdentityMap
from ..styles.base import Style
from ..utils import get_logger
from .graph import GraphNode, RelationGraph
from .records import get_field, set_field

EntityFactory = Callable[[str, Mapping[str, Any]], Any]


class Hydrator:
    """
    Folds the rows of one relation graph into root entities.

    Rows describing an already tracked (table, key) reuse that object and
    leave its fields alone, so every row of the store maps to one object no
    matter how many times it is fetched.
    """

    def __init__(self, identity_map: IdentityMap, style: Style, factory: EntityFactory) -> None:
        self.identity_map = identity_map
        self.style = style
        self.factory = factory
        self.logger = get_logger("mapping.hydrator")

    def hydrate(self, graph: RelationGraph, rows: Iterable[Any], *, first_only: bool = False) -> List[Any]:
        roots: List[Any] = []
        seen: set[int] = set()
        count = 0
        for row in rows:
            objects: Dict[int, Any] = {}
            root_entity = None
            for node, values in graph.split(row):
                key = values[node.columns.index(node.primary)] if node.primary in node.columns else None
                if key is None:
                    continue
                if node is graph.root:
                    candidate = self.identity_map.get(node.table, key)
                    if first_only and roots and candidate is not roots[0]:
                        self.logger.debug("Stopping after first %s entity", node.table)
                        return roots
                entity = self._entity(node, key, values)
                objects[id(node)] = entity
                if node is graph.root:
                    root_entity = entity
            count += 1
            self._wire(graph, objects)
            if root_entity is not None and id(root_entity) not in seen:
                seen.add(id(root_entity))
                roots.append(root_entity)
        self.logger.debug(
            "Hydrated %s %s entities from %s rows", len(roots), graph.root.table, count
        )
        return roots

    def _entity(self, node: GraphNode, key: Any, values: List[Any]) -> Any:
        tracked = self.identity_map.get(node.table, key)
        if tracked is not None:
            return tracked
        fields = {
            self.style.column_to_property(column): value
            for column, value in zip(node.columns, values)
        }
        entity = self.factory(node.table, fields)
        self.identity_map.track(node.table, key, entity, snapshot=dict(zip(node.columns, values)))
        return entity

    def _wire(self, graph: RelationGraph, objects: Dict[int, Any]) -> None:
        for node in graph.visible:
            if node.parent is None or id(node) not in objects:
                continue
            child = objects[id(node)]
            owner_node = node.visible_parent
            owner = objects.get(id(owner_node)) if owner_node is not None else None
            if owner is None:
                continue
            if node.wires_into_parent:
                self._replace_foreign_key(owner, node, child)
            else:
                self.identity_map.attach(owner, node.table, child)

    def _replace_foreign_key(self, owner: Any, node: GraphNode, child: Any) -> None:
        prop = self.style.column_to_property(node.parent_column)
        current = get_field(owner, prop)
        if current is child:
            return
        child_key = get_field(child, self.style.column_to_property(node.primary))
        if current == child_key:
            set_field(owner, prop, child)
