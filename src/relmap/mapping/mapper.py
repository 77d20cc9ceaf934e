"""
Mapper facade: the entry point tying relations, hydration, the identity map
and the persistence queue to one adapter.
"""

from __future__ import annotations

import importlib
import sqlite3
from contextlib import contextmanager
from functools import partial
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple

from ..adapters import ConnectionConfig, DatabaseAdapter, SQLiteAdapter, adapter_for, is_adapter
from ..adapters.base import AdapterError
from ..hooks import HookDispatcher
from ..hooks import hooks as default_hooks
from ..persistence.identity_map import IdentityMap
from ..persistence.transaction import TransactionManager
from ..persistence.unit_of_work import PendingWrite, UnitOfWork
from ..query.statements import Extra, Statement, StatementBuilder
from ..security.redaction import redact_params
from ..styles import Style, get_style
from ..utils import get_logger, time_call
from ..utils.performance import PerformanceTracker, resolve_slow_query_ms
from .errors import ArgumentError, StatementExecutionError
from .graph import GraphBuilder, RelationGraph
from .hydrator import Hydrator
from .records import Record, fields_of, get_field, is_entity, set_field
from .relation import Relation

DSN_ENV = "RELMAP_DSN"

EntityFactory = Callable[[Dict[str, Any]], Any]
Branch = Tuple[str, List["Branch"]]


class Mapper:
    """
    Maps tables reachable through one adapter to entity objects.

    ``mapper.comment``, ``mapper["comment"]`` and ``mapper.relation("comment")``
    all start a :class:`Relation`. Assigning a relation to an attribute
    registers it as a named shortcut::

        mapper.post_author = mapper.post.author
        mapper.post_author[5].fetch()
    """

    __iter__ = None

    def __init__(
        self,
        db: Any,
        *,
        style: Style | str | None = None,
        entity_namespace: Any = None,
        hooks: HookDispatcher | None = None,
        performance_threshold: int = 5,
        slow_query_ms: int | None = None,
    ) -> None:
        if isinstance(db, sqlite3.Connection):
            adapter: DatabaseAdapter = SQLiteAdapter(db)
        elif is_adapter(db) and not isinstance(db, (Relation, Mapper)):
            adapter = db
        else:
            raise ArgumentError(
                f"Mapper needs a database adapter or a sqlite3.Connection, got {type(db).__name__}."
            )
        self._shortcuts: Dict[str, Relation] = {}
        self.adapter = adapter
        self.logger = get_logger("mapping.mapper")
        self.hooks = hooks if hooks is not None else default_hooks
        self.style = style if style is not None else get_style()
        self.entity_namespace = entity_namespace
        self.slow_query_ms = resolve_slow_query_ms(default=200, override=slow_query_ms)
        self.performance = PerformanceTracker(
            get_logger("mapping.performance"), n_plus_one_threshold=performance_threshold
        )
        self._factories: Dict[str, EntityFactory] = {}
        self._identity_map = IdentityMap()
        self._unit_of_work = UnitOfWork()
        self._transactions = TransactionManager(adapter)
        self._journal: List[Callable[[], None]] = []
        self._owns_adapter = False

    # ------------------------------------------------------------------ #
    # Construction helpers
    # ------------------------------------------------------------------ #
    @classmethod
    def from_dsn(cls, dsn: str, **kwargs: Any) -> "Mapper":
        config = ConnectionConfig.from_dsn(dsn)
        return cls._connected(config, **kwargs)

    @classmethod
    def from_env(cls, env_var: str = DSN_ENV, **kwargs: Any) -> "Mapper":
        config = ConnectionConfig.from_env(env_var)
        return cls._connected(config, **kwargs)

    @classmethod
    def _connected(cls, config: ConnectionConfig, **kwargs: Any) -> "Mapper":
        adapter = adapter_for(config)
        adapter.connect(config)
        mapper = cls(adapter, **kwargs)
        mapper._owns_adapter = True
        mapper.logger.info("Mapper connected to %s", config.descriptive_label())
        return mapper

    def close(self) -> None:
        if self._owns_adapter:
            self.adapter.close()
        self._identity_map.clear()
        self._unit_of_work.clear()

    def __enter__(self) -> "Mapper":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ------------------------------------------------------------------ #
    # Configuration
    # ------------------------------------------------------------------ #
    @property
    def style(self) -> Style:
        return self._style

    @style.setter
    def style(self, value: Style | str) -> None:
        if isinstance(value, str):
            value = get_style(value)
        elif not isinstance(value, Style):
            raise ArgumentError(f"Expected a naming style or style name, got {type(value).__name__}.")
        object.__setattr__(self, "_style", value)

    @property
    def entity_namespace(self) -> Any:
        return self._entity_namespace

    @entity_namespace.setter
    def entity_namespace(self, value: Any) -> None:
        if isinstance(value, str):
            value = importlib.import_module(value)
        object.__setattr__(self, "_entity_namespace", value)

    def register_entity(self, table: str, factory: EntityFactory) -> None:
        """
        Hydrate rows of ``table`` with ``factory(fields)`` instead of the namespace lookup.
        """

        if not callable(factory):
            raise ArgumentError(f"Entity factory for '{table}' must be callable.")
        self._factories[table] = factory

    # ------------------------------------------------------------------ #
    # Relation entry points
    # ------------------------------------------------------------------ #
    def relation(self, table: str, *args: Any, **lookups: Any) -> Relation:
        if table in self._shortcuts and not args and not lookups:
            return self._shortcuts[table]
        relation = Relation(self, table)
        if args or lookups:
            return relation.where(*args, **lookups)
        return relation

    def __getitem__(self, table: str) -> Relation:
        if not isinstance(table, str):
            raise ArgumentError(f"Table names are strings, got {type(table).__name__}.")
        return self.relation(table)

    def __getattr__(self, name: str) -> Relation:
        if name.startswith("_"):
            raise AttributeError(name)
        shortcuts = self.__dict__.get("_shortcuts", {})
        if name in shortcuts:
            return shortcuts[name]
        return Relation(self, name)

    def __setattr__(self, name: str, value: Any) -> None:
        if isinstance(value, Relation):
            self._shortcuts[name] = value
            return
        object.__setattr__(self, name, value)

    # ------------------------------------------------------------------ #
    # Reading
    # ------------------------------------------------------------------ #
    def graph_for(self, relation: Relation) -> RelationGraph:
        return GraphBuilder(self.style, self._table_columns).build(relation)

    def statement_for(self, relation: Relation, extra: Extra = None) -> Statement:
        return self.graph_for(relation).statement(self._statements(), extra)

    def fetch(self, relation: Relation, extra: Extra = None, *, first_only: bool = False) -> Any:
        graph = self.graph_for(relation)
        statement = graph.statement(self._statements(), extra)
        cursor = self.execute(statement.sql, statement.params)
        hydrator = Hydrator(self._identity_map, self.style, self._make_entity)
        roots = hydrator.hydrate(graph, self._rows(cursor, statement), first_only=first_only)
        if first_only:
            return roots[0] if roots else None
        return roots

    def related(self, entity: Any, table: str) -> List[Any]:
        """
        Entities of ``table`` fetched as has-many or many-to-many children of ``entity``.
        """

        return self._identity_map.children(entity, table)

    def is_tracked(self, entity: Any) -> bool:
        return self._identity_map.is_tracked(entity)

    def get_tracked(self, table: str, key: Any) -> Any | None:
        return self._identity_map.get(table, key)

    @property
    def identity_map(self) -> IdentityMap:
        return self._identity_map

    def execute(self, sql: str, params: Iterable[Any] | None = None) -> Any:
        """
        Execute ``sql`` through the adapter, timing it and wrapping failures.
        """

        param_list = list(params or ())
        redacted = redact_params(param_list)
        try:
            with time_call(
                "mapper.execute",
                self.logger,
                sql=sql,
                params=redacted,
                threshold_ms=self.slow_query_ms,
            ) as timer:
                cursor = self.adapter.execute(sql, param_list)
        except Exception as exc:
            raise StatementExecutionError(sql, redacted, f"Statement failed: {exc}") from exc
        self.performance.record(sql, param_list, timer.elapsed_ms)
        return cursor

    def query_stats(self) -> List[dict[str, object]]:
        return self.performance.summary()

    # ------------------------------------------------------------------ #
    # Writing
    # ------------------------------------------------------------------ #
    def persist(self, relation: Relation, entity: Any) -> Any:
        """
        Queue ``entity`` and the entities it references for the next flush.
        """

        if not is_entity(entity):
            raise ArgumentError(f"Cannot persist {type(entity).__name__} as a '{relation.table}' row.")
        table, branches = self._branches(relation.path())
        self._enqueue(entity, table, branches, set())
        return entity

    def remove(self, table: str, entity: Any) -> Any:
        if not is_entity(entity):
            raise ArgumentError(f"Cannot remove {type(entity).__name__} from '{table}'.")
        self._unit_of_work.register_delete(entity, table)
        self.logger.debug("Queued delete from %s", table)
        return entity

    def flush(self) -> None:
        """
        Write every queued entity in one transaction.

        On failure the transaction is rolled back, identity map changes made
        by the batch are undone and the error is re-raised. The queue is
        emptied either way.
        """

        if not self._unit_of_work:
            return
        journal: List[Callable[[], None]] = []
        counts = {"insert": 0, "update": 0, "delete": 0}
        columns: Dict[str, Optional[List[str]]] = {}
        try:
            saves = self._unit_of_work.ordered_saves(needs_insert=self._needs_insert)
            deletes = self._unit_of_work.deletes()
            try:
                with self._transactions.scope():
                    for write in saves:
                        counts[self._write_save(write, journal, columns)] += 1
                    for write in deletes:
                        self._write_delete(write, journal)
                        counts["delete"] += 1
            except Exception:
                self._undo(journal)
                self.logger.warning("Flush rolled back after %s writes", sum(counts.values()))
                self.hooks.fire("after_rollback", None, mapper=self)
                raise
        finally:
            self._unit_of_work.clear()

        if self._transactions.active:
            self._journal.extend(journal)
        self.logger.info(
            "Flushed %s inserts, %s updates, %s deletes",
            counts["insert"],
            counts["update"],
            counts["delete"],
        )
        self.hooks.fire("after_flush", None, mapper=self, counts=dict(counts))

    @contextmanager
    def transaction(self) -> Iterator["Mapper"]:
        """
        Group several flushes into one transaction; pending writes are flushed on exit.

        Nested blocks become savepoints.
        """

        outer_journal = self._journal
        self._journal = []
        self._transactions.begin()
        try:
            yield self
            self.flush()
            self._transactions.commit()
        except BaseException:
            self._unit_of_work.clear()
            self._transactions.rollback()
            self._undo(self._journal)
            self._journal = outer_journal
            self.hooks.fire("after_rollback", None, mapper=self)
            raise
        if self._transactions.active:
            outer_journal.extend(self._journal)
        self._journal = outer_journal

    # ------------------------------------------------------------------ #
    # Entity construction
    # ------------------------------------------------------------------ #
    def _make_entity(self, table: str, fields: Mapping[str, Any]) -> Any:
        factory = self._factories.get(table)
        if factory is not None:
            return factory(dict(fields))
        entity_class = self._entity_class(table)
        if entity_class is None:
            return Record(fields)
        entity = entity_class()
        for name, value in fields.items():
            set_field(entity, name, value)
        return entity

    def _entity_class(self, table: str) -> type | None:
        if self._entity_namespace is None:
            return None
        candidate = getattr(self._entity_namespace, self.style.table_to_entity(table), None)
        return candidate if isinstance(candidate, type) else None

    # ------------------------------------------------------------------ #
    # Persistence helpers
    # ------------------------------------------------------------------ #
    def _branches(self, path: Sequence[Relation]) -> Branch:
        head = path[0]
        branches = [self._branches(child.path()) for child in head.children]
        if len(path) > 1:
            branches.append(self._branches(path[1:]))
        return head.table, branches

    def _enqueue(self, entity: Any, table: str, branches: List[Branch], visited: set[int]) -> PendingWrite:
        write = self._unit_of_work.register_save(entity, table)
        if id(entity) in visited:
            return write
        visited.add(id(entity))
        style = self.style
        handled = set()
        for child_table, child_branches in branches:
            prop = style.column_to_property(style.foreign_from_table(child_table))
            value = get_field(entity, prop)
            if is_entity(value):
                handled.add(prop)
                write.depends_on(self._enqueue(value, child_table, child_branches, visited))
        for prop, value in fields_of(entity).items():
            if prop in handled or not is_entity(value):
                continue
            column = style.property_to_column(prop)
            if not style.is_foreign_column(column):
                continue
            referenced = self._table_of(value) or style.table_from_foreign_column(column)
            if referenced:
                write.depends_on(self._enqueue(value, referenced, [], visited))
        self.logger.debug("Queued save into %s", table)
        return write

    def _table_of(self, entity: Any) -> str | None:
        identity = self._identity_map.key_of(entity)
        if identity is not None:
            return identity[0]
        write = self._unit_of_work.write_for(entity)
        return write.table if write is not None else None

    def _needs_insert(self, write: PendingWrite) -> bool:
        primary = self.style.column_to_property(self.style.primary_from_table(write.table))
        if get_field(write.entity, primary) is None:
            return True
        return not self._identity_map.is_tracked(write.entity)

    def _row_for(self, write: PendingWrite, columns: Dict[str, Optional[List[str]]]) -> Dict[str, Any]:
        if write.table not in columns:
            columns[write.table] = self._table_columns(write.table)
        known = columns[write.table]
        style = self.style
        row: Dict[str, Any] = {}
        for prop, value in fields_of(write.entity).items():
            column = style.property_to_column(prop)
            if known is not None and column not in known:
                continue
            if is_entity(value) and (style.is_foreign_column(column) or self._table_of(value)):
                value = self._reference_key(value, column)
            row[column] = value
        return row

    def _reference_key(self, entity: Any, column: str) -> Any:
        table = self._table_of(entity) or self.style.table_from_foreign_column(column)
        if table is None:
            return None
        primary = self.style.column_to_property(self.style.primary_from_table(table))
        return get_field(entity, primary)

    def _write_save(
        self,
        write: PendingWrite,
        journal: List[Callable[[], None]],
        columns: Dict[str, Optional[List[str]]],
    ) -> str:
        row = self._row_for(write, columns)
        if self._needs_insert(write):
            self._insert(write, row, journal)
            return "insert"
        self._update(write, row, journal)
        return "update"

    def _insert(self, write: PendingWrite, row: Dict[str, Any], journal: List[Callable[[], None]]) -> None:
        entity, table = write.entity, write.table
        primary = self.style.primary_from_table(table)
        primary_prop = self.style.column_to_property(primary)
        generated = row.get(primary) is None
        if generated:
            row.pop(primary, None)
        builder = self._statements().insert_into(table)
        if generated:
            builder = builder.returning(primary)
        statement = builder.values(row)

        self.hooks.fire("before_insert", entity, table=table, mapper=self)
        cursor = self.execute(statement.sql, statement.params)
        key = row.get(primary)
        if generated:
            key = self._generated_key(cursor, table, primary)
            if key is not None:
                journal.append(partial(set_field, entity, primary_prop, get_field(entity, primary_prop)))
                set_field(entity, primary_prop, key)
                row[primary] = key
        if key is not None:
            self._identity_map.track(table, key, entity, snapshot=row)
            journal.append(partial(self._identity_map.untrack, entity))
        self.hooks.fire("after_insert", entity, table=table, mapper=self)

    def _update(self, write: PendingWrite, row: Dict[str, Any], journal: List[Callable[[], None]]) -> None:
        entity, table = write.entity, write.table
        identity = self._identity_map.key_of(entity)
        snapshot = self._identity_map.snapshot_of(entity)
        changed = {
            column: value
            for column, value in row.items()
            if column not in snapshot or snapshot[column] != value
        }
        if not changed:
            return
        primary = self.style.primary_from_table(table)
        old_table, old_key = identity
        statement = self._statements().update(table).set(changed).where({primary: old_key})

        self.hooks.fire("before_update", entity, table=table, mapper=self, changed=dict(changed))
        self.execute(statement.sql, statement.params)
        journal.append(partial(self._identity_map.track, old_table, old_key, entity, snapshot))
        self._identity_map.track(table, row.get(primary, old_key), entity, snapshot={**snapshot, **row})
        self.hooks.fire("after_update", entity, table=table, mapper=self, changed=dict(changed))

    def _write_delete(self, write: PendingWrite, journal: List[Callable[[], None]]) -> None:
        entity, table = write.entity, write.table
        primary = self.style.primary_from_table(table)
        key = get_field(entity, self.style.column_to_property(primary))
        statement = self._statements().delete(table).where({primary: key})

        self.hooks.fire("before_delete", entity, table=table, mapper=self)
        self.execute(statement.sql, statement.params)
        identity = self._identity_map.key_of(entity)
        if identity is not None:
            snapshot = self._identity_map.snapshot_of(entity)
            self._identity_map.untrack(entity)
            journal.append(partial(self._identity_map.track, identity[0], identity[1], entity, snapshot))
        self.hooks.fire("after_delete", entity, table=table, mapper=self)

    def _generated_key(self, cursor: Any, table: str, primary: str) -> Any:
        try:
            return self.adapter.last_insert_id(cursor, table, primary)
        except Exception as exc:
            self.logger.warning("Could not read generated key for %s.%s: %s", table, primary, exc)
            return None

    @staticmethod
    def _undo(journal: List[Callable[[], None]]) -> None:
        for action in reversed(journal):
            action()
        journal.clear()

    # ------------------------------------------------------------------ #
    # Adapter access
    # ------------------------------------------------------------------ #
    def _statements(self) -> StatementBuilder:
        return StatementBuilder(self.adapter.dialect)

    def _table_columns(self, table: str) -> Optional[List[str]]:
        try:
            return self.adapter.table_columns(table)
        except AdapterError as exc:
            raise StatementExecutionError(
                f"<columns of {table}>", [], f"Could not inspect table '{table}': {exc}"
            ) from exc

    def _rows(self, cursor: Any, statement: Statement) -> Iterator[Any]:
        try:
            yield from cursor
        except Exception as exc:
            raise StatementExecutionError(
                statement.sql, redact_params(statement.params), f"Reading rows failed: {exc}"
            ) from exc

    def __repr__(self) -> str:
        style_name = getattr(self.style, "name", type(self.style).__name__)
        return f"<Mapper {type(self.adapter).__name__} style={style_name}>"
