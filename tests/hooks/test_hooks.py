import sqlite3

import pytest

from relmap import Mapper, Record
from relmap.hooks import EVENTS, HookDispatcher, hooks


@pytest.fixture(autouse=True)
def clear_hooks():
    hooks.clear()
    yield
    hooks.clear()


@pytest.fixture
def sample_mapper():
    conn = sqlite3.connect(":memory:")
    conn.execute("CREATE TABLE sample (id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT NOT NULL)")
    yield Mapper(conn, style="standard")
    conn.close()


def test_hooks_fire_in_order(sample_mapper):
    events = []

    for event_name in sorted(EVENTS):
        def handler(entity, event=event_name, **ctx):
            events.append((event, entity.name if entity else None))

        hooks.register(event_name, handler)

    sample = Record(id=None, name="Alice")
    sample_mapper.sample.persist(sample)
    sample_mapper.flush()

    sample.name = "Alicia"
    sample_mapper.sample.persist(sample)
    sample_mapper.flush()

    sample_mapper.sample.remove(sample)
    sample_mapper.flush()

    assert events == [
        ("before_insert", "Alice"),
        ("after_insert", "Alice"),
        ("after_flush", None),
        ("before_update", "Alicia"),
        ("after_update", "Alicia"),
        ("after_flush", None),
        ("before_delete", "Alicia"),
        ("after_delete", "Alicia"),
        ("after_flush", None),
    ]


def test_table_scoped_hooks_follow_global_ones(sample_mapper):
    calls = []
    hooks.register("before_insert", lambda entity, **ctx: calls.append(("global", ctx["table"])))
    hooks.register("before_insert", lambda entity, **ctx: calls.append(("sample", ctx["table"])), table="sample")
    hooks.register("before_insert", lambda entity, **ctx: calls.append(("other", ctx["table"])), table="other")

    sample_mapper.sample.persist(Record(id=None, name="Bob"))
    sample_mapper.flush()

    assert calls == [("global", "sample"), ("sample", "sample")]


def test_after_flush_reports_counts(sample_mapper):
    reports = []

    @hooks.on("after_flush")
    def record_counts(entity, **ctx):
        reports.append(ctx["counts"])

    sample_mapper.sample.persist(Record(id=None, name="one"))
    sample_mapper.sample.persist(Record(id=None, name="two"))
    sample_mapper.flush()

    assert reports == [{"insert": 2, "update": 0, "delete": 0}]


def test_hook_errors_abort_the_flush(sample_mapper):
    def refuse(entity, **ctx):
        raise RuntimeError("not allowed")

    hooks.register("before_insert", refuse, table="sample")
    sample = Record(id=None, name="Carol")
    sample_mapper.sample.persist(sample)
    with pytest.raises(RuntimeError, match="not allowed"):
        sample_mapper.flush()
    assert sample.id is None
    assert sample_mapper.sample.fetch_all() == []


def test_unknown_events_are_rejected():
    with pytest.raises(ValueError):
        HookDispatcher().register("before_validate", lambda entity, **ctx: None)


def test_dispatchers_are_independent():
    local = HookDispatcher()
    calls = []
    local.register("after_rollback", lambda entity, **ctx: calls.append(entity))
    hooks.fire("after_rollback")
    local.fire("after_rollback")
    assert calls == [None]
