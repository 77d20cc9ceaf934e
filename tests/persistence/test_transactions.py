import sqlite3

import pytest

from relmap import Mapper, Record
from relmap.adapters import AdapterTransactionError, SQLiteAdapter
from relmap.dialects import SQLiteDialect
from relmap.mapping import StatementExecutionError
from relmap.persistence import TransactionError, TransactionManager


class FailingAdapter:
    """Adapter whose every statement fails, counting transaction calls."""

    def __init__(self):
        self.dialect = SQLiteDialect()
        self.calls = []

    def execute(self, sql, params=None):
        raise RuntimeError("prepare failed")

    def begin(self):
        self.calls.append("begin")

    def commit(self):
        self.calls.append("commit")

    def rollback(self):
        self.calls.append("rollback")

    def last_insert_id(self, cursor, table, pk_column):
        return None

    def table_columns(self, table):
        return None


class CommitOnceFailingAdapter(SQLiteAdapter):
    def __init__(self, connection):
        super().__init__(connection)
        self.refusals = 1

    def commit(self):
        if self.refusals:
            self.refusals -= 1
            raise AdapterTransactionError("commit refused")
        super().commit()


class BrokenLastInsertIdAdapter(SQLiteAdapter):
    def last_insert_id(self, cursor, table, pk_column):
        raise sqlite3.OperationalError("no generated key")


def test_failing_statement_rolls_back_once():
    adapter = FailingAdapter()
    mapper = Mapper(adapter)
    mapper.foo.persist(Record(id=None))
    with pytest.raises(StatementExecutionError) as excinfo:
        mapper.flush()
    assert isinstance(excinfo.value.__cause__, RuntimeError)
    assert adapter.calls == ["begin", "rollback"]


def test_failed_flush_clears_queue_and_reverts_identity(mapper, conn):
    ok = Record(id=None, name="ok")
    bad = Record(id=1, name="duplicate key")
    mapper.author.persist(ok)
    mapper.author.persist(bad)
    with pytest.raises(StatementExecutionError):
        mapper.flush()

    assert ok.id is None
    assert not mapper.is_tracked(ok)
    assert not mapper.is_tracked(bad)
    assert conn.execute("SELECT COUNT(*) FROM author").fetchone() == (1,)

    mapper.flush()
    assert conn.execute("SELECT COUNT(*) FROM author").fetchone() == (1,)


def test_failed_flush_retracks_deleted_entities(mapper, conn, dispatcher):
    def refuse(entity, **context):
        raise RuntimeError("delete vetoed")

    dispatcher.register("after_delete", refuse, table="comment")
    comment = mapper.comment[7].fetch()
    mapper.comment.remove(comment)
    with pytest.raises(RuntimeError, match="vetoed"):
        mapper.flush()
    assert mapper.get_tracked("comment", 7) is comment
    assert conn.execute("SELECT COUNT(*) FROM comment WHERE id = 7").fetchone() == (1,)


def test_rollback_hook_fires_on_failure(mapper, dispatcher):
    events = []
    dispatcher.register("after_rollback", lambda entity, **ctx: events.append(entity))
    mapper.author.persist(Record(id=1, name="duplicate key"))
    with pytest.raises(StatementExecutionError):
        mapper.flush()
    assert events == [None]


def test_generated_key_errors_are_ignored(caplog):
    conn = sqlite3.connect(":memory:")
    conn.execute("CREATE TABLE foo (id INTEGER PRIMARY KEY)")
    mapper = Mapper(BrokenLastInsertIdAdapter(conn))
    entity = Record(id=None)
    mapper.foo.persist(entity)
    mapper.flush()

    assert entity.id is None
    assert not mapper.is_tracked(entity)
    assert conn.execute("SELECT COUNT(*) FROM foo").fetchone() == (1,)
    assert any("Could not read generated key" in record.message for record in caplog.records)
    conn.close()


def test_transaction_block_flushes_on_exit(mapper, conn):
    with mapper.transaction():
        mapper.author.persist(Record(id=None, name="inside"))
    assert conn.execute("SELECT name FROM author WHERE id = 2").fetchone() == ("inside",)


def test_transaction_block_rolls_back_earlier_flushes(mapper, conn):
    author = Record(id=None, name="inside")
    with pytest.raises(RuntimeError):
        with mapper.transaction():
            mapper.author.persist(author)
            mapper.flush()
            assert author.id == 2
            raise RuntimeError("abort")

    assert conn.execute("SELECT COUNT(*) FROM author").fetchone() == (1,)
    assert author.id is None
    assert not mapper.is_tracked(author)


def test_nested_transaction_uses_savepoint(mapper, conn):
    kept = Record(id=None, name="kept")
    dropped = Record(id=None, name="dropped")
    with mapper.transaction():
        mapper.author.persist(kept)
        mapper.flush()
        with pytest.raises(RuntimeError):
            with mapper.transaction():
                mapper.author.persist(dropped)
                mapper.flush()
                raise RuntimeError("inner abort")

    names = [name for (name,) in conn.execute("SELECT name FROM author ORDER BY id")]
    assert names == ["Author 1", "kept"]
    assert mapper.is_tracked(kept)
    assert not mapper.is_tracked(dropped)


def test_transaction_manager_requires_open_scope(conn):
    manager = TransactionManager(SQLiteAdapter(conn))
    with pytest.raises(TransactionError):
        manager.commit()
    with pytest.raises(TransactionError):
        manager.rollback()


def test_transaction_manager_nests_with_savepoints(conn):
    adapter = SQLiteAdapter(conn)
    manager = TransactionManager(adapter)
    with manager.scope():
        assert manager.depth == 1
        with manager.scope():
            assert manager.depth == 2
            adapter.execute("INSERT INTO author (id, name) VALUES (2, 'nested')")
    assert not manager.active
    assert conn.execute("SELECT name FROM author WHERE id = 2").fetchone() == ("nested",)


def test_failed_commit_rolls_back_and_mapper_recovers(conn):
    mapper = Mapper(CommitOnceFailingAdapter(conn))
    refused = Record(id=None, name="refused")
    mapper.author.persist(refused)
    with pytest.raises(AdapterTransactionError):
        mapper.flush()

    assert not conn.in_transaction
    assert conn.execute("SELECT COUNT(*) FROM author").fetchone() == (1,)
    assert refused.id is None
    assert not mapper.is_tracked(refused)

    mapper.author.persist(Record(id=None, name="accepted"))
    mapper.flush()
    assert conn.execute("SELECT name FROM author WHERE id = 2").fetchone() == ("accepted",)


def test_transaction_manager_keeps_scope_until_commit_succeeds(conn):
    adapter = CommitOnceFailingAdapter(conn)
    manager = TransactionManager(adapter)
    manager.begin()
    with pytest.raises(AdapterTransactionError):
        manager.commit()
    assert manager.depth == 1
    manager.rollback()
    assert not manager.active
    assert not conn.in_transaction
