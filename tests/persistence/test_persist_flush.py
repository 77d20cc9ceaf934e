import types

import pytest

from relmap import Record
from relmap.mapping import CircularDependencyError


def row(conn, sql, *params):
    return conn.execute(sql, params).fetchone()


def test_persist_with_explicit_key_inserts(mapper, conn):
    entity = types.SimpleNamespace(id=4, name="inserted", category_id=None)
    mapper.category.persist(entity)
    mapper.flush()
    assert row(conn, "SELECT id, name, category_id FROM category WHERE id = 4") == (4, "inserted", None)
    assert mapper.get_tracked("category", 4) is entity


def test_persist_generates_key(mapper, conn):
    entity = Record(id=None, name="inserted", category_id=None)
    mapper.category.persist(entity)
    mapper.flush()
    assert entity.id == 4
    assert row(conn, "SELECT id FROM category WHERE name = 'inserted'") == (4,)
    assert mapper.is_tracked(entity)


def test_dict_entities_are_persisted(mapper, conn):
    entity = {"id": None, "name": "from dict"}
    mapper.author.persist(entity)
    mapper.flush()
    assert entity["id"] == 2
    assert row(conn, "SELECT name FROM author WHERE id = 2") == ("from dict",)


def test_nested_entity_is_inserted_before_its_dependent(mapper, conn):
    post = Record(id=None, title="hi", text="hi text", author_id=Record(id=None, name="New"))
    mapper.post.author.persist(post)
    mapper.flush()
    author = row(conn, "SELECT id, name FROM author ORDER BY id DESC LIMIT 1")
    stored = row(conn, "SELECT title, author_id FROM post ORDER BY id DESC LIMIT 1")
    assert author == (2, "New")
    assert stored == ("hi", 2)
    assert post.author_id.id == 2


def test_chained_relation_guides_nested_persist(mapper, monkeypatch):
    calls = []
    enqueue = mapper._enqueue

    def recording_enqueue(entity, table, branches, visited):
        calls.append((table, branches))
        return enqueue(entity, table, branches, visited)

    monkeypatch.setattr(mapper, "_enqueue", recording_enqueue)
    post = Record(id=None, title="hi", text="hi text", author_id=Record(id=None, name="New"))
    mapper.comment.post.author.persist(Record(id=None, text="nested", post_id=post))

    assert calls[0] == ("comment", [("post", [("author", [])])])
    assert calls[1] == ("post", [("author", [])])
    assert calls[2] == ("author", [])


def test_nested_persist_through_shortcut(mapper, conn):
    mapper.post_author = mapper.post.author
    post = Record(id=None, title="hi", text="hi text", author_id=Record(id=None, name="New"))
    mapper.post_author.persist(post)
    mapper.flush()
    assert row(conn, "SELECT name FROM author ORDER BY id DESC LIMIT 1") == ("New",)
    assert row(conn, "SELECT title FROM post ORDER BY id DESC LIMIT 1") == ("hi",)


def test_nested_persist_through_children_shortcut(mapper, conn):
    mapper.post_author = mapper.post(mapper.author)
    post = Record(id=None, title="hi", text="hi text", author_id=Record(id=None, name="New"))
    mapper.post_author.persist(post)
    mapper.flush()
    assert row(conn, "SELECT name FROM author ORDER BY id DESC LIMIT 1") == ("New",)
    assert row(conn, "SELECT author_id FROM post ORDER BY id DESC LIMIT 1") == (2,)


def test_shortcut_is_readable_as_relation(mapper):
    mapper.post_author = mapper.post.author
    post = mapper.post_author.fetch()
    assert post.author_id.name == "Author 1"


def test_referenced_entity_persisted_separately(mapper, conn):
    post = types.SimpleNamespace(id=None, title=12345, text="text abc")
    comment = types.SimpleNamespace(id=None, post_id=post, text="abc")
    mapper.comment.persist(comment)
    mapper.post.persist(post)
    mapper.flush()
    post_id = row(conn, "SELECT id FROM post WHERE title = 12345")[0]
    assert row(conn, "SELECT text FROM comment WHERE post_id = ?", post_id) == ("abc",)
    assert comment.post_id is post


def test_fetched_entity_is_updated(mapper, conn):
    comment = mapper.comment[8].fetch()
    comment.text = "HeyHey"
    mapper.comment.persist(comment)
    mapper.flush()
    assert row(conn, "SELECT text FROM comment WHERE id = 8") == ("HeyHey",)


def test_update_writes_only_changed_columns(mapper, dispatcher):
    changes = []
    dispatcher.register("before_update", lambda entity, **ctx: changes.append(ctx["changed"]))
    comment = mapper.comment[8].fetch()
    comment.text = "HeyHey"
    mapper.comment.persist(comment)
    mapper.flush()
    assert changes == [{"text": "HeyHey"}]


def test_unchanged_tracked_entity_issues_no_statement(mapper):
    comment = mapper.comment[7].fetch()
    mapper.performance.reset()
    mapper.comment.persist(comment)
    mapper.flush()
    assert mapper.query_stats() == []


def test_nested_fetched_entity_keeps_its_reference_on_update(mapper, conn):
    comment = mapper.comment.post[5].fetch()
    comment.text = "edited"
    mapper.comment.post.persist(comment)
    mapper.flush()
    assert row(conn, "SELECT post_id, text FROM comment WHERE id = 7") == (5, "edited")
    assert comment.post_id.id == 5


def test_typed_entity_update_and_insert(mapper, conn):
    class Comment:
        def __init__(self):
            self.id = None
            self.post_id = None
            self.text = None

    mapper.entity_namespace = types.SimpleNamespace(Comment=Comment)
    fetched = mapper.comment[8].fetch()
    fetched.text = "HeyHey"
    mapper.comment.persist(fetched)

    created = Comment()
    created.text = "New one"
    mapper.comment.persist(created)
    mapper.flush()

    assert row(conn, "SELECT text FROM comment WHERE id = 8") == ("HeyHey",)
    assert created.id == 9
    assert row(conn, "SELECT text FROM comment WHERE id = 9") == ("New one",)


def test_remove_fetched_entity(mapper, conn):
    comment = mapper.comment[8].fetch()
    before = row(conn, "SELECT COUNT(*) FROM comment")[0]
    mapper.comment.remove(comment)
    mapper.flush()
    assert row(conn, "SELECT COUNT(*) FROM comment")[0] == before - 1
    assert not mapper.is_tracked(comment)
    assert mapper.comment[8].fetch() is None


def test_remove_untracked_entity_by_key(mapper):
    assert mapper.comment[7].fetch() is not None
    mapper.comment.remove(types.SimpleNamespace(id=7))
    mapper.flush()
    assert mapper.comment[7].fetch() is None


def test_remove_overrides_queued_save(mapper, conn):
    comment = mapper.comment[7].fetch()
    comment.text = "never written"
    mapper.comment.persist(comment)
    mapper.comment.remove(comment)
    mapper.flush()
    assert row(conn, "SELECT COUNT(*) FROM comment WHERE id = 7") == (0,)


def test_cycle_is_rejected_before_any_write(mapper, conn):
    first = Record(id=None, name="first", category_id=None)
    second = Record(id=None, name="second", category_id=first)
    first.category_id = second
    mapper.category.persist(first)
    with pytest.raises(CircularDependencyError) as excinfo:
        mapper.flush()
    assert excinfo.value.tables == ["category", "category", "category"]
    assert row(conn, "SELECT COUNT(*) FROM category") == (2,)

    mapper.flush()
    assert row(conn, "SELECT COUNT(*) FROM category") == (2,)


def test_reference_to_tracked_entity_needs_no_ordering(mapper, conn):
    parent = mapper.category[2].fetch()
    parent.category_id = parent
    child = Record(id=None, name="child", category_id=parent)
    mapper.category.persist(child)
    mapper.flush()
    assert row(conn, "SELECT category_id FROM category WHERE name = 'child'") == (2,)
    assert row(conn, "SELECT category_id FROM category WHERE id = 2") == (2,)


def test_flush_with_empty_queue_is_a_no_op(mapper):
    mapper.flush()
    assert mapper.query_stats() == []


def test_persist_rejects_scalars(mapper):
    with pytest.raises(TypeError):
        mapper.comment.persist("not an entity")
