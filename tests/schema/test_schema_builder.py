import logging
import sqlite3

import pytest

from relmap.dialects import MySQLDialect, SQLiteDialect
from relmap.schema import SchemaBuilder

dialect = SQLiteDialect()
builder = SchemaBuilder(dialect)


def test_create_table_sql():
    sql = builder.create_table_sql(
        "author",
        {"id": "INTEGER PRIMARY KEY", "name": "TEXT NOT NULL", "age": "INTEGER DEFAULT 0"},
    )
    expected = (
        'CREATE TABLE IF NOT EXISTS "author" '
        '("id" INTEGER PRIMARY KEY, "name" TEXT NOT NULL, "age" INTEGER DEFAULT 0)'
    )
    assert sql == expected


def test_create_junction_table_with_unique_pair():
    sql = SchemaBuilder(MySQLDialect()).create_table_sql(
        "post_category",
        {"id": "INTEGER PRIMARY KEY", "post_id": "INTEGER", "category_id": "INTEGER"},
        unique=[("post_id", "category_id")],
        if_not_exists=False,
    )
    assert sql == (
        "CREATE TABLE `post_category` (`id` INTEGER PRIMARY KEY, `post_id` INTEGER, "
        "`category_id` INTEGER, UNIQUE (`post_id`, `category_id`))"
    )


def test_generated_sql_runs_on_sqlite():
    conn = sqlite3.connect(":memory:")
    conn.execute(builder.create_table_sql("author", {"id": "INTEGER PRIMARY KEY", "name": "TEXT"}))
    conn.execute(builder.create_table_sql("author", {"id": "INTEGER PRIMARY KEY", "name": "TEXT"}))
    assert [row[1] for row in conn.execute('PRAGMA table_info("author")')] == ["id", "name"]
    conn.close()


def test_create_table_requires_columns():
    with pytest.raises(ValueError):
        builder.create_table_sql("empty", {})


def test_drop_table_requires_force():
    with pytest.raises(RuntimeError):
        builder.drop_table_sql("author")
    assert builder.drop_table_sql("author", force=True) == 'DROP TABLE IF EXISTS "author"'


def test_drop_table_logs_warning(caplog):
    caplog.set_level(logging.WARNING, logger="relmap.schema.builder")
    SchemaBuilder(SQLiteDialect()).drop_table_sql("author", force=True)
    assert any("DROP TABLE generated" in record.message for record in caplog.records)
