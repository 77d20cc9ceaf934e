import sqlite3

import pytest

from relmap import Mapper
from relmap.dialects import SQLiteDialect
from relmap.hooks import HookDispatcher
from relmap.schema import SchemaBuilder

BLOG_TABLES = {
    "post": {"id": "INTEGER PRIMARY KEY", "title": "VARCHAR(255)", "text": "TEXT", "author_id": "INTEGER"},
    "author": {"id": "INTEGER PRIMARY KEY", "name": "VARCHAR(255)"},
    "comment": {"id": "INTEGER PRIMARY KEY", "post_id": "INTEGER", "text": "TEXT"},
    "category": {"id": "INTEGER PRIMARY KEY", "name": "VARCHAR(255)", "category_id": "INTEGER"},
    "post_category": {"id": "INTEGER PRIMARY KEY", "post_id": "INTEGER", "category_id": "INTEGER"},
}

BLOG_ROWS = {
    "author": [{"id": 1, "name": "Author 1"}],
    "post": [{"id": 5, "title": "Post Title", "text": "Post Text", "author_id": 1}],
    "comment": [
        {"id": 7, "post_id": 5, "text": "Comment Text"},
        {"id": 8, "post_id": 4, "text": "Comment Text 2"},
    ],
    "category": [
        {"id": 2, "name": "Sample Category", "category_id": None},
        {"id": 3, "name": "NONON", "category_id": None},
    ],
    "post_category": [{"id": 66, "post_id": 5, "category_id": 2}],
}


def create_blog_schema(conn):
    builder = SchemaBuilder(SQLiteDialect())
    for table, columns in BLOG_TABLES.items():
        conn.execute(builder.create_table_sql(table, columns))
    for table, rows in BLOG_ROWS.items():
        for row in rows:
            columns = ", ".join(row)
            placeholders = ", ".join("?" for _ in row)
            conn.execute(f"INSERT INTO {table} ({columns}) VALUES ({placeholders})", tuple(row.values()))
    conn.commit()


@pytest.fixture
def conn():
    connection = sqlite3.connect(":memory:")
    create_blog_schema(connection)
    yield connection
    connection.close()


@pytest.fixture
def dispatcher():
    return HookDispatcher()


@pytest.fixture
def mapper(conn, dispatcher):
    instance = Mapper(conn, style="standard", hooks=dispatcher)
    yield instance
    instance.close()
