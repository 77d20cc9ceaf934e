"""
Utility helpers for running the relmap blog example end-to-end.
"""

from __future__ import annotations

from typing import Any, Dict, List

from relmap import Mapper, Sql
from relmap.adapters import ConnectionConfig, SQLiteAdapter
from relmap.dialects import Dialect, SQLiteDialect
from relmap.schema import SchemaBuilder

from . import models
from .models import Author, Category, Comment, Post, PostCategory

TABLES: Dict[str, Dict[str, str]] = {
    "author": {
        "id": "INTEGER PRIMARY KEY AUTOINCREMENT",
        "name": "TEXT NOT NULL",
        "email": "TEXT NOT NULL UNIQUE",
    },
    "category": {
        "id": "INTEGER PRIMARY KEY AUTOINCREMENT",
        "name": "TEXT NOT NULL UNIQUE",
        "category_id": "INTEGER REFERENCES category(id)",
    },
    "post": {
        "id": "INTEGER PRIMARY KEY AUTOINCREMENT",
        "title": "TEXT NOT NULL",
        "body": "TEXT NOT NULL",
        "published": "INTEGER NOT NULL DEFAULT 0",
        "author_id": "INTEGER NOT NULL REFERENCES author(id)",
    },
    "comment": {
        "id": "INTEGER PRIMARY KEY AUTOINCREMENT",
        "post_id": "INTEGER NOT NULL REFERENCES post(id)",
        "text": "TEXT NOT NULL",
    },
    "post_category": {
        "id": "INTEGER PRIMARY KEY AUTOINCREMENT",
        "post_id": "INTEGER NOT NULL REFERENCES post(id)",
        "category_id": "INTEGER NOT NULL REFERENCES category(id)",
    },
}


def bootstrap_mapper(dsn: str = "sqlite:///:memory:") -> Mapper:
    """
    Create a SQLite-backed mapper and ensure the blog schema exists.
    """

    adapter = SQLiteAdapter()
    adapter.connect(ConnectionConfig.from_dsn(dsn))
    _ensure_schema(adapter)
    return Mapper(adapter, entity_namespace=models)


def seed_sample_data(mapper: Mapper) -> Dict[str, List[Any]]:
    """
    Persist authors, categories, posts and comments in one flush.
    """

    alice = _entity(Author, name="Alice Carter", email="alice@example.com")
    brian = _entity(Author, name="Brian Kim", email="brian@example.com")
    news = _entity(Category, name="Announcements", category_id=None)
    guides = _entity(Category, name="Guides", category_id=None)
    posts = [
        _entity(Post, title="Introducing relmap", body="Relations from naming conventions.", published=1, author_id=alice),
        _entity(Post, title="Eliminating N+1 queries", body="Join the rows you need up front.", published=1, author_id=brian),
        _entity(Post, title="Draft: identity maps", body="Work in progress.", published=0, author_id=alice),
    ]
    links = [
        _entity(PostCategory, post_id=posts[0], category_id=news),
        _entity(PostCategory, post_id=posts[1], category_id=guides),
        _entity(PostCategory, post_id=posts[2], category_id=guides),
    ]
    comments = [
        _entity(Comment, post_id=posts[0], text="Congratulations!"),
        _entity(Comment, post_id=posts[1], text="Very helpful."),
    ]

    for link in links:
        mapper.post_category.persist(link)
    for comment in comments:
        mapper.comment.persist(comment)
    mapper.flush()

    return {
        "authors": [alice, brian],
        "categories": [news, guides],
        "posts": posts,
        "comments": comments,
    }


def fetch_recent_posts(mapper: Mapper, limit: int = 5) -> List[Dict[str, Any]]:
    """
    Published posts with their author, newest first, fetched in one statement.
    """

    posts = mapper.post(published=1).author.fetch_all(Sql.raw(f"ORDER BY post.id DESC LIMIT {int(limit)}"))
    return [
        {
            "id": post.id,
            "title": post.title,
            "published": post.is_published,
            "author_name": post.author_id.name,
        }
        for post in posts
    ]


def posts_by_category(mapper: Mapper, name: str) -> List[str]:
    """
    Titles of the posts filed under ``name``, resolved through the junction table.
    """

    category = mapper.category(name=name).post.fetch()
    if category is None:
        return []
    return [post.title for post in mapper.related(category, "post")]


def run_demo(dsn: str = "sqlite:///:memory:") -> List[Dict[str, Any]]:
    """
    Bootstrap the database, seed data, and return a rendered feed.
    """

    mapper = bootstrap_mapper(dsn=dsn)
    try:
        seed_sample_data(mapper)
        return fetch_recent_posts(mapper)
    finally:
        mapper.adapter.close()
        mapper.close()


def _entity(cls: type, **fields: Any) -> Any:
    entity = cls()
    for name, value in fields.items():
        setattr(entity, name, value)
    return entity


def _ensure_schema(adapter: SQLiteAdapter, dialect: Dialect | None = None) -> None:
    builder = SchemaBuilder(dialect or SQLiteDialect())
    for table, columns in TABLES.items():
        adapter.execute(builder.create_table_sql(table, columns))


if __name__ == "__main__":
    mapper = bootstrap_mapper("sqlite:///blog_demo.db")
    try:
        seed_sample_data(mapper)
        for entry in fetch_recent_posts(mapper):
            print(f"{entry['title']} by {entry['author_name']}")
        print("Guides:", ", ".join(posts_by_category(mapper, "Guides")))
    finally:
        mapper.adapter.close()
        mapper.close()
