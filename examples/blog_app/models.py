"""
Entity classes for the relmap blog example.

The mapper finds these through ``entity_namespace``: rows of ``author`` become
``Author`` objects, ``post_category`` rows ``PostCategory`` objects and so on.
"""

from __future__ import annotations


class Author:
    def __repr__(self) -> str:
        return f"<Author {getattr(self, 'name', None)!r}>"


class Category:
    def __repr__(self) -> str:
        return f"<Category {getattr(self, 'name', None)!r}>"


class Post:
    @property
    def is_published(self) -> bool:
        return bool(getattr(self, "published", False))

    def __repr__(self) -> str:
        return f"<Post {getattr(self, 'title', None)!r}>"


class Comment:
    def __repr__(self) -> str:
        return f"<Comment {getattr(self, 'id', None)!r}>"


class PostCategory:
    pass
