"""
Blog-style sample application showcasing relmap relations and persistence.
"""

from .demo import bootstrap_mapper, fetch_recent_posts, posts_by_category, run_demo, seed_sample_data
from .models import Author, Category, Comment, Post, PostCategory

__all__ = [
    "Author",
    "Category",
    "Comment",
    "Post",
    "PostCategory",
    "bootstrap_mapper",
    "seed_sample_data",
    "fetch_recent_posts",
    "posts_by_category",
    "run_demo",
]
