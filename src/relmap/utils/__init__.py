"""
Utility helpers shared across relmap packages.
"""

from .logging import configure_logging, get_logger, time_call
from .naming import camel_to_snake, pluralize, singularize, snake_to_camel

__all__ = [
    "camel_to_snake",
    "configure_logging",
    "get_logger",
    "pluralize",
    "singularize",
    "snake_to_camel",
    "time_call",
]
