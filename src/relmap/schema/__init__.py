"""
Schema helpers.
"""

from .builder import SchemaBuilder

__all__ = ["SchemaBuilder"]
