"""Hierarchy Index: organization -> location -> project edges.

Provides:
- ``HierarchyIndex``: protocol consumed by the resolver and the stores.
- ``InMemoryHierarchyIndex``: dict-backed implementation.
- ``SqlHierarchyIndex``: reads the resource tables via SQLAlchemy.
"""

from .base import HierarchyIndex
from .memory import InMemoryHierarchyIndex
from .sql import SqlHierarchyIndex

__all__ = [
    "HierarchyIndex",
    "InMemoryHierarchyIndex",
    "SqlHierarchyIndex",
]
