"""Assignment Store: durable role grants with temporal semantics.

Provides:
- ``AssignmentStore``: protocol consumed by the resolver.
- ``InMemoryAssignmentStore``: lock-serialized dict implementation.
- ``SqlAssignmentStore``: SQLAlchemy implementation over ``user_assignments``.
"""

from .base import AssignmentStore, utc_today
from .memory import InMemoryAssignmentStore
from .sql import SqlAssignmentStore

__all__ = [
    "AssignmentStore",
    "InMemoryAssignmentStore",
    "SqlAssignmentStore",
    "utc_today",
]
