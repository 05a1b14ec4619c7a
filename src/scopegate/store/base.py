"""Assignment Store protocol and helpers shared by its implementations.

The store is the only mutable shared state in scopegate. Both implementations
follow the same contract:

- Uniqueness of ``(principal, role, tier, context)`` among non-deleted rows;
  the losing writer of a race gets ``ConflictError``.
- Soft delete only. A second soft delete of the same row raises
  ``NotFoundError``, exactly like updating a retired row.
- Expiry is evaluated at read time against the store clock (or an explicit
  ``on`` date); nothing rewrites expired rows.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Callable, Iterable, Optional, Protocol, runtime_checkable

from ..exceptions import InvalidScopeError, ValidationError
from ..hierarchy import HierarchyIndex
from ..models import (
    Assignment,
    AssignmentFilters,
    AssignmentPage,
    AssignmentUpdate,
    ContextTier,
    ValidityWindow,
)

Clock = Callable[[], date]

MAX_PAGE_SIZE = 100


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


@runtime_checkable
class AssignmentStore(Protocol):
    """Durable storage of role assignments with temporal semantics."""

    def create_assignment(
        self,
        principal_id: int,
        role_id: int,
        tier: ContextTier,
        context_id: int,
        *,
        validity: Optional[ValidityWindow] = None,
        trade_type: Optional[str] = None,
        is_primary: bool = False,
        created_by: Optional[int] = None,
    ) -> Assignment: ...

    def create_bulk_assignments(
        self,
        principal_ids: Iterable[int],
        role_id: int,
        tier: ContextTier,
        context_id: int,
        *,
        validity: Optional[ValidityWindow] = None,
        trade_type: Optional[str] = None,
        is_primary: bool = False,
        created_by: Optional[int] = None,
    ) -> list[Assignment]: ...

    def get_assignment(self, assignment_id: int, *, include_deleted: bool = False) -> Assignment: ...

    def update_assignment(
        self,
        assignment_id: int,
        update: AssignmentUpdate,
        *,
        updated_by: Optional[int] = None,
    ) -> Assignment: ...

    def soft_delete_assignment(self, assignment_id: int, *, deleted_by: Optional[int] = None) -> None: ...

    def transfer_assignments(
        self,
        from_principal_id: int,
        to_principal_id: int,
        *,
        assignment_ids: Optional[Iterable[int]] = None,
        preserve_primary: bool = True,
        transferred_by: Optional[int] = None,
    ) -> int: ...

    def list_assignments(self, filters: AssignmentFilters) -> AssignmentPage: ...

    def list_active_assignments(
        self,
        principal_id: int,
        tier: Optional[ContextTier] = None,
        *,
        on: Optional[date] = None,
    ) -> list[Assignment]: ...

    def get_context_ids(self, principal_id: int, tier: ContextTier, *, on: Optional[date] = None) -> frozenset[int]:
        """Raw, un-expanded ids of active grants at exactly ``tier``."""
        ...


# ── Shared helpers ──────────────────────────────────────


def validate_context(hierarchy: Optional[HierarchyIndex], tier: ContextTier, context_id: int) -> None:
    """Reject grants on contexts the hierarchy does not know (no-op without an index)."""
    if hierarchy is None:
        return
    if not hierarchy.context_exists(tier, context_id):
        raise InvalidScopeError(
            f"{tier.value} with ID {context_id} not found or deleted",
            context_tier=tier.value,
            context_id=context_id,
        )


def resolve_changes(current: ValidityWindow, update: AssignmentUpdate) -> dict[str, Any]:
    """Turn a partial update into concrete field values.

    Date fields are folded into a new ``validity`` window so the
    start <= end check runs against the merged result.

    Raises:
        ValidationError: Nothing to update, a non-nullable field set to None,
            or the merged window is inverted.
    """
    changes = update.changes()
    if not changes:
        raise ValidationError("no fields to update")
    for field in ("role_id", "is_primary"):
        if field in changes and changes[field] is None:
            raise ValidationError(f"{field} cannot be cleared", field=field)

    start = changes.pop("start_date", current.start_date)
    end = changes.pop("end_date", current.end_date)
    if start is not None and end is not None and start > end:
        raise ValidationError("start_date must not be after end_date", start_date=str(start), end_date=str(end))
    changes["validity"] = ValidityWindow(start_date=start, end_date=end)
    return changes


def effective_page_size(filters: AssignmentFilters, default: int) -> int:
    size = filters.page_size or default
    return max(1, min(size, MAX_PAGE_SIZE))


__all__ = [
    "AssignmentStore",
    "Clock",
    "MAX_PAGE_SIZE",
    "effective_page_size",
    "resolve_changes",
    "utc_today",
    "validate_context",
]
