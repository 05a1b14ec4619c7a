"""In-memory Assignment Store.

Thread-safe: every write runs under one lock, which serializes concurrent
creation of the same grant so exactly one writer wins and the rest get
``ConflictError``. Reads take the same lock for a consistent snapshot.
"""

from __future__ import annotations

import itertools
import logging
import threading
from datetime import date
from typing import Iterable, Optional

from ..exceptions import ConflictError, NotFoundError
from ..hierarchy import HierarchyIndex
from ..models import (
    Assignment,
    AssignmentFilters,
    AssignmentPage,
    AssignmentUpdate,
    ContextTier,
    ValidityWindow,
    utcnow,
)
from .base import Clock, effective_page_size, resolve_changes, utc_today, validate_context

logger = logging.getLogger(__name__)


class InMemoryAssignmentStore:
    """Dict-backed AssignmentStore.

    Args:
        hierarchy: When given, grants are validated against it on creation.
        clock: Returns "today" for the active-window check.
        default_page_size: Page size for ``list_assignments`` when unset.
    """

    def __init__(
        self,
        *,
        hierarchy: Optional[HierarchyIndex] = None,
        clock: Optional[Clock] = None,
        default_page_size: int = 50,
    ) -> None:
        self._hierarchy = hierarchy
        self._clock = clock or utc_today
        self._default_page_size = default_page_size
        self._rows: dict[int, Assignment] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    # ── Writes ───────────────────────────────────────────

    def _active_duplicate(self, key: tuple, exclude_id: Optional[int] = None) -> Optional[Assignment]:
        for row in self._rows.values():
            if not row.is_deleted and row.grant_key == key and row.id != exclude_id:
                return row
        return None

    def _new_row(
        self,
        principal_id: int,
        role_id: int,
        tier: ContextTier,
        context_id: int,
        validity: Optional[ValidityWindow],
        trade_type: Optional[str],
        is_primary: bool,
        created_by: Optional[int],
    ) -> Assignment:
        now = utcnow()
        return Assignment(
            id=next(self._ids),
            principal_id=principal_id,
            role_id=role_id,
            context_tier=tier,
            context_id=context_id,
            trade_type=trade_type or None,
            is_primary=is_primary,
            validity=validity or ValidityWindow(),
            created_by=created_by,
            updated_by=created_by,
            created_at=now,
            updated_at=now,
        )

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
    ) -> Assignment:
        tier = ContextTier(tier)
        validate_context(self._hierarchy, tier, context_id)

        with self._lock:
            key = (principal_id, role_id, tier, context_id)
            existing = self._active_duplicate(key)
            if existing is not None:
                raise ConflictError(
                    "an active assignment with this principal, role and context already exists",
                    assignment_id=existing.id,
                )
            row = self._new_row(principal_id, role_id, tier, context_id, validity, trade_type, is_primary, created_by)
            self._rows[row.id] = row

        logger.info(
            "Created assignment %s",
            row.id,
            extra={"principal_id": principal_id, "context_tier": tier.value, "context_id": context_id},
        )
        return row

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
    ) -> list[Assignment]:
        tier = ContextTier(tier)
        validate_context(self._hierarchy, tier, context_id)
        principal_ids = list(dict.fromkeys(principal_ids))

        with self._lock:
            for principal_id in principal_ids:
                if self._active_duplicate((principal_id, role_id, tier, context_id)) is not None:
                    raise ConflictError(
                        f"principal {principal_id} already holds this assignment",
                        principal_id=principal_id,
                    )
            created = [
                self._new_row(pid, role_id, tier, context_id, validity, trade_type, is_primary, created_by)
                for pid in principal_ids
            ]
            for row in created:
                self._rows[row.id] = row

        logger.info(
            "Created %d bulk assignments",
            len(created),
            extra={"context_tier": tier.value, "context_id": context_id},
        )
        return created

    def update_assignment(
        self,
        assignment_id: int,
        update: AssignmentUpdate,
        *,
        updated_by: Optional[int] = None,
    ) -> Assignment:
        with self._lock:
            current = self._live_row(assignment_id)
            changes = resolve_changes(current.validity, update)
            if "trade_type" in changes:
                changes["trade_type"] = changes["trade_type"] or None
            updated = current.model_copy(update={**changes, "updated_by": updated_by, "updated_at": utcnow()})
            if updated.grant_key != current.grant_key and self._active_duplicate(updated.grant_key, assignment_id):
                raise ConflictError("an active assignment with this principal, role and context already exists")
            self._rows[assignment_id] = updated
        return updated

    def soft_delete_assignment(self, assignment_id: int, *, deleted_by: Optional[int] = None) -> None:
        with self._lock:
            current = self._live_row(assignment_id)
            self._rows[assignment_id] = current.model_copy(
                update={"is_deleted": True, "updated_by": deleted_by, "updated_at": utcnow()}
            )
        logger.info("Soft-deleted assignment %s", assignment_id, extra={"deleted_by": deleted_by})

    def transfer_assignments(
        self,
        from_principal_id: int,
        to_principal_id: int,
        *,
        assignment_ids: Optional[Iterable[int]] = None,
        preserve_primary: bool = True,
        transferred_by: Optional[int] = None,
    ) -> int:
        today = self._clock()
        with self._lock:
            if assignment_ids is not None:
                wanted = set(assignment_ids)
                moving = [
                    row
                    for row in self._rows.values()
                    if row.id in wanted and row.principal_id == from_principal_id and not row.is_deleted
                ]
            else:
                moving = [
                    row for row in self._rows.values() if row.principal_id == from_principal_id and row.is_active(today)
                ]
            if not moving:
                raise NotFoundError("no assignments found to transfer")

            now = utcnow()
            moved = []
            for row in moving:
                update = {"principal_id": to_principal_id, "updated_by": transferred_by, "updated_at": now}
                if not preserve_primary:
                    update["is_primary"] = False
                moved.append(row.model_copy(update=update))
            for row in moved:
                if self._active_duplicate(row.grant_key, row.id) is not None:
                    raise ConflictError(
                        f"principal {to_principal_id} already holds assignment for "
                        f"{row.context_tier.value} {row.context_id}",
                    )
            for row in moved:
                self._rows[row.id] = row

        logger.info(
            "Transferred %d assignments from %s to %s",
            len(moved),
            from_principal_id,
            to_principal_id,
            extra={"transferred_by": transferred_by},
        )
        return len(moved)

    # ── Reads ────────────────────────────────────────────

    def _live_row(self, assignment_id: int) -> Assignment:
        row = self._rows.get(assignment_id)
        if row is None or row.is_deleted:
            raise NotFoundError(f"assignment {assignment_id} not found", assignment_id=assignment_id)
        return row

    def get_assignment(self, assignment_id: int, *, include_deleted: bool = False) -> Assignment:
        with self._lock:
            if include_deleted and assignment_id in self._rows:
                return self._rows[assignment_id]
            return self._live_row(assignment_id)

    def list_assignments(self, filters: AssignmentFilters) -> AssignmentPage:
        today = self._clock()
        with self._lock:
            rows = [row for row in self._rows.values() if _matches(row, filters, today)]
        rows.sort(key=lambda row: (row.created_at, row.id), reverse=True)

        page_size = effective_page_size(filters, self._default_page_size)
        offset = (filters.page - 1) * page_size
        return AssignmentPage(
            items=rows[offset : offset + page_size],
            total=len(rows),
            page=filters.page,
            page_size=page_size,
        )

    def list_active_assignments(
        self,
        principal_id: int,
        tier: Optional[ContextTier] = None,
        *,
        on: Optional[date] = None,
    ) -> list[Assignment]:
        today = on or self._clock()
        with self._lock:
            rows = [
                row
                for row in self._rows.values()
                if row.principal_id == principal_id
                and (tier is None or row.context_tier == tier)
                and row.is_active(today)
            ]
        return sorted(rows, key=lambda row: row.id)

    def get_context_ids(self, principal_id: int, tier: ContextTier, *, on: Optional[date] = None) -> frozenset[int]:
        return frozenset(row.context_id for row in self.list_active_assignments(principal_id, tier, on=on))


def _matches(row: Assignment, filters: AssignmentFilters, today: date) -> bool:
    if filters.active_only:
        if not row.is_active(today):
            return False
    elif row.is_deleted and not filters.include_deleted:
        return False
    checks = (
        (filters.principal_id, row.principal_id),
        (filters.role_id, row.role_id),
        (filters.context_tier, row.context_tier),
        (filters.context_id, row.context_id),
        (filters.is_primary, row.is_primary),
        (filters.trade_type, row.trade_type),
    )
    return all(wanted is None or wanted == actual for wanted, actual in checks)


__all__ = ["InMemoryAssignmentStore"]
