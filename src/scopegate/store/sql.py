"""Relational Assignment Store on SQLAlchemy.

Uniqueness of active grants is enforced by the partial unique index
``uq_user_assignments_active_grant``; the losing writer's ``IntegrityError``
is translated into ``ConflictError``. Every other driver error propagates
unchanged. Resolution reads need read-committed isolation or better; with
read replicas a grant written on the primary may not be visible to an
immediately following resolution.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import date
from typing import Iterable, Iterator, Optional

from sqlalchemy import Select, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from ..exceptions import ConflictError, NotFoundError
from ..hierarchy import HierarchyIndex
from ..models import (
    Assignment,
    AssignmentFilters,
    AssignmentPage,
    AssignmentUpdate,
    ContextTier,
    ValidityWindow,
)
from ..schema import AssignmentRecord
from .base import Clock, effective_page_size, resolve_changes, utc_today, validate_context

logger = logging.getLogger(__name__)


def _to_model(record: AssignmentRecord) -> Assignment:
    return Assignment(
        id=record.id,
        principal_id=record.principal_id,
        role_id=record.role_id,
        context_tier=ContextTier(record.context_tier),
        context_id=record.context_id,
        trade_type=record.trade_type,
        is_primary=record.is_primary,
        validity=ValidityWindow(start_date=record.start_date, end_date=record.end_date),
        is_deleted=record.is_deleted,
        created_by=record.created_by,
        updated_by=record.updated_by,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


def _active_on(stmt: Select, on: date) -> Select:
    return stmt.where(
        AssignmentRecord.is_deleted.is_(False),
        (AssignmentRecord.start_date.is_(None)) | (AssignmentRecord.start_date <= on),
        (AssignmentRecord.end_date.is_(None)) | (AssignmentRecord.end_date >= on),
    )


class SqlAssignmentStore:
    """AssignmentStore over the ``user_assignments`` table.

    Args:
        engine: SQLAlchemy engine (see ``scopegate.config.build_engine``).
        hierarchy: When given, grants are validated against it on creation.
        clock: Returns "today" for the active-window check.
        default_page_size: Page size for ``list_assignments`` when unset.
    """

    def __init__(
        self,
        engine: Engine,
        *,
        hierarchy: Optional[HierarchyIndex] = None,
        clock: Optional[Clock] = None,
        default_page_size: int = 50,
    ) -> None:
        self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)
        self._hierarchy = hierarchy
        self._clock = clock or utc_today
        self._default_page_size = default_page_size

    @contextmanager
    def _transaction(self, conflict_message: str) -> Iterator[Session]:
        """Session in a transaction; unique-index violations become ConflictError."""
        with self._session_factory() as session:
            try:
                with session.begin():
                    yield session
            except IntegrityError as exc:
                raise ConflictError(conflict_message) from exc

    def _live_record(self, session: Session, assignment_id: int) -> AssignmentRecord:
        record = session.scalar(
            select(AssignmentRecord)
            .where(AssignmentRecord.id == assignment_id, AssignmentRecord.is_deleted.is_(False))
            .with_for_update()
        )
        if record is None:
            raise NotFoundError(f"assignment {assignment_id} not found", assignment_id=assignment_id)
        return record

    # ── Writes ───────────────────────────────────────────

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
        validity = validity or ValidityWindow()

        with self._transaction("an active assignment with this principal, role and context already exists") as session:
            record = AssignmentRecord(
                principal_id=principal_id,
                role_id=role_id,
                context_tier=tier.value,
                context_id=context_id,
                trade_type=trade_type or None,
                is_primary=is_primary,
                start_date=validity.start_date,
                end_date=validity.end_date,
                created_by=created_by,
                updated_by=created_by,
            )
            session.add(record)
            session.flush()
            created = _to_model(record)

        logger.info(
            "Created assignment %s",
            created.id,
            extra={"principal_id": principal_id, "context_tier": tier.value, "context_id": context_id},
        )
        return created

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
        validity = validity or ValidityWindow()

        with self._transaction("one of the principals already holds this assignment") as session:
            records = [
                AssignmentRecord(
                    principal_id=principal_id,
                    role_id=role_id,
                    context_tier=tier.value,
                    context_id=context_id,
                    trade_type=trade_type or None,
                    is_primary=is_primary,
                    start_date=validity.start_date,
                    end_date=validity.end_date,
                    created_by=created_by,
                    updated_by=created_by,
                )
                for principal_id in dict.fromkeys(principal_ids)
            ]
            session.add_all(records)
            session.flush()
            created = [_to_model(record) for record in records]

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
        with self._transaction("an active assignment with this principal, role and context already exists") as session:
            record = self._live_record(session, assignment_id)
            changes = resolve_changes(
                ValidityWindow(start_date=record.start_date, end_date=record.end_date),
                update,
            )
            validity = changes.pop("validity")
            record.start_date = validity.start_date
            record.end_date = validity.end_date
            if "trade_type" in changes:
                changes["trade_type"] = changes["trade_type"] or None
            for field, value in changes.items():
                setattr(record, field, value)
            record.updated_by = updated_by
            session.flush()
            updated = _to_model(record)
        return updated

    def soft_delete_assignment(self, assignment_id: int, *, deleted_by: Optional[int] = None) -> None:
        with self._session_factory() as session, session.begin():
            record = self._live_record(session, assignment_id)
            record.is_deleted = True
            record.updated_by = deleted_by
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
        stmt = select(AssignmentRecord).where(AssignmentRecord.principal_id == from_principal_id)
        if assignment_ids is not None:
            stmt = stmt.where(
                AssignmentRecord.id.in_(list(assignment_ids)),
                AssignmentRecord.is_deleted.is_(False),
            )
        else:
            stmt = _active_on(stmt, self._clock())

        with self._transaction(f"principal {to_principal_id} already holds one of the transferred assignments") as session:
            records = list(session.scalars(stmt.with_for_update()).all())
            if not records:
                raise NotFoundError("no assignments found to transfer")
            for record in records:
                record.principal_id = to_principal_id
                record.updated_by = transferred_by
                if not preserve_primary:
                    record.is_primary = False
            session.flush()
            moved = len(records)

        logger.info(
            "Transferred %d assignments from %s to %s",
            moved,
            from_principal_id,
            to_principal_id,
            extra={"transferred_by": transferred_by},
        )
        return moved

    # ── Reads ────────────────────────────────────────────

    def get_assignment(self, assignment_id: int, *, include_deleted: bool = False) -> Assignment:
        stmt = select(AssignmentRecord).where(AssignmentRecord.id == assignment_id)
        if not include_deleted:
            stmt = stmt.where(AssignmentRecord.is_deleted.is_(False))
        with self._session_factory() as session:
            record = session.scalar(stmt)
            if record is None:
                raise NotFoundError(f"assignment {assignment_id} not found", assignment_id=assignment_id)
            return _to_model(record)

    def list_assignments(self, filters: AssignmentFilters) -> AssignmentPage:
        stmt = select(AssignmentRecord)
        if filters.active_only:
            stmt = _active_on(stmt, self._clock())
        elif not filters.include_deleted:
            stmt = stmt.where(AssignmentRecord.is_deleted.is_(False))

        equality = (
            (AssignmentRecord.principal_id, filters.principal_id),
            (AssignmentRecord.role_id, filters.role_id),
            (AssignmentRecord.context_tier, filters.context_tier.value if filters.context_tier else None),
            (AssignmentRecord.context_id, filters.context_id),
            (AssignmentRecord.is_primary, filters.is_primary),
            (AssignmentRecord.trade_type, filters.trade_type),
        )
        for column, wanted in equality:
            if wanted is not None:
                stmt = stmt.where(column == wanted)

        page_size = effective_page_size(filters, self._default_page_size)
        offset = (filters.page - 1) * page_size

        with self._session_factory() as session:
            total = session.scalar(select(func.count()).select_from(stmt.subquery())) or 0
            records = session.scalars(
                stmt.order_by(AssignmentRecord.created_at.desc(), AssignmentRecord.id.desc())
                .limit(page_size)
                .offset(offset)
            ).all()
            items = [_to_model(record) for record in records]

        return AssignmentPage(items=items, total=total, page=filters.page, page_size=page_size)

    def list_active_assignments(
        self,
        principal_id: int,
        tier: Optional[ContextTier] = None,
        *,
        on: Optional[date] = None,
    ) -> list[Assignment]:
        stmt = _active_on(
            select(AssignmentRecord).where(AssignmentRecord.principal_id == principal_id),
            on or self._clock(),
        )
        if tier is not None:
            stmt = stmt.where(AssignmentRecord.context_tier == ContextTier(tier).value)
        with self._session_factory() as session:
            return [_to_model(record) for record in session.scalars(stmt.order_by(AssignmentRecord.id)).all()]

    def get_context_ids(self, principal_id: int, tier: ContextTier, *, on: Optional[date] = None) -> frozenset[int]:
        stmt = _active_on(
            select(AssignmentRecord.context_id).where(
                AssignmentRecord.principal_id == principal_id,
                AssignmentRecord.context_tier == ContextTier(tier).value,
            ),
            on or self._clock(),
        ).distinct()
        with self._session_factory() as session:
            return frozenset(session.scalars(stmt).all())


__all__ = ["SqlAssignmentStore"]
