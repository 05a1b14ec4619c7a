"""Hierarchy Index backed by the organizations/locations/projects tables."""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from ..models import ContextTier
from ..schema import LocationRecord, OrganizationRecord, ProjectRecord

logger = logging.getLogger(__name__)


class SqlHierarchyIndex:
    """Reads parent/child edges straight from resource foreign keys.

    Every call opens a short read-only session; nothing is cached, so a
    project moved to another location is visible on the next resolution.
    """

    def __init__(self, engine: Engine) -> None:
        self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)

    def _session(self) -> Session:
        return self._session_factory()

    def _ids(self, stmt) -> frozenset[int]:
        with self._session() as session:
            return frozenset(session.scalars(stmt).all())

    def locations_of_organization(self, org_id: int) -> frozenset[int]:
        return self._ids(
            select(LocationRecord.id).where(
                LocationRecord.org_id == org_id,
                LocationRecord.is_deleted.is_(False),
            )
        )

    def projects_of_location(self, location_id: int, org_id: int) -> frozenset[int]:
        return self._ids(
            select(ProjectRecord.id).where(
                ProjectRecord.location_id == location_id,
                ProjectRecord.org_id == org_id,
                ProjectRecord.is_deleted.is_(False),
            )
        )

    def projects_of_organization(self, org_id: int) -> frozenset[int]:
        return self._ids(
            select(ProjectRecord.id).where(
                ProjectRecord.org_id == org_id,
                ProjectRecord.is_deleted.is_(False),
            )
        )

    def organization_of_location(self, location_id: int) -> Optional[int]:
        with self._session() as session:
            return session.scalar(
                select(LocationRecord.org_id).where(
                    LocationRecord.id == location_id,
                    LocationRecord.is_deleted.is_(False),
                )
            )

    def context_exists(self, tier: ContextTier, context_id: int, org_id: Optional[int] = None) -> bool:
        if tier == ContextTier.ORGANIZATION:
            if org_id is not None and org_id != context_id:
                return False
            stmt = select(OrganizationRecord.id).where(
                OrganizationRecord.id == context_id,
                OrganizationRecord.is_deleted.is_(False),
            )
        else:
            record = LocationRecord if tier == ContextTier.LOCATION else ProjectRecord
            stmt = select(record.id).where(record.id == context_id, record.is_deleted.is_(False))
            if org_id is not None:
                stmt = stmt.where(record.org_id == org_id)

        with self._session() as session:
            found = session.scalar(stmt) is not None
        if not found:
            logger.debug("Context %s=%s not found (org filter: %s)", tier.value, context_id, org_id)
        return found


__all__ = ["SqlHierarchyIndex"]
