"""Hierarchy Index protocol.

The index is a read-only view over the resource records' own foreign keys
(location -> organization, project -> location). It owns no storage and has
no write path; implementations must always read fresh data.
"""

from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

from ..models import ContextTier


@runtime_checkable
class HierarchyIndex(Protocol):
    """Expands coarse grants into concrete project ids.

    Soft-deleted organizations, locations and projects are invisible to
    every method.
    """

    def locations_of_organization(self, org_id: int) -> frozenset[int]: ...

    def projects_of_location(self, location_id: int, org_id: int) -> frozenset[int]:
        """Projects under ``location_id`` that also belong to ``org_id``.

        The org check keeps a location id from another tenant from leaking
        that tenant's projects.
        """
        ...

    def projects_of_organization(self, org_id: int) -> frozenset[int]: ...

    def organization_of_location(self, location_id: int) -> Optional[int]: ...

    def context_exists(self, tier: ContextTier, context_id: int, org_id: Optional[int] = None) -> bool:
        """Check a context id exists (and, when ``org_id`` is given, belongs to that org)."""
        ...


__all__ = ["HierarchyIndex"]
