"""In-memory Hierarchy Index built from plain resource records.

Used by tests and by embedders that already hold the resource tables in
memory. Records are registered with ``add_*`` and can be soft-deleted with
``retire_*``; expansions are always recomputed from the current records.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..models import ContextTier


@dataclass
class _Node:
    org_id: int
    parent_id: Optional[int] = None
    is_deleted: bool = False


class InMemoryHierarchyIndex:
    """Dict-backed HierarchyIndex."""

    def __init__(self) -> None:
        self._orgs: dict[int, bool] = {}
        self._locations: dict[int, _Node] = {}
        self._projects: dict[int, _Node] = {}

    # ── Resource records ─────────────────────────────────

    def add_organization(self, org_id: int) -> None:
        self._orgs[org_id] = False

    def add_location(self, location_id: int, org_id: int) -> None:
        self._orgs.setdefault(org_id, False)
        self._locations[location_id] = _Node(org_id=org_id)

    def add_project(self, project_id: int, location_id: int, org_id: int) -> None:
        self._orgs.setdefault(org_id, False)
        self._projects[project_id] = _Node(org_id=org_id, parent_id=location_id)

    def retire_location(self, location_id: int) -> None:
        self._locations[location_id].is_deleted = True

    def retire_project(self, project_id: int) -> None:
        self._projects[project_id].is_deleted = True

    # ── HierarchyIndex ───────────────────────────────────

    def locations_of_organization(self, org_id: int) -> frozenset[int]:
        return frozenset(
            loc_id for loc_id, node in self._locations.items() if node.org_id == org_id and not node.is_deleted
        )

    def projects_of_location(self, location_id: int, org_id: int) -> frozenset[int]:
        return frozenset(
            project_id
            for project_id, node in self._projects.items()
            if node.parent_id == location_id and node.org_id == org_id and not node.is_deleted
        )

    def projects_of_organization(self, org_id: int) -> frozenset[int]:
        return frozenset(
            project_id for project_id, node in self._projects.items() if node.org_id == org_id and not node.is_deleted
        )

    def organization_of_location(self, location_id: int) -> Optional[int]:
        node = self._locations.get(location_id)
        if node is None or node.is_deleted:
            return None
        return node.org_id

    def context_exists(self, tier: ContextTier, context_id: int, org_id: Optional[int] = None) -> bool:
        if tier == ContextTier.ORGANIZATION:
            if self._orgs.get(context_id) is not False:
                return False
            return org_id is None or org_id == context_id

        nodes = self._locations if tier == ContextTier.LOCATION else self._projects
        node = nodes.get(context_id)
        if node is None or node.is_deleted:
            return False
        return org_id is None or node.org_id == org_id


__all__ = ["InMemoryHierarchyIndex"]
