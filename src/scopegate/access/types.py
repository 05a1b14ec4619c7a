"""Access levels, target resources and the EffectiveAccess result."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class AccessLevel(str, Enum):
    """Tier at which a principal's access was resolved, most powerful first."""

    SUPER_ADMIN = "super_admin"
    ORGANIZATION = "organization"
    LOCATION = "location"
    PROJECT = "project"
    NONE = "none"


@dataclass(frozen=True)
class TargetResource:
    """A resource type scoped by the organization/location/project hierarchy.

    Attributes:
        name: Resource type name (``"project"``, ``"issue"``, ...).
        org_field: Column holding the owning organization id.
        location_field: Column holding the location id.
        project_field: Column matched against project-level grants. For
            projects themselves this is the primary key.
        location_first: Whether the location-first resolver mode applies.
    """

    name: str
    org_field: str = "org_id"
    location_field: str = "location_id"
    project_field: str = "project_id"
    location_first: bool = False


PROJECT = TargetResource(name="project", project_field="id", location_first=True)
ISSUE = TargetResource(name="issue")
RFI = TargetResource(name="rfi")
SUBMITTAL = TargetResource(name="submittal")

RESOURCES: dict[str, TargetResource] = {r.name: r for r in (PROJECT, ISSUE, RFI, SUBMITTAL)}


@dataclass(frozen=True)
class EffectiveAccess:
    """Resolved access of one principal to one resource type. Never persisted.

    - level: the single winning tier.
    - granted_context_ids: concrete project ids the principal may see.
      Meaningless when ``unrestricted``.
    - scope_ids: raw ids granted at the winning tier (org ids for
      ``organization``, location ids for ``location``, project ids for
      ``project``), after explicit filters were applied.
    - location_required: the location-first overlay emptied the set and
      the caller must ask for a location.
    """

    principal_id: int
    org_id: int
    level: AccessLevel
    resource: TargetResource = PROJECT
    granted_context_ids: frozenset[int] = frozenset()
    scope_ids: frozenset[int] = frozenset()
    location_filter: Optional[int] = None
    org_filter: Optional[int] = None
    location_required: bool = False

    @property
    def unrestricted(self) -> bool:
        return self.level == AccessLevel.SUPER_ADMIN

    @property
    def is_empty(self) -> bool:
        """True when the principal sees nothing."""
        if self.unrestricted:
            return False
        return not self.granted_context_ids

    def can_access(self, project_id: int) -> bool:
        """Project-granularity check for detail handlers."""
        if self.unrestricted and self.org_filter is None and self.location_filter is None:
            return True
        return project_id in self.granted_context_ids


__all__ = [
    "AccessLevel",
    "EffectiveAccess",
    "ISSUE",
    "PROJECT",
    "RESOURCES",
    "RFI",
    "SUBMITTAL",
    "TargetResource",
]
