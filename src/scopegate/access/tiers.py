"""Tier evaluators: one small class per context tier.

Each evaluator looks at exactly one tier. It returns ``None`` when the
principal holds nothing there, otherwise a complete ``EffectiveAccess``
(expanded through the Hierarchy Index and narrowed by the caller's explicit
filters). The resolver runs them in ``DEFAULT_EVALUATORS`` order and stops at
the first non-``None`` result, so a coarser tier always subsumes a finer one:
an organization grant wins over an unrelated project grant and the two are
never merged.

Explicit filters that fall outside the winning grant raise
``AccessDeniedError``; a filter naming a context that does not exist raises
``InvalidScopeError``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional, Protocol

from ..exceptions import AccessDeniedError, InvalidScopeError
from ..hierarchy import HierarchyIndex
from ..models import ContextTier, Principal
from ..store import AssignmentStore
from .types import AccessLevel, EffectiveAccess, TargetResource

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolutionContext:
    """Inputs shared by every evaluator for one resolution."""

    principal: Principal
    resource: TargetResource
    store: AssignmentStore
    hierarchy: HierarchyIndex
    location_id: Optional[int] = None
    org_id: Optional[int] = None
    on: Optional[date] = None

    def grants(self, tier: ContextTier) -> frozenset[int]:
        return self.store.get_context_ids(self.principal.id, tier, on=self.on)

    def access(self, level: AccessLevel, **fields) -> EffectiveAccess:
        return EffectiveAccess(
            principal_id=self.principal.id,
            org_id=self.principal.org_id,
            level=level,
            resource=self.resource,
            location_filter=self.location_id,
            org_filter=self.org_id,
            **fields,
        )

    def require_home_org_filter(self) -> None:
        """Below organization level only the home org may be named explicitly."""
        if self.org_id is not None and self.org_id != self.principal.org_id:
            raise AccessDeniedError(
                f"organization {self.org_id} is outside the principal's grant",
                org_id=self.org_id,
            )


class TierEvaluator(Protocol):
    """Evaluates one tier; ``None`` means "no grant here, try the next tier"."""

    level: AccessLevel

    def evaluate(self, ctx: ResolutionContext) -> Optional[EffectiveAccess]: ...


class SuperAdminEvaluator:
    """Global super admins bypass every tier; explicit filters only narrow."""

    level = AccessLevel.SUPER_ADMIN

    def evaluate(self, ctx: ResolutionContext) -> Optional[EffectiveAccess]:
        if not ctx.principal.is_super_admin:
            return None

        hierarchy = ctx.hierarchy
        if ctx.location_id is not None:
            location_org = hierarchy.organization_of_location(ctx.location_id)
            if location_org is None or (ctx.org_id is not None and location_org != ctx.org_id):
                raise InvalidScopeError(
                    f"location {ctx.location_id} cannot be placed in the requested organization",
                    location_id=ctx.location_id,
                    org_id=ctx.org_id,
                )
            granted = hierarchy.projects_of_location(ctx.location_id, location_org)
        elif ctx.org_id is not None:
            granted = hierarchy.projects_of_organization(ctx.org_id)
        else:
            granted = frozenset()

        return ctx.access(self.level, granted_context_ids=granted)


class OrganizationEvaluator:
    """Organization grants expand to every project of the granted orgs."""

    level = AccessLevel.ORGANIZATION
    tier = ContextTier.ORGANIZATION

    def evaluate(self, ctx: ResolutionContext) -> Optional[EffectiveAccess]:
        orgs = ctx.grants(self.tier)
        if not orgs:
            return None

        if ctx.org_id is not None:
            if ctx.org_id not in orgs:
                raise AccessDeniedError(
                    f"organization {ctx.org_id} is outside the principal's grant",
                    org_id=ctx.org_id,
                )
            orgs = frozenset({ctx.org_id})

        hierarchy = ctx.hierarchy
        if ctx.location_id is not None:
            location_org = hierarchy.organization_of_location(ctx.location_id)
            if location_org is None:
                raise InvalidScopeError(
                    f"location {ctx.location_id} not found or deleted",
                    location_id=ctx.location_id,
                )
            if location_org not in orgs:
                raise AccessDeniedError(
                    f"location {ctx.location_id} is outside the principal's grant",
                    location_id=ctx.location_id,
                )
            granted = hierarchy.projects_of_location(ctx.location_id, location_org)
        else:
            granted = frozenset().union(*(hierarchy.projects_of_organization(org) for org in orgs))

        return ctx.access(self.level, granted_context_ids=granted, scope_ids=orgs)


class LocationEvaluator:
    """Location grants expand to the projects under them, inside the home org."""

    level = AccessLevel.LOCATION
    tier = ContextTier.LOCATION

    def evaluate(self, ctx: ResolutionContext) -> Optional[EffectiveAccess]:
        locations = ctx.grants(self.tier)
        if not locations:
            return None

        ctx.require_home_org_filter()
        org_id = ctx.principal.org_id
        hierarchy = ctx.hierarchy

        live: set[int] = set()
        for location_id in sorted(locations):
            location_org = hierarchy.organization_of_location(location_id)
            if location_org is None:
                logger.warning(
                    "Skipping grant on missing or deleted location %s",
                    location_id,
                    extra={"principal_id": ctx.principal.id},
                )
                continue
            if location_org != org_id:
                raise InvalidScopeError(
                    f"location {location_id} does not belong to organization {org_id}",
                    location_id=location_id,
                    org_id=org_id,
                )
            live.add(location_id)

        if ctx.location_id is not None:
            if ctx.location_id not in live:
                raise AccessDeniedError(
                    f"location {ctx.location_id} is outside the principal's grant",
                    location_id=ctx.location_id,
                )
            live = {ctx.location_id}

        granted = frozenset().union(*(hierarchy.projects_of_location(loc, org_id) for loc in live))
        return ctx.access(self.level, granted_context_ids=granted, scope_ids=frozenset(live))


class ProjectEvaluator:
    """Project grants are already at target granularity."""

    level = AccessLevel.PROJECT
    tier = ContextTier.PROJECT

    def evaluate(self, ctx: ResolutionContext) -> Optional[EffectiveAccess]:
        projects = ctx.grants(self.tier)
        if not projects:
            return None

        ctx.require_home_org_filter()
        org_id = ctx.principal.org_id
        hierarchy = ctx.hierarchy

        live: set[int] = set()
        for project_id in sorted(projects):
            if not hierarchy.context_exists(ContextTier.PROJECT, project_id):
                logger.warning(
                    "Skipping grant on missing or deleted project %s",
                    project_id,
                    extra={"principal_id": ctx.principal.id},
                )
                continue
            if not hierarchy.context_exists(ContextTier.PROJECT, project_id, org_id):
                raise InvalidScopeError(
                    f"project {project_id} does not belong to organization {org_id}",
                    project_id=project_id,
                    org_id=org_id,
                )
            live.add(project_id)
        projects = frozenset(live)

        if ctx.location_id is not None:
            projects = projects & hierarchy.projects_of_location(ctx.location_id, org_id)
            if not projects:
                raise AccessDeniedError(
                    f"location {ctx.location_id} is outside the principal's grant",
                    location_id=ctx.location_id,
                )

        return ctx.access(self.level, granted_context_ids=projects, scope_ids=projects)


# Precedence order. A new tier (e.g. department) is one more evaluator here.
DEFAULT_EVALUATORS: tuple[TierEvaluator, ...] = (
    SuperAdminEvaluator(),
    OrganizationEvaluator(),
    LocationEvaluator(),
    ProjectEvaluator(),
)


__all__ = [
    "DEFAULT_EVALUATORS",
    "LocationEvaluator",
    "OrganizationEvaluator",
    "ProjectEvaluator",
    "ResolutionContext",
    "SuperAdminEvaluator",
    "TierEvaluator",
]
