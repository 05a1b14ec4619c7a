"""Scope Resolver: principal + resource type -> EffectiveAccess.

The resolver is stateless and request-scoped. It holds references to the
injected Assignment Store and Hierarchy Index and runs the tier evaluators
in precedence order; nothing survives between calls. Errors from the store
or the index propagate unchanged, so an unavailable database is never
mistaken for a principal without access.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date
from typing import Optional, Sequence

from ..exceptions import AccessDeniedError, InvalidScopeError
from ..hierarchy import HierarchyIndex
from ..logging import get_access_logger
from ..models import Principal
from ..store import AssignmentStore
from .tiers import DEFAULT_EVALUATORS, ResolutionContext, TierEvaluator
from .types import PROJECT, AccessLevel, EffectiveAccess, TargetResource


class ScopeResolver:
    """Computes the single highest-precedence access level of a principal.

    Args:
        store: Source of active grants.
        hierarchy: Expands coarse grants into project ids.
        location_first: Enable the location-first overlay: principals whose
            access resolves at location level see no projects until they name
            a location explicitly.
        evaluators: Tier evaluators in precedence order.

    Example::

        resolver = ScopeResolver(store, hierarchy)
        access = resolver.resolve(Principal(id=7, org_id=10))
        access.level                # AccessLevel.PROJECT
        access.granted_context_ids  # frozenset({6})
    """

    def __init__(
        self,
        store: AssignmentStore,
        hierarchy: HierarchyIndex,
        *,
        location_first: bool = False,
        evaluators: Optional[Sequence[TierEvaluator]] = None,
    ) -> None:
        self._store = store
        self._hierarchy = hierarchy
        self._location_first = location_first
        self._evaluators = tuple(evaluators) if evaluators is not None else DEFAULT_EVALUATORS

    @property
    def location_first(self) -> bool:
        return self._location_first

    def resolve(
        self,
        principal: Principal,
        resource: TargetResource = PROJECT,
        *,
        location_id: Optional[int] = None,
        org_id: Optional[int] = None,
        on: Optional[date] = None,
    ) -> EffectiveAccess:
        """Resolve ``principal``'s access to ``resource``.

        Args:
            principal: The acting principal.
            resource: Target resource type.
            location_id: Explicit location the caller wants to view.
            org_id: Explicit organization filter.
            on: Evaluate assignment validity on this day instead of today.

        Returns:
            EffectiveAccess. A principal without grants gets ``level=none``
            and an empty set, never an error.

        Raises:
            AccessDeniedError: An explicit filter lies outside the grant.
            InvalidScopeError: A context id cannot be placed in the
                principal's organization.
        """
        log = get_access_logger(__name__, principal_id=principal.id)
        ctx = ResolutionContext(
            principal=principal,
            resource=resource,
            store=self._store,
            hierarchy=self._hierarchy,
            location_id=location_id,
            org_id=org_id,
            on=on,
        )

        access: Optional[EffectiveAccess] = None
        try:
            for evaluator in self._evaluators:
                access = evaluator.evaluate(ctx)
                if access is not None:
                    break
        except (AccessDeniedError, InvalidScopeError) as e:
            log.warning(
                "Explicit scope rejected: [%s] %s",
                e.code,
                e.message,
                extra={"resource": resource.name, "location_id": location_id, "org_id": org_id},
            )
            raise

        if access is None:
            access = ctx.access(AccessLevel.NONE)
        else:
            access = self._apply_location_first(access)

        log.debug(
            "Resolved %s access to %s",
            access.level.value,
            resource.name,
            extra={
                "granted_count": len(access.granted_context_ids),
                "scope_ids": access.scope_ids,
                "location_required": access.location_required,
            },
        )
        return access

    def _apply_location_first(self, access: EffectiveAccess) -> EffectiveAccess:
        """Empty a location-level result until the caller names a location."""
        if not self._location_first or not access.resource.location_first:
            return access
        if access.level != AccessLevel.LOCATION or access.location_filter is not None:
            return access
        return replace(access, granted_context_ids=frozenset(), location_required=True)


__all__ = ["ScopeResolver"]
