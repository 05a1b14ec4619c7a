"""Read/resolve contract consumed by resource listing and detail handlers.

Handlers build an ``AccessRequest`` from the authenticated claims plus any
explicit scope the user picked, and get back the resolved access together
with the compiled predicate::

    service = AccessService(ScopeResolver(store, hierarchy, location_first=True))
    decision = service.decide(AccessRequest(principal_id=7, org_id=10, location_id=24))
    rows = session.scalars(select(ProjectRecord).where(decision.predicate.to_sqlalchemy(ProjectRecord)))

"No access" is an empty result (``decision.predicate`` is always-false),
never an exception. ``AccessDeniedError`` and ``InvalidScopeError`` are
reserved for explicit scopes outside the grant.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING, Optional

from pydantic import BaseModel, Field, field_validator

from ..config import ScopeGateConfig
from ..models import Principal
from .filters import Predicate, compile_filter
from .resolver import ScopeResolver
from .types import PROJECT, RESOURCES, EffectiveAccess, TargetResource

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine


class AccessRequest(BaseModel):
    """Inputs of one resolution, as received by a handler."""

    principal_id: int
    org_id: int
    is_super_admin: bool = False
    resource: str = Field(default=PROJECT.name, description="Target resource type name")
    location_id: Optional[int] = Field(default=None, description="Explicit location filter")
    org_id_filter: Optional[int] = Field(default=None, description="Explicit organization filter")
    on: Optional[date] = Field(default=None, description="Evaluate validity windows on this day")

    @field_validator("resource")
    @classmethod
    def validate_resource(cls, v: str) -> str:
        if v not in RESOURCES:
            raise ValueError(f"Unknown resource type: {v}. Must be one of {sorted(RESOURCES)}")
        return v

    @property
    def principal(self) -> Principal:
        return Principal(id=self.principal_id, org_id=self.org_id, is_super_admin=self.is_super_admin)

    @property
    def target(self) -> TargetResource:
        return RESOURCES[self.resource]


@dataclass(frozen=True)
class AccessDecision:
    """Resolved access plus its compiled predicate."""

    access: EffectiveAccess
    predicate: Predicate

    def to_dict(self) -> dict:
        return {
            "level": self.access.level.value,
            "resource": self.access.resource.name,
            "unrestricted": self.access.unrestricted,
            "granted_context_ids": sorted(self.access.granted_context_ids),
            "scope_ids": sorted(self.access.scope_ids),
            "location_required": self.access.location_required,
            "predicate": self.predicate.to_dict(),
        }


class AccessService:
    """Thin facade: resolve, then compile."""

    def __init__(self, resolver: ScopeResolver) -> None:
        self._resolver = resolver

    def decide(self, request: AccessRequest) -> AccessDecision:
        access = self._resolver.resolve(
            request.principal,
            request.target,
            location_id=request.location_id,
            org_id=request.org_id_filter,
            on=request.on,
        )
        return AccessDecision(access=access, predicate=compile_filter(access))


def create_access_service(config: ScopeGateConfig, *, engine: Optional[Engine] = None) -> AccessService:
    """Wire the SQL store and hierarchy index from configuration.

    Args:
        config: Provides ``database_url``, ``location_first`` and paging defaults.
        engine: Reuse an existing engine instead of building one from the URL.
    """
    from ..config import build_engine
    from ..hierarchy import SqlHierarchyIndex
    from ..store import SqlAssignmentStore

    engine = engine or build_engine(config)
    hierarchy = SqlHierarchyIndex(engine)
    store = SqlAssignmentStore(engine, hierarchy=hierarchy, default_page_size=config.default_page_size)
    return AccessService(ScopeResolver(store, hierarchy, location_first=config.location_first))


__all__ = [
    "AccessDecision",
    "AccessRequest",
    "AccessService",
    "create_access_service",
]
