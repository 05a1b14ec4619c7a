"""Scope resolution and query-filter compilation.

Defines:
- AccessLevel / EffectiveAccess: the resolution result
- TargetResource: how a resource type is scoped (PROJECT, ISSUE, RFI, SUBMITTAL)
- Tier evaluators and their precedence order (DEFAULT_EVALUATORS)
- ScopeResolver: first-matching-tier resolution with the location-first overlay
- compile_filter() / Predicate: resolution -> query predicate
- AccessService: request/decision facade for handlers
"""

from .filters import Condition, Operator, Predicate, PredicateKind, compile_filter
from .resolver import ScopeResolver
from .service import AccessDecision, AccessRequest, AccessService, create_access_service
from .tiers import (
    DEFAULT_EVALUATORS,
    LocationEvaluator,
    OrganizationEvaluator,
    ProjectEvaluator,
    ResolutionContext,
    SuperAdminEvaluator,
    TierEvaluator,
)
from .types import (
    ISSUE,
    PROJECT,
    RESOURCES,
    RFI,
    SUBMITTAL,
    AccessLevel,
    EffectiveAccess,
    TargetResource,
)

__all__ = [
    "DEFAULT_EVALUATORS",
    "ISSUE",
    "PROJECT",
    "RESOURCES",
    "RFI",
    "SUBMITTAL",
    "AccessDecision",
    "AccessLevel",
    "AccessRequest",
    "AccessService",
    "Condition",
    "EffectiveAccess",
    "LocationEvaluator",
    "Operator",
    "OrganizationEvaluator",
    "Predicate",
    "PredicateKind",
    "ProjectEvaluator",
    "ResolutionContext",
    "ScopeResolver",
    "SuperAdminEvaluator",
    "TargetResource",
    "TierEvaluator",
    "compile_filter",
    "create_access_service",
]
