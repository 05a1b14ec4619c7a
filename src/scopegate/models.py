"""Core data models for scopegate.

Pydantic models for principals, roles and the assignment rows kept by the
Assignment Store, plus the request models used to mutate and query them.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, model_validator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ContextTier(str, Enum):
    """Scope unit a role assignment applies to, coarsest first."""

    ORGANIZATION = "organization"
    LOCATION = "location"
    PROJECT = "project"


class Principal(BaseModel):
    """The authenticated actor on whose behalf access is resolved."""

    id: int
    org_id: int
    is_super_admin: bool = False

    model_config = {"frozen": True}


class Role(BaseModel):
    """A role that can be granted. ``org_id=None`` marks a global role."""

    id: int
    name: str
    scope_tier: ContextTier
    org_id: Optional[int] = None

    model_config = {"frozen": True}

    @property
    def is_global(self) -> bool:
        return self.org_id is None


class ValidityWindow(BaseModel):
    """Inclusive calendar-day window; either bound may be open."""

    start_date: Optional[date] = None
    end_date: Optional[date] = None

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_order(self) -> ValidityWindow:
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("start_date must not be after end_date")
        return self

    def is_active(self, on: date) -> bool:
        """True when ``on`` falls inside the window."""
        if self.start_date is not None and self.start_date > on:
            return False
        if self.end_date is not None and self.end_date < on:
            return False
        return True


class Assignment(BaseModel):
    """A time-bounded grant of a role to a principal at one context."""

    id: int
    principal_id: int
    role_id: int
    context_tier: ContextTier
    context_id: int
    trade_type: Optional[str] = None
    is_primary: bool = False
    validity: ValidityWindow = Field(default_factory=ValidityWindow)
    is_deleted: bool = False

    # Audit
    created_by: Optional[int] = None
    updated_by: Optional[int] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    model_config = {"frozen": True}

    @property
    def grant_key(self) -> tuple[int, int, ContextTier, int]:
        """Tuple that must be unique among non-deleted assignments."""
        return (self.principal_id, self.role_id, self.context_tier, self.context_id)

    def is_active(self, on: date) -> bool:
        return not self.is_deleted and self.validity.is_active(on)


class AssignmentUpdate(BaseModel):
    """Partial update of the mutable assignment fields.

    Only fields explicitly set are applied, so ``end_date=None`` reopens the
    window while omitting ``end_date`` leaves it untouched.
    """

    role_id: Optional[int] = None
    trade_type: Optional[str] = None
    is_primary: Optional[bool] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    model_config = {"extra": "forbid"}

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class AssignmentFilters(BaseModel):
    """Filters for the audit/listing query."""

    principal_id: Optional[int] = None
    role_id: Optional[int] = None
    context_tier: Optional[ContextTier] = None
    context_id: Optional[int] = None
    is_primary: Optional[bool] = None
    trade_type: Optional[str] = None
    active_only: bool = False
    include_deleted: bool = False
    page: int = Field(default=1, ge=1)
    page_size: Optional[int] = Field(default=None, ge=1, le=100)


class AssignmentPage(BaseModel):
    """One page of assignments, newest first."""

    items: list[Assignment] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = 50


__all__ = [
    "Assignment",
    "AssignmentFilters",
    "AssignmentPage",
    "AssignmentUpdate",
    "ContextTier",
    "Principal",
    "Role",
    "ValidityWindow",
    "utcnow",
]
