"""Tests for the core data models."""

from __future__ import annotations

from datetime import date

import pytest
from pydantic import ValidationError as PydanticValidationError

import scopegate
from scopegate.access import RESOURCES

from scopegate import (
    AccessLevel,
    Assignment,
    AssignmentUpdate,
    ContextTier,
    EffectiveAccess,
    Principal,
    Role,
    ValidityWindow,
)

DAY = date(2026, 3, 15)


class TestValidityWindow:
    """Tests for ValidityWindow."""

    def test_open_window(self) -> None:
        """Test a window without bounds is always active."""
        assert ValidityWindow().is_active(DAY)

    def test_inclusive_bounds(self) -> None:
        """Test both bounds are inclusive."""
        window = ValidityWindow(start_date=DAY, end_date=DAY)
        assert window.is_active(DAY)
        assert not window.is_active(date(2026, 3, 14))
        assert not window.is_active(date(2026, 3, 16))


class TestAssignment:
    """Tests for Assignment."""

    def test_deleted_never_active(self) -> None:
        """Test a soft-deleted assignment is inactive even inside its window."""
        row = Assignment(id=1, principal_id=7, role_id=1, context_tier=ContextTier.PROJECT, context_id=6, is_deleted=True)
        assert not row.is_active(DAY)

    def test_grant_key(self) -> None:
        """Test the uniqueness tuple."""
        row = Assignment(id=1, principal_id=7, role_id=1, context_tier="location", context_id=24)
        assert row.grant_key == (7, 1, ContextTier.LOCATION, 24)

    def test_frozen(self) -> None:
        """Test stored rows are immutable."""
        row = Assignment(id=1, principal_id=7, role_id=1, context_tier=ContextTier.PROJECT, context_id=6)
        with pytest.raises(PydanticValidationError):
            row.context_id = 7


class TestAssignmentUpdate:
    """Tests for AssignmentUpdate."""

    def test_changes_only_set_fields(self) -> None:
        """Test unset fields are left out while explicit None is kept."""
        update = AssignmentUpdate(is_primary=True, end_date=None)
        assert update.changes() == {"is_primary": True, "end_date": None}


class TestTargetResource:
    """Tests for the built-in resource scoping columns."""

    def test_project_matches_on_primary_key(self) -> None:
        """Test projects are scoped by their own id and opt into location-first."""
        project = RESOURCES["project"]
        assert (project.org_field, project.location_field, project.project_field) == ("org_id", "location_id", "id")
        assert project.location_first

    @pytest.mark.parametrize("name", ["issue", "rfi", "submittal"])
    def test_child_resources(self, name) -> None:
        """Test project-nested resources match on project_id without location-first."""
        resource = RESOURCES[name]
        assert resource.project_field == "project_id"
        assert not resource.location_first

    def test_no_separate_create_model(self) -> None:
        """Test creation goes through keyword arguments only."""
        assert not hasattr(scopegate, "AssignmentCreate")


class TestPrincipalAndRole:
    """Tests for Principal and Role."""

    def test_principal_defaults(self) -> None:
        """Test principals are not super admins by default."""
        assert Principal(id=7, org_id=10).is_super_admin is False

    def test_global_role(self) -> None:
        """Test a role without an org is global."""
        assert Role(id=1, name="Viewer", scope_tier=ContextTier.PROJECT).is_global
        assert not Role(id=2, name="Org Admin", scope_tier=ContextTier.ORGANIZATION, org_id=10).is_global


class TestEffectiveAccess:
    """Tests for EffectiveAccess helpers."""

    def test_can_access_project(self) -> None:
        """Test project membership checks."""
        access = EffectiveAccess(principal_id=7, org_id=10, level=AccessLevel.PROJECT, granted_context_ids=frozenset({6}))
        assert access.can_access(6)
        assert not access.can_access(99)
        assert not access.is_empty

    def test_super_admin_never_empty(self) -> None:
        """Test an unrestricted access is not empty."""
        access = EffectiveAccess(principal_id=7, org_id=10, level=AccessLevel.SUPER_ADMIN)
        assert access.unrestricted
        assert not access.is_empty
