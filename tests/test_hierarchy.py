"""Tests for the Hierarchy Index implementations."""

from __future__ import annotations

import pytest
from sqlalchemy import update
from sqlalchemy.orm import Session

from scopegate import ContextTier, HierarchyIndex
from scopegate.schema import LocationRecord, ProjectRecord


@pytest.fixture(params=["memory", "sql"])
def index(request, hierarchy, sql_hierarchy):
    return hierarchy if request.param == "memory" else sql_hierarchy


class TestExpansion:
    """Tests for the expansion queries."""

    def test_satisfies_protocol(self, index) -> None:
        """Test both indexes implement HierarchyIndex."""
        assert isinstance(index, HierarchyIndex)

    def test_locations_of_organization(self, index) -> None:
        """Test locations are listed per organization."""
        assert index.locations_of_organization(10) == frozenset({24, 25})
        assert index.locations_of_organization(20) == frozenset({30})
        assert index.locations_of_organization(404) == frozenset()

    def test_projects_of_location(self, index) -> None:
        """Test projects under one location."""
        assert index.projects_of_location(24, 10) == frozenset({6, 7})

    def test_projects_of_location_is_org_scoped(self, index) -> None:
        """Test a location queried under a foreign org yields nothing."""
        assert index.projects_of_location(24, 20) == frozenset()
        assert index.projects_of_location(30, 10) == frozenset()

    def test_projects_of_organization(self, index) -> None:
        """Test projects of every location in the org."""
        assert index.projects_of_organization(10) == frozenset({6, 7, 8, 99})
        assert index.projects_of_organization(20) == frozenset({50})

    def test_organization_of_location(self, index) -> None:
        """Test the parent org lookup."""
        assert index.organization_of_location(30) == 20
        assert index.organization_of_location(404) is None


class TestContextExists:
    """Tests for context_exists."""

    def test_known_contexts(self, index) -> None:
        """Test every tier resolves known ids."""
        assert index.context_exists(ContextTier.ORGANIZATION, 10)
        assert index.context_exists(ContextTier.LOCATION, 24)
        assert index.context_exists(ContextTier.PROJECT, 99)

    def test_unknown_contexts(self, index) -> None:
        """Test unknown ids are rejected."""
        assert not index.context_exists(ContextTier.ORGANIZATION, 404)
        assert not index.context_exists(ContextTier.LOCATION, 404)
        assert not index.context_exists(ContextTier.PROJECT, 404)

    def test_org_scoped_check(self, index) -> None:
        """Test the optional org narrows the check."""
        assert index.context_exists(ContextTier.PROJECT, 50, org_id=20)
        assert not index.context_exists(ContextTier.PROJECT, 50, org_id=10)
        assert not index.context_exists(ContextTier.ORGANIZATION, 10, org_id=20)


class TestDeletedRecords:
    """Tests that soft-deleted resources disappear from expansion."""

    def test_memory_retired_project(self, hierarchy) -> None:
        """Test a retired project is not expanded."""
        hierarchy.retire_project(7)
        assert hierarchy.projects_of_location(24, 10) == frozenset({6})
        assert not hierarchy.context_exists(ContextTier.PROJECT, 7)

    def test_memory_retired_location(self, hierarchy) -> None:
        """Test a retired location has no parent org."""
        hierarchy.retire_location(25)
        assert hierarchy.organization_of_location(25) is None
        assert hierarchy.locations_of_organization(10) == frozenset({24})

    def test_sql_deleted_rows(self, engine, sql_hierarchy) -> None:
        """Test soft-deleted rows are ignored by the SQL index."""
        with Session(engine) as session, session.begin():
            session.execute(update(ProjectRecord).where(ProjectRecord.id == 7).values(is_deleted=True))
            session.execute(update(LocationRecord).where(LocationRecord.id == 25).values(is_deleted=True))

        assert sql_hierarchy.projects_of_location(24, 10) == frozenset({6})
        assert sql_hierarchy.organization_of_location(25) is None
        assert not sql_hierarchy.context_exists(ContextTier.LOCATION, 25)

    def test_sql_sees_moved_project(self, engine, sql_hierarchy) -> None:
        """Test the SQL index reflects changes immediately."""
        with Session(engine) as session, session.begin():
            session.execute(update(ProjectRecord).where(ProjectRecord.id == 7).values(location_id=25))

        assert sql_hierarchy.projects_of_location(25, 10) == frozenset({7, 8, 99})
