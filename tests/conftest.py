"""Shared fixtures: a small two-tenant hierarchy, stores and resolvers."""

from __future__ import annotations

from datetime import date

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from scopegate import (
    InMemoryAssignmentStore,
    InMemoryHierarchyIndex,
    ScopeResolver,
    SqlAssignmentStore,
    SqlHierarchyIndex,
)
from scopegate.schema import (
    LocationRecord,
    OrganizationRecord,
    ProjectRecord,
    RoleRecord,
    create_schema,
)

TODAY = date(2026, 3, 15)

# org -> location -> projects
LAYOUT: dict[int, dict[int, tuple[int, ...]]] = {
    10: {24: (6, 7), 25: (99, 8)},
    20: {30: (50,)},
}
ROLE_IDS = (1, 2, 3)


def _today() -> date:
    return TODAY


@pytest.fixture
def clock():
    return _today


@pytest.fixture
def hierarchy() -> InMemoryHierarchyIndex:
    index = InMemoryHierarchyIndex()
    for org_id, locations in LAYOUT.items():
        index.add_organization(org_id)
        for location_id, projects in locations.items():
            index.add_location(location_id, org_id)
            for project_id in projects:
                index.add_project(project_id, location_id, org_id)
    return index


@pytest.fixture
def store(hierarchy, clock) -> InMemoryAssignmentStore:
    return InMemoryAssignmentStore(hierarchy=hierarchy, clock=clock)


@pytest.fixture
def resolver(store, hierarchy) -> ScopeResolver:
    return ScopeResolver(store, hierarchy)


@pytest.fixture
def location_first_resolver(store, hierarchy) -> ScopeResolver:
    return ScopeResolver(store, hierarchy, location_first=True)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_schema(engine)
    with Session(engine) as session, session.begin():
        for org_id, locations in LAYOUT.items():
            session.add(OrganizationRecord(id=org_id, name=f"Org {org_id}"))
            session.flush()
            for location_id, projects in locations.items():
                session.add(LocationRecord(id=location_id, org_id=org_id, name=f"Location {location_id}"))
                session.flush()
                for project_id in projects:
                    session.add(
                        ProjectRecord(id=project_id, org_id=org_id, location_id=location_id, name=f"Project {project_id}")
                    )
        for role_id in ROLE_IDS:
            session.add(RoleRecord(id=role_id, name=f"Role {role_id}"))
    yield engine
    engine.dispose()


@pytest.fixture
def sql_hierarchy(engine) -> SqlHierarchyIndex:
    return SqlHierarchyIndex(engine)


@pytest.fixture
def sql_store(engine, sql_hierarchy, clock) -> SqlAssignmentStore:
    return SqlAssignmentStore(engine, hierarchy=sql_hierarchy, clock=clock)


@pytest.fixture(params=["memory", "sql"])
def any_store(request, store, sql_store):
    """Both store implementations, for contract tests."""
    return store if request.param == "memory" else sql_store
