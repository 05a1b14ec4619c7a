"""Tests for the filter compiler and Predicate rendering."""

from __future__ import annotations

import pytest
from sqlalchemy import Column, Integer, MetaData, Table, insert, select
from sqlalchemy.orm import Session

from scopegate import ISSUE, PROJECT, AccessLevel, EffectiveAccess, Predicate, compile_filter
from scopegate.access import Condition, Operator, PredicateKind
from scopegate.schema import ProjectRecord

ROWS = [
    {"id": 6, "org_id": 10, "location_id": 24},
    {"id": 7, "org_id": 10, "location_id": 24},
    {"id": 99, "org_id": 10, "location_id": 25},
    {"id": 50, "org_id": 20, "location_id": 30},
]


def access(level: AccessLevel, **fields) -> EffectiveAccess:
    return EffectiveAccess(principal_id=1, org_id=10, level=level, **fields)


def visible(predicate: Predicate) -> list[int]:
    return sorted(row["id"] for row in predicate.apply(ROWS))


class TestCompileFilter:
    """Tests for compile_filter."""

    def test_super_admin_unrestricted(self) -> None:
        """Test super admin compiles to the unrestricted constant."""
        predicate = compile_filter(access(AccessLevel.SUPER_ADMIN))
        assert predicate.is_unrestricted
        assert visible(predicate) == [6, 7, 50, 99]

    def test_super_admin_with_org_filter(self) -> None:
        """Test an explicit org filter is ANDed for super admins."""
        predicate = compile_filter(access(AccessLevel.SUPER_ADMIN, org_filter=20))
        assert visible(predicate) == [50]

    def test_super_admin_with_location_filter(self) -> None:
        """Test an explicit location filter is ANDed for super admins."""
        predicate = compile_filter(access(AccessLevel.SUPER_ADMIN, location_filter=24))
        assert visible(predicate) == [6, 7]

    def test_organization(self) -> None:
        """Test org level matches on the granted org ids."""
        predicate = compile_filter(
            access(AccessLevel.ORGANIZATION, scope_ids=frozenset({10}), granted_context_ids=frozenset({6, 7, 99}))
        )
        assert predicate.conditions == (Condition("org_id", Operator.IN, frozenset({10})),)
        assert visible(predicate) == [6, 7, 99]

    def test_organization_with_location_filter(self) -> None:
        """Test org level narrows by an explicit location."""
        predicate = compile_filter(
            access(
                AccessLevel.ORGANIZATION,
                scope_ids=frozenset({10}),
                granted_context_ids=frozenset({99}),
                location_filter=25,
            )
        )
        assert visible(predicate) == [99]

    def test_location(self) -> None:
        """Test location level is pinned to the home org."""
        predicate = compile_filter(
            access(AccessLevel.LOCATION, scope_ids=frozenset({24, 30}), granted_context_ids=frozenset({6, 7}))
        )
        assert visible(predicate) == [6, 7]

    def test_project(self) -> None:
        """Test project level matches ids inside the home org."""
        predicate = compile_filter(
            access(AccessLevel.PROJECT, scope_ids=frozenset({6, 50}), granted_context_ids=frozenset({6, 50}))
        )
        assert visible(predicate) == [6]

    def test_none_is_always_false(self) -> None:
        """Test level none never compiles to unrestricted."""
        predicate = compile_filter(access(AccessLevel.NONE))
        assert predicate.is_always_false
        assert visible(predicate) == []

    def test_empty_grant_is_always_false(self) -> None:
        """Test a grant that expands to nothing matches nothing."""
        predicate = compile_filter(access(AccessLevel.LOCATION, scope_ids=frozenset({24}), location_required=True))
        assert predicate.is_always_false

    def test_organization_without_projects_matches_later_ones(self) -> None:
        """Test an org grant with no projects yet still matches new org rows."""
        predicate = compile_filter(access(AccessLevel.ORGANIZATION, scope_ids=frozenset({10})))
        assert not predicate.is_always_false
        assert visible(predicate) == [6, 7, 99]

    def test_location_without_projects_matches_later_ones(self) -> None:
        """Test a location grant with no projects yet still matches new rows under it."""
        predicate = compile_filter(access(AccessLevel.LOCATION, scope_ids=frozenset({25})))
        assert visible(predicate) == [99]

    def test_project_without_ids_is_always_false(self) -> None:
        """Test project level with nothing granted matches nothing."""
        assert compile_filter(access(AccessLevel.PROJECT)).is_always_false

    def test_resource_fields(self) -> None:
        """Test child resources match grants on their project column."""
        predicate = compile_filter(
            access(AccessLevel.PROJECT, resource=ISSUE, granted_context_ids=frozenset({6}), scope_ids=frozenset({6}))
        )
        fields = [c.field for c in predicate.conditions]
        assert fields == ["project_id", "org_id"]
        assert predicate.matches({"id": 1, "project_id": 6, "org_id": 10})
        assert not predicate.matches({"id": 6, "project_id": 7, "org_id": 10})

    def test_project_resource_uses_primary_key(self) -> None:
        """Test projects match grants on their own id."""
        predicate = compile_filter(
            access(AccessLevel.PROJECT, resource=PROJECT, granted_context_ids=frozenset({6}), scope_ids=frozenset({6}))
        )
        assert predicate.conditions[0].field == "id"


class TestPredicate:
    """Tests for Predicate construction and evaluation."""

    def test_where_without_conditions(self) -> None:
        """Test an empty conjunction is unrestricted."""
        assert Predicate.where().kind == PredicateKind.ALL

    def test_empty_in_list(self) -> None:
        """Test an IN over an empty set collapses to always-false."""
        assert Predicate.where(Condition("id", Operator.IN, frozenset())).is_always_false

    def test_matches_objects(self) -> None:
        """Test records can be plain objects."""
        record = ProjectRecord(id=6, org_id=10, location_id=24, name="Tower")
        predicate = Predicate.where(Condition("org_id", Operator.EQ, 10))
        assert predicate.matches(record)

    def test_missing_field_does_not_match(self) -> None:
        """Test a record without the field is excluded."""
        predicate = Predicate.where(Condition("org_id", Operator.EQ, 10))
        assert not predicate.matches({"id": 6})

    def test_to_dict(self) -> None:
        """Test serialization sorts id sets."""
        predicate = Predicate.where(
            Condition("location_id", Operator.IN, frozenset({25, 24})),
            Condition("org_id", Operator.EQ, 10),
        )
        assert predicate.to_dict() == {
            "kind": "match",
            "conditions": [
                {"field": "location_id", "op": "in", "value": [24, 25]},
                {"field": "org_id", "op": "eq", "value": 10},
            ],
        }


class TestSqlAlchemyRendering:
    """Tests for Predicate.to_sqlalchemy against a real database."""

    @pytest.fixture
    def issues(self, engine) -> Table:
        metadata = MetaData()
        table = Table(
            "issues",
            metadata,
            Column("id", Integer, primary_key=True),
            Column("org_id", Integer),
            Column("location_id", Integer),
            Column("project_id", Integer),
        )
        metadata.create_all(engine)
        with engine.begin() as conn:
            conn.execute(
                insert(table),
                [
                    {"id": 1, "org_id": 10, "location_id": 24, "project_id": 6},
                    {"id": 2, "org_id": 10, "location_id": 25, "project_id": 99},
                    {"id": 3, "org_id": 20, "location_id": 30, "project_id": 50},
                ],
            )
        return table

    def _project_ids(self, engine, predicate: Predicate) -> list[int]:
        with Session(engine) as session:
            stmt = select(ProjectRecord.id).where(predicate.to_sqlalchemy(ProjectRecord)).order_by(ProjectRecord.id)
            return list(session.scalars(stmt).all())

    def test_orm_class(self, engine) -> None:
        """Test rendering against a mapped class."""
        predicate = compile_filter(
            access(AccessLevel.LOCATION, scope_ids=frozenset({24}), granted_context_ids=frozenset({6, 7}))
        )
        assert self._project_ids(engine, predicate) == [6, 7]

    def test_constants(self, engine) -> None:
        """Test the constant predicates render as true/false."""
        assert self._project_ids(engine, Predicate.unrestricted()) == [6, 7, 8, 50, 99]
        assert self._project_ids(engine, Predicate.always_false()) == []

    def test_table(self, engine, issues) -> None:
        """Test rendering against a Core table."""
        predicate = compile_filter(
            access(AccessLevel.PROJECT, resource=ISSUE, granted_context_ids=frozenset({6, 50}), scope_ids=frozenset({6, 50}))
        )
        with engine.connect() as conn:
            rows = conn.execute(select(issues.c.id).where(predicate.to_sqlalchemy(issues))).scalars().all()
        assert rows == [1]
