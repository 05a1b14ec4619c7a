"""Filter Compiler: EffectiveAccess -> reusable query predicate.

``compile_filter`` is a pure function; it never touches the Assignment
Store. The resulting ``Predicate`` can be rendered as a SQLAlchemy
``WHERE`` clause, evaluated against in-memory records, or serialized.

Compilation table (``f`` = the resource's field names):

==============  ====================================================
level           predicate
==============  ====================================================
super_admin     unrestricted (AND explicit org/location filters)
organization    f.org IN scope_ids (AND f.location = explicit)
location        f.location IN scope_ids AND f.org = principal org
project         f.project IN granted AND f.org = principal org
none            always false
==============  ====================================================

Organization and location levels match on ``scope_ids``, so a project added
later under a granted org or location is visible without re-resolving, even
when nothing was under it at resolution time. An empty id list, or the
location-first overlay, compiles to always-false.
Nothing except ``super_admin`` can ever compile to unrestricted.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

from .types import AccessLevel, EffectiveAccess


class PredicateKind(str, Enum):
    ALL = "all"
    NONE = "none"
    MATCH = "match"


class Operator(str, Enum):
    EQ = "eq"
    IN = "in"


@dataclass(frozen=True)
class Condition:
    """``field op value`` where ``value`` is an id or a frozenset of ids."""

    field: str
    op: Operator
    value: Union[int, frozenset[int]]

    def test(self, record: Any) -> bool:
        actual = _field_value(record, self.field)
        if self.op == Operator.IN:
            return actual in self.value
        return actual == self.value

    def to_dict(self) -> dict[str, Any]:
        value = sorted(self.value) if isinstance(self.value, frozenset) else self.value
        return {"field": self.field, "op": self.op.value, "value": value}


@dataclass(frozen=True)
class Predicate:
    """Conjunction of conditions, or one of the two constants."""

    kind: PredicateKind
    conditions: tuple[Condition, ...] = ()

    @classmethod
    def unrestricted(cls) -> Predicate:
        return cls(PredicateKind.ALL)

    @classmethod
    def always_false(cls) -> Predicate:
        return cls(PredicateKind.NONE)

    @classmethod
    def where(cls, *conditions: Condition) -> Predicate:
        if not conditions:
            return cls.unrestricted()
        if any(c.op == Operator.IN and not c.value for c in conditions):
            return cls.always_false()
        return cls(PredicateKind.MATCH, tuple(conditions))

    @property
    def is_unrestricted(self) -> bool:
        return self.kind == PredicateKind.ALL

    @property
    def is_always_false(self) -> bool:
        return self.kind == PredicateKind.NONE

    def matches(self, record: Any) -> bool:
        """Evaluate against a mapping or an object with attributes."""
        if self.kind == PredicateKind.ALL:
            return True
        if self.kind == PredicateKind.NONE:
            return False
        return all(condition.test(record) for condition in self.conditions)

    def apply(self, records: Any) -> list[Any]:
        return [record for record in records if self.matches(record)]

    def to_sqlalchemy(self, target: Any) -> Any:
        """Render as a SQLAlchemy boolean clause.

        Args:
            target: A ``Table`` (columns looked up on ``.c``) or an ORM
                mapped class (columns looked up as attributes).
        """
        from sqlalchemy import and_, false, true

        if self.kind == PredicateKind.ALL:
            return true()
        if self.kind == PredicateKind.NONE:
            return false()

        clauses = []
        for condition in self.conditions:
            column = getattr(target.c, condition.field) if hasattr(target, "c") else getattr(target, condition.field)
            if condition.op == Operator.IN:
                clauses.append(column.in_(sorted(condition.value)))
            else:
                clauses.append(column == condition.value)
        return and_(*clauses)

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "conditions": [condition.to_dict() for condition in self.conditions],
        }


def _field_value(record: Any, field: str) -> Any:
    if isinstance(record, Mapping):
        return record.get(field)
    return getattr(record, field, None)


def compile_filter(access: EffectiveAccess) -> Predicate:
    """Translate resolved access into a query predicate for ``access.resource``."""
    fields = access.resource

    if access.level == AccessLevel.SUPER_ADMIN:
        narrowing = []
        if access.org_filter is not None:
            narrowing.append(Condition(fields.org_field, Operator.EQ, access.org_filter))
        if access.location_filter is not None:
            narrowing.append(Condition(fields.location_field, Operator.EQ, access.location_filter))
        return Predicate.where(*narrowing)

    if access.level == AccessLevel.NONE or access.location_required:
        return Predicate.always_false()

    if access.level == AccessLevel.ORGANIZATION:
        conditions = [Condition(fields.org_field, Operator.IN, access.scope_ids)]
        if access.location_filter is not None:
            conditions.append(Condition(fields.location_field, Operator.EQ, access.location_filter))
        return Predicate.where(*conditions)

    home_org = Condition(fields.org_field, Operator.EQ, access.org_id)

    if access.level == AccessLevel.LOCATION:
        return Predicate.where(
            Condition(fields.location_field, Operator.IN, access.scope_ids),
            home_org,
        )

    conditions = [Condition(fields.project_field, Operator.IN, access.granted_context_ids), home_org]
    if access.location_filter is not None:
        conditions.append(Condition(fields.location_field, Operator.EQ, access.location_filter))
    return Predicate.where(*conditions)


__all__ = [
    "Condition",
    "Operator",
    "Predicate",
    "PredicateKind",
    "compile_filter",
]
