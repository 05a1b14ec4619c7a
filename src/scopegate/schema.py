"""Relational schema read by the SQL store and the SQL hierarchy index.

Organization, location and project tables belong to the resource-management
side of the platform; scopegate only reads their foreign keys. The
assignments table is the one scopegate writes.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from .models import ContextTier, utcnow


class Base(DeclarativeBase):
    pass


class OrganizationRecord(Base):
    __tablename__ = "organizations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class LocationRecord(Base):
    __tablename__ = "locations"
    __table_args__ = (Index("ix_locations_org", "org_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    org_id: Mapped[int] = mapped_column(ForeignKey("organizations.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class ProjectRecord(Base):
    __tablename__ = "projects"
    __table_args__ = (
        Index("ix_projects_org", "org_id"),
        Index("ix_projects_location", "location_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    org_id: Mapped[int] = mapped_column(ForeignKey("organizations.id"), nullable=False)
    location_id: Mapped[int] = mapped_column(ForeignKey("locations.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class RoleRecord(Base):
    __tablename__ = "roles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    scope_tier: Mapped[str] = mapped_column(String(32), nullable=False, default=ContextTier.PROJECT.value)
    org_id: Mapped[Optional[int]] = mapped_column(ForeignKey("organizations.id"), nullable=True)


class AssignmentRecord(Base):
    """Role grant at one context. Rows are soft-deleted, never removed."""

    __tablename__ = "user_assignments"
    __table_args__ = (
        Index("ix_user_assignments_principal_tier", "principal_id", "context_tier"),
        Index("ix_user_assignments_context", "context_tier", "context_id"),
        # Uniqueness only binds live rows so a retired grant can be re-issued.
        Index(
            "uq_user_assignments_active_grant",
            "principal_id",
            "role_id",
            "context_tier",
            "context_id",
            unique=True,
            postgresql_where=text("NOT is_deleted"),
            sqlite_where=text("is_deleted = 0"),
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    principal_id: Mapped[int] = mapped_column(Integer, nullable=False)
    role_id: Mapped[int] = mapped_column(ForeignKey("roles.id"), nullable=False)
    context_tier: Mapped[str] = mapped_column(String(32), nullable=False)
    context_id: Mapped[int] = mapped_column(Integer, nullable=False)
    trade_type: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    is_primary: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    start_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    updated_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )


def create_schema(engine) -> None:
    """Create all tables (tests and local development; production uses migrations)."""
    Base.metadata.create_all(engine)


__all__ = [
    "AssignmentRecord",
    "Base",
    "LocationRecord",
    "OrganizationRecord",
    "ProjectRecord",
    "RoleRecord",
    "create_schema",
]
