"""Organization structure: institutions, departments and memberships.

Departments form a tree through parent_secretariat_id. A CHECK constraint
forbids a department being its own parent; longer cycles are rejected by
softagon.repositories.organization before the row is written.
"""

from __future__ import annotations

import uuid  # noqa: TC003 - required at runtime for SQLAlchemy type resolution
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    String,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from softagon.db.models.base import (
    DEFAULT_MEMBERSHIP_ROLE,
    Base,
    TimestampTZ,
    UpdatedTimestampTZ,
    UUIDPrimaryKey,
)

if TYPE_CHECKING:
    from softagon.db.models.helpdesk import HelpTopic, Ticket
    from softagon.db.models.users import User


class Institution(Base):
    """Top-level organization owning a set of departments."""

    __tablename__ = "institutions"

    institution_id: Mapped[UUIDPrimaryKey]
    created_at: Mapped[TimestampTZ]
    updated_at: Mapped[UpdatedTimestampTZ]

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    acronym: Mapped[str | None] = mapped_column(String(50), nullable=True)

    departments: Mapped[list[Department]] = relationship(
        "Department",
        back_populates="institution",
        passive_deletes="all",
    )


class Department(Base):
    """Department of an institution.

    Secretariats (is_secretariat=True) may have child departments.
    """

    __tablename__ = "departments"

    department_id: Mapped[UUIDPrimaryKey]
    created_at: Mapped[TimestampTZ]
    updated_at: Mapped[UpdatedTimestampTZ]

    institution_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("institutions.institution_id", ondelete="RESTRICT"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_secretariat: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=text("false"),
    )
    parent_secretariat_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("departments.department_id", ondelete="RESTRICT"),
        nullable=True,
    )

    institution: Mapped[Institution] = relationship("Institution", back_populates="departments")
    parent_secretariat: Mapped[Department | None] = relationship(
        "Department",
        remote_side="Department.department_id",
        back_populates="child_departments",
    )
    child_departments: Mapped[list[Department]] = relationship(
        "Department",
        back_populates="parent_secretariat",
        passive_deletes="all",
    )
    members: Mapped[list[UserDepartment]] = relationship(
        "UserDepartment",
        back_populates="department",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    tickets: Mapped[list[Ticket]] = relationship(
        "Ticket",
        back_populates="department",
        passive_deletes="all",
    )
    help_topics: Mapped[list[HelpTopic]] = relationship(
        "HelpTopic",
        back_populates="department",
        passive_deletes="all",
    )

    __table_args__ = (
        CheckConstraint(
            "parent_secretariat_id IS NULL OR parent_secretariat_id <> department_id",
            name="not_own_parent",
        ),
        Index("ix_departments_institution_id", "institution_id"),
        Index("ix_departments_parent_secretariat_id", "parent_secretariat_id"),
    )


class UserDepartment(Base):
    """Membership of a user in a department, with a role inside it."""

    __tablename__ = "user_departments"

    user_department_id: Mapped[UUIDPrimaryKey]
    created_at: Mapped[TimestampTZ]

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False,
    )
    department_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("departments.department_id", ondelete="CASCADE"),
        nullable=False,
    )
    role: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default=DEFAULT_MEMBERSHIP_ROLE,
        server_default=DEFAULT_MEMBERSHIP_ROLE,
    )

    user: Mapped[User] = relationship("User", back_populates="departments")
    department: Mapped[Department] = relationship("Department", back_populates="members")

    __table_args__ = (
        UniqueConstraint("user_id", "department_id", name="uq_user_departments_user_department"),
        Index("ix_user_departments_department_id", "department_id"),
    )
