"""Helpdesk ticketing models.

Lookup tables (statuses, priorities, help topics, SLA plans, custom
fields) use integer identity keys; tickets and their conversation use UUIDs.
"""

from __future__ import annotations

import uuid  # noqa: TC003 - required at runtime for SQLAlchemy type resolution
from typing import TYPE_CHECKING

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from softagon.db.models.base import (
    DEFAULT_CUSTOM_FIELD_TYPE,
    Base,
    IntPrimaryKey,
    OptionalTimestampTZ,
    TimestampTZ,
    UpdatedTimestampTZ,
    UUIDPrimaryKey,
)

if TYPE_CHECKING:
    from softagon.db.models.organization import Department
    from softagon.db.models.users import User


# =============================================================================
# Lookup tables
# =============================================================================


class TicketStatus(Base):
    """Ticket status; `is_closed` marks statuses that end a ticket."""

    __tablename__ = "ticket_statuses"

    ticket_status_id: Mapped[IntPrimaryKey]
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    is_closed: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=text("false"),
    )


class TicketPriority(Base):
    """Ticket priority; higher urgency sorts first."""

    __tablename__ = "ticket_priorities"

    ticket_priority_id: Mapped[IntPrimaryKey]
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    urgency: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default=text("0"),
    )


class HelpTopic(Base):
    """Subject area users pick when opening a ticket, routed to a department."""

    __tablename__ = "help_topics"

    help_topic_id: Mapped[IntPrimaryKey]
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    department_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("departments.department_id", ondelete="RESTRICT"),
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        server_default=text("true"),
    )

    department: Mapped[Department] = relationship("Department", back_populates="help_topics")

    __table_args__ = (Index("ix_help_topics_department_id", "department_id"),)


class SLAPlan(Base):
    """Service-level agreement: tickets are due grace_period_hours after opening."""

    __tablename__ = "sla_plans"

    sla_plan_id: Mapped[IntPrimaryKey]
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    grace_period_hours: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (CheckConstraint("grace_period_hours > 0", name="grace_period_positive"),)


class CustomField(Base):
    """Extra field definition whose per-ticket values live in ticket_custom_fields."""

    __tablename__ = "custom_fields"

    custom_field_id: Mapped[IntPrimaryKey]
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    label: Mapped[str] = mapped_column(String(255), nullable=False)
    field_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default=DEFAULT_CUSTOM_FIELD_TYPE,
        server_default=DEFAULT_CUSTOM_FIELD_TYPE,
    )
    required: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=text("false"),
    )


# =============================================================================
# Tickets
# =============================================================================


class Ticket(Base):
    """Helpdesk ticket."""

    __tablename__ = "tickets"

    ticket_id: Mapped[UUIDPrimaryKey]
    created_at: Mapped[TimestampTZ]
    updated_at: Mapped[UpdatedTimestampTZ]

    subject: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)

    status_id: Mapped[int] = mapped_column(
        ForeignKey("ticket_statuses.ticket_status_id", ondelete="RESTRICT"),
        nullable=False,
    )
    priority_id: Mapped[int] = mapped_column(
        ForeignKey("ticket_priorities.ticket_priority_id", ondelete="RESTRICT"),
        nullable=False,
    )
    created_by_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.user_id", ondelete="RESTRICT"),
        nullable=False,
    )
    assigned_to_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.user_id", ondelete="SET NULL"),
        nullable=True,
    )
    department_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("departments.department_id", ondelete="RESTRICT"),
        nullable=False,
    )
    help_topic_id: Mapped[int] = mapped_column(
        ForeignKey("help_topics.help_topic_id", ondelete="RESTRICT"),
        nullable=False,
    )
    sla_plan_id: Mapped[int | None] = mapped_column(
        ForeignKey("sla_plans.sla_plan_id", ondelete="SET NULL"),
        nullable=True,
    )

    due_date: Mapped[OptionalTimestampTZ]
    closed_at: Mapped[OptionalTimestampTZ]
    last_response_at: Mapped[OptionalTimestampTZ]

    # Relationships
    status: Mapped[TicketStatus] = relationship("TicketStatus")
    priority: Mapped[TicketPriority] = relationship("TicketPriority")
    help_topic: Mapped[HelpTopic] = relationship("HelpTopic")
    sla_plan: Mapped[SLAPlan | None] = relationship("SLAPlan")
    department: Mapped[Department] = relationship("Department", back_populates="tickets")
    created_by: Mapped[User] = relationship(
        "User",
        foreign_keys=[created_by_id],
        back_populates="created_tickets",
    )
    assigned_to: Mapped[User | None] = relationship(
        "User",
        foreign_keys=[assigned_to_id],
        back_populates="assigned_tickets",
    )
    threads: Mapped[list[TicketThread]] = relationship(
        "TicketThread",
        back_populates="ticket",
        order_by="TicketThread.created_at",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    collaborators: Mapped[list[TicketCollaborator]] = relationship(
        "TicketCollaborator",
        back_populates="ticket",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    custom_fields: Mapped[list[TicketCustomField]] = relationship(
        "TicketCustomField",
        back_populates="ticket",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("ix_tickets_status_id", "status_id"),
        Index("ix_tickets_department_id", "department_id"),
        Index("ix_tickets_assigned_to_id", "assigned_to_id"),
        Index("ix_tickets_created_by_id", "created_by_id"),
        Index("ix_tickets_due_date", "due_date"),
    )


class TicketThread(Base):
    """One message in a ticket's conversation."""

    __tablename__ = "ticket_threads"

    ticket_thread_id: Mapped[UUIDPrimaryKey]
    created_at: Mapped[TimestampTZ]

    ticket_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("tickets.ticket_id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.user_id", ondelete="RESTRICT"),
        nullable=False,
    )
    message: Mapped[str] = mapped_column(Text, nullable=False)

    ticket: Mapped[Ticket] = relationship("Ticket", back_populates="threads")
    user: Mapped[User] = relationship("User", back_populates="ticket_threads")
    attachments: Mapped[list[TicketAttachment]] = relationship(
        "TicketAttachment",
        back_populates="thread",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (Index("ix_ticket_threads_ticket_id", "ticket_id"),)


class TicketAttachment(Base):
    """File attached to a ticket message."""

    __tablename__ = "ticket_attachments"

    ticket_attachment_id: Mapped[UUIDPrimaryKey]
    created_at: Mapped[TimestampTZ]

    thread_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("ticket_threads.ticket_thread_id", ondelete="CASCADE"),
        nullable=False,
    )
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_path: Mapped[str] = mapped_column(String(1000), nullable=False)
    mime_type: Mapped[str] = mapped_column(String(255), nullable=False)
    size: Mapped[int] = mapped_column(BigInteger, nullable=False)

    thread: Mapped[TicketThread] = relationship("TicketThread", back_populates="attachments")

    __table_args__ = (Index("ix_ticket_attachments_thread_id", "thread_id"),)


class TicketCollaborator(Base):
    """User following a ticket besides its creator and assignee."""

    __tablename__ = "ticket_collaborators"

    ticket_collaborator_id: Mapped[UUIDPrimaryKey]
    created_at: Mapped[TimestampTZ]

    ticket_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("tickets.ticket_id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False,
    )

    ticket: Mapped[Ticket] = relationship("Ticket", back_populates="collaborators")
    user: Mapped[User] = relationship("User", back_populates="ticket_collaborations")

    __table_args__ = (
        UniqueConstraint("ticket_id", "user_id", name="uq_ticket_collaborators_ticket_user"),
        Index("ix_ticket_collaborators_user_id", "user_id"),
    )


class TicketCustomField(Base):
    """Value of a custom field on a ticket."""

    __tablename__ = "ticket_custom_fields"

    ticket_custom_field_id: Mapped[UUIDPrimaryKey]

    ticket_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("tickets.ticket_id", ondelete="CASCADE"),
        nullable=False,
    )
    custom_field_id: Mapped[int] = mapped_column(
        ForeignKey("custom_fields.custom_field_id", ondelete="RESTRICT"),
        nullable=False,
    )
    value: Mapped[str] = mapped_column(Text, nullable=False)

    ticket: Mapped[Ticket] = relationship("Ticket", back_populates="custom_fields")
    custom_field: Mapped[CustomField] = relationship("CustomField")

    __table_args__ = (
        UniqueConstraint(
            "ticket_id",
            "custom_field_id",
            name="uq_ticket_custom_fields_ticket_field",
        ),
    )
