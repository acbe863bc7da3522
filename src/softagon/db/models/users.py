"""User accounts and per-user notifications.

The User row is the actor behind every ownership, authorship and
assignment reference in the schema.
"""

from __future__ import annotations

import uuid  # noqa: TC003 - required at runtime for SQLAlchemy type resolution
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, ForeignKey, Index, String, Text, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from softagon.db.models.base import (
    DEFAULT_USER_ROLE,
    Base,
    TimestampTZ,
    UUIDPrimaryKey,
)

if TYPE_CHECKING:
    from softagon.db.models.documents import (
        DigitalCertificate,
        Document,
        DocumentVersion,
        SharedDocument,
    )
    from softagon.db.models.helpdesk import Ticket, TicketCollaborator, TicketThread
    from softagon.db.models.organization import UserDepartment
    from softagon.db.models.workflows import AuditLog, Task


class User(Base):
    """Application user.

    Email and the external API user identifier are both unique.
    Role is a free-form label defaulting to "user".
    """

    __tablename__ = "users"

    user_id: Mapped[UUIDPrimaryKey]
    created_at: Mapped[TimestampTZ]

    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default=DEFAULT_USER_ROLE,
        server_default=DEFAULT_USER_ROLE,
    )

    # Identifier of the same person in the upstream identity API
    api_user_id: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)

    # Relationships
    documents: Mapped[list[Document]] = relationship(
        "Document",
        back_populates="owner",
        passive_deletes="all",
    )
    shared_documents: Mapped[list[SharedDocument]] = relationship(
        "SharedDocument",
        back_populates="user",
        passive_deletes=True,
    )
    certificates: Mapped[list[DigitalCertificate]] = relationship(
        "DigitalCertificate",
        back_populates="user",
        passive_deletes=True,
    )
    created_versions: Mapped[list[DocumentVersion]] = relationship(
        "DocumentVersion",
        back_populates="created_by",
        passive_deletes="all",
    )
    tasks: Mapped[list[Task]] = relationship(
        "Task",
        back_populates="assigned_to",
        passive_deletes=True,
    )
    audit_logs: Mapped[list[AuditLog]] = relationship(
        "AuditLog",
        back_populates="user",
        passive_deletes="all",
    )
    notifications: Mapped[list[Notification]] = relationship(
        "Notification",
        back_populates="user",
        passive_deletes=True,
    )
    created_tickets: Mapped[list[Ticket]] = relationship(
        "Ticket",
        foreign_keys="Ticket.created_by_id",
        back_populates="created_by",
        passive_deletes="all",
    )
    assigned_tickets: Mapped[list[Ticket]] = relationship(
        "Ticket",
        foreign_keys="Ticket.assigned_to_id",
        back_populates="assigned_to",
        passive_deletes=True,
    )
    ticket_threads: Mapped[list[TicketThread]] = relationship(
        "TicketThread",
        back_populates="user",
        passive_deletes="all",
    )
    ticket_collaborations: Mapped[list[TicketCollaborator]] = relationship(
        "TicketCollaborator",
        back_populates="user",
        passive_deletes=True,
    )
    departments: Mapped[list[UserDepartment]] = relationship(
        "UserDepartment",
        back_populates="user",
        passive_deletes=True,
    )


class Notification(Base):
    """Message addressed to a single user, with a read flag."""

    __tablename__ = "notifications"

    notification_id: Mapped[UUIDPrimaryKey]
    created_at: Mapped[TimestampTZ]

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False,
    )
    message: Mapped[str] = mapped_column(Text, nullable=False)
    read: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=text("false"),
    )

    user: Mapped[User] = relationship("User", back_populates="notifications")

    __table_args__ = (Index("ix_notifications_user_id_read", "user_id", "read"),)
