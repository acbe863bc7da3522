"""Business process (BPM) models: workflows, tasks and the audit trail."""

from __future__ import annotations

import uuid  # noqa: TC003 - required at runtime for SQLAlchemy type resolution
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Index, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from softagon.db.models.base import (
    DEFAULT_TASK_STATUS,
    DEFAULT_WORKFLOW_TYPE,
    Base,
    OptionalTimestampTZ,
    TimestampTZ,
    UpdatedTimestampTZ,
    UUIDPrimaryKey,
)

if TYPE_CHECKING:
    from softagon.db.models.documents import Document
    from softagon.db.models.users import User


class Workflow(Base):
    """A business process composed of tasks.

    `status` has no default: callers must always state it.
    """

    __tablename__ = "workflows"

    workflow_id: Mapped[UUIDPrimaryKey]
    created_at: Mapped[TimestampTZ]
    updated_at: Mapped[UpdatedTimestampTZ]

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default=DEFAULT_WORKFLOW_TYPE,
        server_default=DEFAULT_WORKFLOW_TYPE,
    )
    status: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    tasks: Mapped[list[Task]] = relationship(
        "Task",
        back_populates="workflow",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    audit_logs: Mapped[list[AuditLog]] = relationship(
        "AuditLog",
        back_populates="workflow",
        passive_deletes="all",
    )

    __table_args__ = (Index("ix_workflows_status", "status"),)


class Task(Base):
    """Unit of work inside a workflow, optionally assigned and tied to a document."""

    __tablename__ = "tasks"

    task_id: Mapped[UUIDPrimaryKey]
    created_at: Mapped[TimestampTZ]
    updated_at: Mapped[UpdatedTimestampTZ]

    workflow_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("workflows.workflow_id", ondelete="CASCADE"),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default=DEFAULT_TASK_STATUS,
        server_default=DEFAULT_TASK_STATUS,
    )
    due_date: Mapped[OptionalTimestampTZ]

    assigned_to_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.user_id", ondelete="SET NULL"),
        nullable=True,
    )
    document_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("documents.document_id", ondelete="SET NULL"),
        nullable=True,
    )

    workflow: Mapped[Workflow] = relationship("Workflow", back_populates="tasks")
    assigned_to: Mapped[User | None] = relationship("User", back_populates="tasks")
    document: Mapped[Document | None] = relationship("Document", back_populates="tasks")
    audit_logs: Mapped[list[AuditLog]] = relationship(
        "AuditLog",
        back_populates="task",
        passive_deletes="all",
    )

    __table_args__ = (
        Index("ix_tasks_workflow_id", "workflow_id"),
        Index("ix_tasks_assigned_to_id", "assigned_to_id"),
        Index("ix_tasks_status", "status"),
    )


class AuditLog(Base):
    """Append-only record of an action taken by a user.

    Rows are never updated or deleted; the task and workflow they point to
    cannot be deleted while the record exists.
    """

    __tablename__ = "audit_logs"

    audit_log_id: Mapped[UUIDPrimaryKey]

    task_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("tasks.task_id", ondelete="RESTRICT"),
        nullable=True,
    )
    workflow_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("workflows.workflow_id", ondelete="RESTRICT"),
        nullable=True,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.user_id", ondelete="RESTRICT"),
        nullable=False,
    )
    action: Mapped[str] = mapped_column(String(255), nullable=False)
    details: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    timestamp: Mapped[TimestampTZ]

    task: Mapped[Task | None] = relationship("Task", back_populates="audit_logs")
    workflow: Mapped[Workflow | None] = relationship("Workflow", back_populates="audit_logs")
    user: Mapped[User] = relationship("User", back_populates="audit_logs")

    __table_args__ = (
        Index("ix_audit_logs_task_id", "task_id"),
        Index("ix_audit_logs_workflow_id", "workflow_id"),
        Index("ix_audit_logs_user_id", "user_id"),
        Index("ix_audit_logs_timestamp", "timestamp"),
    )
