"""Initial schema with all core tables.

Revision ID: 001
Revises: None
Create Date: 2026-10-17 00:00:00.000000+00:00

Creates all tables for Softagon:
- users, notifications
- institutions, departments, user_departments (organization)
- documents, shared_documents, document_versions, attachments,
  file_metadata, digital_certificates (GED)
- workflows, tasks, audit_logs (BPM)
- ticket_statuses, ticket_priorities, help_topics, sla_plans, custom_fields,
  tickets, ticket_threads, ticket_attachments, ticket_collaborators,
  ticket_custom_fields (helpdesk)
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# Revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _uuid_pk(name: str) -> sa.Column:
    return sa.Column(
        name,
        postgresql.UUID(as_uuid=True),
        server_default=sa.text("gen_random_uuid()"),
        nullable=False,
    )


def _int_pk(name: str) -> sa.Column:
    return sa.Column(name, sa.Integer(), sa.Identity(always=False), nullable=False)


def _timestamp(name: str) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        server_default=sa.text("now()"),
        nullable=False,
    )


def _fk(table: str, column: str, referred: str, referred_column: str, ondelete: str):
    return sa.ForeignKeyConstraint(
        [column],
        [f"{referred}.{referred_column}"],
        name=op.f(f"fk_{table}_{column}_{referred}"),
        ondelete=ondelete,
    )


def upgrade() -> None:
    """Apply migration: Initial schema with all core tables."""
    # =========================================================================
    # Users
    # =========================================================================
    op.create_table(
        "users",
        _uuid_pk("user_id"),
        _timestamp("created_at"),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("role", sa.String(50), nullable=False, server_default="user"),
        sa.Column("api_user_id", sa.String(255), nullable=True),
        sa.PrimaryKeyConstraint("user_id", name=op.f("pk_users")),
        sa.UniqueConstraint("email", name=op.f("uq_users_email")),
        sa.UniqueConstraint("api_user_id", name=op.f("uq_users_api_user_id")),
    )

    op.create_table(
        "notifications",
        _uuid_pk("notification_id"),
        _timestamp("created_at"),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("read", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        _fk("notifications", "user_id", "users", "user_id", "CASCADE"),
        sa.PrimaryKeyConstraint("notification_id", name=op.f("pk_notifications")),
    )
    op.create_index(
        op.f("ix_notifications_user_id_read"), "notifications", ["user_id", "read"], unique=False
    )

    # =========================================================================
    # Organization
    # =========================================================================
    op.create_table(
        "institutions",
        _uuid_pk("institution_id"),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("acronym", sa.String(50), nullable=True),
        sa.PrimaryKeyConstraint("institution_id", name=op.f("pk_institutions")),
    )

    op.create_table(
        "departments",
        _uuid_pk("department_id"),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.Column("institution_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column(
            "is_secretariat", sa.Boolean(), nullable=False, server_default=sa.text("false")
        ),
        sa.Column("parent_secretariat_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.CheckConstraint(
            "parent_secretariat_id IS NULL OR parent_secretariat_id <> department_id",
            name=op.f("ck_departments_not_own_parent"),
        ),
        _fk("departments", "institution_id", "institutions", "institution_id", "RESTRICT"),
        _fk("departments", "parent_secretariat_id", "departments", "department_id", "RESTRICT"),
        sa.PrimaryKeyConstraint("department_id", name=op.f("pk_departments")),
    )
    op.create_index(
        op.f("ix_departments_institution_id"), "departments", ["institution_id"], unique=False
    )
    op.create_index(
        op.f("ix_departments_parent_secretariat_id"),
        "departments",
        ["parent_secretariat_id"],
        unique=False,
    )

    op.create_table(
        "user_departments",
        _uuid_pk("user_department_id"),
        _timestamp("created_at"),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("department_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("role", sa.String(50), nullable=False, server_default="member"),
        _fk("user_departments", "user_id", "users", "user_id", "CASCADE"),
        _fk("user_departments", "department_id", "departments", "department_id", "CASCADE"),
        sa.PrimaryKeyConstraint("user_department_id", name=op.f("pk_user_departments")),
        sa.UniqueConstraint(
            "user_id", "department_id", name="uq_user_departments_user_department"
        ),
    )
    op.create_index(
        op.f("ix_user_departments_department_id"),
        "user_departments",
        ["department_id"],
        unique=False,
    )

    # =========================================================================
    # Documents (GED)
    # =========================================================================
    op.create_table(
        "documents",
        _uuid_pk("document_id"),
        _timestamp("created_at"),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("file_path", sa.String(1000), nullable=False),
        sa.Column("mime_type", sa.String(255), nullable=False),
        sa.Column(
            "keywords",
            postgresql.ARRAY(sa.String(100)),
            nullable=False,
            server_default=sa.text("'{}'"),
        ),
        sa.Column("ocr_text", sa.Text(), nullable=True),
        sa.Column("signed", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("signed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("signature_info", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("owner_id", postgresql.UUID(as_uuid=True), nullable=False),
        _fk("documents", "owner_id", "users", "user_id", "RESTRICT"),
        sa.PrimaryKeyConstraint("document_id", name=op.f("pk_documents")),
    )
    op.create_index(op.f("ix_documents_owner_id"), "documents", ["owner_id"], unique=False)
    op.create_index(
        op.f("ix_documents_keywords"),
        "documents",
        ["keywords"],
        unique=False,
        postgresql_using="gin",
    )

    op.create_table(
        "shared_documents",
        _uuid_pk("shared_document_id"),
        _timestamp("created_at"),
        sa.Column("document_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("permission", sa.String(20), nullable=False, server_default="read"),
        _fk("shared_documents", "document_id", "documents", "document_id", "CASCADE"),
        _fk("shared_documents", "user_id", "users", "user_id", "CASCADE"),
        sa.PrimaryKeyConstraint("shared_document_id", name=op.f("pk_shared_documents")),
        sa.UniqueConstraint("document_id", "user_id", name="uq_shared_documents_document_user"),
    )
    op.create_index(
        op.f("ix_shared_documents_user_id"), "shared_documents", ["user_id"], unique=False
    )

    op.create_table(
        "document_versions",
        _uuid_pk("document_version_id"),
        _timestamp("created_at"),
        sa.Column("document_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("version_number", sa.Integer(), nullable=False),
        sa.Column("file_path", sa.String(1000), nullable=False),
        sa.Column("change_description", sa.Text(), nullable=True),
        sa.Column("created_by_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.CheckConstraint(
            "version_number > 0",
            name=op.f("ck_document_versions_version_number_positive"),
        ),
        _fk("document_versions", "document_id", "documents", "document_id", "CASCADE"),
        _fk("document_versions", "created_by_id", "users", "user_id", "RESTRICT"),
        sa.PrimaryKeyConstraint("document_version_id", name=op.f("pk_document_versions")),
        sa.UniqueConstraint(
            "document_id",
            "version_number",
            name="uq_document_versions_document_version",
        ),
    )

    op.create_table(
        "attachments",
        _uuid_pk("attachment_id"),
        _timestamp("created_at"),
        sa.Column("document_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("file_name", sa.String(255), nullable=False),
        sa.Column("file_path", sa.String(1000), nullable=False),
        sa.Column("mime_type", sa.String(255), nullable=False),
        sa.Column("size", sa.BigInteger(), nullable=False),
        _fk("attachments", "document_id", "documents", "document_id", "CASCADE"),
        sa.PrimaryKeyConstraint("attachment_id", name=op.f("pk_attachments")),
    )
    op.create_index(
        op.f("ix_attachments_document_id"), "attachments", ["document_id"], unique=False
    )

    op.create_table(
        "file_metadata",
        _uuid_pk("file_metadata_id"),
        _timestamp("created_at"),
        sa.Column("document_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("size", sa.BigInteger(), nullable=False),
        sa.Column("mime_type", sa.String(255), nullable=False),
        sa.Column("checksum", sa.String(64), nullable=False),
        sa.CheckConstraint("size >= 0", name=op.f("ck_file_metadata_size_non_negative")),
        _fk("file_metadata", "document_id", "documents", "document_id", "CASCADE"),
        sa.PrimaryKeyConstraint("file_metadata_id", name=op.f("pk_file_metadata")),
        sa.UniqueConstraint("document_id", name=op.f("uq_file_metadata_document_id")),
    )

    op.create_table(
        "digital_certificates",
        _uuid_pk("certificate_id"),
        _timestamp("created_at"),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("certificate_path", sa.String(1000), nullable=False),
        # AES-256-GCM ciphertext, see softagon.services.encryption
        sa.Column("password", sa.Text(), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        _fk("digital_certificates", "user_id", "users", "user_id", "CASCADE"),
        sa.PrimaryKeyConstraint("certificate_id", name=op.f("pk_digital_certificates")),
    )
    op.create_index(
        op.f("ix_digital_certificates_user_id"),
        "digital_certificates",
        ["user_id"],
        unique=False,
    )

    # =========================================================================
    # Workflows (BPM)
    # =========================================================================
    op.create_table(
        "workflows",
        _uuid_pk("workflow_id"),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("type", sa.String(50), nullable=False, server_default="sequential"),
        # No default: status must always be given explicitly
        sa.Column("status", sa.String(50), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("workflow_id", name=op.f("pk_workflows")),
    )
    op.create_index(op.f("ix_workflows_status"), "workflows", ["status"], unique=False)

    op.create_table(
        "tasks",
        _uuid_pk("task_id"),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.Column("workflow_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", sa.String(50), nullable=False, server_default="pending"),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("assigned_to_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("document_id", postgresql.UUID(as_uuid=True), nullable=True),
        _fk("tasks", "workflow_id", "workflows", "workflow_id", "CASCADE"),
        _fk("tasks", "assigned_to_id", "users", "user_id", "SET NULL"),
        _fk("tasks", "document_id", "documents", "document_id", "SET NULL"),
        sa.PrimaryKeyConstraint("task_id", name=op.f("pk_tasks")),
    )
    op.create_index(op.f("ix_tasks_workflow_id"), "tasks", ["workflow_id"], unique=False)
    op.create_index(op.f("ix_tasks_assigned_to_id"), "tasks", ["assigned_to_id"], unique=False)
    op.create_index(op.f("ix_tasks_status"), "tasks", ["status"], unique=False)

    op.create_table(
        "audit_logs",
        _uuid_pk("audit_log_id"),
        sa.Column("task_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("workflow_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("action", sa.String(255), nullable=False),
        sa.Column("details", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        _timestamp("timestamp"),
        _fk("audit_logs", "task_id", "tasks", "task_id", "RESTRICT"),
        _fk("audit_logs", "workflow_id", "workflows", "workflow_id", "RESTRICT"),
        _fk("audit_logs", "user_id", "users", "user_id", "RESTRICT"),
        sa.PrimaryKeyConstraint("audit_log_id", name=op.f("pk_audit_logs")),
    )
    op.create_index(op.f("ix_audit_logs_task_id"), "audit_logs", ["task_id"], unique=False)
    op.create_index(
        op.f("ix_audit_logs_workflow_id"), "audit_logs", ["workflow_id"], unique=False
    )
    op.create_index(op.f("ix_audit_logs_user_id"), "audit_logs", ["user_id"], unique=False)
    op.create_index(op.f("ix_audit_logs_timestamp"), "audit_logs", ["timestamp"], unique=False)

    # =========================================================================
    # Helpdesk lookup tables
    # =========================================================================
    op.create_table(
        "ticket_statuses",
        _int_pk("ticket_status_id"),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("is_closed", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.PrimaryKeyConstraint("ticket_status_id", name=op.f("pk_ticket_statuses")),
        sa.UniqueConstraint("name", name=op.f("uq_ticket_statuses_name")),
    )

    op.create_table(
        "ticket_priorities",
        _int_pk("ticket_priority_id"),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("urgency", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.PrimaryKeyConstraint("ticket_priority_id", name=op.f("pk_ticket_priorities")),
        sa.UniqueConstraint("name", name=op.f("uq_ticket_priorities_name")),
    )

    op.create_table(
        "help_topics",
        _int_pk("help_topic_id"),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("department_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        _fk("help_topics", "department_id", "departments", "department_id", "RESTRICT"),
        sa.PrimaryKeyConstraint("help_topic_id", name=op.f("pk_help_topics")),
    )
    op.create_index(
        op.f("ix_help_topics_department_id"), "help_topics", ["department_id"], unique=False
    )

    op.create_table(
        "sla_plans",
        _int_pk("sla_plan_id"),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("grace_period_hours", sa.Integer(), nullable=False),
        sa.CheckConstraint(
            "grace_period_hours > 0", name=op.f("ck_sla_plans_grace_period_positive")
        ),
        sa.PrimaryKeyConstraint("sla_plan_id", name=op.f("pk_sla_plans")),
        sa.UniqueConstraint("name", name=op.f("uq_sla_plans_name")),
    )

    op.create_table(
        "custom_fields",
        _int_pk("custom_field_id"),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("label", sa.String(255), nullable=False),
        sa.Column("field_type", sa.String(50), nullable=False, server_default="text"),
        sa.Column("required", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.PrimaryKeyConstraint("custom_field_id", name=op.f("pk_custom_fields")),
        sa.UniqueConstraint("name", name=op.f("uq_custom_fields_name")),
    )

    # =========================================================================
    # Tickets
    # =========================================================================
    op.create_table(
        "tickets",
        _uuid_pk("ticket_id"),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.Column("subject", sa.String(500), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("status_id", sa.Integer(), nullable=False),
        sa.Column("priority_id", sa.Integer(), nullable=False),
        sa.Column("created_by_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("assigned_to_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("department_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("help_topic_id", sa.Integer(), nullable=False),
        sa.Column("sla_plan_id", sa.Integer(), nullable=True),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_response_at", sa.DateTime(timezone=True), nullable=True),
        _fk("tickets", "status_id", "ticket_statuses", "ticket_status_id", "RESTRICT"),
        _fk("tickets", "priority_id", "ticket_priorities", "ticket_priority_id", "RESTRICT"),
        _fk("tickets", "created_by_id", "users", "user_id", "RESTRICT"),
        _fk("tickets", "assigned_to_id", "users", "user_id", "SET NULL"),
        _fk("tickets", "department_id", "departments", "department_id", "RESTRICT"),
        _fk("tickets", "help_topic_id", "help_topics", "help_topic_id", "RESTRICT"),
        _fk("tickets", "sla_plan_id", "sla_plans", "sla_plan_id", "SET NULL"),
        sa.PrimaryKeyConstraint("ticket_id", name=op.f("pk_tickets")),
    )
    op.create_index(op.f("ix_tickets_status_id"), "tickets", ["status_id"], unique=False)
    op.create_index(op.f("ix_tickets_department_id"), "tickets", ["department_id"], unique=False)
    op.create_index(
        op.f("ix_tickets_assigned_to_id"), "tickets", ["assigned_to_id"], unique=False
    )
    op.create_index(op.f("ix_tickets_created_by_id"), "tickets", ["created_by_id"], unique=False)
    op.create_index(op.f("ix_tickets_due_date"), "tickets", ["due_date"], unique=False)

    op.create_table(
        "ticket_threads",
        _uuid_pk("ticket_thread_id"),
        _timestamp("created_at"),
        sa.Column("ticket_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        _fk("ticket_threads", "ticket_id", "tickets", "ticket_id", "CASCADE"),
        _fk("ticket_threads", "user_id", "users", "user_id", "RESTRICT"),
        sa.PrimaryKeyConstraint("ticket_thread_id", name=op.f("pk_ticket_threads")),
    )
    op.create_index(
        op.f("ix_ticket_threads_ticket_id"), "ticket_threads", ["ticket_id"], unique=False
    )

    op.create_table(
        "ticket_attachments",
        _uuid_pk("ticket_attachment_id"),
        _timestamp("created_at"),
        sa.Column("thread_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("file_name", sa.String(255), nullable=False),
        sa.Column("file_path", sa.String(1000), nullable=False),
        sa.Column("mime_type", sa.String(255), nullable=False),
        sa.Column("size", sa.BigInteger(), nullable=False),
        _fk("ticket_attachments", "thread_id", "ticket_threads", "ticket_thread_id", "CASCADE"),
        sa.PrimaryKeyConstraint("ticket_attachment_id", name=op.f("pk_ticket_attachments")),
    )
    op.create_index(
        op.f("ix_ticket_attachments_thread_id"), "ticket_attachments", ["thread_id"], unique=False
    )

    op.create_table(
        "ticket_collaborators",
        _uuid_pk("ticket_collaborator_id"),
        _timestamp("created_at"),
        sa.Column("ticket_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        _fk("ticket_collaborators", "ticket_id", "tickets", "ticket_id", "CASCADE"),
        _fk("ticket_collaborators", "user_id", "users", "user_id", "CASCADE"),
        sa.PrimaryKeyConstraint("ticket_collaborator_id", name=op.f("pk_ticket_collaborators")),
        sa.UniqueConstraint("ticket_id", "user_id", name="uq_ticket_collaborators_ticket_user"),
    )
    op.create_index(
        op.f("ix_ticket_collaborators_user_id"), "ticket_collaborators", ["user_id"], unique=False
    )

    op.create_table(
        "ticket_custom_fields",
        _uuid_pk("ticket_custom_field_id"),
        sa.Column("ticket_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("custom_field_id", sa.Integer(), nullable=False),
        sa.Column("value", sa.Text(), nullable=False),
        _fk("ticket_custom_fields", "ticket_id", "tickets", "ticket_id", "CASCADE"),
        _fk(
            "ticket_custom_fields",
            "custom_field_id",
            "custom_fields",
            "custom_field_id",
            "RESTRICT",
        ),
        sa.PrimaryKeyConstraint("ticket_custom_field_id", name=op.f("pk_ticket_custom_fields")),
        sa.UniqueConstraint(
            "ticket_id",
            "custom_field_id",
            name="uq_ticket_custom_fields_ticket_field",
        ),
    )


def downgrade() -> None:
    """Revert migration: Initial schema with all core tables."""
    # Drop tables in reverse order (respecting foreign key dependencies)
    op.drop_table("ticket_custom_fields")
    op.drop_table("ticket_collaborators")
    op.drop_table("ticket_attachments")
    op.drop_table("ticket_threads")
    op.drop_table("tickets")
    op.drop_table("custom_fields")
    op.drop_table("sla_plans")
    op.drop_table("help_topics")
    op.drop_table("ticket_priorities")
    op.drop_table("ticket_statuses")
    op.drop_table("audit_logs")
    op.drop_table("tasks")
    op.drop_table("workflows")
    op.drop_table("digital_certificates")
    op.drop_table("file_metadata")
    op.drop_table("attachments")
    op.drop_table("document_versions")
    op.drop_table("shared_documents")
    op.drop_table("documents")
    op.drop_table("user_departments")
    op.drop_table("departments")
    op.drop_table("institutions")
    op.drop_table("notifications")
    op.drop_table("users")
