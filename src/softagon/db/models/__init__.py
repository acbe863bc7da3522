"""SQLAlchemy ORM models for Softagon.

This package contains all database models organized by domain:
- base: Common metadata, annotated column types and literal defaults
- users: Users and notifications
- documents: Documents, versions, shares, attachments, file metadata, certificates
- workflows: Workflows, tasks and the audit log
- organization: Institutions, departments and memberships
- helpdesk: Tickets, conversation threads and lookup tables
"""

from softagon.db.models.base import Base, metadata
from softagon.db.models.documents import (
    Attachment,
    DigitalCertificate,
    Document,
    DocumentVersion,
    FileMetadata,
    SharedDocument,
)
from softagon.db.models.helpdesk import (
    CustomField,
    HelpTopic,
    SLAPlan,
    Ticket,
    TicketAttachment,
    TicketCollaborator,
    TicketCustomField,
    TicketPriority,
    TicketStatus,
    TicketThread,
)
from softagon.db.models.organization import Department, Institution, UserDepartment
from softagon.db.models.users import Notification, User
from softagon.db.models.workflows import AuditLog, Task, Workflow

__all__ = [
    "Attachment",
    "AuditLog",
    "Base",
    "CustomField",
    "Department",
    "DigitalCertificate",
    "Document",
    "DocumentVersion",
    "FileMetadata",
    "HelpTopic",
    "Institution",
    "Notification",
    "SLAPlan",
    "SharedDocument",
    "Task",
    "Ticket",
    "TicketAttachment",
    "TicketCollaborator",
    "TicketCustomField",
    "TicketPriority",
    "TicketStatus",
    "TicketThread",
    "User",
    "UserDepartment",
    "Workflow",
    "metadata",
]
