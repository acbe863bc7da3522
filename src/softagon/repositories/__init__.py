"""Softagon persistence access layer.

One repository per aggregate, each wrapping a caller-supplied AsyncSession.
Repositories flush but never commit.

Usage:
    async with get_async_session() as session:
        users = UserRepository(session)
        user = await users.create(email="ana@example.com", name="Ana")
        await session.commit()
"""

from softagon.repositories.base import (
    ImmutableRecordError,
    RecordNotFoundError,
    Repository,
)
from softagon.repositories.certificates import DigitalCertificateRepository
from softagon.repositories.documents import (
    ChecksumMismatchError,
    DocumentRepository,
    DocumentVersionRepository,
    FileMetadataRepository,
    VersionOrderError,
)
from softagon.repositories.helpdesk import (
    HelpdeskRepository,
    InvalidTicketStateError,
    TicketRepository,
)
from softagon.repositories.organization import (
    DepartmentCycleError,
    InvalidParentError,
    OrganizationRepository,
)
from softagon.repositories.users import NotificationRepository, UserRepository
from softagon.repositories.workflows import (
    AuditLogRepository,
    TaskRepository,
    WorkflowRepository,
)

__all__ = [
    "AuditLogRepository",
    "ChecksumMismatchError",
    "DepartmentCycleError",
    "DigitalCertificateRepository",
    "DocumentRepository",
    "DocumentVersionRepository",
    "FileMetadataRepository",
    "HelpdeskRepository",
    "ImmutableRecordError",
    "InvalidParentError",
    "InvalidTicketStateError",
    "NotificationRepository",
    "OrganizationRepository",
    "RecordNotFoundError",
    "Repository",
    "TaskRepository",
    "TicketRepository",
    "UserRepository",
    "VersionOrderError",
    "WorkflowRepository",
]
