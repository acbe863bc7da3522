"""Document management (GED) repositories.

Covers documents with their shares and attachments, the immutable version
history, and the per-document file metadata with checksum verification.
"""

from __future__ import annotations

import hashlib
import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, func, select

from softagon.db.models import (
    Attachment,
    Document,
    DocumentVersion,
    FileMetadata,
    SharedDocument,
)
from softagon.db.models.base import DEFAULT_SHARE_PERMISSION
from softagon.repositories.base import (
    ImmutableRecordError,
    RecordNotFoundError,
    Repository,
)

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID

logger = logging.getLogger(__name__)


class VersionOrderError(Exception):
    """Raised when a version number does not follow the latest one."""

    def __init__(self, document_id: UUID, version_number: int, latest_version: int) -> None:
        self.document_id = document_id
        self.version_number = version_number
        self.latest_version = latest_version
        super().__init__(
            f"Version {version_number} of document {document_id} must be greater "
            f"than the latest version {latest_version}"
        )


class ChecksumMismatchError(Exception):
    """Raised when content does not match the recorded checksum."""

    def __init__(self, document_id: UUID, expected: str, actual: str) -> None:
        self.document_id = document_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Checksum mismatch for document {document_id}: "
            f"expected {expected[:16]}..., got {actual[:16]}..."
        )


class DocumentRepository(Repository[Document]):
    """Documents, their shares and attachments."""

    model = Document

    async def list_for_owner(self, owner_id: UUID) -> Sequence[Document]:
        query = (
            select(Document)
            .where(Document.owner_id == owner_id)
            .order_by(Document.created_at.desc())
        )
        result = await self._session.execute(query)
        return result.scalars().all()

    async def list_shared_with(self, user_id: UUID) -> Sequence[Document]:
        """Documents other users have shared with `user_id`."""
        query = (
            select(Document)
            .join(SharedDocument, SharedDocument.document_id == Document.document_id)
            .where(SharedDocument.user_id == user_id)
            .order_by(Document.created_at.desc())
        )
        result = await self._session.execute(query)
        return result.scalars().all()

    async def share(
        self,
        document_id: UUID,
        user_id: UUID,
        permission: str = DEFAULT_SHARE_PERMISSION,
    ) -> SharedDocument:
        """Share a document with a user.

        Sharing again with the same user replaces the permission.
        """
        query = select(SharedDocument).where(
            SharedDocument.document_id == document_id,
            SharedDocument.user_id == user_id,
        )
        result = await self._session.execute(query)
        share = result.scalar_one_or_none()

        if share is None:
            share = SharedDocument(document_id=document_id, user_id=user_id, permission=permission)
            self._session.add(share)
        else:
            share.permission = permission
        await self._session.flush()
        await self._session.refresh(share)

        logger.info(
            "Document shared",
            extra={
                "document_id": str(document_id),
                "user_id": str(user_id),
                "permission": permission,
            },
        )
        return share

    async def unshare(self, document_id: UUID, user_id: UUID) -> bool:
        """Revoke a share. Returns False if the document was not shared."""
        stmt = delete(SharedDocument).where(
            SharedDocument.document_id == document_id,
            SharedDocument.user_id == user_id,
        )
        result = await self._session.execute(stmt)
        return result.rowcount > 0

    async def add_attachment(
        self,
        document_id: UUID,
        *,
        file_name: str,
        file_path: str,
        mime_type: str,
        size: int,
    ) -> Attachment:
        attachment = Attachment(
            document_id=document_id,
            file_name=file_name,
            file_path=file_path,
            mime_type=mime_type,
            size=size,
        )
        self._session.add(attachment)
        await self._session.flush()
        await self._session.refresh(attachment)
        return attachment

    async def list_attachments(self, document_id: UUID) -> Sequence[Attachment]:
        query = (
            select(Attachment)
            .where(Attachment.document_id == document_id)
            .order_by(Attachment.created_at)
        )
        result = await self._session.execute(query)
        return result.scalars().all()

    async def mark_signed(
        self,
        document_id: UUID,
        signature_info: dict[str, Any],
        *,
        signed_at: datetime | None = None,
    ) -> Document:
        """Record that a document has been digitally signed."""
        return await self.update(
            document_id,
            signed=True,
            signed_at=signed_at or datetime.now(UTC),
            signature_info=signature_info,
        )


class DocumentVersionRepository(Repository[DocumentVersion]):
    """Append-only version history.

    Version numbers are strictly increasing per document. The parent
    document row is locked while the next number is chosen, so concurrent
    writers serialize instead of colliding on the unique constraint.
    """

    model = DocumentVersion
    guards_model = True

    async def _lock_document(self, document_id: UUID) -> None:
        query = (
            select(Document.document_id)
            .where(Document.document_id == document_id)
            .with_for_update()
        )
        result = await self._session.execute(query)
        if result.scalar_one_or_none() is None:
            raise RecordNotFoundError("Document", document_id)

    async def _max_version(self, document_id: UUID) -> int:
        query = select(func.max(DocumentVersion.version_number)).where(
            DocumentVersion.document_id == document_id
        )
        result = await self._session.execute(query)
        return result.scalar_one_or_none() or 0

    async def add_version(
        self,
        document_id: UUID,
        *,
        file_path: str,
        created_by_id: UUID,
        change_description: str | None = None,
        version_number: int | None = None,
    ) -> DocumentVersion:
        """Append a version to a document.

        Args:
            document_id: Document being versioned.
            file_path: Storage path of this version's content.
            created_by_id: User creating the version.
            change_description: Optional summary of the change.
            version_number: Explicit number; defaults to latest + 1.

        Returns:
            The new DocumentVersion.

        Raises:
            RecordNotFoundError: If the document does not exist.
            VersionOrderError: If an explicit number is not above the latest.
        """
        await self._lock_document(document_id)
        latest = await self._max_version(document_id)

        if version_number is None:
            version_number = latest + 1
        elif version_number <= latest:
            raise VersionOrderError(document_id, version_number, latest)

        version = await super().create(
            document_id=document_id,
            version_number=version_number,
            file_path=file_path,
            change_description=change_description,
            created_by_id=created_by_id,
        )

        logger.info(
            "Document version added",
            extra={"document_id": str(document_id), "version_number": version_number},
        )
        return version

    async def create(self, *, document_id: UUID, **values: Any) -> DocumentVersion:
        """Alias of add_version so numbering rules always apply."""
        return await self.add_version(document_id, **values)

    async def list_versions(self, document_id: UUID) -> Sequence[DocumentVersion]:
        """All versions of a document, oldest first."""
        query = (
            select(DocumentVersion)
            .where(DocumentVersion.document_id == document_id)
            .order_by(DocumentVersion.version_number)
        )
        result = await self._session.execute(query)
        return result.scalars().all()

    async def latest_version(self, document_id: UUID) -> DocumentVersion | None:
        query = (
            select(DocumentVersion)
            .where(DocumentVersion.document_id == document_id)
            .order_by(DocumentVersion.version_number.desc())
            .limit(1)
        )
        result = await self._session.execute(query)
        return result.scalar_one_or_none()

    async def update(self, record_id: Any, **values: Any) -> DocumentVersion:
        raise ImmutableRecordError(self.model_name, record_id, "update")

    async def delete(self, record_id: Any) -> bool:
        raise ImmutableRecordError(self.model_name, record_id, "delete")


class FileMetadataRepository(Repository[FileMetadata]):
    """Size, type and SHA-256 checksum of a document's stored file."""

    model = FileMetadata

    @staticmethod
    def compute_checksum(content: bytes) -> str:
        """Hex-encoded SHA-256 of the content."""
        return hashlib.sha256(content).hexdigest()

    async def get_for_document(self, document_id: UUID) -> FileMetadata | None:
        result = await self._session.execute(
            select(FileMetadata).where(FileMetadata.document_id == document_id)
        )
        return result.scalar_one_or_none()

    async def record_for_content(
        self,
        document_id: UUID,
        content: bytes,
        mime_type: str,
    ) -> FileMetadata:
        """Store metadata computed from the file content.

        Raises:
            sqlalchemy.exc.IntegrityError: If the document already has metadata.
        """
        return await self.create(
            document_id=document_id,
            size=len(content),
            mime_type=mime_type,
            checksum=self.compute_checksum(content),
        )

    async def verify(self, document_id: UUID, content: bytes) -> FileMetadata:
        """Check content against the recorded checksum.

        Raises:
            RecordNotFoundError: If no metadata is recorded for the document.
            ChecksumMismatchError: If the content has changed.
        """
        metadata = await self.get_for_document(document_id)
        if metadata is None:
            raise RecordNotFoundError("FileMetadata", document_id)

        actual = self.compute_checksum(content)
        if actual != metadata.checksum:
            logger.warning(
                "Checksum mismatch",
                extra={"document_id": str(document_id), "expected": metadata.checksum},
            )
            raise ChecksumMismatchError(document_id, metadata.checksum, actual)
        return metadata
