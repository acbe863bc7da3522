"""Document management (GED) models.

Covers documents and everything hanging off them: versions, shares,
attachments, file metadata, plus the signing certificates of users.
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
from sqlalchemy.dialects.postgresql import ARRAY, JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from softagon.db.models.base import (
    DEFAULT_SHARE_PERMISSION,
    Base,
    OptionalTimestampTZ,
    TimestampTZ,
    UUIDPrimaryKey,
)

if TYPE_CHECKING:
    from softagon.db.models.users import User
    from softagon.db.models.workflows import Task


class Document(Base):
    """A stored document owned by one user.

    Signature fields are only meaningful once `signed` is true.
    """

    __tablename__ = "documents"

    document_id: Mapped[UUIDPrimaryKey]
    created_at: Mapped[TimestampTZ]

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    file_path: Mapped[str] = mapped_column(String(1000), nullable=False)
    mime_type: Mapped[str] = mapped_column(String(255), nullable=False)
    keywords: Mapped[list[str]] = mapped_column(
        ARRAY(String(100)),
        nullable=False,
        default=list,
        server_default=text("'{}'"),
    )

    # Text extracted by OCR, when the document went through it
    ocr_text: Mapped[str | None] = mapped_column(Text, nullable=True)

    signed: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=text("false"),
    )
    signed_at: Mapped[OptionalTimestampTZ]
    # Signer, certificate serial, algorithm, etc.
    signature_info: Mapped[dict | None] = mapped_column(JSONB, nullable=True)

    owner_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.user_id", ondelete="RESTRICT"),
        nullable=False,
    )

    # Relationships
    owner: Mapped[User] = relationship("User", back_populates="documents")
    versions: Mapped[list[DocumentVersion]] = relationship(
        "DocumentVersion",
        back_populates="document",
        order_by="DocumentVersion.version_number",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    shares: Mapped[list[SharedDocument]] = relationship(
        "SharedDocument",
        back_populates="document",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    tasks: Mapped[list[Task]] = relationship(
        "Task",
        back_populates="document",
        passive_deletes=True,
    )
    attachments: Mapped[list[Attachment]] = relationship(
        "Attachment",
        back_populates="document",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    file_metadata: Mapped[FileMetadata | None] = relationship(
        "FileMetadata",
        back_populates="document",
        uselist=False,
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("ix_documents_owner_id", "owner_id"),
        Index("ix_documents_keywords", "keywords", postgresql_using="gin"),
    )


class SharedDocument(Base):
    """Grant of access on a document to another user."""

    __tablename__ = "shared_documents"

    shared_document_id: Mapped[UUIDPrimaryKey]
    created_at: Mapped[TimestampTZ]

    document_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("documents.document_id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False,
    )
    permission: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=DEFAULT_SHARE_PERMISSION,
        server_default=DEFAULT_SHARE_PERMISSION,
    )

    document: Mapped[Document] = relationship("Document", back_populates="shares")
    user: Mapped[User] = relationship("User", back_populates="shared_documents")

    __table_args__ = (
        UniqueConstraint("document_id", "user_id", name="uq_shared_documents_document_user"),
        Index("ix_shared_documents_user_id", "user_id"),
    )


class DocumentVersion(Base):
    """Immutable snapshot of a document file.

    version_number is unique per document; the access layer only ever
    appends with a higher number than the current maximum.
    """

    __tablename__ = "document_versions"

    document_version_id: Mapped[UUIDPrimaryKey]
    created_at: Mapped[TimestampTZ]

    document_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("documents.document_id", ondelete="CASCADE"),
        nullable=False,
    )
    version_number: Mapped[int] = mapped_column(Integer, nullable=False)
    file_path: Mapped[str] = mapped_column(String(1000), nullable=False)
    change_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.user_id", ondelete="RESTRICT"),
        nullable=False,
    )

    document: Mapped[Document] = relationship("Document", back_populates="versions")
    created_by: Mapped[User] = relationship("User", back_populates="created_versions")

    __table_args__ = (
        UniqueConstraint(
            "document_id",
            "version_number",
            name="uq_document_versions_document_version",
        ),
        CheckConstraint("version_number > 0", name="version_number_positive"),
    )


class Attachment(Base):
    """Supplementary file attached to a document."""

    __tablename__ = "attachments"

    attachment_id: Mapped[UUIDPrimaryKey]
    created_at: Mapped[TimestampTZ]

    document_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("documents.document_id", ondelete="CASCADE"),
        nullable=False,
    )
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_path: Mapped[str] = mapped_column(String(1000), nullable=False)
    mime_type: Mapped[str] = mapped_column(String(255), nullable=False)
    size: Mapped[int] = mapped_column(BigInteger, nullable=False)

    document: Mapped[Document] = relationship("Document", back_populates="attachments")

    __table_args__ = (Index("ix_attachments_document_id", "document_id"),)


class FileMetadata(Base):
    """Size, type and SHA-256 checksum of a document's stored file.

    At most one row per document.
    """

    __tablename__ = "file_metadata"

    file_metadata_id: Mapped[UUIDPrimaryKey]
    created_at: Mapped[TimestampTZ]

    document_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("documents.document_id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    size: Mapped[int] = mapped_column(BigInteger, nullable=False)
    mime_type: Mapped[str] = mapped_column(String(255), nullable=False)
    # Lowercase hex SHA-256 of the file content
    checksum: Mapped[str] = mapped_column(String(64), nullable=False)

    document: Mapped[Document] = relationship("Document", back_populates="file_metadata")

    __table_args__ = (CheckConstraint("size >= 0", name="size_non_negative"),)


class DigitalCertificate(Base):
    """Signing certificate of a user.

    `password` holds the AES-256-GCM ciphertext produced by
    softagon.services.encryption, never the plaintext.
    """

    __tablename__ = "digital_certificates"

    certificate_id: Mapped[UUIDPrimaryKey]
    created_at: Mapped[TimestampTZ]

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False,
    )
    certificate_path: Mapped[str] = mapped_column(String(1000), nullable=False)
    password: Mapped[str] = mapped_column(Text, nullable=False)
    expires_at: Mapped[OptionalTimestampTZ]

    user: Mapped[User] = relationship("User", back_populates="certificates")

    __table_args__ = (Index("ix_digital_certificates_user_id", "user_id"),)
