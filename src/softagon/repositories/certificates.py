"""Digital certificate repository.

Certificate passwords are encrypted with FieldEncryptor before they are
written and only decrypted on explicit request (reveal_password). They are
never logged.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy import select

from softagon.db.models import DigitalCertificate
from softagon.repositories.base import Repository
from softagon.services.encryption import FieldEncryptor

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


class DigitalCertificateRepository(Repository[DigitalCertificate]):
    """Signing certificates owned by users."""

    model = DigitalCertificate
    guards_model = True

    def __init__(self, session: AsyncSession, encryptor: FieldEncryptor | None = None) -> None:
        """Initialize the repository.

        Args:
            session: SQLAlchemy async session for database operations.
            encryptor: Field encryptor; built from settings when first needed if None.
        """
        super().__init__(session)
        self._encryptor = encryptor

    @property
    def encryptor(self) -> FieldEncryptor:
        if self._encryptor is None:
            self._encryptor = FieldEncryptor.from_settings()
        return self._encryptor

    async def create(
        self,
        *,
        user_id: UUID,
        certificate_path: str,
        password: str,
        expires_at: datetime | None = None,
    ) -> DigitalCertificate:
        """Store a certificate with its password encrypted."""
        return await super().create(
            user_id=user_id,
            certificate_path=certificate_path,
            password=self.encryptor.encrypt(password),
            expires_at=expires_at,
        )

    async def update(self, record_id: Any, **values: Any) -> DigitalCertificate:
        """Update a certificate; a new password is re-encrypted."""
        if "password" in values:
            values["password"] = self.encryptor.encrypt(values["password"])
        return await super().update(record_id, **values)

    async def reveal_password(self, certificate_id: UUID) -> str:
        """Decrypt a certificate's password.

        Raises:
            RecordNotFoundError: If the certificate does not exist.
            DecryptionError: If the stored value cannot be decrypted.
        """
        certificate = await self.get_or_raise(certificate_id)
        logger.info(
            "Certificate password revealed",
            extra={"certificate_id": str(certificate_id), "user_id": str(certificate.user_id)},
        )
        return self.encryptor.decrypt(certificate.password)

    async def list_for_user(self, user_id: UUID) -> Sequence[DigitalCertificate]:
        return await self.list(user_id=user_id, limit=None)

    async def list_expiring_before(self, moment: datetime) -> Sequence[DigitalCertificate]:
        """Certificates whose expiry falls before `moment`, soonest first."""
        query = (
            select(DigitalCertificate)
            .where(
                DigitalCertificate.expires_at.is_not(None),
                DigitalCertificate.expires_at < moment,
            )
            .order_by(DigitalCertificate.expires_at)
        )
        result = await self._session.execute(query)
        return result.scalars().all()
