"""User and notification repositories."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import select, update

from softagon.db.models import Notification, User
from softagon.repositories.base import Repository

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID

logger = logging.getLogger(__name__)


class UserRepository(Repository[User]):
    """Users, looked up by id, email or external API identity."""

    model = User

    async def get_by_email(self, email: str) -> User | None:
        result = await self._session.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    async def get_by_api_user_id(self, api_user_id: str) -> User | None:
        result = await self._session.execute(select(User).where(User.api_user_id == api_user_id))
        return result.scalar_one_or_none()


class NotificationRepository(Repository[Notification]):
    """Per-user notifications with read tracking."""

    model = Notification

    async def notify(self, user_id: UUID, message: str) -> Notification:
        """Create an unread notification for a user."""
        return await self.create(user_id=user_id, message=message)

    async def list_unread(self, user_id: UUID) -> Sequence[Notification]:
        """Unread notifications for a user, newest first."""
        query = (
            select(Notification)
            .where(Notification.user_id == user_id, Notification.read.is_(False))
            .order_by(Notification.created_at.desc())
        )
        result = await self._session.execute(query)
        return result.scalars().all()

    async def mark_read(self, notification_id: UUID) -> Notification:
        return await self.update(notification_id, read=True)

    async def mark_all_read(self, user_id: UUID) -> int:
        """Mark every unread notification of a user as read.

        Returns:
            Number of notifications updated.
        """
        stmt = (
            update(Notification)
            .where(Notification.user_id == user_id, Notification.read.is_(False))
            .values(read=True)
        )
        result = await self._session.execute(stmt)

        logger.info(
            "Marked notifications read",
            extra={"user_id": str(user_id), "count": result.rowcount},
        )
        return result.rowcount
