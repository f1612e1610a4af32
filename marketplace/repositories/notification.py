"""
Notification repository with recipient and thread queries.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from marketplace.repositories.base import BaseRepository
from marketplace.models.notification import Notification, NotificationStatus
from typing import Optional, List
import uuid
import logging

logger = logging.getLogger(__name__)


class NotificationRepository(BaseRepository[Notification]):
    """Repository for notification records."""

    def __init__(self, db: AsyncSession):
        super().__init__(Notification, db)

    async def get_by_recipient(
        self,
        recipient_id: uuid.UUID,
        status: Optional[NotificationStatus] = None,
        unread_only: bool = False,
        skip: int = 0,
        limit: int = 100
    ) -> List[Notification]:
        try:
            query = select(Notification).where(Notification.recipient_id == recipient_id)
            if status:
                query = query.where(Notification.status == status)
            if unread_only:
                query = query.where(Notification.read_at.is_(None))
            query = query.order_by(Notification.created_at.desc()).offset(skip).limit(limit)

            result = await self.db.execute(query)
            return list(result.scalars().all())
        except Exception as e:
            logger.error(f"Failed to get notifications for recipient {recipient_id}: {e}")
            raise

    async def get_thread(self, root_id: uuid.UUID) -> List[Notification]:
        """
        Collect a root notification and every reply beneath it, oldest first.

        Args:
            root_id: UUID of the thread root

        Returns:
            Notifications in the thread, empty when the root does not exist
        """
        root = await self.get_by_id(root_id)
        if root is None:
            return []

        thread = [root]
        frontier = [root.id]
        try:
            while frontier:
                result = await self.db.execute(
                    select(Notification)
                    .where(Notification.parent_id.in_(frontier))
                    .order_by(Notification.created_at.asc())
                )
                replies = list(result.scalars().all())
                thread.extend(replies)
                frontier = [reply.id for reply in replies]
        except Exception as e:
            logger.error(f"Failed to load notification thread {root_id}: {e}")
            raise

        thread.sort(key=lambda notification: notification.created_at)
        return thread
