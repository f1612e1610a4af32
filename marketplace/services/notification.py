"""
Notification service for threaded email/push records.
Delivery happens elsewhere; this service records outcomes reported back to it.
"""

from typing import Optional, List
from sqlalchemy.ext.asyncio import AsyncSession
from marketplace.database import utcnow
from marketplace.repositories.notification import NotificationRepository
from marketplace.repositories.user import UserRepository
from marketplace.models.notification import Notification, NotificationStatus
from marketplace.models.user import User
from marketplace.schemas.notification import NotificationCreate, NotificationReply
from marketplace.services.base import BaseService
from marketplace.utils.exceptions import NotFoundError, ForbiddenError, BusinessRuleViolationError
import uuid
import logging

logger = logging.getLogger(__name__)


class NotificationService(BaseService):

    def __init__(self, db_session: AsyncSession):
        super().__init__(db_session)
        self.notification_repo = NotificationRepository(db_session)
        self.user_repo = UserRepository(db_session)

    async def create_notification(self, notification_data: NotificationCreate) -> Notification:
        if not await self.user_repo.exists(notification_data.recipient_id):
            raise NotFoundError("User", str(notification_data.recipient_id))

        try:
            notification = await self.notification_repo.create(notification_data.model_dump())
        except ValueError as e:
            raise await self._reject(e)

        logger.info(f"{notification.type.value} notification {notification.id} queued "
                    f"for {notification.recipient_id}")
        return notification

    async def reply(self, parent_id: uuid.UUID, reply_data: NotificationReply,
                    current_user: User) -> Notification:
        """
        Add a reply to a thread. Replies stay with the parent's recipient.

        Raises:
            NotFoundError: If the parent doesn't exist
            ForbiddenError: If the user is not part of the thread
        """
        parent = await self.get_notification(parent_id, current_user)

        try:
            notification = await self.notification_repo.create({
                "recipient_id": parent.recipient_id,
                "type": reply_data.type or parent.type,
                "subject": reply_data.subject or parent.subject,
                "content": reply_data.content,
                "html": reply_data.html,
                "parent_id": parent.id,
            })
        except ValueError as e:
            raise await self._reject(e)

        logger.info(f"Reply {notification.id} added to notification {parent_id}")
        return notification

    async def get_notification(self, notification_id: uuid.UUID, current_user: Optional[User] = None) -> Notification:
        notification = await self.notification_repo.get_by_id(notification_id)
        if notification is None:
            raise NotFoundError("Notification", str(notification_id))
        if current_user is not None and notification.recipient_id != current_user.id and not current_user.is_admin:
            raise ForbiddenError("This notification belongs to another user")
        return notification

    async def mark_sent(self, notification_id: uuid.UUID) -> Notification:
        notification = await self.get_notification(notification_id)
        notification.status = NotificationStatus.SENT
        return await self.notification_repo.save(notification)

    async def mark_failed(self, notification_id: uuid.UUID) -> Notification:
        notification = await self.get_notification(notification_id)
        if notification.status == NotificationStatus.SENT:
            raise BusinessRuleViolationError("a sent notification cannot fail")
        notification.status = NotificationStatus.FAILED
        return await self.notification_repo.save(notification)

    async def mark_read(self, notification_id: uuid.UUID, current_user: User) -> Notification:
        notification = await self.get_notification(notification_id, current_user)
        if notification.read_at is None:
            notification.read_at = utcnow()
            notification = await self.notification_repo.save(notification)
        return notification

    async def list_for_recipient(
        self,
        recipient_id: uuid.UUID,
        status: Optional[NotificationStatus] = None,
        unread_only: bool = False,
        skip: int = 0,
        limit: int = 100
    ) -> List[Notification]:
        return await self.notification_repo.get_by_recipient(
            recipient_id, status=status, unread_only=unread_only, skip=skip, limit=limit
        )

    async def get_thread(self, root_id: uuid.UUID, current_user: User) -> List[Notification]:
        await self.get_notification(root_id, current_user)
        return await self.notification_repo.get_thread(root_id)
