"""
Subscription plan and user subscription repositories.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from marketplace.repositories.base import BaseRepository
from marketplace.models.subscription import SubscriptionPlan, UserSubscription, SubscriptionStatus
from typing import Optional, List
import uuid
import logging

logger = logging.getLogger(__name__)

CURRENT_STATUSES = (SubscriptionStatus.ACTIVE, SubscriptionStatus.PENDING, SubscriptionStatus.SUSPENDED)


class SubscriptionPlanRepository(BaseRepository[SubscriptionPlan]):
    """Repository for purchasable plans."""

    def __init__(self, db: AsyncSession):
        super().__init__(SubscriptionPlan, db)

    async def get_active_plans(self) -> List[SubscriptionPlan]:
        return await self.get_multi(filters={"is_active": True}, order_by="display_order")

    async def get_by_name(self, name: str) -> Optional[SubscriptionPlan]:
        return await self.get_by_field("name", name)


class UserSubscriptionRepository(BaseRepository[UserSubscription]):
    """Repository for the subscriptions users hold."""

    def __init__(self, db: AsyncSession):
        super().__init__(UserSubscription, db)

    async def get_current_for_user(self, user_id: uuid.UUID) -> Optional[UserSubscription]:
        """
        Most recent subscription that is still in force or awaiting activation.

        Args:
            user_id: UUID of the subscriber

        Returns:
            The subscription, or None when the user has none
        """
        try:
            query = (
                self._live(select(UserSubscription))
                .where(
                    UserSubscription.user_id == user_id,
                    UserSubscription.status.in_(CURRENT_STATUSES)
                )
                .order_by(UserSubscription.start_date.desc())
            )
            result = await self.db.execute(query)
            return result.scalars().first()
        except Exception as e:
            logger.error(f"Failed to get current subscription for user {user_id}: {e}")
            raise

    async def get_by_user(self, user_id: uuid.UUID) -> List[UserSubscription]:
        return await self.get_multi(filters={"user_id": user_id}, order_by="-start_date")
