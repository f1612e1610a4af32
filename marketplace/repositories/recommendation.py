"""
Recommendation and user behaviour repositories.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from marketplace.repositories.base import BaseRepository
from marketplace.models.recommendation import Recommendation, RecommendationStatus
from marketplace.models.behavior import UserBehavior
from marketplace.database import utcnow
from datetime import datetime
from typing import Optional, List
import uuid
import logging

logger = logging.getLogger(__name__)


class RecommendationRepository(BaseRepository[Recommendation]):
    """Repository for stored recommendations."""

    def __init__(self, db: AsyncSession):
        super().__init__(Recommendation, db)

    async def get_active_for_user(self, user_id: uuid.UUID, limit: int = 20) -> List[Recommendation]:
        """
        Unexpired ACTIVE recommendations for a user, highest priority first.

        Args:
            user_id: UUID of the user
            limit: Maximum number of recommendations

        Returns:
            Recommendation list
        """
        try:
            now = utcnow()
            query = (
                self._live(select(Recommendation))
                .where(
                    Recommendation.user_id == user_id,
                    Recommendation.status == RecommendationStatus.ACTIVE,
                    (Recommendation.expires_at.is_(None)) | (Recommendation.expires_at > now)
                )
                .order_by(Recommendation.priority.desc(), Recommendation.created_at.desc())
                .limit(limit)
            )
            result = await self.db.execute(query)
            return list(result.scalars().all())
        except Exception as e:
            logger.error(f"Failed to get active recommendations for user {user_id}: {e}")
            raise

    async def get_stale(self, now: Optional[datetime] = None) -> List[Recommendation]:
        """ACTIVE recommendations whose expiry has passed."""
        try:
            query = self._live(select(Recommendation)).where(
                Recommendation.status == RecommendationStatus.ACTIVE,
                Recommendation.expires_at <= (now or utcnow())
            )
            result = await self.db.execute(query)
            return list(result.scalars().all())
        except Exception as e:
            logger.error(f"Failed to get stale recommendations: {e}")
            raise


class UserBehaviorRepository(BaseRepository[UserBehavior]):
    """Repository for recorded user behaviour."""

    def __init__(self, db: AsyncSession):
        super().__init__(UserBehavior, db)

    async def get_recent_for_user(self, user_id: uuid.UUID, limit: int = 50) -> List[UserBehavior]:
        return await self.get_multi(limit=limit, filters={"user_id": user_id})
