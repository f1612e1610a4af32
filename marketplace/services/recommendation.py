"""
Recommendation service: stored recommendations, their engagement lifecycle and
the behaviour events that trigger them.
"""

from typing import List
from sqlalchemy.ext.asyncio import AsyncSession
from marketplace.database import utcnow
from marketplace.repositories.recommendation import RecommendationRepository, UserBehaviorRepository
from marketplace.repositories.property import PropertyRepository
from marketplace.models.recommendation import Recommendation, RecommendationStatus
from marketplace.models.behavior import UserBehavior
from marketplace.models.user import User
from marketplace.schemas.recommendation import RecommendationCreate, BehaviorCreate
from marketplace.services.base import BaseService
from marketplace.utils.exceptions import NotFoundError, ForbiddenError, BusinessRuleViolationError
import uuid
import logging

logger = logging.getLogger(__name__)

CLOSED_STATUSES = (RecommendationStatus.EXPIRED, RecommendationStatus.ARCHIVED)


class RecommendationService(BaseService):
    """
    Priority and expiry defaults are filled by the model's insert hook;
    engagement timestamps by its update hook.
    """

    def __init__(self, db_session: AsyncSession):
        super().__init__(db_session)
        self.recommendation_repo = RecommendationRepository(db_session)
        self.behavior_repo = UserBehaviorRepository(db_session)
        self.property_repo = PropertyRepository(db_session)

    async def create_recommendation(self, data: RecommendationCreate) -> Recommendation:
        if not await self.property_repo.exists(data.property_id):
            raise NotFoundError("Property", str(data.property_id))

        create_data = data.model_dump(exclude_none=True)
        try:
            recommendation = await self.recommendation_repo.create(create_data)
        except ValueError as e:
            raise await self._reject(e)

        logger.info(f"{recommendation.recommendation_type.value} recommendation {recommendation.id} "
                    f"for user {recommendation.user_id} (priority {recommendation.priority})")
        return recommendation

    async def get_recommendation(self, recommendation_id: uuid.UUID, current_user: User) -> Recommendation:
        recommendation = await self.recommendation_repo.get_by_id(recommendation_id)
        if recommendation is None:
            raise NotFoundError("Recommendation", str(recommendation_id))
        if recommendation.user_id != current_user.id and not current_user.is_admin:
            raise ForbiddenError("This recommendation belongs to another user")
        return recommendation

    async def list_active_for_user(self, user_id: uuid.UUID, limit: int = 20) -> List[Recommendation]:
        return await self.recommendation_repo.get_active_for_user(user_id, limit=limit)

    async def mark_viewed(self, recommendation_id: uuid.UUID, current_user: User) -> Recommendation:
        return await self._engage(recommendation_id, RecommendationStatus.VIEWED, current_user)

    async def mark_clicked(self, recommendation_id: uuid.UUID, current_user: User) -> Recommendation:
        return await self._engage(recommendation_id, RecommendationStatus.CLICKED, current_user)

    async def mark_dismissed(self, recommendation_id: uuid.UUID, current_user: User) -> Recommendation:
        return await self._engage(recommendation_id, RecommendationStatus.DISMISSED, current_user)

    async def expire_stale(self) -> int:
        """Move ACTIVE recommendations past their expiry to EXPIRED; returns how many moved."""
        stale = await self.recommendation_repo.get_stale(utcnow())
        for recommendation in stale:
            recommendation.status = RecommendationStatus.EXPIRED
        if stale:
            await self.db.commit()
        logger.info(f"Expired {len(stale)} stale recommendations")
        return len(stale)

    async def record_behavior(self, data: BehaviorCreate, current_user: User) -> UserBehavior:
        create_data = data.model_dump(exclude_none=True)
        create_data["user_id"] = current_user.id
        try:
            behavior = await self.behavior_repo.create(create_data)
        except ValueError as e:
            raise await self._reject(e)

        logger.debug(f"Recorded {behavior.behavior_type.value} for user {current_user.id}")
        return behavior

    async def recent_behavior(self, user_id: uuid.UUID, limit: int = 50) -> List[UserBehavior]:
        return await self.behavior_repo.get_recent_for_user(user_id, limit=limit)

    async def _engage(self, recommendation_id: uuid.UUID, status: RecommendationStatus,
                      current_user: User) -> Recommendation:
        recommendation = await self.get_recommendation(recommendation_id, current_user)
        if recommendation.status in CLOSED_STATUSES:
            raise BusinessRuleViolationError(
                "closed recommendations cannot be engaged with",
                f"recommendation is {recommendation.status.value}"
            )
        if recommendation.status == status:
            return recommendation

        try:
            recommendation.status = status
            recommendation = await self.recommendation_repo.save(recommendation)
        except ValueError as e:
            raise await self._reject(e)
        return recommendation
