"""
Stored property recommendations and their engagement lifecycle.
Generation happens elsewhere; this model keeps scores, context and status.
"""

from sqlalchemy import (
    String, Integer, Numeric, DateTime, JSON, ForeignKey, Index, Enum as SQLEnum, Uuid, event
)
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates
from marketplace.config import settings
from marketplace.database import Base, SoftDeleteMixin, utcnow
from marketplace.models.lifecycle import attribute_change
from marketplace.utils.validators import ValidationUtils
from datetime import datetime, timedelta
from decimal import Decimal
import enum
import logging
import math
import uuid
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from marketplace.models.behavior import UserBehavior
    from marketplace.models.listing import Listing
    from marketplace.models.property import Property
    from marketplace.models.user import User

logger = logging.getLogger(__name__)

DEFAULT_PRIORITY = 5
DEFAULT_SCORE = Decimal("0.50")


class RecommendationType(str, enum.Enum):
    SIMILAR_PROPERTY = "SIMILAR_PROPERTY"
    PRICE_DROP = "PRICE_DROP"
    NEW_LISTING = "NEW_LISTING"
    LOCATION_BASED = "LOCATION_BASED"
    PREFERENCE_MATCH = "PREFERENCE_MATCH"
    TRENDING = "TRENDING"
    SEASONAL = "SEASONAL"
    MARKET_INSIGHT = "MARKET_INSIGHT"


class RecommendationStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    VIEWED = "VIEWED"
    CLICKED = "CLICKED"
    DISMISSED = "DISMISSED"
    EXPIRED = "EXPIRED"
    ARCHIVED = "ARCHIVED"


# Days until a recommendation of each type goes stale
EXPIRY_DAYS = {
    RecommendationType.PRICE_DROP: 7,
    RecommendationType.NEW_LISTING: 14,
    RecommendationType.TRENDING: 3,
    RecommendationType.SEASONAL: 30,
    RecommendationType.MARKET_INSIGHT: 7,
}

ENGAGEMENT_TIMESTAMPS = {
    RecommendationStatus.VIEWED: "viewed_at",
    RecommendationStatus.CLICKED: "clicked_at",
    RecommendationStatus.DISMISSED: "dismissed_at",
}


def priority_from_scores(confidence: Decimal, relevance: Decimal) -> int:
    """Average of both scores on a 1-10 scale, rounding halves up."""
    average = (float(confidence) + float(relevance)) / 2
    return max(1, min(10, math.floor(average * 10 + 0.5)))


def expiry_for(recommendation_type: RecommendationType, now: Optional[datetime] = None) -> datetime:
    days = EXPIRY_DAYS.get(recommendation_type, settings.recommendation_default_expiry_days)
    return (now or utcnow()) + timedelta(days=days)


class Recommendation(SoftDeleteMixin, Base):
    """Recommendation of a property to a user, scored and prioritised."""

    __tablename__ = "recommendations"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    property_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("properties.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    listing_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("listings.id", ondelete="CASCADE"),
        nullable=True
    )
    trigger_behavior_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("user_behaviors.id", ondelete="SET NULL"),
        nullable=True
    )

    recommendation_type: Mapped[RecommendationType] = mapped_column(
        SQLEnum(RecommendationType), nullable=False, index=True
    )
    recommendation_reason: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # Scores
    confidence_score: Mapped[Decimal] = mapped_column(Numeric(3, 2), nullable=False, default=DEFAULT_SCORE)
    relevance_score: Mapped[Decimal] = mapped_column(Numeric(3, 2), nullable=False, default=DEFAULT_SCORE)

    # Context snapshots
    user_location: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    property_location: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    price_comparison: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    market_insights: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    user_preferences: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    model_features: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    extra_metadata: Mapped[dict] = mapped_column("metadata", JSON, nullable=False, default=dict)

    distance_km: Mapped[Optional[Decimal]] = mapped_column(Numeric(8, 2), nullable=True)
    travel_time_minutes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    algorithm_version: Mapped[str] = mapped_column(String(50), nullable=False, default="1.0")

    status: Mapped[RecommendationStatus] = mapped_column(
        SQLEnum(RecommendationStatus),
        nullable=False,
        default=RecommendationStatus.ACTIVE,
        index=True,
        active_history=True
    )
    viewed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    clicked_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    dismissed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True, index=True)
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=DEFAULT_PRIORITY, index=True)

    user: Mapped["User"] = relationship("User")
    property_rel: Mapped["Property"] = relationship("Property")
    listing: Mapped[Optional["Listing"]] = relationship("Listing")
    trigger_behavior: Mapped[Optional["UserBehavior"]] = relationship("UserBehavior")

    def __repr__(self) -> str:
        return f"<Recommendation(id={self.id}, type={self.recommendation_type}, priority={self.priority})>"

    @validates("recommendation_type")
    def _validate_type(self, key, value):
        ValidationUtils.require(value, "Recommendation type is required")
        return ValidationUtils.to_enum(value, RecommendationType, "recommendation type")

    @validates("status")
    def _validate_status(self, key, value):
        return ValidationUtils.to_enum(value, RecommendationStatus, "recommendation status")

    @validates("recommendation_reason")
    def _validate_reason(self, key, value):
        return ValidationUtils.length(value, "Recommendation reason", max_length=500)

    @validates("confidence_score", "relevance_score")
    def _validate_scores(self, key, value):
        label = key.replace("_", " ").capitalize()
        value = ValidationUtils.to_decimal(value, label)
        return ValidationUtils.number_range(
            value, label, min_value=0, max_value=1,
            min_message=f"{label} must be between 0 and 1",
            max_message=f"{label} must be between 0 and 1"
        )

    @validates("distance_km", "travel_time_minutes")
    def _validate_distances(self, key, value):
        label = key.replace("_", " ").capitalize()
        if key == "distance_km":
            value = ValidationUtils.to_decimal(value, label)
        return ValidationUtils.number_range(value, label, min_value=0,
                                            min_message=f"{label} cannot be negative")

    @validates("algorithm_version")
    def _validate_algorithm_version(self, key, value):
        return ValidationUtils.length(value, "Algorithm version", min_length=1, max_length=50)

    @validates("priority")
    def _validate_priority(self, key, value):
        return ValidationUtils.number_range(
            value, "Priority", min_value=1, max_value=10,
            min_message="Priority must be between 1 and 10",
            max_message="Priority must be between 1 and 10"
        )

    @validates("expires_at", "viewed_at", "clicked_at", "dismissed_at")
    def _validate_timestamps(self, key, value):
        return ValidationUtils.ensure_aware(value)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        expires_at = ValidationUtils.ensure_aware(self.expires_at)
        return expires_at is not None and expires_at <= (now or utcnow())

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "user_id": str(self.user_id),
            "property_id": str(self.property_id),
            "listing_id": str(self.listing_id) if self.listing_id else None,
            "recommendation_type": self.recommendation_type.value,
            "recommendation_reason": self.recommendation_reason,
            "confidence_score": float(self.confidence_score),
            "relevance_score": float(self.relevance_score),
            "status": self.status.value,
            "priority": self.priority,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
        }


@event.listens_for(Recommendation, "before_insert")
def recommendation_before_insert(mapper, connection, target: Recommendation) -> None:
    if target.priority is None or target.priority == DEFAULT_PRIORITY:
        target.priority = priority_from_scores(
            target.confidence_score if target.confidence_score is not None else DEFAULT_SCORE,
            target.relevance_score if target.relevance_score is not None else DEFAULT_SCORE,
        )
    if target.expires_at is None:
        target.expires_at = expiry_for(target.recommendation_type)


@event.listens_for(Recommendation, "before_update")
def recommendation_before_update(mapper, connection, target: Recommendation) -> None:
    change = attribute_change(target, "status")
    if change and change[1] in ENGAGEMENT_TIMESTAMPS:
        setattr(target, ENGAGEMENT_TIMESTAMPS[change[1]], utcnow())
        logger.info(f"Recommendation {target.id} marked {change[1].value}")


user_status_priority_index = Index(
    'idx_recommendations_user_status_priority',
    Recommendation.user_id,
    Recommendation.status,
    Recommendation.priority
)
