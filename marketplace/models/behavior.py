"""
User behaviour events that feed recommendations.
"""

from sqlalchemy import String, Text, Integer, Numeric, JSON, ForeignKey, Index, Enum as SQLEnum, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates
from marketplace.database import Base, SoftDeleteMixin
from marketplace.utils.validators import ValidationUtils
from decimal import Decimal
import enum
import uuid
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from marketplace.models.user import User


class BehaviorType(str, enum.Enum):
    SEARCH = "SEARCH"
    PROPERTY_VIEW = "PROPERTY_VIEW"
    PROPERTY_FAVORITE = "PROPERTY_FAVORITE"
    PROPERTY_SHARE = "PROPERTY_SHARE"
    CONTACT_AGENT = "CONTACT_AGENT"
    SCHEDULE_VIEWING = "SCHEDULE_VIEWING"
    PRICE_ALERT = "PRICE_ALERT"
    LOCATION_FAVORITE = "LOCATION_FAVORITE"


class UserBehavior(SoftDeleteMixin, Base):
    __tablename__ = "user_behaviors"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    behavior_type: Mapped[BehaviorType] = mapped_column(SQLEnum(BehaviorType), nullable=False, index=True)
    property_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("properties.id", ondelete="CASCADE"), nullable=True
    )
    listing_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("listings.id", ondelete="CASCADE"), nullable=True
    )

    # Search context
    search_query: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    search_filters: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    search_location: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    user_location: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    view_duration: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, comment="Seconds")
    interaction_score: Mapped[Optional[Decimal]] = mapped_column(Numeric(3, 2), nullable=True)
    user_preferences: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    # Client context
    device_info: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    session_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)
    ip_address: Mapped[Optional[str]] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    referrer: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    extra_metadata: Mapped[dict] = mapped_column("metadata", JSON, nullable=False, default=dict)

    user: Mapped["User"] = relationship("User")

    @validates("behavior_type")
    def _validate_behavior_type(self, key, value):
        ValidationUtils.require(value, "Behavior type is required")
        return ValidationUtils.to_enum(value, BehaviorType, "behavior type")

    @validates("search_query")
    def _validate_search_query(self, key, value):
        return ValidationUtils.length(value, "Search query", max_length=1000)

    @validates("search_location")
    def _validate_search_location(self, key, value):
        return ValidationUtils.length(value, "Search location", max_length=255)

    @validates("view_duration")
    def _validate_view_duration(self, key, value):
        return ValidationUtils.number_range(value, "View duration", min_value=0,
                                            min_message="View duration cannot be negative")

    @validates("interaction_score")
    def _validate_interaction_score(self, key, value):
        value = ValidationUtils.to_decimal(value, "Interaction score")
        return ValidationUtils.number_range(
            value, "Interaction score", min_value=0, max_value=1,
            min_message="Interaction score must be between 0 and 1",
            max_message="Interaction score must be between 0 and 1"
        )

    @validates("session_id")
    def _validate_session_id(self, key, value):
        return ValidationUtils.length(value, "Session ID", min_length=1, max_length=100)

    @validates("ip_address")
    def _validate_ip_address(self, key, value):
        return ValidationUtils.ip_address(value)

    @validates("user_agent", "referrer")
    def _validate_client_strings(self, key, value):
        label = key.replace("_", " ").capitalize()
        return ValidationUtils.length(value, label, max_length=500)


user_type_index = Index(
    'idx_user_behaviors_user_type',
    UserBehavior.user_id,
    UserBehavior.behavior_type
)
