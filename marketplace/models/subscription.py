"""
Subscription plans and the subscriptions users hold on them.
"""

from sqlalchemy import (
    String, Text, Integer, Numeric, Boolean, DateTime, JSON, ForeignKey, Index,
    Enum as SQLEnum, Uuid, event, select
)
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates
from marketplace.database import Base, SoftDeleteMixin, utcnow
from marketplace.models.lifecycle import attribute_change, check_transition
from marketplace.utils.validators import ValidationUtils
from datetime import datetime
from decimal import Decimal
import enum
import logging
import uuid
from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from marketplace.models.transaction import Transaction
    from marketplace.models.user import User

logger = logging.getLogger(__name__)

PLAN_CURRENCIES = ("NGN", "EUR", "GBP", "CAD", "AUD", "USD")
BILLING_ADDRESS_KEYS = ("street", "city", "state", "zip_code", "country")


class PlanType(str, enum.Enum):
    FREEMIUM = "FREEMIUM"
    BASIC = "BASIC"
    PREMIUM = "PREMIUM"


class BillingCycle(str, enum.Enum):
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    YEARLY = "YEARLY"


class SubscriptionStatus(str, enum.Enum):
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"


SUBSCRIPTION_TRANSITIONS = {
    SubscriptionStatus.PENDING: {SubscriptionStatus.ACTIVE, SubscriptionStatus.CANCELLED},
    SubscriptionStatus.ACTIVE: {SubscriptionStatus.CANCELLED, SubscriptionStatus.SUSPENDED,
                                SubscriptionStatus.EXPIRED},
    SubscriptionStatus.SUSPENDED: {SubscriptionStatus.ACTIVE, SubscriptionStatus.CANCELLED,
                                   SubscriptionStatus.EXPIRED},
    SubscriptionStatus.CANCELLED: set(),
    SubscriptionStatus.EXPIRED: {SubscriptionStatus.ACTIVE},
}


class SubscriptionPlan(SoftDeleteMixin, Base):
    """Purchasable plan with listing quotas and feature flags."""

    __tablename__ = "subscription_plans"

    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    plan_type: Mapped[PlanType] = mapped_column(SQLEnum(PlanType), nullable=False, default=PlanType.FREEMIUM)

    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="NGN")
    billing_cycle: Mapped[BillingCycle] = mapped_column(
        SQLEnum(BillingCycle), nullable=False, default=BillingCycle.MONTHLY
    )
    billing_cycle_months: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    trial_period_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Quotas
    max_listings: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    max_photos_per_listing: Mapped[int] = mapped_column(Integer, nullable=False, default=5)
    max_virtual_tours: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    max_premium_features: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Feature flags
    has_analytics: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    has_market_insights: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    has_priority_support: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    has_advanced_search: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
    is_popular: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    subscriptions: Mapped[List["UserSubscription"]] = relationship("UserSubscription", back_populates="plan")

    def __repr__(self) -> str:
        return f"<SubscriptionPlan(name={self.name}, type={self.plan_type}, price={self.price})>"

    @validates("name")
    def _validate_name(self, key, value):
        value = ValidationUtils.non_empty(value, "Plan name is required")
        return ValidationUtils.length(value, "Plan name", min_length=2, max_length=100)

    @validates("description")
    def _validate_description(self, key, value):
        return ValidationUtils.non_empty(value, "Plan description is required")

    @validates("plan_type")
    def _validate_plan_type(self, key, value):
        return ValidationUtils.to_enum(value, PlanType, "plan type")

    @validates("billing_cycle")
    def _validate_billing_cycle(self, key, value):
        return ValidationUtils.to_enum(value, BillingCycle, "billing cycle")

    @validates("price")
    def _validate_price(self, key, value):
        value = ValidationUtils.to_decimal(value, "Price")
        return ValidationUtils.number_range(value, "Price", min_value=0,
                                            min_message="Price cannot be negative")

    @validates("currency")
    def _validate_currency(self, key, value):
        value = ValidationUtils.non_empty(value, "Currency is required").upper()
        return ValidationUtils.one_of(value, PLAN_CURRENCIES, f"Unsupported plan currency '{value}'")

    @validates("billing_cycle_months")
    def _validate_billing_cycle_months(self, key, value):
        return ValidationUtils.number_range(value, "Billing cycle months", min_value=1, max_value=12)

    @validates("trial_period_days")
    def _validate_trial_period_days(self, key, value):
        return ValidationUtils.number_range(value, "Trial period days", min_value=0, max_value=365)

    @validates("max_listings", "max_photos_per_listing", "max_virtual_tours",
               "max_premium_features", "display_order")
    def _validate_limits(self, key, value):
        label = key.replace("_", " ").capitalize()
        return ValidationUtils.number_range(value, label, min_value=0,
                                            min_message=f"{label} cannot be negative")

    def validate_pricing(self) -> None:
        if self.plan_type == PlanType.FREEMIUM and self.price != 0:
            raise ValueError("Freemium plans must be free")
        if self.plan_type != PlanType.FREEMIUM and self.price <= 0:
            raise ValueError("Paid plans must have a price greater than zero")

    @property
    def is_free(self) -> bool:
        return self.plan_type == PlanType.FREEMIUM


class UserSubscription(SoftDeleteMixin, Base):
    """
    A user's subscription to a plan.
    Usage counters are checked against the plan quotas on every save.
    """

    __tablename__ = "user_subscriptions"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    plan_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("subscription_plans.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )

    status: Mapped[SubscriptionStatus] = mapped_column(
        SQLEnum(SubscriptionStatus),
        nullable=False,
        default=SubscriptionStatus.PENDING,
        index=True,
        active_history=True
    )

    # Billing period
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    next_billing_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    last_billing_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Payment tracking
    total_paid: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    last_payment_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    payment_method: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    failed_payment_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Trial
    is_trial_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    trial_start_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    trial_end_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Usage
    current_listings: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    current_photos: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    current_virtual_tours: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    auto_renew: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    cancellation_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    billing_address: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    user: Mapped["User"] = relationship("User")
    plan: Mapped["SubscriptionPlan"] = relationship("SubscriptionPlan", back_populates="subscriptions")
    transactions: Mapped[List["Transaction"]] = relationship("Transaction", back_populates="subscription")

    def __repr__(self) -> str:
        return f"<UserSubscription(id={self.id}, user_id={self.user_id}, status={self.status})>"

    @validates("status")
    def _validate_status(self, key, value):
        return ValidationUtils.to_enum(value, SubscriptionStatus, "subscription status")

    @validates("start_date", "end_date", "next_billing_date", "last_billing_date",
               "trial_start_date", "trial_end_date", "cancelled_at")
    def _validate_dates(self, key, value):
        if key == "end_date":
            ValidationUtils.require(value, "End date is required")
        return ValidationUtils.ensure_aware(value)

    @validates("total_paid", "last_payment_amount")
    def _validate_money(self, key, value):
        label = key.replace("_", " ").capitalize()
        value = ValidationUtils.to_decimal(value, label)
        return ValidationUtils.number_range(value, label, min_value=0,
                                            min_message=f"{label} cannot be negative")

    @validates("current_listings", "current_photos", "current_virtual_tours", "failed_payment_count")
    def _validate_counters(self, key, value):
        label = key.replace("_", " ").capitalize()
        return ValidationUtils.number_range(value, label, min_value=0,
                                            min_message=f"{label} cannot be negative")

    @validates("payment_method")
    def _validate_payment_method(self, key, value):
        return ValidationUtils.length(value, "Payment method", max_length=100)

    @validates("cancellation_reason")
    def _validate_cancellation_reason(self, key, value):
        return ValidationUtils.length(value, "Cancellation reason", max_length=1000)

    @validates("billing_address")
    def _validate_billing_address(self, key, value):
        return ValidationUtils.required_keys(value, BILLING_ADDRESS_KEYS, "billing address")

    def validate_dates(self) -> None:
        """
        Raises:
            ValueError: If the billing period or trial window is inconsistent
        """
        start = ValidationUtils.ensure_aware(self.start_date)
        end = ValidationUtils.ensure_aware(self.end_date)
        trial_start = ValidationUtils.ensure_aware(self.trial_start_date)
        trial_end = ValidationUtils.ensure_aware(self.trial_end_date)

        if start is not None and end is not None and start >= end:
            raise ValueError("End date must be after start date")
        if trial_start is not None and trial_end is not None and trial_start >= trial_end:
            raise ValueError("Trial end date must be after trial start date")
        if trial_start is not None and start is not None and trial_start > start:
            raise ValueError("Trial cannot start after the subscription start date")

    @property
    def is_active(self) -> bool:
        return self.status == SubscriptionStatus.ACTIVE


def _check_listing_quota(connection, target: UserSubscription) -> None:
    plans = SubscriptionPlan.__table__
    max_listings = connection.execute(
        select(plans.c.max_listings).where(plans.c.id == target.plan_id)
    ).scalar_one_or_none()
    if max_listings is None:
        raise ValueError("Subscription plan not found")
    if target.current_listings > max_listings:
        raise ValueError(f"Listing limit exceeded: plan allows {max_listings} listings")


@event.listens_for(SubscriptionPlan, "before_insert")
@event.listens_for(SubscriptionPlan, "before_update")
def plan_before_save(mapper, connection, target: SubscriptionPlan) -> None:
    target.validate_pricing()


@event.listens_for(UserSubscription, "before_insert")
def subscription_before_insert(mapper, connection, target: UserSubscription) -> None:
    target.validate_dates()
    _check_listing_quota(connection, target)
    if target.status == SubscriptionStatus.CANCELLED and target.cancelled_at is None:
        target.cancelled_at = utcnow()


@event.listens_for(UserSubscription, "before_update")
def subscription_before_update(mapper, connection, target: UserSubscription) -> None:
    change = attribute_change(target, "status")
    if change:
        check_transition("subscription", SUBSCRIPTION_TRANSITIONS, *change,
                         initial=SubscriptionStatus.PENDING)
        if change[1] == SubscriptionStatus.CANCELLED:
            target.cancelled_at = utcnow()
            target.auto_renew = False
    target.validate_dates()
    _check_listing_quota(connection, target)


user_status_index = Index(
    'idx_user_subscriptions_user_status',
    UserSubscription.user_id,
    UserSubscription.status
)
