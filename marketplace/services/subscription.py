"""
Subscription service for plan sign-up, billing records and listing quotas.
"""

from typing import Optional, List, Dict, Any
from datetime import datetime, timedelta
from decimal import Decimal
import calendar
from sqlalchemy.ext.asyncio import AsyncSession
from marketplace.database import utcnow
from marketplace.repositories.subscription import SubscriptionPlanRepository, UserSubscriptionRepository
from marketplace.models.subscription import SubscriptionPlan, UserSubscription, SubscriptionStatus
from marketplace.models.transaction import Transaction, TransactionType, TransactionStatus
from marketplace.models.user import User
from marketplace.services.base import BaseService
from marketplace.utils.validators import ValidationUtils
from marketplace.utils.exceptions import (
    NotFoundError,
    ForbiddenError,
    ConflictError,
    BusinessRuleViolationError,
    ResourceLimitExceededError,
)
import uuid
import logging

logger = logging.getLogger(__name__)


def add_months(moment: datetime, months: int) -> datetime:
    """Shift by whole calendar months, clamping the day to the target month's length."""
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


class SubscriptionService(BaseService):
    """
    Subscription service; status whitelist, date checks and the listing quota are model rules.
    """

    def __init__(self, db_session: AsyncSession):
        super().__init__(db_session)
        self.plan_repo = SubscriptionPlanRepository(db_session)
        self.subscription_repo = UserSubscriptionRepository(db_session)

    async def list_plans(self) -> List[SubscriptionPlan]:
        return await self.plan_repo.get_active_plans()

    async def get_plan(self, plan_id: uuid.UUID) -> SubscriptionPlan:
        plan = await self.plan_repo.get_by_id(plan_id)
        if plan is None:
            raise NotFoundError("Subscription plan", str(plan_id))
        return plan

    async def subscribe(
        self,
        current_user: User,
        plan_id: uuid.UUID,
        payment_method: Optional[str] = None,
        auto_renew: bool = True,
        billing_address: Optional[Dict[str, Any]] = None
    ) -> UserSubscription:
        """
        Subscribe the acting user to a plan.
        Free plans and plans with a trial start ACTIVE; paid plans wait for a payment as PENDING.

        Raises:
            NotFoundError: If the plan doesn't exist
            BusinessRuleViolationError: If the plan is not offered any more
            ConflictError: If the user already holds a current subscription
        """
        plan = await self.get_plan(plan_id)
        if not plan.is_active:
            raise BusinessRuleViolationError("plan is not available", plan.name)

        current = await self.subscription_repo.get_current_for_user(current_user.id)
        if current is not None:
            raise ConflictError(f"User already has a {current.status.value} subscription")

        start = utcnow()
        end = add_months(start, plan.billing_cycle_months)
        has_trial = plan.trial_period_days > 0
        status = SubscriptionStatus.ACTIVE if plan.is_free or has_trial else SubscriptionStatus.PENDING

        create_data = {
            "user_id": current_user.id,
            "plan_id": plan.id,
            "status": status,
            "start_date": start,
            "end_date": end,
            "next_billing_date": None if plan.is_free else end,
            "payment_method": payment_method,
            "auto_renew": auto_renew,
            "billing_address": billing_address,
        }
        if has_trial:
            create_data.update(
                is_trial_active=True,
                trial_start_date=start,
                trial_end_date=start + timedelta(days=plan.trial_period_days),
            )

        try:
            subscription = await self.subscription_repo.create(create_data)
        except ValueError as e:
            raise await self._reject(e)

        logger.info(f"User {current_user.id} subscribed to {plan.name} ({status.value})")
        return subscription

    async def get_subscription(self, subscription_id: uuid.UUID, current_user: User) -> UserSubscription:
        subscription = await self.subscription_repo.get_by_id(subscription_id)
        if subscription is None:
            raise NotFoundError("Subscription", str(subscription_id))
        if subscription.user_id != current_user.id and not current_user.is_admin:
            raise ForbiddenError("You don't have access to this subscription")
        return subscription

    async def get_current(self, user_id: uuid.UUID) -> UserSubscription:
        subscription = await self.subscription_repo.get_current_for_user(user_id)
        if subscription is None:
            raise NotFoundError("Current subscription for user", str(user_id))
        return subscription

    async def list_for_user(self, user_id: uuid.UUID) -> List[UserSubscription]:
        return await self.subscription_repo.get_by_user(user_id)

    async def change_status(
        self,
        subscription_id: uuid.UUID,
        new_status: SubscriptionStatus,
        current_user: User,
        reason: Optional[str] = None
    ) -> UserSubscription:
        """
        Raises:
            InvalidStatusTransitionError: If the move is not in the subscription lifecycle
        """
        subscription = await self.get_subscription(subscription_id, current_user)
        try:
            if new_status == SubscriptionStatus.CANCELLED and reason:
                subscription.cancellation_reason = reason
            if new_status != SubscriptionStatus.ACTIVE:
                subscription.is_trial_active = False
            subscription.status = new_status
            subscription = await self.subscription_repo.save(subscription)
        except ValueError as e:
            raise await self._reject(e)

        logger.info(f"Subscription {subscription_id} moved to {new_status.value}")
        return subscription

    async def record_listing_usage(self, subscription_id: uuid.UUID, delta: int,
                                   current_user: User) -> UserSubscription:
        """
        Adjust the active listing counter.

        Raises:
            BusinessRuleViolationError: If the subscription is not active or the counter would go negative
            ResourceLimitExceededError: If the plan's listing quota would be exceeded
        """
        subscription = await self.get_subscription(subscription_id, current_user)
        if delta > 0 and not subscription.is_active:
            raise BusinessRuleViolationError("listings need an active subscription",
                                             f"subscription is {subscription.status.value}")

        plan = await self.get_plan(subscription.plan_id)
        new_count = subscription.current_listings + delta
        if new_count < 0:
            raise BusinessRuleViolationError("listing count cannot be negative")
        if new_count > plan.max_listings:
            raise ResourceLimitExceededError("Listings", plan.max_listings)

        try:
            subscription.current_listings = new_count
            subscription = await self.subscription_repo.save(subscription)
        except ValueError as e:
            raise await self._reject(e)
        return subscription

    async def record_payment(
        self,
        subscription_id: uuid.UUID,
        amount: Decimal,
        current_user: User,
        payment_method: Optional[str] = None
    ) -> UserSubscription:
        """
        Record a billing-cycle payment.
        Activates a PENDING subscription, advances the billing date and books a
        completed SUBSCRIPTION_PAYMENT transaction in the same commit.

        Raises:
            BusinessRuleViolationError: If the subscription is cancelled
        """
        subscription = await self.get_subscription(subscription_id, current_user)
        if subscription.status == SubscriptionStatus.CANCELLED:
            raise BusinessRuleViolationError("cancelled subscriptions cannot be billed")

        plan = await self.get_plan(subscription.plan_id)
        now = utcnow()

        try:
            subscription.total_paid = (subscription.total_paid or Decimal("0")) + amount
            subscription.last_payment_amount = amount
            subscription.last_billing_date = now
            subscription.failed_payment_count = 0
            if payment_method:
                subscription.payment_method = payment_method
            subscription.next_billing_date = add_months(now, plan.billing_cycle_months)
            if subscription.next_billing_date > ValidationUtils.ensure_aware(subscription.end_date):
                subscription.end_date = subscription.next_billing_date
            if subscription.status == SubscriptionStatus.PENDING:
                subscription.status = SubscriptionStatus.ACTIVE

            self.db.add(Transaction(
                user_id=subscription.user_id,
                subscription_id=subscription.id,
                transaction_type=TransactionType.SUBSCRIPTION_PAYMENT,
                amount=amount,
                currency=plan.currency,
                status=TransactionStatus.COMPLETED,
                description=f"{plan.name} subscription payment",
            ))
            subscription = await self.subscription_repo.save(subscription)
        except ValueError as e:
            raise await self._reject(e)

        logger.info(f"Subscription {subscription_id} paid {amount} {plan.currency}")
        return subscription

    async def record_failed_payment(self, subscription_id: uuid.UUID, current_user: User) -> UserSubscription:
        subscription = await self.get_subscription(subscription_id, current_user)
        subscription.failed_payment_count = (subscription.failed_payment_count or 0) + 1
        return await self.subscription_repo.save(subscription)
