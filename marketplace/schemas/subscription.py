"""
Pydantic schemas for subscription plans and user subscriptions.
"""

from pydantic import BaseModel, Field
from typing import Optional, Dict, Any
from datetime import datetime
from decimal import Decimal
from marketplace.models.subscription import PlanType, BillingCycle, SubscriptionStatus
import uuid


class PlanResponse(BaseModel):
    id: uuid.UUID
    name: str
    description: str
    plan_type: PlanType
    price: Decimal
    currency: str
    billing_cycle: BillingCycle
    billing_cycle_months: int
    trial_period_days: int
    max_listings: int
    max_photos_per_listing: int
    max_virtual_tours: int
    has_analytics: bool
    has_market_insights: bool
    has_priority_support: bool
    has_advanced_search: bool
    is_popular: bool

    class Config:
        from_attributes = True


class SubscribeRequest(BaseModel):
    plan_id: uuid.UUID
    payment_method: Optional[str] = Field(None, max_length=100)
    auto_renew: bool = True
    billing_address: Optional[Dict[str, Any]] = Field(
        None,
        description="Must contain street, city, state, zip_code and country",
        example={"street": "1 Marina", "city": "Lagos", "state": "LA", "zip_code": "101001", "country": "NG"}
    )


class SubscriptionStatusUpdate(BaseModel):
    status: SubscriptionStatus = Field(..., example="CANCELLED")
    reason: Optional[str] = Field(None, max_length=1000)


class ListingUsageUpdate(BaseModel):
    delta: int = Field(..., description="Change in active listings, may be negative", example=1)


class SubscriptionPaymentRequest(BaseModel):
    amount: Decimal = Field(..., ge=Decimal("0.01"))
    payment_method: Optional[str] = Field(None, max_length=100)


class SubscriptionResponse(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    plan_id: uuid.UUID
    status: SubscriptionStatus
    start_date: datetime
    end_date: datetime
    next_billing_date: Optional[datetime] = None
    last_billing_date: Optional[datetime] = None
    total_paid: Decimal
    last_payment_amount: Optional[Decimal] = None
    is_trial_active: bool
    trial_start_date: Optional[datetime] = None
    trial_end_date: Optional[datetime] = None
    current_listings: int
    current_photos: int
    current_virtual_tours: int
    auto_renew: bool
    cancellation_reason: Optional[str] = None
    cancelled_at: Optional[datetime] = None

    class Config:
        from_attributes = True
