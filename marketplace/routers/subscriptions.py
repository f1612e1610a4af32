"""
Subscription API endpoints: plans, sign-up, billing and listing usage.
"""

from fastapi import APIRouter, Depends, status, Path
from typing import List
from uuid import UUID

from marketplace.models.user import User
from marketplace.services.subscription import SubscriptionService
from marketplace.schemas.subscription import (
    PlanResponse,
    SubscribeRequest,
    SubscriptionStatusUpdate,
    ListingUsageUpdate,
    SubscriptionPaymentRequest,
    SubscriptionResponse
)
from marketplace.schemas.error import get_crud_error_responses
from marketplace.utils.dependencies import get_current_user, get_subscription_service


router = APIRouter(prefix="/subscriptions", tags=["Subscriptions"])


@router.get("/plans", response_model=List[PlanResponse], summary="List available plans")
async def list_plans(
    subscription_service: SubscriptionService = Depends(get_subscription_service)
) -> List[PlanResponse]:
    return [PlanResponse.model_validate(plan) for plan in await subscription_service.list_plans()]


@router.post(
    "",
    response_model=SubscriptionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Subscribe to a plan",
    responses=get_crud_error_responses()
)
async def subscribe(
    request: SubscribeRequest,
    current_user: User = Depends(get_current_user),
    subscription_service: SubscriptionService = Depends(get_subscription_service)
) -> SubscriptionResponse:
    subscription = await subscription_service.subscribe(
        current_user,
        request.plan_id,
        payment_method=request.payment_method,
        auto_renew=request.auto_renew,
        billing_address=request.billing_address
    )
    return SubscriptionResponse.model_validate(subscription)


@router.get(
    "",
    response_model=List[SubscriptionResponse],
    summary="List the current user's subscriptions"
)
async def list_subscriptions(
    current_user: User = Depends(get_current_user),
    subscription_service: SubscriptionService = Depends(get_subscription_service)
) -> List[SubscriptionResponse]:
    subscriptions = await subscription_service.list_for_user(current_user.id)
    return [SubscriptionResponse.model_validate(s) for s in subscriptions]


@router.get(
    "/current",
    response_model=SubscriptionResponse,
    summary="Get the current user's current subscription",
    responses=get_crud_error_responses()
)
async def get_current_subscription(
    current_user: User = Depends(get_current_user),
    subscription_service: SubscriptionService = Depends(get_subscription_service)
) -> SubscriptionResponse:
    return SubscriptionResponse.model_validate(await subscription_service.get_current(current_user.id))


@router.post(
    "/{subscription_id}/status",
    response_model=SubscriptionResponse,
    summary="Change subscription status",
    responses=get_crud_error_responses()
)
async def change_subscription_status(
    status_data: SubscriptionStatusUpdate,
    subscription_id: UUID = Path(..., description="Subscription ID"),
    current_user: User = Depends(get_current_user),
    subscription_service: SubscriptionService = Depends(get_subscription_service)
) -> SubscriptionResponse:
    subscription = await subscription_service.change_status(
        subscription_id, status_data.status, current_user, reason=status_data.reason
    )
    return SubscriptionResponse.model_validate(subscription)


@router.post(
    "/{subscription_id}/usage/listings",
    response_model=SubscriptionResponse,
    summary="Adjust the active listing count",
    responses=get_crud_error_responses()
)
async def record_listing_usage(
    usage: ListingUsageUpdate,
    subscription_id: UUID = Path(..., description="Subscription ID"),
    current_user: User = Depends(get_current_user),
    subscription_service: SubscriptionService = Depends(get_subscription_service)
) -> SubscriptionResponse:
    subscription = await subscription_service.record_listing_usage(subscription_id, usage.delta, current_user)
    return SubscriptionResponse.model_validate(subscription)


@router.post(
    "/{subscription_id}/payments",
    response_model=SubscriptionResponse,
    summary="Record a subscription payment",
    responses=get_crud_error_responses()
)
async def record_subscription_payment(
    payment: SubscriptionPaymentRequest,
    subscription_id: UUID = Path(..., description="Subscription ID"),
    current_user: User = Depends(get_current_user),
    subscription_service: SubscriptionService = Depends(get_subscription_service)
) -> SubscriptionResponse:
    subscription = await subscription_service.record_payment(
        subscription_id, payment.amount, current_user, payment_method=payment.payment_method
    )
    return SubscriptionResponse.model_validate(subscription)
