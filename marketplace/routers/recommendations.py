"""
Recommendation and behaviour-tracking API endpoints.
"""

from fastapi import APIRouter, Depends, status, Query, Path
from typing import List
from uuid import UUID

from marketplace.models.user import User
from marketplace.services.recommendation import RecommendationService
from marketplace.schemas.recommendation import (
    RecommendationCreate,
    RecommendationResponse,
    BehaviorCreate,
    BehaviorResponse,
    ExpireResult
)
from marketplace.schemas.error import get_crud_error_responses
from marketplace.utils.dependencies import get_current_user, get_current_admin_user, get_recommendation_service


router = APIRouter(prefix="/recommendations", tags=["Recommendations"])


@router.post(
    "",
    response_model=RecommendationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Store a recommendation",
    description="Admin-only. Priority and expiry are derived when omitted.",
    responses=get_crud_error_responses()
)
async def create_recommendation(
    data: RecommendationCreate,
    admin_user: User = Depends(get_current_admin_user),
    recommendation_service: RecommendationService = Depends(get_recommendation_service)
) -> RecommendationResponse:
    recommendation = await recommendation_service.create_recommendation(data)
    return RecommendationResponse.model_validate(recommendation)


@router.get(
    "",
    response_model=List[RecommendationResponse],
    summary="Active recommendations for the current user, highest priority first"
)
async def list_active(
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    recommendation_service: RecommendationService = Depends(get_recommendation_service)
) -> List[RecommendationResponse]:
    recommendations = await recommendation_service.list_active_for_user(current_user.id, limit=limit)
    return [RecommendationResponse.model_validate(r) for r in recommendations]


@router.post(
    "/expire",
    response_model=ExpireResult,
    summary="Expire stale recommendations",
    responses=get_crud_error_responses()
)
async def expire_stale(
    admin_user: User = Depends(get_current_admin_user),
    recommendation_service: RecommendationService = Depends(get_recommendation_service)
) -> ExpireResult:
    return ExpireResult(expired=await recommendation_service.expire_stale())


@router.post(
    "/behaviors",
    response_model=BehaviorResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record a behaviour event for the current user",
    responses=get_crud_error_responses()
)
async def record_behavior(
    data: BehaviorCreate,
    current_user: User = Depends(get_current_user),
    recommendation_service: RecommendationService = Depends(get_recommendation_service)
) -> BehaviorResponse:
    behavior = await recommendation_service.record_behavior(data, current_user)
    return BehaviorResponse.model_validate(behavior)


@router.post(
    "/{recommendation_id}/viewed",
    response_model=RecommendationResponse,
    summary="Mark a recommendation viewed",
    responses=get_crud_error_responses()
)
async def mark_viewed(
    recommendation_id: UUID = Path(..., description="Recommendation ID"),
    current_user: User = Depends(get_current_user),
    recommendation_service: RecommendationService = Depends(get_recommendation_service)
) -> RecommendationResponse:
    recommendation = await recommendation_service.mark_viewed(recommendation_id, current_user)
    return RecommendationResponse.model_validate(recommendation)


@router.post(
    "/{recommendation_id}/clicked",
    response_model=RecommendationResponse,
    summary="Mark a recommendation clicked",
    responses=get_crud_error_responses()
)
async def mark_clicked(
    recommendation_id: UUID = Path(..., description="Recommendation ID"),
    current_user: User = Depends(get_current_user),
    recommendation_service: RecommendationService = Depends(get_recommendation_service)
) -> RecommendationResponse:
    recommendation = await recommendation_service.mark_clicked(recommendation_id, current_user)
    return RecommendationResponse.model_validate(recommendation)


@router.post(
    "/{recommendation_id}/dismissed",
    response_model=RecommendationResponse,
    summary="Dismiss a recommendation",
    responses=get_crud_error_responses()
)
async def mark_dismissed(
    recommendation_id: UUID = Path(..., description="Recommendation ID"),
    current_user: User = Depends(get_current_user),
    recommendation_service: RecommendationService = Depends(get_recommendation_service)
) -> RecommendationResponse:
    recommendation = await recommendation_service.mark_dismissed(recommendation_id, current_user)
    return RecommendationResponse.model_validate(recommendation)
