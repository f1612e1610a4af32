"""
Pydantic schemas for recommendations and behaviour events.
"""

from pydantic import BaseModel, Field
from typing import Optional, Dict, Any
from datetime import datetime
from decimal import Decimal
from marketplace.models.recommendation import RecommendationType, RecommendationStatus
from marketplace.models.behavior import BehaviorType
import uuid


class RecommendationCreate(BaseModel):
    user_id: uuid.UUID
    property_id: uuid.UUID
    listing_id: Optional[uuid.UUID] = None
    trigger_behavior_id: Optional[uuid.UUID] = None
    recommendation_type: RecommendationType = Field(..., example="PRICE_DROP")
    recommendation_reason: Optional[str] = Field(None, max_length=500)
    confidence_score: Decimal = Field(Decimal("0.50"), ge=0, le=1)
    relevance_score: Decimal = Field(Decimal("0.50"), ge=0, le=1)
    user_location: Optional[Dict[str, Any]] = None
    property_location: Optional[Dict[str, Any]] = None
    price_comparison: Optional[Dict[str, Any]] = None
    market_insights: Optional[Dict[str, Any]] = None
    user_preferences: Optional[Dict[str, Any]] = None
    model_features: Optional[Dict[str, Any]] = None
    distance_km: Optional[Decimal] = Field(None, ge=0)
    travel_time_minutes: Optional[int] = Field(None, ge=0)
    algorithm_version: str = Field("1.0", min_length=1, max_length=50)
    expires_at: Optional[datetime] = None
    priority: Optional[int] = Field(None, ge=1, le=10, description="Derived from the scores when omitted")

    model_config = {"protected_namespaces": ()}


class RecommendationResponse(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    property_id: uuid.UUID
    listing_id: Optional[uuid.UUID] = None
    recommendation_type: RecommendationType
    recommendation_reason: Optional[str] = None
    confidence_score: Decimal
    relevance_score: Decimal
    status: RecommendationStatus
    priority: int
    viewed_at: Optional[datetime] = None
    clicked_at: Optional[datetime] = None
    dismissed_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class BehaviorCreate(BaseModel):
    behavior_type: BehaviorType = Field(..., example="PROPERTY_VIEW")
    property_id: Optional[uuid.UUID] = None
    listing_id: Optional[uuid.UUID] = None
    search_query: Optional[str] = Field(None, max_length=1000)
    search_filters: Optional[Dict[str, Any]] = None
    search_location: Optional[str] = Field(None, max_length=255)
    view_duration: Optional[int] = Field(None, ge=0)
    interaction_score: Optional[Decimal] = Field(None, ge=0, le=1)
    session_id: Optional[str] = Field(None, min_length=1, max_length=100)


class BehaviorResponse(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    behavior_type: BehaviorType
    property_id: Optional[uuid.UUID] = None
    listing_id: Optional[uuid.UUID] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ExpireResult(BaseModel):
    expired: int
