"""
Pydantic schemas for property requests and responses.
"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime
from marketplace.models.property import PropertyType
import uuid


class PropertyBase(BaseModel):
    """Base property schema with common fields."""

    address: str = Field(..., min_length=1, max_length=255, example="12 Admiralty Way")
    city: str = Field(..., min_length=1, max_length=100, example="Lagos")
    state: str = Field(..., min_length=2, max_length=2, description="Two-letter state code", example="LA")
    zip_code: str = Field(..., min_length=1, max_length=10, example="106104")
    latitude: float = Field(..., ge=-90, le=90, example=6.4474)
    longitude: float = Field(..., ge=-180, le=180, example=3.4723)
    property_type: PropertyType = Field(..., example="APARTMENT")
    bedrooms: int = Field(..., ge=0, le=100, example=3)
    bathrooms: float = Field(..., ge=0.5, le=100, example=2.5)
    square_feet: Optional[int] = Field(None, ge=0, example=1800)
    year_built: Optional[int] = Field(None, ge=1800, example=2015)
    lot_size: Optional[int] = Field(None, ge=0)
    description: Optional[str] = Field(None, max_length=5000)
    features: List[str] = Field(default_factory=list, example=["pool", "gym"])

    @field_validator('state')
    @classmethod
    def validate_state(cls, v):
        return v.upper()


class PropertyCreate(PropertyBase):
    """Schema for creating a new property."""


class PropertyUpdate(BaseModel):
    """Schema for partial property updates; only supplied fields change."""

    address: Optional[str] = Field(None, min_length=1, max_length=255)
    city: Optional[str] = Field(None, min_length=1, max_length=100)
    state: Optional[str] = Field(None, min_length=2, max_length=2)
    zip_code: Optional[str] = Field(None, min_length=1, max_length=10)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    property_type: Optional[PropertyType] = None
    bedrooms: Optional[int] = Field(None, ge=0)
    bathrooms: Optional[float] = Field(None, ge=0.5)
    square_feet: Optional[int] = Field(None, ge=0)
    year_built: Optional[int] = Field(None, ge=1800)
    description: Optional[str] = Field(None, max_length=5000)
    features: Optional[List[str]] = None


class PropertyResponse(PropertyBase):
    id: uuid.UUID
    owner_id: uuid.UUID
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class NearbyPropertyResponse(BaseModel):
    property: PropertyResponse
    distance_km: float = Field(..., description="Great-circle distance from the search point")
