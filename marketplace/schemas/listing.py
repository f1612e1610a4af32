"""
Pydantic schemas for listing requests and responses.
"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Dict, Any
from datetime import datetime
from decimal import Decimal
from marketplace.models.listing import ListingStatus
import uuid


class ListingCreate(BaseModel):
    """Schema for publishing a listing for an existing property."""

    property_id: uuid.UUID = Field(..., description="Property being listed")
    listing_price: Decimal = Field(..., ge=0, description="Asking price", example=250000.00)
    marketing_description: str = Field(..., min_length=1, example="Bright corner unit with lagoon views")
    listing_status: ListingStatus = Field(ListingStatus.DRAFT, description="Initial status")
    expiration_date: Optional[datetime] = None
    virtual_tour_url: Optional[str] = Field(None, max_length=500)
    is_open_house: bool = False
    open_house_schedule: List[Dict[str, Any]] = Field(default_factory=list)
    mls_number: Optional[str] = Field(None, max_length=50)
    mls_status: Optional[str] = Field(None, max_length=50)
    commission_rate: Optional[Decimal] = Field(None, ge=0, le=100, example=2.5)
    commission_amount: Optional[Decimal] = Field(None, ge=0)

    @field_validator('marketing_description')
    @classmethod
    def validate_marketing_description(cls, v):
        if not v.strip():
            raise ValueError("Marketing description cannot be empty")
        return v.strip()

    @field_validator('listing_status')
    @classmethod
    def validate_initial_status(cls, v):
        if v not in (ListingStatus.DRAFT, ListingStatus.ACTIVE):
            raise ValueError("New listings start as DRAFT or ACTIVE")
        return v


class ListingUpdate(BaseModel):
    """Partial update; status changes go through the status endpoint."""

    listing_price: Optional[Decimal] = Field(None, ge=0)
    marketing_description: Optional[str] = Field(None, min_length=1)
    expiration_date: Optional[datetime] = None
    virtual_tour_url: Optional[str] = Field(None, max_length=500)
    is_open_house: Optional[bool] = None
    open_house_schedule: Optional[List[Dict[str, Any]]] = None
    mls_number: Optional[str] = Field(None, max_length=50)
    mls_status: Optional[str] = Field(None, max_length=50)
    commission_rate: Optional[Decimal] = Field(None, ge=0, le=100)
    commission_amount: Optional[Decimal] = Field(None, ge=0)


class ListingStatusUpdate(BaseModel):
    status: ListingStatus = Field(..., example="ACTIVE")
    sold_date: Optional[datetime] = Field(None, description="Defaults to now when marking SOLD")


class ListingResponse(BaseModel):
    id: uuid.UUID
    property_id: uuid.UUID
    listed_by: uuid.UUID
    listing_status: ListingStatus
    listing_price: Decimal
    original_price: Optional[Decimal] = None
    price_history: List[Dict[str, Any]] = Field(default_factory=list)
    marketing_description: str
    listed_date: datetime
    last_updated: datetime
    expiration_date: Optional[datetime] = None
    sold_date: Optional[datetime] = None
    virtual_tour_url: Optional[str] = None
    is_open_house: bool
    view_count: int
    inquiry_count: int
    favorite_count: int
    mls_number: Optional[str] = None
    commission_rate: Optional[Decimal] = None
    commission_amount: Optional[Decimal] = None

    class Config:
        from_attributes = True
