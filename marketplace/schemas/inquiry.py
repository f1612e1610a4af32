"""
Pydantic schemas for listing inquiries.
"""

from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from marketplace.models.inquiry import InquiryType, InquiryStatus, ContactPreference
import uuid


class InquiryCreate(BaseModel):
    listing_id: uuid.UUID
    inquiry_type: InquiryType = Field(InquiryType.GENERAL, example="VIEWING_REQUEST")
    message: str = Field(..., min_length=10, max_length=2000,
                         example="Is the property available for a viewing on Saturday?")
    contact_preference: ContactPreference = ContactPreference.EMAIL


class InquiryContact(BaseModel):
    notes: Optional[str] = Field(None, max_length=2000, example="Called the buyer, viewing booked")


class InquiryStatusUpdate(BaseModel):
    status: InquiryStatus = Field(..., example="RESOLVED")


class InquiryResponse(BaseModel):
    id: uuid.UUID
    listing_id: uuid.UUID
    inquirer_id: uuid.UUID
    responder_id: Optional[uuid.UUID] = None
    inquiry_type: InquiryType
    message: str
    status: InquiryStatus
    contact_preference: ContactPreference
    contacted_at: Optional[datetime] = None
    response_notes: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True
