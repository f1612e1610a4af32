"""
Pydantic schemas for user accounts and role profiles.
"""

from pydantic import BaseModel, Field, EmailStr, field_validator
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
from marketplace.models.user import UserRole
from marketplace.models.profile import ContactMethod
from marketplace.models.property import PropertyType
import uuid


class UserCreate(BaseModel):
    """Schema for registering a new account."""

    email: EmailStr = Field(..., description="User email address", example="ada@example.com")
    password: str = Field(..., min_length=8, max_length=128, description="Plain text password")
    full_name: str = Field(..., min_length=2, max_length=255, example="Ada Obi")
    phone_number: Optional[str] = Field(None, max_length=20, example="+2348012345678")
    role: UserRole = Field(UserRole.BUYER, description="Marketplace role")

    @field_validator('full_name')
    @classmethod
    def validate_full_name(cls, v):
        if not v.strip():
            raise ValueError("Full name cannot be empty")
        return v.strip()

    @field_validator('password')
    @classmethod
    def validate_password(cls, v):
        """Require at least one letter and one digit."""
        if not any(c.isalpha() for c in v) or not any(c.isdigit() for c in v):
            raise ValueError("Password must contain letters and digits")
        return v

    @field_validator('role')
    @classmethod
    def validate_role(cls, v):
        if v == UserRole.ADMIN:
            raise ValueError("Admin accounts cannot be self-registered")
        return v


class UserResponse(BaseModel):
    """Schema for user data in responses."""

    id: uuid.UUID
    email: str
    full_name: str
    phone_number: Optional[str] = None
    role: UserRole
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class BuyerProfileCreate(BaseModel):
    minimum_budget: Decimal = Field(..., ge=0, example=150000)
    maximum_budget: Decimal = Field(..., ge=0, example=300000)
    pre_approved: bool = False
    pre_approval_amount: Optional[Decimal] = Field(None, ge=0)
    preferred_locations: List[str] = Field(default_factory=list, example=["Lekki", "Ikoyi"])
    property_type: PropertyType = PropertyType.SINGLE_FAMILY


class DeveloperProfileCreate(BaseModel):
    company_name: str = Field(..., min_length=1, max_length=255, example="Skyline Homes Ltd")
    cac_reg_number: str = Field(..., min_length=1, max_length=100, example="RC123456")
    cloudinary_id: str = Field(..., min_length=1, max_length=255)
    years_in_business: Optional[int] = Field(None, ge=0)
    projects_completed: int = Field(0, ge=0)
    website_url: Optional[str] = Field(None, max_length=500, example="https://skyline.example.com")
    office_address: Optional[str] = None
    company_logo_url: Optional[str] = Field(None, max_length=500)


class HomeOwnerProfileCreate(BaseModel):
    primary_residence: Optional[str] = Field(None, max_length=255)
    preferred_contact_method: ContactMethod = ContactMethod.EMAIL
    verification_docs_urls: List[str] = Field(default_factory=list)


class RealtorProfileCreate(BaseModel):
    license_number: str = Field(..., min_length=1, max_length=100, example="LIC-2024-0042")
    brokerage_name: str = Field(..., min_length=1, max_length=255)
    years_of_experience: Optional[int] = Field(None, ge=0)
    specialties: List[str] = Field(default_factory=list)
    certifications: List[str] = Field(default_factory=list)
    verification_docs_urls: List[str] = Field(default_factory=list)
    cloudinary_id: Optional[str] = Field(None, max_length=255)


class ProfileResponse(BaseModel):
    """Role profile summary; the kind tells which profile table it came from."""

    id: uuid.UUID
    user_id: uuid.UUID
    kind: str
    is_verified: bool = False
    created_at: datetime
