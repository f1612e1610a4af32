"""
Pydantic schemas for role and permission administration.
"""

from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
import uuid

from marketplace.models.user import PermissionCategory


class RoleCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50, example="SUPPORT")
    hierarchy_level: int = Field(0, ge=0, example=2)
    description: Optional[str] = Field(None, example="Customer support staff")


class PermissionCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, pattern=r'^[a-z_]+$', example="manage_listings")
    category: PermissionCategory = Field(PermissionCategory.GENERAL, example=PermissionCategory.PROPERTY_MANAGEMENT)
    description: Optional[str] = Field(None, example="Create and edit listings")


class PermissionResponse(BaseModel):
    id: uuid.UUID
    name: str
    description: Optional[str]
    category: PermissionCategory
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class RoleResponse(BaseModel):
    id: uuid.UUID
    name: str
    hierarchy_level: int
    description: str
    in_use: bool
    permissions: List[PermissionResponse] = []

    class Config:
        from_attributes = True


class GrantResponse(BaseModel):
    role_id: uuid.UUID
    permission_id: uuid.UUID
    created_at: datetime

    class Config:
        from_attributes = True
