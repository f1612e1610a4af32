"""
Pydantic schemas for property media records.
"""

from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from marketplace.models.media import MediaType
import uuid


class MediaCreate(BaseModel):
    """Metadata for a file already uploaded to Cloudinary."""

    media_type: MediaType = MediaType.IMAGE
    file_name: str = Field(..., min_length=1, max_length=255, example="living-room.jpg")
    original_name: str = Field(..., min_length=1, max_length=255, example="IMG_2041.jpg")
    mime_type: str = Field(..., min_length=1, max_length=100, example="image/jpeg")
    file_size: int = Field(..., ge=1, description="Size in bytes", example=524288)
    cloudinary_id: str = Field(..., min_length=1, max_length=255, example="properties/abc123")
    cloudinary_url: str = Field(..., max_length=500,
                                example="https://res.cloudinary.com/demo/image/upload/abc123.jpg")
    title: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = Field(None, max_length=1000)
    alt_text: Optional[str] = Field(None, max_length=255)
    display_order: int = Field(0, ge=0)
    is_main_image: bool = False
    is_featured: bool = False
    width: Optional[int] = Field(None, ge=1)
    height: Optional[int] = Field(None, ge=1)
    duration: Optional[int] = Field(None, ge=0)
    compression_quality: Optional[int] = Field(None, ge=1, le=100)


class MediaUpdate(BaseModel):
    title: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = Field(None, max_length=1000)
    alt_text: Optional[str] = Field(None, max_length=255)
    display_order: Optional[int] = Field(None, ge=0)
    is_featured: Optional[bool] = None


class MediaReorderItem(BaseModel):
    id: uuid.UUID
    display_order: int = Field(..., ge=0)


class MediaResponse(BaseModel):
    id: uuid.UUID
    property_id: uuid.UUID
    media_type: MediaType
    file_name: str
    original_name: str
    mime_type: str
    file_size: int
    cloudinary_id: str
    cloudinary_url: str
    title: Optional[str] = None
    description: Optional[str] = None
    alt_text: Optional[str] = None
    display_order: int
    is_main_image: bool
    is_featured: bool
    width: Optional[int] = None
    height: Optional[int] = None
    uploaded_by: uuid.UUID
    created_at: datetime

    class Config:
        from_attributes = True


class MediaTypeStats(BaseModel):
    media_type: MediaType
    count: int
    total_size: int


class MediaStatsResponse(BaseModel):
    property_id: uuid.UUID
    total_count: int
    total_size: int
    by_type: List[MediaTypeStats]
    main_image: Optional[MediaResponse] = None
