"""
Pydantic schemas for notifications.
"""

from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from marketplace.models.notification import NotificationType, NotificationStatus
import uuid


class NotificationCreate(BaseModel):
    recipient_id: uuid.UUID
    type: NotificationType = Field(..., example="EMAIL")
    subject: Optional[str] = Field(None, max_length=255, example="Your listing is live")
    content: str = Field(..., min_length=1)
    html: Optional[str] = None


class NotificationReply(BaseModel):
    content: str = Field(..., min_length=1)
    subject: Optional[str] = Field(None, max_length=255)
    html: Optional[str] = None
    type: Optional[NotificationType] = Field(None, description="Defaults to the parent's type")


class NotificationResponse(BaseModel):
    id: uuid.UUID
    recipient_id: uuid.UUID
    type: NotificationType
    subject: Optional[str] = None
    content: str
    html: Optional[str] = None
    status: NotificationStatus
    parent_id: Optional[uuid.UUID] = None
    read_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True
