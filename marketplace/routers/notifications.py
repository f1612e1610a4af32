"""
Notification API endpoints.
"""

from fastapi import APIRouter, Depends, status, Query, Path
from typing import Optional, List
from uuid import UUID

from marketplace.config import settings
from marketplace.models.user import User
from marketplace.models.notification import NotificationStatus
from marketplace.services.notification import NotificationService
from marketplace.schemas.notification import NotificationCreate, NotificationReply, NotificationResponse
from marketplace.schemas.error import get_crud_error_responses
from marketplace.utils.dependencies import get_current_user, get_current_admin_user, get_notification_service


router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.post(
    "",
    response_model=NotificationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Queue a notification",
    description="Admin-only. Delivery happens outside the API.",
    responses=get_crud_error_responses()
)
async def create_notification(
    notification_data: NotificationCreate,
    admin_user: User = Depends(get_current_admin_user),
    notification_service: NotificationService = Depends(get_notification_service)
) -> NotificationResponse:
    notification = await notification_service.create_notification(notification_data)
    return NotificationResponse.model_validate(notification)


@router.get(
    "",
    response_model=List[NotificationResponse],
    summary="List the current user's notifications"
)
async def list_notifications(
    notification_status: Optional[NotificationStatus] = Query(None, alias="status"),
    unread_only: bool = Query(False),
    skip: int = Query(0, ge=0),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    current_user: User = Depends(get_current_user),
    notification_service: NotificationService = Depends(get_notification_service)
) -> List[NotificationResponse]:
    notifications = await notification_service.list_for_recipient(
        current_user.id, status=notification_status, unread_only=unread_only, skip=skip, limit=limit
    )
    return [NotificationResponse.model_validate(n) for n in notifications]


@router.get(
    "/{notification_id}/thread",
    response_model=List[NotificationResponse],
    summary="Get a notification thread, oldest first",
    responses=get_crud_error_responses()
)
async def get_thread(
    notification_id: UUID = Path(..., description="Root notification ID"),
    current_user: User = Depends(get_current_user),
    notification_service: NotificationService = Depends(get_notification_service)
) -> List[NotificationResponse]:
    thread = await notification_service.get_thread(notification_id, current_user)
    return [NotificationResponse.model_validate(n) for n in thread]


@router.post(
    "/{notification_id}/replies",
    response_model=NotificationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Reply within a thread",
    responses=get_crud_error_responses()
)
async def reply(
    reply_data: NotificationReply,
    notification_id: UUID = Path(..., description="Parent notification ID"),
    current_user: User = Depends(get_current_user),
    notification_service: NotificationService = Depends(get_notification_service)
) -> NotificationResponse:
    notification = await notification_service.reply(notification_id, reply_data, current_user)
    return NotificationResponse.model_validate(notification)


@router.post(
    "/{notification_id}/read",
    response_model=NotificationResponse,
    summary="Mark a notification read",
    responses=get_crud_error_responses()
)
async def mark_read(
    notification_id: UUID = Path(..., description="Notification ID"),
    current_user: User = Depends(get_current_user),
    notification_service: NotificationService = Depends(get_notification_service)
) -> NotificationResponse:
    return NotificationResponse.model_validate(await notification_service.mark_read(notification_id, current_user))


@router.post(
    "/{notification_id}/sent",
    response_model=NotificationResponse,
    summary="Record successful delivery",
    responses=get_crud_error_responses()
)
async def mark_sent(
    notification_id: UUID = Path(..., description="Notification ID"),
    admin_user: User = Depends(get_current_admin_user),
    notification_service: NotificationService = Depends(get_notification_service)
) -> NotificationResponse:
    return NotificationResponse.model_validate(await notification_service.mark_sent(notification_id))


@router.post(
    "/{notification_id}/failed",
    response_model=NotificationResponse,
    summary="Record failed delivery",
    responses=get_crud_error_responses()
)
async def mark_failed(
    notification_id: UUID = Path(..., description="Notification ID"),
    admin_user: User = Depends(get_current_admin_user),
    notification_service: NotificationService = Depends(get_notification_service)
) -> NotificationResponse:
    return NotificationResponse.model_validate(await notification_service.mark_failed(notification_id))
