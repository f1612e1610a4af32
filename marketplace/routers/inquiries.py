"""
Inquiry API endpoints.
"""

from fastapi import APIRouter, Depends, status, Query, Path
from typing import Optional, List
from uuid import UUID

from marketplace.config import settings
from marketplace.models.user import User
from marketplace.models.inquiry import InquiryStatus
from marketplace.services.inquiry import InquiryService
from marketplace.schemas.inquiry import InquiryCreate, InquiryContact, InquiryStatusUpdate, InquiryResponse
from marketplace.schemas.error import get_crud_error_responses
from marketplace.utils.dependencies import get_current_user, get_inquiry_service


router = APIRouter(prefix="/inquiries", tags=["Inquiries"])


@router.post(
    "",
    response_model=InquiryResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Ask about a listing",
    responses=get_crud_error_responses()
)
async def create_inquiry(
    inquiry_data: InquiryCreate,
    current_user: User = Depends(get_current_user),
    inquiry_service: InquiryService = Depends(get_inquiry_service)
) -> InquiryResponse:
    inquiry = await inquiry_service.create_inquiry(inquiry_data, current_user)
    return InquiryResponse.model_validate(inquiry)


@router.get(
    "",
    response_model=List[InquiryResponse],
    summary="List the current user's open inquiries"
)
async def list_open_inquiries(
    skip: int = Query(0, ge=0),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    current_user: User = Depends(get_current_user),
    inquiry_service: InquiryService = Depends(get_inquiry_service)
) -> List[InquiryResponse]:
    inquiries = await inquiry_service.list_open_for_user(current_user.id, skip=skip, limit=limit)
    return [InquiryResponse.model_validate(i) for i in inquiries]


@router.get(
    "/listing/{listing_id}",
    response_model=List[InquiryResponse],
    summary="List inquiries on a listing",
    responses=get_crud_error_responses()
)
async def list_listing_inquiries(
    listing_id: UUID = Path(..., description="Listing ID"),
    inquiry_status: Optional[InquiryStatus] = Query(None, alias="status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    current_user: User = Depends(get_current_user),
    inquiry_service: InquiryService = Depends(get_inquiry_service)
) -> List[InquiryResponse]:
    inquiries = await inquiry_service.list_for_listing(
        listing_id, current_user, status=inquiry_status, skip=skip, limit=limit
    )
    return [InquiryResponse.model_validate(i) for i in inquiries]


@router.get(
    "/{inquiry_id}",
    response_model=InquiryResponse,
    summary="Get an inquiry",
    responses=get_crud_error_responses()
)
async def get_inquiry(
    inquiry_id: UUID = Path(..., description="Inquiry ID"),
    current_user: User = Depends(get_current_user),
    inquiry_service: InquiryService = Depends(get_inquiry_service)
) -> InquiryResponse:
    return InquiryResponse.model_validate(await inquiry_service.get_inquiry(inquiry_id, current_user))


@router.post(
    "/{inquiry_id}/contacted",
    response_model=InquiryResponse,
    summary="Record that the inquirer was contacted",
    responses=get_crud_error_responses()
)
async def mark_contacted(
    contact_data: InquiryContact,
    inquiry_id: UUID = Path(..., description="Inquiry ID"),
    current_user: User = Depends(get_current_user),
    inquiry_service: InquiryService = Depends(get_inquiry_service)
) -> InquiryResponse:
    inquiry = await inquiry_service.mark_contacted(inquiry_id, current_user, contact_data.notes)
    return InquiryResponse.model_validate(inquiry)


@router.patch(
    "/{inquiry_id}/status",
    response_model=InquiryResponse,
    summary="Change inquiry status",
    responses=get_crud_error_responses()
)
async def change_status(
    status_data: InquiryStatusUpdate,
    inquiry_id: UUID = Path(..., description="Inquiry ID"),
    current_user: User = Depends(get_current_user),
    inquiry_service: InquiryService = Depends(get_inquiry_service)
) -> InquiryResponse:
    inquiry = await inquiry_service.change_status(inquiry_id, status_data.status, current_user)
    return InquiryResponse.model_validate(inquiry)
