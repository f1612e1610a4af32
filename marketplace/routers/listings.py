"""
Listing API endpoints: publishing, searching and moving listings through their lifecycle.
"""

from fastapi import APIRouter, Depends, status, Query, Path
from typing import Optional, List
from decimal import Decimal
from uuid import UUID

from marketplace.config import settings
from marketplace.models.user import User
from marketplace.models.listing import ListingStatus
from marketplace.services.listing import ListingService
from marketplace.schemas.listing import ListingCreate, ListingUpdate, ListingStatusUpdate, ListingResponse
from marketplace.schemas.error import get_crud_error_responses
from marketplace.utils.dependencies import get_current_user, get_listing_service


router = APIRouter(prefix="/listings", tags=["Listings"])


@router.post(
    "",
    response_model=ListingResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create listing",
    responses=get_crud_error_responses()
)
async def create_listing(
    listing_data: ListingCreate,
    current_user: User = Depends(get_current_user),
    listing_service: ListingService = Depends(get_listing_service)
) -> ListingResponse:
    listing = await listing_service.create_listing(listing_data, current_user)
    return ListingResponse.model_validate(listing)


@router.get(
    "",
    response_model=List[ListingResponse],
    summary="Search listings",
    description="Filter listings by status and price band, newest first."
)
async def search_listings(
    listing_status: Optional[ListingStatus] = Query(None, alias="status"),
    min_price: Optional[Decimal] = Query(None, ge=0),
    max_price: Optional[Decimal] = Query(None, ge=0),
    skip: int = Query(0, ge=0),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    listing_service: ListingService = Depends(get_listing_service)
) -> List[ListingResponse]:
    listings = await listing_service.search_listings(listing_status, min_price, max_price, skip=skip, limit=limit)
    return [ListingResponse.model_validate(listing) for listing in listings]


@router.get(
    "/mine",
    response_model=List[ListingResponse],
    summary="List the current user's listings"
)
async def list_my_listings(
    skip: int = Query(0, ge=0),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    current_user: User = Depends(get_current_user),
    listing_service: ListingService = Depends(get_listing_service)
) -> List[ListingResponse]:
    listings = await listing_service.get_listings_by_user(current_user.id, skip=skip, limit=limit)
    return [ListingResponse.model_validate(listing) for listing in listings]


@router.get(
    "/{listing_id}",
    response_model=ListingResponse,
    summary="Get listing by ID",
    responses=get_crud_error_responses()
)
async def get_listing(
    listing_id: UUID = Path(..., description="Listing ID"),
    listing_service: ListingService = Depends(get_listing_service)
) -> ListingResponse:
    listing = await listing_service.get_listing(listing_id)
    return ListingResponse.model_validate(listing)


@router.patch(
    "/{listing_id}",
    response_model=ListingResponse,
    summary="Update listing",
    description="Partial update. A price change is appended to the price history.",
    responses=get_crud_error_responses()
)
async def update_listing(
    listing_data: ListingUpdate,
    listing_id: UUID = Path(..., description="Listing ID"),
    current_user: User = Depends(get_current_user),
    listing_service: ListingService = Depends(get_listing_service)
) -> ListingResponse:
    listing = await listing_service.update_listing(listing_id, listing_data, current_user)
    return ListingResponse.model_validate(listing)


@router.post(
    "/{listing_id}/status",
    response_model=ListingResponse,
    summary="Change listing status",
    responses=get_crud_error_responses()
)
async def change_listing_status(
    status_data: ListingStatusUpdate,
    listing_id: UUID = Path(..., description="Listing ID"),
    current_user: User = Depends(get_current_user),
    listing_service: ListingService = Depends(get_listing_service)
) -> ListingResponse:
    listing = await listing_service.change_status(
        listing_id, status_data.status, current_user, sold_date=status_data.sold_date
    )
    return ListingResponse.model_validate(listing)


@router.post(
    "/{listing_id}/{counter}",
    response_model=ListingResponse,
    summary="Record a view, inquiry or favorite",
    responses=get_crud_error_responses()
)
async def record_engagement(
    listing_id: UUID = Path(..., description="Listing ID"),
    counter: str = Path(..., pattern="^(view|inquiry|favorite)$"),
    listing_service: ListingService = Depends(get_listing_service)
) -> ListingResponse:
    listing = await listing_service.record_engagement(listing_id, counter)
    return ListingResponse.model_validate(listing)


@router.delete(
    "/{listing_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete listing",
    responses=get_crud_error_responses()
)
async def delete_listing(
    listing_id: UUID = Path(..., description="Listing ID"),
    current_user: User = Depends(get_current_user),
    listing_service: ListingService = Depends(get_listing_service)
) -> None:
    await listing_service.delete_listing(listing_id, current_user)
