"""
Property media API endpoints.
Files are uploaded to Cloudinary by the client; these endpoints manage their records.
"""

from fastapi import APIRouter, Depends, status, Path
from typing import List
from uuid import UUID

from marketplace.models.user import User
from marketplace.services.media import MediaService
from marketplace.schemas.media import (
    MediaCreate,
    MediaUpdate,
    MediaReorderItem,
    MediaResponse,
    MediaStatsResponse
)
from marketplace.schemas.error import get_crud_error_responses
from marketplace.utils.dependencies import get_current_user, get_media_service


router = APIRouter(prefix="/media", tags=["Media"])


@router.post(
    "/property/{property_id}",
    response_model=MediaResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add media to a property",
    responses=get_crud_error_responses()
)
async def add_media(
    media_data: MediaCreate,
    property_id: UUID = Path(..., description="Property ID"),
    current_user: User = Depends(get_current_user),
    media_service: MediaService = Depends(get_media_service)
) -> MediaResponse:
    media = await media_service.add_media(property_id, media_data, current_user)
    return MediaResponse.model_validate(media)


@router.get(
    "/property/{property_id}",
    response_model=List[MediaResponse],
    summary="List a property's media",
    description="Main image first, then by display order."
)
async def get_property_media(
    property_id: UUID = Path(..., description="Property ID"),
    media_service: MediaService = Depends(get_media_service)
) -> List[MediaResponse]:
    media = await media_service.get_property_media(property_id)
    return [MediaResponse.model_validate(m) for m in media]


@router.put(
    "/property/{property_id}/order",
    response_model=List[MediaResponse],
    summary="Reorder a property's media",
    responses=get_crud_error_responses()
)
async def reorder_media(
    items: List[MediaReorderItem],
    property_id: UUID = Path(..., description="Property ID"),
    current_user: User = Depends(get_current_user),
    media_service: MediaService = Depends(get_media_service)
) -> List[MediaResponse]:
    media = await media_service.reorder_media(property_id, items, current_user)
    return [MediaResponse.model_validate(m) for m in media]


@router.get(
    "/property/{property_id}/stats",
    response_model=MediaStatsResponse,
    summary="Media statistics for a property"
)
async def get_media_stats(
    property_id: UUID = Path(..., description="Property ID"),
    media_service: MediaService = Depends(get_media_service)
) -> MediaStatsResponse:
    stats = await media_service.get_media_stats(property_id)
    return MediaStatsResponse.model_validate(stats)


@router.post(
    "/property/{property_id}/main/{media_id}",
    response_model=MediaResponse,
    summary="Set the property's main image",
    responses=get_crud_error_responses()
)
async def set_main_image(
    property_id: UUID = Path(..., description="Property ID"),
    media_id: UUID = Path(..., description="Media ID"),
    current_user: User = Depends(get_current_user),
    media_service: MediaService = Depends(get_media_service)
) -> MediaResponse:
    media = await media_service.set_main_image(property_id, media_id, current_user)
    return MediaResponse.model_validate(media)


@router.get(
    "/{media_id}",
    response_model=MediaResponse,
    summary="Get media by ID",
    responses=get_crud_error_responses()
)
async def get_media(
    media_id: UUID = Path(..., description="Media ID"),
    media_service: MediaService = Depends(get_media_service)
) -> MediaResponse:
    return MediaResponse.model_validate(await media_service.get_media(media_id))


@router.patch(
    "/{media_id}",
    response_model=MediaResponse,
    summary="Update media metadata",
    responses=get_crud_error_responses()
)
async def update_media(
    media_data: MediaUpdate,
    media_id: UUID = Path(..., description="Media ID"),
    current_user: User = Depends(get_current_user),
    media_service: MediaService = Depends(get_media_service)
) -> MediaResponse:
    media = await media_service.update_media(media_id, media_data, current_user)
    return MediaResponse.model_validate(media)


@router.delete(
    "/{media_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete media",
    responses=get_crud_error_responses()
)
async def delete_media(
    media_id: UUID = Path(..., description="Media ID"),
    current_user: User = Depends(get_current_user),
    media_service: MediaService = Depends(get_media_service)
) -> None:
    await media_service.delete_media(media_id, current_user)
