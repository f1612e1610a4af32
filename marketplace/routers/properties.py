"""
Property management API endpoints for CRUD operations and radius search.
"""

from fastapi import APIRouter, Depends, status, Query, Path
from typing import Optional, List
from uuid import UUID

from marketplace.config import settings
from marketplace.models.user import User
from marketplace.models.property import PropertyType
from marketplace.services.property import PropertyService
from marketplace.schemas.property import (
    PropertyCreate,
    PropertyUpdate,
    PropertyResponse,
    NearbyPropertyResponse
)
from marketplace.schemas.error import get_crud_error_responses
from marketplace.utils.dependencies import get_current_user, get_property_service


router = APIRouter(prefix="/properties", tags=["Properties"])


@router.post(
    "",
    response_model=PropertyResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create new property",
    description="Create a property owned by the current user.",
    responses=get_crud_error_responses()
)
async def create_property(
    property_data: PropertyCreate,
    current_user: User = Depends(get_current_user),
    property_service: PropertyService = Depends(get_property_service)
) -> PropertyResponse:
    property_obj = await property_service.create_property(property_data, current_user)
    return PropertyResponse.model_validate(property_obj)


@router.get(
    "",
    response_model=List[PropertyResponse],
    summary="List properties"
)
async def list_properties(
    property_type: Optional[PropertyType] = Query(None, description="Property type filter"),
    skip: int = Query(0, ge=0),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    property_service: PropertyService = Depends(get_property_service)
) -> List[PropertyResponse]:
    properties = await property_service.list_properties(skip=skip, limit=limit, property_type=property_type)
    return [PropertyResponse.model_validate(p) for p in properties]


@router.get(
    "/nearby",
    response_model=List[NearbyPropertyResponse],
    summary="Find properties within a radius",
    description="Properties within radius_km of a point, nearest first."
)
async def find_nearby_properties(
    latitude: float = Query(..., ge=-90, le=90),
    longitude: float = Query(..., ge=-180, le=180),
    radius_km: float = Query(10.0, gt=0, le=500),
    property_type: Optional[PropertyType] = Query(None),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    property_service: PropertyService = Depends(get_property_service)
) -> List[NearbyPropertyResponse]:
    nearby = await property_service.find_nearby(
        latitude, longitude, radius_km, limit=limit, property_type=property_type
    )
    return [
        NearbyPropertyResponse(property=PropertyResponse.model_validate(p), distance_km=round(distance, 3))
        for p, distance in nearby
    ]


@router.get(
    "/mine",
    response_model=List[PropertyResponse],
    summary="List the current user's properties"
)
async def list_my_properties(
    skip: int = Query(0, ge=0),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    current_user: User = Depends(get_current_user),
    property_service: PropertyService = Depends(get_property_service)
) -> List[PropertyResponse]:
    properties = await property_service.get_by_owner(current_user.id, skip=skip, limit=limit)
    return [PropertyResponse.model_validate(p) for p in properties]


@router.get(
    "/{property_id}",
    response_model=PropertyResponse,
    summary="Get property by ID",
    responses=get_crud_error_responses()
)
async def get_property(
    property_id: UUID = Path(..., description="Property ID"),
    property_service: PropertyService = Depends(get_property_service)
) -> PropertyResponse:
    property_obj = await property_service.get_property(property_id)
    return PropertyResponse.model_validate(property_obj)


@router.put(
    "/{property_id}",
    response_model=PropertyResponse,
    summary="Update property",
    description="Update a property. Only the owner or an admin may update it.",
    responses=get_crud_error_responses()
)
async def update_property(
    property_data: PropertyUpdate,
    property_id: UUID = Path(..., description="Property ID"),
    current_user: User = Depends(get_current_user),
    property_service: PropertyService = Depends(get_property_service)
) -> PropertyResponse:
    property_obj = await property_service.update_property(property_id, property_data, current_user)
    return PropertyResponse.model_validate(property_obj)


@router.delete(
    "/{property_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete property",
    responses=get_crud_error_responses()
)
async def delete_property(
    property_id: UUID = Path(..., description="Property ID"),
    current_user: User = Depends(get_current_user),
    property_service: PropertyService = Depends(get_property_service)
) -> None:
    await property_service.delete_property(property_id, current_user)
