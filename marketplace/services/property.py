"""
Property service for managing physical properties and location lookups.
Handles CRUD operations, ownership validation and radius search.
"""

from typing import Optional, List, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from marketplace.repositories.property import PropertyRepository
from marketplace.models.property import Property, PropertyType
from marketplace.models.user import User
from marketplace.schemas.property import PropertyCreate, PropertyUpdate
from marketplace.services.base import BaseService
from marketplace.utils.exceptions import NotFoundError, ForbiddenError, ValidationError
import uuid
import logging

logger = logging.getLogger(__name__)


class PropertyService(BaseService):
    """
    Property service for managing properties with ownership checks.
    """

    def __init__(self, db_session: AsyncSession):
        super().__init__(db_session)
        self.property_repo = PropertyRepository(db_session)

    async def create_property(self, property_data: PropertyCreate, current_user: User) -> Property:
        """
        Create a property owned by the acting user.

        Raises:
            ValidationError: If property data is rejected by the model
        """
        create_data = property_data.model_dump()
        create_data["owner_id"] = current_user.id

        try:
            property_obj = await self.property_repo.create(create_data)
        except ValueError as e:
            raise await self._reject(e)

        logger.info(f"Property created by user {current_user.email}: {property_obj.address} (ID: {property_obj.id})")
        return property_obj

    async def get_property(self, property_id: uuid.UUID) -> Property:
        property_obj = await self.property_repo.get_by_id(property_id)
        if property_obj is None:
            raise NotFoundError("Property", str(property_id))
        return property_obj

    async def list_properties(self, skip: int = 0, limit: int = 100,
                              property_type: Optional[PropertyType] = None) -> List[Property]:
        filters = {"property_type": property_type} if property_type else None
        return await self.property_repo.get_multi(skip=skip, limit=limit, filters=filters)

    async def update_property(
        self,
        property_id: uuid.UUID,
        property_data: PropertyUpdate,
        current_user: User
    ) -> Property:
        """
        Update a property the acting user owns.

        Raises:
            NotFoundError: If property doesn't exist
            ForbiddenError: If the user neither owns the property nor is an admin
            ValidationError: If nothing to update or the model rejects a field
        """
        existing = await self.get_property(property_id)
        self._ensure_can_manage(existing, current_user)

        update_data = property_data.model_dump(exclude_unset=True)
        if not update_data:
            raise ValidationError("No valid fields provided for update")

        try:
            updated = await self.property_repo.update(property_id, update_data)
        except ValueError as e:
            raise await self._reject(e)

        logger.info(f"Property updated by user {current_user.email}: {property_id}")
        return updated

    async def delete_property(self, property_id: uuid.UUID, current_user: User) -> bool:
        existing = await self.get_property(property_id)
        self._ensure_can_manage(existing, current_user)
        deleted = await self.property_repo.delete(property_id)
        logger.info(f"Property deleted by user {current_user.email}: {property_id}")
        return deleted

    async def get_by_owner(self, owner_id: uuid.UUID, skip: int = 0, limit: int = 100) -> List[Property]:
        return await self.property_repo.get_by_owner(owner_id, skip=skip, limit=limit)

    async def find_nearby(
        self,
        latitude: float,
        longitude: float,
        radius_km: float,
        limit: int = 50,
        property_type: Optional[PropertyType] = None
    ) -> List[Tuple[Property, float]]:
        """
        Properties within radius_km of a point, nearest first.

        Raises:
            ValidationError: If the point or radius is out of range
        """
        if not -90 <= latitude <= 90 or not -180 <= longitude <= 180:
            raise ValidationError("Coordinates are out of range")
        if radius_km <= 0:
            raise ValidationError("Radius must be greater than zero")

        return await self.property_repo.find_within_radius(
            latitude, longitude, radius_km, limit=limit, property_type=property_type
        )

    @staticmethod
    def _ensure_can_manage(property_obj: Property, user: User) -> None:
        if property_obj.owner_id != user.id and not user.is_admin:
            raise ForbiddenError("You don't have permission to manage this property")
