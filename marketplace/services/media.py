"""
Media service for property photos, videos, documents and virtual tours.
Files live in Cloudinary; this service manages their metadata records.
"""

from typing import Optional, List, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from marketplace.repositories.media import PropertyMediaRepository
from marketplace.repositories.property import PropertyRepository
from marketplace.models.media import PropertyMedia, MediaType
from marketplace.models.property import Property
from marketplace.models.user import User
from marketplace.schemas.media import MediaCreate, MediaUpdate, MediaReorderItem
from marketplace.services.base import BaseService
from marketplace.utils.exceptions import NotFoundError, ForbiddenError, ValidationError, BadRequestError
import uuid
import logging

logger = logging.getLogger(__name__)


class MediaService(BaseService):
    """
    Media service enforcing ownership and the single-main-image rule.
    """

    def __init__(self, db_session: AsyncSession):
        super().__init__(db_session)
        self.media_repo = PropertyMediaRepository(db_session)
        self.property_repo = PropertyRepository(db_session)

    async def add_media(self, property_id: uuid.UUID, media_data: MediaCreate, current_user: User) -> PropertyMedia:
        """
        Register an uploaded file against a property.

        Raises:
            NotFoundError: If the property doesn't exist
            ForbiddenError: If the user can't manage the property
            ValidationError: If the model rejects the record, e.g. a second main image
        """
        await self._get_managed_property(property_id, current_user)

        create_data = media_data.model_dump()
        create_data["property_id"] = property_id
        create_data["uploaded_by"] = current_user.id

        try:
            media = await self.media_repo.create(create_data)
        except ValueError as e:
            raise await self._reject(e)

        logger.info(f"{media.media_type.value} {media.id} added to property {property_id}")
        return media

    async def get_media(self, media_id: uuid.UUID) -> PropertyMedia:
        media = await self.media_repo.get_by_id(media_id)
        if media is None:
            raise NotFoundError("Media", str(media_id))
        return media

    async def get_property_media(self, property_id: uuid.UUID) -> List[PropertyMedia]:
        if not await self.property_repo.exists(property_id):
            raise NotFoundError("Property", str(property_id))
        return await self.media_repo.get_by_property_id(property_id)

    async def update_media(self, media_id: uuid.UUID, media_data: MediaUpdate, current_user: User) -> PropertyMedia:
        media = await self.get_media(media_id)
        await self._get_managed_property(media.property_id, current_user)

        update_data = media_data.model_dump(exclude_unset=True)
        if not update_data:
            raise ValidationError("No valid fields provided for update")

        try:
            return await self.media_repo.update(media_id, update_data)
        except ValueError as e:
            raise await self._reject(e)

    async def set_main_image(self, property_id: uuid.UUID, media_id: uuid.UUID, current_user: User) -> PropertyMedia:
        """
        Make an image the property's main image, demoting the current one.

        Raises:
            NotFoundError: If the media doesn't belong to the property
            BadRequestError: If the media is not an image
        """
        await self._get_managed_property(property_id, current_user)

        media = await self.get_media(media_id)
        if media.property_id != property_id:
            raise NotFoundError("Media", str(media_id))
        if media.media_type != MediaType.IMAGE:
            raise BadRequestError("Only images can be set as the main image")
        if media.is_main_image:
            return media

        try:
            current_main = await self.media_repo.get_main_image(property_id)
            if current_main is not None:
                current_main.is_main_image = False
                # the demotion must reach the database before the promotion is checked
                await self.db.flush()
            media.is_main_image = True
            media = await self.media_repo.save(media)
        except ValueError as e:
            raise await self._reject(e)

        logger.info(f"Media {media_id} is now the main image of property {property_id}")
        return media

    async def reorder_media(self, property_id: uuid.UUID, items: List[MediaReorderItem],
                            current_user: User) -> List[PropertyMedia]:
        """Apply new display orders to a property's media in one commit."""
        await self._get_managed_property(property_id, current_user)

        media_by_id = {m.id: m for m in await self.media_repo.get_by_property_id(property_id)}
        unknown = [str(item.id) for item in items if item.id not in media_by_id]
        if unknown:
            raise NotFoundError("Media", ", ".join(unknown))

        try:
            for item in items:
                media_by_id[item.id].display_order = item.display_order
            await self.db.commit()
        except ValueError as e:
            raise await self._reject(e)

        return await self.media_repo.get_by_property_id(property_id)

    async def get_media_stats(self, property_id: uuid.UUID) -> Dict[str, Any]:
        if not await self.property_repo.exists(property_id):
            raise NotFoundError("Property", str(property_id))

        by_type = await self.media_repo.get_type_statistics(property_id)
        main_image: Optional[PropertyMedia] = await self.media_repo.get_main_image(property_id)
        return {
            "property_id": property_id,
            "total_count": sum(entry["count"] for entry in by_type),
            "total_size": sum(entry["total_size"] for entry in by_type),
            "by_type": by_type,
            "main_image": main_image,
        }

    async def delete_media(self, media_id: uuid.UUID, current_user: User) -> bool:
        media = await self.get_media(media_id)
        await self._get_managed_property(media.property_id, current_user)
        deleted = await self.media_repo.delete(media_id)
        logger.info(f"Media {media_id} deleted by {current_user.email}")
        return deleted

    async def _get_managed_property(self, property_id: uuid.UUID, user: User) -> Property:
        property_obj = await self.property_repo.get_by_id(property_id)
        if property_obj is None:
            raise NotFoundError("Property", str(property_id))
        if property_obj.owner_id != user.id and not user.is_admin:
            raise ForbiddenError("You don't have permission to manage media for this property")
        return property_obj
