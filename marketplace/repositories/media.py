"""
Property media repository for main-image and display-order queries.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from marketplace.repositories.base import BaseRepository
from marketplace.models.media import PropertyMedia
from typing import Optional, List, Dict, Any
import uuid
import logging

logger = logging.getLogger(__name__)


class PropertyMediaRepository(BaseRepository[PropertyMedia]):
    """Repository for property media records."""

    def __init__(self, db: AsyncSession):
        super().__init__(PropertyMedia, db)

    async def get_by_property_id(self, property_id: uuid.UUID) -> List[PropertyMedia]:
        """
        Get all live media for a property, main image first, then by display order.

        Args:
            property_id: UUID of the property

        Returns:
            Ordered media list
        """
        try:
            query = (
                self._live(select(PropertyMedia))
                .where(PropertyMedia.property_id == property_id)
                .order_by(
                    PropertyMedia.is_main_image.desc(),
                    PropertyMedia.display_order.asc(),
                    PropertyMedia.created_at.asc()
                )
            )
            result = await self.db.execute(query)
            media = list(result.scalars().all())
            logger.debug(f"Retrieved {len(media)} media items for property {property_id}")
            return media
        except Exception as e:
            logger.error(f"Failed to get media for property {property_id}: {e}")
            raise

    async def get_main_image(self, property_id: uuid.UUID) -> Optional[PropertyMedia]:
        try:
            query = self._live(select(PropertyMedia)).where(
                PropertyMedia.property_id == property_id,
                PropertyMedia.is_main_image.is_(True)
            )
            result = await self.db.execute(query)
            return result.scalars().first()
        except Exception as e:
            logger.error(f"Failed to get main image for property {property_id}: {e}")
            raise

    async def count_by_property_id(self, property_id: uuid.UUID) -> int:
        return await self.count(filters={"property_id": property_id})

    async def get_type_statistics(self, property_id: uuid.UUID) -> List[Dict[str, Any]]:
        """Per media type count and total size for a property."""
        try:
            query = (
                self._live(select(
                    PropertyMedia.media_type,
                    func.count(PropertyMedia.id),
                    func.coalesce(func.sum(PropertyMedia.file_size), 0)
                ))
                .where(PropertyMedia.property_id == property_id)
                .group_by(PropertyMedia.media_type)
            )
            result = await self.db.execute(query)
            return [
                {"media_type": media_type, "count": count, "total_size": int(total_size)}
                for media_type, count, total_size in result.all()
            ]
        except Exception as e:
            logger.error(f"Failed to get media statistics for property {property_id}: {e}")
            raise
