"""
Property repository with owner lookups and radius search.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_
from marketplace.repositories.base import BaseRepository
from marketplace.models.property import Property, PropertyType, EARTH_RADIUS_KM
from typing import Optional, List, Tuple
import math
import uuid
import logging

logger = logging.getLogger(__name__)


class PropertyRepository(BaseRepository[Property]):
    """Repository for physical property records."""

    def __init__(self, db: AsyncSession):
        super().__init__(Property, db)

    async def get_by_owner(self, owner_id: uuid.UUID, skip: int = 0, limit: int = 100) -> List[Property]:
        return await self.get_multi(skip=skip, limit=limit, filters={"owner_id": owner_id})

    async def find_within_radius(
        self,
        latitude: float,
        longitude: float,
        radius_km: float = 5.0,
        limit: int = 20,
        property_type: Optional[PropertyType] = None
    ) -> List[Tuple[Property, float]]:
        """
        Get properties within a radius of a coordinate.
        A bounding box narrows the query; the haversine distance decides membership.

        Args:
            latitude: Center latitude
            longitude: Center longitude
            radius_km: Search radius in kilometers
            limit: Maximum number of properties to return
            property_type: Optional property type filter

        Returns:
            (property, distance_km) pairs ordered by distance
        """
        try:
            lat_delta = math.degrees(radius_km / EARTH_RADIUS_KM)
            cos_lat = max(math.cos(math.radians(latitude)), 1e-6)
            lon_delta = min(180.0, math.degrees(radius_km / (EARTH_RADIUS_KM * cos_lat)))

            query = select(Property).where(
                and_(
                    Property.latitude.between(latitude - lat_delta, latitude + lat_delta),
                    Property.longitude.between(longitude - lon_delta, longitude + lon_delta),
                )
            )
            if property_type:
                query = query.where(Property.property_type == property_type)

            result = await self.db.execute(query)
            candidates = result.scalars().all()

            nearby = []
            for candidate in candidates:
                distance = candidate.distance_km_to(latitude, longitude)
                if distance <= radius_km:
                    nearby.append((candidate, distance))
            nearby.sort(key=lambda pair: pair[1])

            logger.debug(f"Found {len(nearby)} properties within {radius_km}km")
            return nearby[:limit]
        except Exception as e:
            logger.error(f"Failed to get nearby properties: {e}")
            raise
