"""
Listing repository: status, lister and per-property queries.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from marketplace.repositories.base import BaseRepository
from marketplace.models.listing import Listing, ListingStatus
from typing import Optional, List
from decimal import Decimal
import uuid
import logging

logger = logging.getLogger(__name__)


class ListingRepository(BaseRepository[Listing]):
    """Repository for property listings."""

    def __init__(self, db: AsyncSession):
        super().__init__(Listing, db)

    async def get_by_status(self, status: ListingStatus, skip: int = 0, limit: int = 100) -> List[Listing]:
        return await self.get_multi(skip=skip, limit=limit, filters={"listing_status": status},
                                    order_by="-listed_date")

    async def get_by_lister(self, user_id: uuid.UUID, skip: int = 0, limit: int = 100) -> List[Listing]:
        return await self.get_multi(skip=skip, limit=limit, filters={"listed_by": user_id})

    async def get_active_for_property(self, property_id: uuid.UUID) -> List[Listing]:
        return await self.get_multi(
            filters={"property_id": property_id, "listing_status": ListingStatus.ACTIVE},
            order_by="-listed_date"
        )

    async def get_by_mls_number(self, mls_number: str) -> Optional[Listing]:
        return await self.get_by_field("mls_number", mls_number)

    async def search(
        self,
        status: Optional[ListingStatus] = None,
        min_price: Optional[Decimal] = None,
        max_price: Optional[Decimal] = None,
        skip: int = 0,
        limit: int = 20
    ) -> List[Listing]:
        """
        Filter live listings by status and price band, newest first.

        Args:
            status: Optional listing status
            min_price: Inclusive lower bound on listing price
            max_price: Inclusive upper bound on listing price
            skip: Pagination offset
            limit: Page size

        Returns:
            Matching listings
        """
        try:
            query = self._live(select(Listing))
            if status:
                query = query.where(Listing.listing_status == status)
            if min_price is not None:
                query = query.where(Listing.listing_price >= min_price)
            if max_price is not None:
                query = query.where(Listing.listing_price <= max_price)
            query = query.order_by(Listing.listed_date.desc()).offset(skip).limit(limit)

            result = await self.db.execute(query)
            return list(result.scalars().all())
        except Exception as e:
            logger.error(f"Failed to search listings: {e}")
            raise
