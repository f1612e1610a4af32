"""
Inquiry repository: per-listing and per-inquirer queries.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from marketplace.repositories.base import BaseRepository
from marketplace.models.inquiry import Inquiry, InquiryStatus, CLOSED_INQUIRY_STATUSES
from typing import Optional, List
import uuid
import logging

logger = logging.getLogger(__name__)


class InquiryRepository(BaseRepository[Inquiry]):
    """Repository for listing inquiries."""

    def __init__(self, db: AsyncSession):
        super().__init__(Inquiry, db)

    async def get_for_listing(
        self,
        listing_id: uuid.UUID,
        status: Optional[InquiryStatus] = None,
        skip: int = 0,
        limit: int = 100
    ) -> List[Inquiry]:
        filters = {"listing_id": listing_id}
        if status:
            filters["status"] = status
        return await self.get_multi(skip=skip, limit=limit, filters=filters)

    async def get_open_for_inquirer(self, inquirer_id: uuid.UUID, skip: int = 0, limit: int = 100) -> List[Inquiry]:
        try:
            query = self._live(
                select(Inquiry)
                .where(Inquiry.inquirer_id == inquirer_id)
                .where(Inquiry.status.notin_(CLOSED_INQUIRY_STATUSES))
            )
            query = query.order_by(Inquiry.created_at.desc()).offset(skip).limit(limit)

            result = await self.db.execute(query)
            return list(result.scalars().all())
        except Exception as e:
            logger.error(f"Failed to get open inquiries for {inquirer_id}: {e}")
            raise
