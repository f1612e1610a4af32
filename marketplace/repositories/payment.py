"""
Payment repository.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from marketplace.repositories.base import BaseRepository
from marketplace.models.payment import Payment
from typing import Optional, List
import uuid
import logging

logger = logging.getLogger(__name__)


class PaymentRepository(BaseRepository[Payment]):
    """Repository for gateway payment attempts."""

    def __init__(self, db: AsyncSession):
        super().__init__(Payment, db)

    async def get_by_transaction(self, transaction_id: uuid.UUID) -> List[Payment]:
        return await self.get_multi(filters={"transaction_id": transaction_id}, order_by="created_at")

    async def get_by_gateway_transaction_id(self, gateway_transaction_id: str) -> Optional[Payment]:
        return await self.get_by_field("gateway_transaction_id", gateway_transaction_id)
