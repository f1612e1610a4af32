"""
Transaction repository.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from marketplace.repositories.base import BaseRepository
from marketplace.models.transaction import Transaction, TransactionStatus
from typing import Optional, List
import uuid
import logging

logger = logging.getLogger(__name__)


class TransactionRepository(BaseRepository[Transaction]):
    """Repository for financial transactions."""

    def __init__(self, db: AsyncSession):
        super().__init__(Transaction, db)

    async def get_by_user(
        self,
        user_id: uuid.UUID,
        status: Optional[TransactionStatus] = None,
        skip: int = 0,
        limit: int = 100
    ) -> List[Transaction]:
        filters = {"user_id": user_id}
        if status:
            filters["status"] = status
        return await self.get_multi(skip=skip, limit=limit, filters=filters)

    async def get_by_reference_number(self, reference_number: str) -> Optional[Transaction]:
        return await self.get_by_field("reference_number", reference_number)

    async def get_children(self, parent_id: uuid.UUID) -> List[Transaction]:
        return await self.get_multi(filters={"parent_transaction_id": parent_id}, order_by="created_at")
