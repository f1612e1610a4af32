"""
Transaction service for purchases, commissions, subscription charges and refunds.
"""

from typing import Optional, List
from sqlalchemy.ext.asyncio import AsyncSession
from marketplace.repositories.transaction import TransactionRepository
from marketplace.repositories.property import PropertyRepository
from marketplace.repositories.subscription import UserSubscriptionRepository
from marketplace.repositories.user import UserRepository
from marketplace.models.transaction import Transaction, TransactionStatus
from marketplace.models.user import User
from marketplace.schemas.transaction import TransactionCreate
from marketplace.services.base import BaseService
from marketplace.utils.exceptions import NotFoundError, ForbiddenError
import uuid
import logging

logger = logging.getLogger(__name__)


class TransactionService(BaseService):
    """
    Transaction service; type rules, reference numbers and status timestamps live on the model.
    """

    def __init__(self, db_session: AsyncSession):
        super().__init__(db_session)
        self.transaction_repo = TransactionRepository(db_session)
        self.property_repo = PropertyRepository(db_session)
        self.subscription_repo = UserSubscriptionRepository(db_session)
        self.user_repo = UserRepository(db_session)

    async def create_transaction(self, transaction_data: TransactionCreate, current_user: User) -> Transaction:
        """
        Record a new transaction for the acting user.

        Raises:
            NotFoundError: If a referenced property, subscription or recipient is missing
            ForbiddenError: If the subscription belongs to someone else
            ValidationError: If the type rules reject the combination
        """
        if transaction_data.property_id and not await self.property_repo.exists(transaction_data.property_id):
            raise NotFoundError("Property", str(transaction_data.property_id))

        if transaction_data.subscription_id:
            subscription = await self.subscription_repo.get_by_id(transaction_data.subscription_id)
            if subscription is None:
                raise NotFoundError("Subscription", str(transaction_data.subscription_id))
            if subscription.user_id != current_user.id and not current_user.is_admin:
                raise ForbiddenError("Subscription belongs to another user")

        recipient_id = transaction_data.commission_recipient_id
        if recipient_id and not await self.user_repo.exists(recipient_id):
            raise NotFoundError("User", str(recipient_id))

        create_data = transaction_data.model_dump()
        create_data["user_id"] = current_user.id

        try:
            transaction = await self.transaction_repo.create(create_data)
        except ValueError as e:
            raise await self._reject(e)

        logger.info(f"Transaction {transaction.reference_number} created: "
                    f"{transaction.transaction_type.value} {transaction.amount} {transaction.currency}")
        return transaction

    async def get_transaction(self, transaction_id: uuid.UUID, current_user: Optional[User] = None) -> Transaction:
        transaction = await self.transaction_repo.get_by_id(transaction_id)
        if transaction is None:
            raise NotFoundError("Transaction", str(transaction_id))
        if current_user is not None:
            self._ensure_can_view(transaction, current_user)
        return transaction

    async def get_by_reference(self, reference_number: str, current_user: User) -> Transaction:
        transaction = await self.transaction_repo.get_by_reference_number(reference_number)
        if transaction is None:
            raise NotFoundError("Transaction", reference_number)
        self._ensure_can_view(transaction, current_user)
        return transaction

    async def list_for_user(self, user_id: uuid.UUID, status: Optional[TransactionStatus] = None,
                            skip: int = 0, limit: int = 100) -> List[Transaction]:
        return await self.transaction_repo.get_by_user(user_id, status=status, skip=skip, limit=limit)

    async def get_refunds(self, transaction_id: uuid.UUID, current_user: User) -> List[Transaction]:
        await self.get_transaction(transaction_id, current_user)
        return await self.transaction_repo.get_children(transaction_id)

    async def update_status(self, transaction_id: uuid.UUID, new_status: TransactionStatus,
                            current_user: User) -> Transaction:
        """
        Raises:
            InvalidStatusTransitionError: If the move is not in the transaction lifecycle
        """
        transaction = await self.get_transaction(transaction_id, current_user)
        try:
            transaction.status = new_status
            transaction = await self.transaction_repo.save(transaction)
        except ValueError as e:
            raise await self._reject(e)

        logger.info(f"Transaction {transaction.reference_number} moved to {new_status.value}")
        return transaction

    @staticmethod
    def _ensure_can_view(transaction: Transaction, user: User) -> None:
        if user.is_admin or user.id in (transaction.user_id, transaction.commission_recipient_id):
            return
        raise ForbiddenError("You don't have access to this transaction")
