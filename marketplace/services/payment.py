"""
Payment service for gateway payment attempts.
Covers initiation, status updates, gateway webhooks and refunds.
"""

from typing import Optional, List, Tuple, Dict, Any
from decimal import Decimal
from sqlalchemy.ext.asyncio import AsyncSession
from marketplace.database import utcnow
from marketplace.repositories.payment import PaymentRepository
from marketplace.repositories.transaction import TransactionRepository
from marketplace.models.payment import Payment, PaymentStatus
from marketplace.models.transaction import Transaction, TransactionType, TransactionStatus
from marketplace.models.user import User
from marketplace.schemas.transaction import PaymentCreate
from marketplace.services.base import BaseService
from marketplace.utils.exceptions import NotFoundError, ForbiddenError, BusinessRuleViolationError
import uuid
import logging

logger = logging.getLogger(__name__)

REFUNDABLE_STATUSES = (PaymentStatus.CAPTURED, PaymentStatus.SETTLED)


class PaymentService(BaseService):
    """
    Payment service; every status change is appended to the payment's audit log by the model.
    """

    def __init__(self, db_session: AsyncSession):
        super().__init__(db_session)
        self.payment_repo = PaymentRepository(db_session)
        self.transaction_repo = TransactionRepository(db_session)

    async def initiate_payment(self, transaction_id: uuid.UUID, payment_data: PaymentCreate,
                               current_user: User) -> Payment:
        """
        Start a payment attempt against a transaction.

        Raises:
            NotFoundError: If the transaction doesn't exist
            ForbiddenError: If the transaction belongs to someone else
            BusinessRuleViolationError: If the transaction is already final
            ValidationError: If card or gateway details are inconsistent
        """
        transaction = await self._get_owned_transaction(transaction_id, current_user)
        if transaction.is_final:
            raise BusinessRuleViolationError(
                "payments require an open transaction",
                f"transaction is {transaction.status.value}"
            )

        create_data = payment_data.model_dump()
        create_data["transaction_id"] = transaction.id
        create_data["created_by"] = current_user.id

        try:
            payment = await self.payment_repo.create(create_data)
        except ValueError as e:
            raise await self._reject(e)

        logger.info(f"Payment {payment.id} initiated via {payment.gateway_provider.value} "
                    f"for transaction {transaction.reference_number}")
        return payment

    async def get_payment(self, payment_id: uuid.UUID, current_user: Optional[User] = None) -> Payment:
        payment = await self.payment_repo.get_by_id(payment_id)
        if payment is None:
            raise NotFoundError("Payment", str(payment_id))
        if current_user is not None:
            await self._get_owned_transaction(payment.transaction_id, current_user)
        return payment

    async def list_for_transaction(self, transaction_id: uuid.UUID, current_user: User) -> List[Payment]:
        await self._get_owned_transaction(transaction_id, current_user)
        return await self.payment_repo.get_by_transaction(transaction_id)

    async def update_status(
        self,
        payment_id: uuid.UUID,
        new_status: PaymentStatus,
        current_user: User,
        gateway_transaction_id: Optional[str] = None
    ) -> Payment:
        """
        Raises:
            InvalidStatusTransitionError: If the move is not in the payment lifecycle
            ValidationError: If a confirmed status lacks a gateway transaction id
        """
        payment = await self.get_payment(payment_id, current_user)
        try:
            if gateway_transaction_id:
                payment.gateway_transaction_id = gateway_transaction_id
            payment.updated_by = current_user.id
            payment.payment_status = new_status
            payment = await self.payment_repo.save(payment)
        except ValueError as e:
            raise await self._reject(e)

        logger.info(f"Payment {payment_id} moved to {new_status.value} by {current_user.id}")
        return payment

    async def record_webhook(
        self,
        payment_id: uuid.UUID,
        reported_status: PaymentStatus,
        payload: Dict[str, Any],
        gateway_transaction_id: Optional[str] = None
    ) -> Payment:
        """
        Apply a gateway callback.
        Repeated deliveries of the current status only bump the attempt counter.

        Raises:
            NotFoundError: If the payment doesn't exist
            InvalidStatusTransitionError: If the reported status is not reachable
        """
        payment = await self.get_payment(payment_id)
        try:
            payment.webhook_received = True
            payment.webhook_attempts = (payment.webhook_attempts or 0) + 1
            payment.webhook_processed_at = utcnow()
            payment.gateway_response = {**(payment.gateway_response or {}), **payload}
            if gateway_transaction_id and not payment.gateway_transaction_id:
                payment.gateway_transaction_id = gateway_transaction_id
            if reported_status != payment.payment_status:
                payment.updated_by = None
                payment.payment_status = reported_status
            payment = await self.payment_repo.save(payment)
        except ValueError as e:
            raise await self._reject(e)

        logger.info(f"Webhook for payment {payment_id}: {reported_status.value} "
                    f"(attempt {payment.webhook_attempts})")
        return payment

    async def refund_payment(
        self,
        payment_id: uuid.UUID,
        current_user: User,
        amount: Optional[Decimal] = None,
        reason: Optional[str] = None
    ) -> Tuple[Payment, Transaction]:
        """
        Refund a captured or settled payment.
        Creates a REFUND transaction linked to the original and marks both refunded in one commit.

        Returns:
            Tuple of (refunded payment, refund transaction)

        Raises:
            BusinessRuleViolationError: If the payment isn't refundable or the amount is too large
        """
        payment = await self.get_payment(payment_id, current_user)
        if payment.payment_status not in REFUNDABLE_STATUSES:
            raise BusinessRuleViolationError(
                "only captured or settled payments can be refunded",
                f"payment is {payment.payment_status.value}"
            )

        original = await self.transaction_repo.get_by_id(payment.transaction_id)
        refund_amount = amount if amount is not None else original.amount
        if refund_amount > original.amount:
            raise BusinessRuleViolationError("refund cannot exceed the original amount",
                                             f"{refund_amount} > {original.amount}")

        try:
            refund = Transaction(
                user_id=original.user_id,
                property_id=original.property_id,
                subscription_id=original.subscription_id,
                transaction_type=TransactionType.REFUND,
                amount=refund_amount,
                currency=original.currency,
                status=TransactionStatus.COMPLETED,
                parent_transaction_id=original.id,
                description=reason or f"Refund of {original.reference_number}",
            )
            self.db.add(refund)

            payment.updated_by = current_user.id
            payment.payment_status = PaymentStatus.REFUNDED
            if original.status == TransactionStatus.COMPLETED:
                original.status = TransactionStatus.REFUNDED

            await self.db.commit()
            await self.db.refresh(payment)
            await self.db.refresh(refund)
        except ValueError as e:
            raise await self._reject(e)

        logger.info(f"Payment {payment_id} refunded: {refund_amount} {original.currency} "
                    f"as {refund.reference_number}")
        return payment, refund

    async def _get_owned_transaction(self, transaction_id: uuid.UUID, user: User) -> Transaction:
        transaction = await self.transaction_repo.get_by_id(transaction_id)
        if transaction is None:
            raise NotFoundError("Transaction", str(transaction_id))
        if transaction.user_id != user.id and not user.is_admin:
            raise ForbiddenError("You don't have access to this transaction")
        return transaction
