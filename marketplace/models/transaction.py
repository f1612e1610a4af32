"""
Financial transactions: subscription payments, purchases, commissions and refunds.
"""

from sqlalchemy import (
    String, Text, Numeric, DateTime, JSON, ForeignKey, Index, Enum as SQLEnum, Uuid, event
)
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates
from marketplace.config import settings
from marketplace.database import Base, SoftDeleteMixin, utcnow
from marketplace.models.lifecycle import attribute_change, check_transition
from marketplace.utils.validators import ValidationUtils
from datetime import datetime
from decimal import Decimal
import enum
import logging
import secrets
import time
import uuid
from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from marketplace.models.payment import Payment
    from marketplace.models.property import Property
    from marketplace.models.subscription import UserSubscription
    from marketplace.models.user import User

logger = logging.getLogger(__name__)

SUPPORTED_CURRENCIES = ("USD", "EUR", "GBP", "CAD", "AUD", "JPY", "INR", "NGN", "GHS", "KES", "ZAR")


class TransactionType(str, enum.Enum):
    SUBSCRIPTION_PAYMENT = "SUBSCRIPTION_PAYMENT"
    PROPERTY_PURCHASE = "PROPERTY_PURCHASE"
    COMMISSION_PAYMENT = "COMMISSION_PAYMENT"
    REFUND = "REFUND"
    DEPOSIT = "DEPOSIT"
    WITHDRAWAL = "WITHDRAWAL"


class TransactionStatus(str, enum.Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"


TRANSACTION_TRANSITIONS = {
    TransactionStatus.PENDING: {TransactionStatus.PROCESSING, TransactionStatus.CANCELLED},
    TransactionStatus.PROCESSING: {TransactionStatus.COMPLETED, TransactionStatus.FAILED,
                                   TransactionStatus.CANCELLED},
    TransactionStatus.COMPLETED: {TransactionStatus.REFUNDED},
    TransactionStatus.FAILED: {TransactionStatus.PENDING},
    TransactionStatus.CANCELLED: set(),
    TransactionStatus.REFUNDED: set(),
}

# Timestamps stamped when a transaction enters a status
STATUS_TIMESTAMPS = {
    TransactionStatus.PROCESSING: ("processed_at",),
    TransactionStatus.COMPLETED: ("processed_at", "completed_at"),
    TransactionStatus.FAILED: ("failed_at",),
    TransactionStatus.CANCELLED: ("cancelled_at",),
}


def generate_reference_number() -> str:
    """Reference of the form TXN-<epoch ms>-<8 uppercase hex chars>."""
    return f"TXN-{int(time.time() * 1000)}-{secrets.token_hex(4).upper()}"


class Transaction(SoftDeleteMixin, Base):
    """Money movement recorded against a user, optionally tied to a property or subscription."""

    __tablename__ = "transactions"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    property_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("properties.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    subscription_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("user_subscriptions.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    transaction_type: Mapped[TransactionType] = mapped_column(SQLEnum(TransactionType), nullable=False, index=True)

    # Amounts
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    original_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    exchange_rate: Mapped[Decimal] = mapped_column(Numeric(12, 6), nullable=False, default=Decimal("1"))

    status: Mapped[TransactionStatus] = mapped_column(
        SQLEnum(TransactionStatus),
        nullable=False,
        default=TransactionStatus.PENDING,
        index=True,
        active_history=True
    )

    reference_number: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    external_transaction_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)
    parent_transaction_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("transactions.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    extra_metadata: Mapped[dict] = mapped_column("metadata", JSON, nullable=False, default=dict)

    # Commission
    commission_rate: Mapped[Optional[Decimal]] = mapped_column(Numeric(5, 2), nullable=True)
    commission_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    commission_recipient_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True
    )

    # Status timestamps
    processed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    failed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Relationships
    user: Mapped["User"] = relationship("User", foreign_keys=[user_id])
    commission_recipient: Mapped[Optional["User"]] = relationship("User", foreign_keys=[commission_recipient_id])
    property_rel: Mapped[Optional["Property"]] = relationship("Property")
    subscription: Mapped[Optional["UserSubscription"]] = relationship(
        "UserSubscription", back_populates="transactions"
    )
    parent_transaction: Mapped[Optional["Transaction"]] = relationship(
        "Transaction", remote_side="Transaction.id", back_populates="child_transactions"
    )
    child_transactions: Mapped[List["Transaction"]] = relationship(
        "Transaction", back_populates="parent_transaction"
    )
    payments: Mapped[List["Payment"]] = relationship(
        "Payment", back_populates="transaction", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Transaction(id={self.id}, ref={self.reference_number}, status={self.status})>"

    @validates("transaction_type")
    def _validate_type(self, key, value):
        ValidationUtils.require(value, "Transaction type is required")
        return ValidationUtils.to_enum(value, TransactionType, "transaction type")

    @validates("status")
    def _validate_status(self, key, value):
        return ValidationUtils.to_enum(value, TransactionStatus, "transaction status")

    @validates("amount", "original_amount")
    def _validate_amounts(self, key, value):
        label = key.replace("_", " ").capitalize()
        value = ValidationUtils.to_decimal(value, label)
        if key == "amount":
            ValidationUtils.require(value, "Amount is required")
        return ValidationUtils.number_range(value, label, min_value=Decimal("0.01"),
                                            min_message=f"{label} must be at least 0.01")

    @validates("currency")
    def _validate_currency(self, key, value):
        value = ValidationUtils.non_empty(value, "Currency is required").upper()
        return ValidationUtils.one_of(value, SUPPORTED_CURRENCIES, f"Unsupported currency '{value}'")

    @validates("exchange_rate")
    def _validate_exchange_rate(self, key, value):
        value = ValidationUtils.to_decimal(value, "Exchange rate")
        return ValidationUtils.number_range(value, "Exchange rate", min_value=Decimal("0.000001"),
                                            min_message="Exchange rate must be positive")

    @validates("reference_number")
    def _validate_reference_number(self, key, value):
        return ValidationUtils.length(value, "Reference number", max_length=50)

    @validates("external_transaction_id")
    def _validate_external_id(self, key, value):
        return ValidationUtils.length(value, "External transaction ID", max_length=100)

    @validates("description")
    def _validate_description(self, key, value):
        return ValidationUtils.length(value, "Description", max_length=1000)

    @validates("notes")
    def _validate_notes(self, key, value):
        return ValidationUtils.length(value, "Notes", max_length=2000)

    @validates("commission_rate")
    def _validate_commission_rate(self, key, value):
        value = ValidationUtils.to_decimal(value, "Commission rate")
        return ValidationUtils.number_range(
            value, "Commission rate", min_value=0, max_value=100,
            max_message="Commission rate cannot exceed 100%"
        )

    @validates("commission_amount")
    def _validate_commission_amount(self, key, value):
        value = ValidationUtils.to_decimal(value, "Commission amount")
        return ValidationUtils.number_range(value, "Commission amount", min_value=0,
                                            min_message="Commission amount cannot be negative")

    def validate_type_rules(self) -> None:
        """
        Enforce the links each transaction type needs.

        Raises:
            ValueError: If required references are missing or forbidden ones are set
        """
        if self.transaction_type == TransactionType.SUBSCRIPTION_PAYMENT:
            if self.subscription_id is None:
                raise ValueError("Subscription payments require a subscription")
            if self.property_id is not None:
                raise ValueError("Subscription payments cannot reference a property")
        elif self.transaction_type == TransactionType.PROPERTY_PURCHASE:
            if self.property_id is None:
                raise ValueError("Property purchases require a property")
            if self.subscription_id is not None:
                raise ValueError("Property purchases cannot reference a subscription")
        elif self.transaction_type == TransactionType.COMMISSION_PAYMENT:
            if self.commission_recipient_id is None:
                raise ValueError("Commission payments require a commission recipient")
            if self.commission_rate is None and self.commission_amount is None:
                raise ValueError("Commission payments require a commission rate or amount")

        if self.commission_rate is not None and self.commission_amount is not None:
            expected = self.amount * self.commission_rate / 100
            if abs(expected - self.commission_amount) > Decimal(str(settings.commission_tolerance)):
                raise ValueError("Commission amount does not match commission rate")

    def stamp_status(self, status: TransactionStatus) -> None:
        now = utcnow()
        for attribute in STATUS_TIMESTAMPS.get(status, ()):
            setattr(self, attribute, now)

    @property
    def is_final(self) -> bool:
        return not TRANSACTION_TRANSITIONS[self.status]

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "user_id": str(self.user_id),
            "property_id": str(self.property_id) if self.property_id else None,
            "subscription_id": str(self.subscription_id) if self.subscription_id else None,
            "transaction_type": self.transaction_type.value,
            "amount": float(self.amount),
            "currency": self.currency,
            "status": self.status.value,
            "reference_number": self.reference_number,
            "parent_transaction_id": str(self.parent_transaction_id) if self.parent_transaction_id else None,
            "commission_rate": float(self.commission_rate) if self.commission_rate is not None else None,
            "commission_amount": float(self.commission_amount) if self.commission_amount is not None else None,
            "processed_at": self.processed_at.isoformat() if self.processed_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "created_at": self.created_at.isoformat(),
        }


@event.listens_for(Transaction, "before_insert")
def transaction_before_insert(mapper, connection, target: Transaction) -> None:
    if not target.reference_number:
        target.reference_number = generate_reference_number()
    target.validate_type_rules()
    target.stamp_status(target.status)


@event.listens_for(Transaction, "before_update")
def transaction_before_update(mapper, connection, target: Transaction) -> None:
    change = attribute_change(target, "status")
    if change:
        check_transition("transaction", TRANSACTION_TRANSITIONS, *change, initial=TransactionStatus.PENDING)
        target.stamp_status(change[1])
    target.validate_type_rules()


user_status_index = Index(
    'idx_transactions_user_status',
    Transaction.user_id,
    Transaction.status
)
