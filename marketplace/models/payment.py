"""
Gateway payment attempts belonging to a transaction.
Every status change is appended to the payment's audit log.
"""

from sqlalchemy import (
    String, Integer, Numeric, Boolean, DateTime, JSON, ForeignKey, Index,
    Enum as SQLEnum, Uuid, event
)
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates
from marketplace.database import Base, SoftDeleteMixin, utcnow
from marketplace.models.lifecycle import attribute_change, check_transition
from marketplace.utils.validators import ValidationUtils
from datetime import datetime
from decimal import Decimal
import enum
import logging
import uuid
from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from marketplace.models.transaction import Transaction

logger = logging.getLogger(__name__)


class GatewayProvider(str, enum.Enum):
    STRIPE = "STRIPE"
    PAYPAL = "PAYPAL"
    RAZORPAY = "RAZORPAY"
    FLUTTERWAVE = "FLUTTERWAVE"
    PAYSTACK = "PAYSTACK"
    BANK_TRANSFER = "BANK_TRANSFER"
    CASH = "CASH"


class PaymentMethod(str, enum.Enum):
    CREDIT_CARD = "CREDIT_CARD"
    DEBIT_CARD = "DEBIT_CARD"
    BANK_TRANSFER = "BANK_TRANSFER"
    DIGITAL_WALLET = "DIGITAL_WALLET"
    CASH = "CASH"
    CHECK = "CHECK"


class PaymentStatus(str, enum.Enum):
    INITIATED = "INITIATED"
    PENDING = "PENDING"
    AUTHORIZED = "AUTHORIZED"
    CAPTURED = "CAPTURED"
    SETTLED = "SETTLED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"


PAYMENT_TRANSITIONS = {
    PaymentStatus.INITIATED: {PaymentStatus.PENDING, PaymentStatus.FAILED, PaymentStatus.CANCELLED},
    PaymentStatus.PENDING: {PaymentStatus.AUTHORIZED, PaymentStatus.FAILED, PaymentStatus.CANCELLED},
    PaymentStatus.AUTHORIZED: {PaymentStatus.CAPTURED, PaymentStatus.FAILED, PaymentStatus.CANCELLED},
    PaymentStatus.CAPTURED: {PaymentStatus.SETTLED, PaymentStatus.REFUNDED},
    PaymentStatus.SETTLED: {PaymentStatus.REFUNDED},
    PaymentStatus.FAILED: {PaymentStatus.PENDING},
    PaymentStatus.CANCELLED: set(),
    PaymentStatus.REFUNDED: set(),
}

CARD_METHODS = {PaymentMethod.CREDIT_CARD, PaymentMethod.DEBIT_CARD}
CARDLESS_METHODS = {PaymentMethod.CASH, PaymentMethod.BANK_TRANSFER}
ONLINE_GATEWAYS = {
    GatewayProvider.STRIPE, GatewayProvider.PAYPAL, GatewayProvider.RAZORPAY,
    GatewayProvider.FLUTTERWAVE, GatewayProvider.PAYSTACK,
}
GATEWAY_CONFIRMED_STATUSES = {PaymentStatus.AUTHORIZED, PaymentStatus.CAPTURED, PaymentStatus.SETTLED}
CARD_FIELDS = ("card_last4", "card_brand", "card_expiry_month", "card_expiry_year")

# Stage timestamps implied by reaching a status
STAGE_TIMESTAMPS = {
    PaymentStatus.AUTHORIZED: ("authorized_at",),
    PaymentStatus.CAPTURED: ("authorized_at", "captured_at"),
    PaymentStatus.SETTLED: ("authorized_at", "captured_at", "settled_at"),
    PaymentStatus.FAILED: ("failed_at",),
}


class Payment(SoftDeleteMixin, Base):
    """Single attempt to settle a transaction through a payment gateway."""

    __tablename__ = "payments"

    transaction_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("transactions.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    # Gateway
    gateway_provider: Mapped[GatewayProvider] = mapped_column(SQLEnum(GatewayProvider), nullable=False)
    gateway_transaction_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, index=True)
    gateway_reference: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    gateway_response: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    payment_method: Mapped[PaymentMethod] = mapped_column(SQLEnum(PaymentMethod), nullable=False)
    payment_method_details: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    # Fees
    gateway_fees: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    processing_fees: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))

    payment_status: Mapped[PaymentStatus] = mapped_column(
        SQLEnum(PaymentStatus),
        nullable=False,
        default=PaymentStatus.INITIATED,
        index=True,
        active_history=True
    )

    # Stage timestamps
    initiated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    authorized_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    captured_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    settled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    failed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Risk and client context
    ip_address: Mapped[Optional[str]] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)
    device_fingerprint: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    risk_score: Mapped[Optional[Decimal]] = mapped_column(Numeric(5, 2), nullable=True)
    billing_address: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    # Card details
    card_last4: Mapped[Optional[str]] = mapped_column(String(4), nullable=True)
    card_brand: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    card_expiry_month: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    card_expiry_year: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # Webhooks
    webhook_received: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    webhook_processed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    webhook_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Audit
    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    updated_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    audit_log: Mapped[List[dict]] = mapped_column(JSON, nullable=False, default=list)

    transaction: Mapped["Transaction"] = relationship("Transaction", back_populates="payments")

    def __repr__(self) -> str:
        return f"<Payment(id={self.id}, provider={self.gateway_provider}, status={self.payment_status})>"

    @validates("gateway_provider")
    def _validate_provider(self, key, value):
        ValidationUtils.require(value, "Gateway provider is required")
        return ValidationUtils.to_enum(value, GatewayProvider, "gateway provider")

    @validates("payment_method")
    def _validate_method(self, key, value):
        ValidationUtils.require(value, "Payment method is required")
        return ValidationUtils.to_enum(value, PaymentMethod, "payment method")

    @validates("payment_status")
    def _validate_status(self, key, value):
        return ValidationUtils.to_enum(value, PaymentStatus, "payment status")

    @validates("gateway_reference")
    def _validate_gateway_reference(self, key, value):
        return ValidationUtils.length(value, "Gateway reference", min_length=1, max_length=100)

    @validates("gateway_fees", "processing_fees")
    def _validate_fees(self, key, value):
        label = key.replace("_", " ").capitalize()
        value = ValidationUtils.to_decimal(value, label)
        return ValidationUtils.number_range(value, label, min_value=0,
                                            min_message=f"{label} cannot be negative")

    @validates("ip_address")
    def _validate_ip(self, key, value):
        return ValidationUtils.ip_address(value)

    @validates("user_agent")
    def _validate_user_agent(self, key, value):
        return ValidationUtils.length(value, "User agent", max_length=1000)

    @validates("device_fingerprint")
    def _validate_device_fingerprint(self, key, value):
        return ValidationUtils.length(value, "Device fingerprint", min_length=1, max_length=255)

    @validates("risk_score")
    def _validate_risk_score(self, key, value):
        value = ValidationUtils.to_decimal(value, "Risk score")
        return ValidationUtils.number_range(
            value, "Risk score", min_value=0, max_value=100,
            min_message="Risk score must be between 0 and 100",
            max_message="Risk score must be between 0 and 100"
        )

    @validates("card_last4")
    def _validate_card_last4(self, key, value):
        if value is None:
            return None
        if len(value) != 4 or not ValidationUtils.DIGITS_PATTERN.match(value):
            raise ValueError("Card last4 must be exactly 4 digits")
        return value

    @validates("card_brand")
    def _validate_card_brand(self, key, value):
        return ValidationUtils.length(value, "Card brand", min_length=1, max_length=20)

    @validates("card_expiry_month")
    def _validate_card_expiry_month(self, key, value):
        return ValidationUtils.number_range(
            value, "Card expiry month", min_value=1, max_value=12,
            min_message="Card expiry month must be between 1 and 12",
            max_message="Card expiry month must be between 1 and 12"
        )

    @validates("card_expiry_year")
    def _validate_card_expiry_year(self, key, value):
        current_year = utcnow().year
        return ValidationUtils.number_range(
            value, "Card expiry year", min_value=current_year, max_value=current_year + 20,
            min_message="Card has expired",
            max_message="Card expiry year is too far in the future"
        )

    @validates("webhook_attempts")
    def _validate_webhook_attempts(self, key, value):
        return ValidationUtils.number_range(value, "Webhook attempts", min_value=0)

    def validate_method_rules(self) -> None:
        """
        Cross-field rules between provider, method, card details and status.

        Raises:
            ValueError: If the combination is not allowed
        """
        if self.payment_method in CARD_METHODS:
            missing = [name for name in CARD_FIELDS if getattr(self, name) is None]
            if missing:
                raise ValueError(f"Card payments require card details: {', '.join(missing)}")

        if self.payment_method in CARDLESS_METHODS:
            if any(getattr(self, name) is not None for name in CARD_FIELDS):
                raise ValueError(f"{self.payment_method.value} payments cannot carry card details")

        if self.gateway_provider in ONLINE_GATEWAYS and not self.gateway_transaction_id:
            raise ValueError(f"{self.gateway_provider.value} payments require a gateway transaction ID")

        if (self.payment_status in GATEWAY_CONFIRMED_STATUSES
                and self.gateway_provider != GatewayProvider.CASH
                and not self.gateway_transaction_id):
            raise ValueError(f"{self.payment_status.value} payments require a gateway transaction ID")

    def stamp_stage(self, status: PaymentStatus, backfill: bool = False) -> None:
        now = utcnow()
        stages = STAGE_TIMESTAMPS.get(status, ())
        if not backfill:
            stages = stages[-1:]
        for attribute in stages:
            if getattr(self, attribute) is None or not backfill:
                setattr(self, attribute, now)

    def audit_entry(self, previous_status: Optional[PaymentStatus], actor: Optional[uuid.UUID]) -> dict:
        return {
            "timestamp": utcnow().isoformat(),
            "status": self.payment_status.value,
            "previous_status": previous_status.value if previous_status is not None else None,
            "updated_by": str(actor) if actor is not None else "system",
        }

    @property
    def total_fees(self) -> Decimal:
        return (self.gateway_fees or Decimal("0")) + (self.processing_fees or Decimal("0"))

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "transaction_id": str(self.transaction_id),
            "gateway_provider": self.gateway_provider.value,
            "gateway_transaction_id": self.gateway_transaction_id,
            "payment_method": self.payment_method.value,
            "payment_status": self.payment_status.value,
            "gateway_fees": float(self.gateway_fees),
            "processing_fees": float(self.processing_fees),
            "card_last4": self.card_last4,
            "card_brand": self.card_brand,
            "webhook_attempts": self.webhook_attempts,
            "audit_log": list(self.audit_log or []),
            "initiated_at": self.initiated_at.isoformat() if self.initiated_at else None,
            "captured_at": self.captured_at.isoformat() if self.captured_at else None,
        }


@event.listens_for(Payment, "before_insert")
def payment_before_insert(mapper, connection, target: Payment) -> None:
    target.validate_method_rules()
    target.initiated_at = utcnow()
    target.stamp_stage(target.payment_status, backfill=True)
    target.audit_log = [target.audit_entry(None, target.created_by)]


@event.listens_for(Payment, "before_update")
def payment_before_update(mapper, connection, target: Payment) -> None:
    change = attribute_change(target, "payment_status")
    if change:
        previous, current = change
        check_transition("payment", PAYMENT_TRANSITIONS, previous, current, initial=PaymentStatus.INITIATED)
        target.stamp_stage(current)
        target.audit_log = [*(target.audit_log or []), target.audit_entry(previous, target.updated_by)]
    target.validate_method_rules()


transaction_status_index = Index(
    'idx_payments_transaction_status',
    Payment.transaction_id,
    Payment.payment_status
)
