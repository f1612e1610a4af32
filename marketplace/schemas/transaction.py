"""
Pydantic schemas for transactions and payments.
"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Dict, Any
from datetime import datetime
from decimal import Decimal
from marketplace.models.transaction import TransactionType, TransactionStatus
from marketplace.models.payment import GatewayProvider, PaymentMethod, PaymentStatus
import uuid


class TransactionCreate(BaseModel):
    transaction_type: TransactionType = Field(..., example="PROPERTY_PURCHASE")
    amount: Decimal = Field(..., ge=Decimal("0.01"), example=250000.00)
    currency: str = Field("USD", min_length=3, max_length=3)
    property_id: Optional[uuid.UUID] = None
    subscription_id: Optional[uuid.UUID] = None
    original_amount: Optional[Decimal] = Field(None, ge=Decimal("0.01"))
    exchange_rate: Decimal = Field(Decimal("1"), gt=0)
    external_transaction_id: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)
    notes: Optional[str] = Field(None, max_length=2000)
    extra_metadata: Dict[str, Any] = Field(default_factory=dict, alias="metadata")
    commission_rate: Optional[Decimal] = Field(None, ge=0, le=100)
    commission_amount: Optional[Decimal] = Field(None, ge=0)
    commission_recipient_id: Optional[uuid.UUID] = None

    @field_validator('currency')
    @classmethod
    def validate_currency(cls, v):
        return v.upper()

    class Config:
        populate_by_name = True


class TransactionStatusUpdate(BaseModel):
    status: TransactionStatus = Field(..., example="PROCESSING")


class TransactionResponse(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    property_id: Optional[uuid.UUID] = None
    subscription_id: Optional[uuid.UUID] = None
    transaction_type: TransactionType
    amount: Decimal
    currency: str
    status: TransactionStatus
    reference_number: str
    parent_transaction_id: Optional[uuid.UUID] = None
    description: Optional[str] = None
    commission_rate: Optional[Decimal] = None
    commission_amount: Optional[Decimal] = None
    commission_recipient_id: Optional[uuid.UUID] = None
    processed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    failed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class PaymentCreate(BaseModel):
    gateway_provider: GatewayProvider = Field(..., example="PAYSTACK")
    payment_method: PaymentMethod = Field(..., example="DEBIT_CARD")
    gateway_transaction_id: Optional[str] = Field(None, max_length=255)
    gateway_reference: Optional[str] = Field(None, min_length=1, max_length=100)
    payment_method_details: Dict[str, Any] = Field(default_factory=dict)
    gateway_fees: Decimal = Field(Decimal("0"), ge=0)
    processing_fees: Decimal = Field(Decimal("0"), ge=0)
    ip_address: Optional[str] = None
    user_agent: Optional[str] = Field(None, max_length=1000)
    device_fingerprint: Optional[str] = Field(None, min_length=1, max_length=255)
    risk_score: Optional[Decimal] = Field(None, ge=0, le=100)
    billing_address: Optional[Dict[str, Any]] = None
    card_last4: Optional[str] = Field(None, min_length=4, max_length=4, example="4242")
    card_brand: Optional[str] = Field(None, min_length=1, max_length=20, example="visa")
    card_expiry_month: Optional[int] = Field(None, ge=1, le=12)
    card_expiry_year: Optional[int] = None


class PaymentStatusUpdate(BaseModel):
    status: PaymentStatus = Field(..., example="AUTHORIZED")
    gateway_transaction_id: Optional[str] = Field(None, max_length=255)


class WebhookEvent(BaseModel):
    """Gateway callback reporting a payment's status."""

    status: PaymentStatus
    gateway_transaction_id: Optional[str] = Field(None, max_length=255)
    payload: Dict[str, Any] = Field(default_factory=dict)


class RefundRequest(BaseModel):
    amount: Optional[Decimal] = Field(None, ge=Decimal("0.01"), description="Defaults to the full amount")
    reason: Optional[str] = Field(None, max_length=1000)


class PaymentResponse(BaseModel):
    id: uuid.UUID
    transaction_id: uuid.UUID
    gateway_provider: GatewayProvider
    gateway_transaction_id: Optional[str] = None
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    gateway_fees: Decimal
    processing_fees: Decimal
    card_last4: Optional[str] = None
    card_brand: Optional[str] = None
    initiated_at: Optional[datetime] = None
    authorized_at: Optional[datetime] = None
    captured_at: Optional[datetime] = None
    settled_at: Optional[datetime] = None
    failed_at: Optional[datetime] = None
    webhook_received: bool
    webhook_attempts: int
    audit_log: List[Dict[str, Any]] = Field(default_factory=list)
    created_at: datetime

    class Config:
        from_attributes = True


class RefundResponse(BaseModel):
    payment: PaymentResponse
    refund_transaction: TransactionResponse
