"""
Payment API endpoints, including the gateway webhook and refunds.
"""

from fastapi import APIRouter, Depends, status, Path
from typing import List
from uuid import UUID

from marketplace.models.user import User
from marketplace.services.payment import PaymentService
from marketplace.schemas.transaction import (
    PaymentCreate,
    PaymentStatusUpdate,
    PaymentResponse,
    WebhookEvent,
    RefundRequest,
    RefundResponse,
    TransactionResponse
)
from marketplace.schemas.error import get_crud_error_responses
from marketplace.utils.dependencies import get_current_user, get_current_admin_user, get_payment_service


router = APIRouter(prefix="/payments", tags=["Payments"])


@router.post(
    "/transaction/{transaction_id}",
    response_model=PaymentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Initiate a payment for a transaction",
    responses=get_crud_error_responses()
)
async def initiate_payment(
    payment_data: PaymentCreate,
    transaction_id: UUID = Path(..., description="Transaction ID"),
    current_user: User = Depends(get_current_user),
    payment_service: PaymentService = Depends(get_payment_service)
) -> PaymentResponse:
    payment = await payment_service.initiate_payment(transaction_id, payment_data, current_user)
    return PaymentResponse.model_validate(payment)


@router.get(
    "/transaction/{transaction_id}",
    response_model=List[PaymentResponse],
    summary="List payments for a transaction",
    responses=get_crud_error_responses()
)
async def list_payments(
    transaction_id: UUID = Path(..., description="Transaction ID"),
    current_user: User = Depends(get_current_user),
    payment_service: PaymentService = Depends(get_payment_service)
) -> List[PaymentResponse]:
    payments = await payment_service.list_for_transaction(transaction_id, current_user)
    return [PaymentResponse.model_validate(p) for p in payments]


@router.get(
    "/{payment_id}",
    response_model=PaymentResponse,
    summary="Get payment by ID",
    responses=get_crud_error_responses()
)
async def get_payment(
    payment_id: UUID = Path(..., description="Payment ID"),
    current_user: User = Depends(get_current_user),
    payment_service: PaymentService = Depends(get_payment_service)
) -> PaymentResponse:
    return PaymentResponse.model_validate(await payment_service.get_payment(payment_id, current_user))


@router.post(
    "/{payment_id}/status",
    response_model=PaymentResponse,
    summary="Change payment status",
    description="Every change is appended to the payment's audit log.",
    responses=get_crud_error_responses()
)
async def update_payment_status(
    status_data: PaymentStatusUpdate,
    payment_id: UUID = Path(..., description="Payment ID"),
    current_user: User = Depends(get_current_user),
    payment_service: PaymentService = Depends(get_payment_service)
) -> PaymentResponse:
    payment = await payment_service.update_status(
        payment_id, status_data.status, current_user,
        gateway_transaction_id=status_data.gateway_transaction_id
    )
    return PaymentResponse.model_validate(payment)


@router.post(
    "/{payment_id}/webhook",
    response_model=PaymentResponse,
    summary="Record a gateway webhook",
    description="Admin-only relay for gateway callbacks.",
    responses=get_crud_error_responses()
)
async def record_webhook(
    event: WebhookEvent,
    payment_id: UUID = Path(..., description="Payment ID"),
    admin_user: User = Depends(get_current_admin_user),
    payment_service: PaymentService = Depends(get_payment_service)
) -> PaymentResponse:
    payment = await payment_service.record_webhook(
        payment_id, event.status, event.payload, gateway_transaction_id=event.gateway_transaction_id
    )
    return PaymentResponse.model_validate(payment)


@router.post(
    "/{payment_id}/refund",
    response_model=RefundResponse,
    summary="Refund a payment",
    responses=get_crud_error_responses()
)
async def refund_payment(
    refund_data: RefundRequest,
    payment_id: UUID = Path(..., description="Payment ID"),
    current_user: User = Depends(get_current_user),
    payment_service: PaymentService = Depends(get_payment_service)
) -> RefundResponse:
    payment, refund = await payment_service.refund_payment(
        payment_id, current_user, amount=refund_data.amount, reason=refund_data.reason
    )
    return RefundResponse(
        payment=PaymentResponse.model_validate(payment),
        refund_transaction=TransactionResponse.model_validate(refund)
    )
