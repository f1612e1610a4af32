"""
Transaction API endpoints.
"""

from fastapi import APIRouter, Depends, status, Query, Path
from typing import Optional, List
from uuid import UUID

from marketplace.config import settings
from marketplace.models.user import User
from marketplace.models.transaction import TransactionStatus
from marketplace.services.transaction import TransactionService
from marketplace.schemas.transaction import TransactionCreate, TransactionStatusUpdate, TransactionResponse
from marketplace.schemas.error import get_crud_error_responses
from marketplace.utils.dependencies import get_current_user, get_transaction_service


router = APIRouter(prefix="/transactions", tags=["Transactions"])


@router.post(
    "",
    response_model=TransactionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create transaction",
    responses=get_crud_error_responses()
)
async def create_transaction(
    transaction_data: TransactionCreate,
    current_user: User = Depends(get_current_user),
    transaction_service: TransactionService = Depends(get_transaction_service)
) -> TransactionResponse:
    transaction = await transaction_service.create_transaction(transaction_data, current_user)
    return TransactionResponse.model_validate(transaction)


@router.get(
    "",
    response_model=List[TransactionResponse],
    summary="List the current user's transactions"
)
async def list_transactions(
    transaction_status: Optional[TransactionStatus] = Query(None, alias="status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    current_user: User = Depends(get_current_user),
    transaction_service: TransactionService = Depends(get_transaction_service)
) -> List[TransactionResponse]:
    transactions = await transaction_service.list_for_user(
        current_user.id, status=transaction_status, skip=skip, limit=limit
    )
    return [TransactionResponse.model_validate(t) for t in transactions]


@router.get(
    "/reference/{reference_number}",
    response_model=TransactionResponse,
    summary="Get transaction by reference number",
    responses=get_crud_error_responses()
)
async def get_by_reference(
    reference_number: str = Path(..., min_length=1),
    current_user: User = Depends(get_current_user),
    transaction_service: TransactionService = Depends(get_transaction_service)
) -> TransactionResponse:
    transaction = await transaction_service.get_by_reference(reference_number, current_user)
    return TransactionResponse.model_validate(transaction)


@router.get(
    "/{transaction_id}",
    response_model=TransactionResponse,
    summary="Get transaction by ID",
    responses=get_crud_error_responses()
)
async def get_transaction(
    transaction_id: UUID = Path(..., description="Transaction ID"),
    current_user: User = Depends(get_current_user),
    transaction_service: TransactionService = Depends(get_transaction_service)
) -> TransactionResponse:
    transaction = await transaction_service.get_transaction(transaction_id, current_user)
    return TransactionResponse.model_validate(transaction)


@router.get(
    "/{transaction_id}/refunds",
    response_model=List[TransactionResponse],
    summary="List refunds issued against a transaction",
    responses=get_crud_error_responses()
)
async def get_refunds(
    transaction_id: UUID = Path(..., description="Transaction ID"),
    current_user: User = Depends(get_current_user),
    transaction_service: TransactionService = Depends(get_transaction_service)
) -> List[TransactionResponse]:
    refunds = await transaction_service.get_refunds(transaction_id, current_user)
    return [TransactionResponse.model_validate(t) for t in refunds]


@router.post(
    "/{transaction_id}/status",
    response_model=TransactionResponse,
    summary="Change transaction status",
    responses=get_crud_error_responses()
)
async def update_transaction_status(
    status_data: TransactionStatusUpdate,
    transaction_id: UUID = Path(..., description="Transaction ID"),
    current_user: User = Depends(get_current_user),
    transaction_service: TransactionService = Depends(get_transaction_service)
) -> TransactionResponse:
    transaction = await transaction_service.update_status(transaction_id, status_data.status, current_user)
    return TransactionResponse.model_validate(transaction)
