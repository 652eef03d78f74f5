"""
Transaction endpoints
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Response, status

from ..clock import from_epoch_millis
from .schemas import TransactionCreateRequest, TransactionResponse, TransactionUpdateRequest
from .system import AccountingSystem, get_accounting_system


router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED, response_model=TransactionResponse)
async def create_transaction(
    request: TransactionCreateRequest,
    response: Response,
    system: AccountingSystem = Depends(get_accounting_system)
):
    """Create a transaction on an active account"""
    transaction = system.transaction_ledger.create_transaction(
        account_number=request.account_number,
        transaction_type=request.type,
        amount=request.amount,
        timestamp=from_epoch_millis(request.timestamp)
    )
    response.headers["Location"] = f"/api/v1/transactions/{transaction.id}"
    return TransactionResponse.from_transaction(transaction)


@router.get("/{transaction_id}", response_model=TransactionResponse)
async def get_transaction(
    transaction_id: UUID,
    system: AccountingSystem = Depends(get_accounting_system)
):
    """Get a transaction"""
    return TransactionResponse.from_transaction(system.transaction_ledger.get_transaction(transaction_id))


@router.delete("/{transaction_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_transaction(
    transaction_id: UUID,
    system: AccountingSystem = Depends(get_accounting_system)
):
    """Delete a transaction that has not taken effect yet"""
    system.transaction_ledger.delete_transaction(transaction_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/{transaction_id}", response_model=TransactionResponse)
async def update_transaction(
    transaction_id: UUID,
    request: TransactionUpdateRequest,
    system: AccountingSystem = Depends(get_accounting_system)
):
    """Update type, amount and timestamp of a transaction"""
    transaction = system.transaction_ledger.update_transaction(
        transaction_id,
        transaction_type=request.type,
        amount=request.amount,
        timestamp=from_epoch_millis(request.timestamp)
    )
    return TransactionResponse.from_transaction(transaction)
