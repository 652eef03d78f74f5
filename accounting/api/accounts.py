"""
Account management endpoints
"""

from typing import List

from fastapi import APIRouter, Depends, Path, Response, status

from ..config import MIN_ACCOUNT_NUMBER, MAX_ACCOUNT_NUMBER
from .schemas import (
    AccountRequest, AccountResponse, BalanceResponse, TransactionResponse, ValidityCheckResult
)
from .system import AccountingSystem, get_accounting_system


router = APIRouter()

AccountNumber = Path(..., ge=MIN_ACCOUNT_NUMBER, le=MAX_ACCOUNT_NUMBER, description="16-digit account number")


@router.post("/prepare", status_code=status.HTTP_202_ACCEPTED, response_model=AccountResponse)
async def prepare_account(
    request: AccountRequest,
    system: AccountingSystem = Depends(get_accounting_system)
):
    """Prepare a new account and start its security check"""
    account = system.account_manager.prepare_account(request.account_holder_name)
    system.account_manager.request_security_check(account)
    return AccountResponse.from_account(account)


@router.post("/create", status_code=status.HTTP_201_CREATED)
async def create_account(
    result: ValidityCheckResult,
    system: AccountingSystem = Depends(get_accounting_system)
):
    """Activate a prepared account with the security validator's verdict"""
    account = system.account_manager.activate_account(
        result.account_number, result.is_security_check_success
    )
    # The validator rejects non-empty bodies, so only the location is returned
    return Response(
        status_code=status.HTTP_201_CREATED,
        headers={"Location": f"/api/v1/accounts/{account.account_number}"}
    )


@router.get("", response_model=List[AccountResponse])
async def list_accounts(system: AccountingSystem = Depends(get_accounting_system)):
    """List active accounts"""
    return [AccountResponse.from_account(account) for account in system.account_manager.list_accounts()]


@router.get("/{account_number}", response_model=AccountResponse)
async def get_account(
    account_number: int = AccountNumber,
    system: AccountingSystem = Depends(get_accounting_system)
):
    """Get an active account"""
    return AccountResponse.from_account(system.account_manager.get_account(account_number))


@router.delete("/{account_number}", status_code=status.HTTP_204_NO_CONTENT)
async def deactivate_account(
    account_number: int = AccountNumber,
    system: AccountingSystem = Depends(get_accounting_system)
):
    """Deactivate (soft-delete) an active account"""
    system.account_manager.deactivate_account(account_number)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{account_number}/balance", response_model=BalanceResponse)
async def get_balance(
    account_number: int = AccountNumber,
    system: AccountingSystem = Depends(get_accounting_system)
):
    """Get the current balance of an active account"""
    account = system.account_manager.get_account(account_number)
    return BalanceResponse.from_balance(system.balance_engine.get_balance(account))


@router.get("/{account_number}/transactions", response_model=List[TransactionResponse])
async def list_account_transactions(
    account_number: int = AccountNumber,
    system: AccountingSystem = Depends(get_accounting_system)
):
    """List transactions of an active account, most recent first"""
    account = system.account_manager.get_account(account_number)
    return [
        TransactionResponse.from_transaction(transaction)
        for transaction in system.transaction_ledger.list_transactions(account)
    ]
