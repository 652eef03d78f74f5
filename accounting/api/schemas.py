"""
Pydantic schemas for API requests and responses

Field names on the wire are camelCase, matching the contract of the
security validator callback.
"""

from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from ..accounts import Account
from ..balance import Balance
from ..clock import MAX_EPOCH_MILLIS, to_epoch_millis
from ..config import MIN_ACCOUNT_NUMBER, MAX_ACCOUNT_NUMBER
from ..transactions import Transaction

TRANSACTION_TYPE_PATTERN = r"^(DEPOSIT|WITHDRAWAL)$"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Account schemas
class AccountRequest(CamelModel):
    account_holder_name: str = Field(..., min_length=1, description="Name of the account holder", examples=["John Doe"])

    @field_validator("account_holder_name")
    @classmethod
    def not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value


class ValidityCheckResult(CamelModel):
    account_number: int = Field(..., ge=MIN_ACCOUNT_NUMBER, le=MAX_ACCOUNT_NUMBER, examples=[1234567812345678])
    is_security_check_success: bool = Field(..., description="Whether the security check passed")


class AccountResponse(CamelModel):
    bank_id: int
    account_number: int
    account_holder_name: str
    created: bool
    deleted: bool

    @classmethod
    def from_account(cls, account: Account) -> 'AccountResponse':
        return cls(
            bank_id=account.bank_id,
            account_number=account.account_number,
            account_holder_name=account.account_holder_name,
            created=account.created,
            deleted=account.deleted
        )


class BalanceResponse(CamelModel):
    balance: int = Field(..., description="Current balance of the account", examples=[1234])

    @classmethod
    def from_balance(cls, balance: Balance) -> 'BalanceResponse':
        return cls(balance=balance.balance)


# Transaction schemas
class TransactionUpdateRequest(CamelModel):
    type: str = Field(..., pattern=TRANSACTION_TYPE_PATTERN, examples=["DEPOSIT"])
    amount: int = Field(..., gt=0, examples=[1234])
    timestamp: int = Field(..., gt=0, le=MAX_EPOCH_MILLIS, description="Epoch milliseconds", examples=[1711787320000])


class TransactionCreateRequest(TransactionUpdateRequest):
    account_number: int = Field(..., ge=MIN_ACCOUNT_NUMBER, le=MAX_ACCOUNT_NUMBER, examples=[1234567812345678])


class TransactionResponse(CamelModel):
    id: str
    type: str
    amount: int
    timestamp: int = Field(..., description="Epoch milliseconds")

    @classmethod
    def from_transaction(cls, transaction: Transaction) -> 'TransactionResponse':
        return cls(
            id=transaction.id,
            type=transaction.type.value,
            amount=transaction.amount,
            timestamp=to_epoch_millis(transaction.timestamp)
        )


class ErrorDetails(BaseModel):
    code: int
    messages: List[str]
