"""
Transaction Ledger Module

Records deposits and withdrawals against active accounts. Transactions may
be dated in the past or the future; they can be updated freely but only
deleted while they still lie in the future.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Tuple, Union

from .accounts import Account, AccountManager
from .audit import AuditTrail, AuditEventType
from .clock import Clock, format_timestamp, parse_timestamp, to_utc, utc_now
from .exceptions import (
    AlreadyCompletedError, NotFoundError, UnprocessableTransactionError, ValidationError
)
from .logging_config import get_logger
from .storage import StorageInterface


class TransactionType(Enum):
    """Direction of a transaction"""
    DEPOSIT = "DEPOSIT"
    WITHDRAWAL = "WITHDRAWAL"

    @property
    def sign(self) -> int:
        return 1 if self is TransactionType.DEPOSIT else -1


@dataclass(eq=False)
class Transaction:
    """
    Ledger entry. The amount is always positive; the type carries direction.
    """
    account_number: int
    type: TransactionType
    amount: int
    timestamp: datetime
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    @property
    def signed_amount(self) -> int:
        return self.type.sign * self.amount

    def __eq__(self, other) -> bool:
        if not isinstance(other, Transaction):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)


class TransactionLedger:
    """
    Creates, queries, mutates and deletes transactions of accounts
    """

    def __init__(
        self,
        storage: StorageInterface,
        account_manager: AccountManager,
        audit_trail: AuditTrail,
        clock: Clock = utc_now
    ):
        self.storage = storage
        self.account_manager = account_manager
        self.audit_trail = audit_trail
        self.clock = clock
        self.table_name = "transactions"
        self.logger = get_logger("accounting.transactions")

    def create_transaction(
        self,
        account_number: int,
        transaction_type: Union[TransactionType, str],
        amount: int,
        timestamp: datetime
    ) -> Transaction:
        """
        Record a transaction on an active account

        Args:
            account_number: Account to book on
            transaction_type: DEPOSIT or WITHDRAWAL
            amount: Strictly positive integer amount
            timestamp: When the transaction takes effect (past or future)

        Raises:
            UnprocessableTransactionError: the account is absent, prepared or deleted
            ValidationError: type, amount or timestamp are malformed
        """
        account = self._get_active_account(account_number)
        transaction_type, amount, timestamp = self._validate(transaction_type, amount, timestamp)

        transaction = Transaction(
            account_number=account.account_number,
            type=transaction_type,
            amount=amount,
            timestamp=timestamp
        )
        with self.storage.atomic():
            self._save_transaction(transaction)
            self.audit_trail.log_event(
                event_type=AuditEventType.TRANSACTION_CREATED,
                entity_type="transaction",
                entity_id=transaction.id,
                metadata=self._audit_metadata(transaction)
            )
        return transaction

    def list_transactions(self, account: Account) -> List[Transaction]:
        """List the transactions of a not-deleted account, most recent first"""
        if account.deleted:
            raise NotFoundError(f"Account {account.account_number} not found.")

        transactions_data = self.storage.find(
            self.table_name,
            {"account_number": account.account_number},
            order_by="timestamp",
            descending=True
        )
        return [self._transaction_from_dict(data) for data in transactions_data]

    def get_transaction(self, transaction_id: Union[str, uuid.UUID]) -> Transaction:
        data = self.storage.load(self.table_name, str(transaction_id))
        if data is None:
            raise NotFoundError(f"Transaction {transaction_id} not found")
        return self._transaction_from_dict(data)

    def update_transaction(
        self,
        transaction_id: Union[str, uuid.UUID],
        transaction_type: Union[TransactionType, str],
        amount: int,
        timestamp: datetime
    ) -> Transaction:
        """Overwrite type, amount and timestamp; identity and account stay"""
        transaction = self.get_transaction(transaction_id)
        transaction_type, amount, timestamp = self._validate(transaction_type, amount, timestamp)

        previous = self._audit_metadata(transaction)
        transaction.type = transaction_type
        transaction.amount = amount
        transaction.timestamp = timestamp
        with self.storage.atomic():
            self._save_transaction(transaction)
            self.audit_trail.log_event(
                event_type=AuditEventType.TRANSACTION_UPDATED,
                entity_type="transaction",
                entity_id=transaction.id,
                metadata={"before": previous, "after": self._audit_metadata(transaction)}
            )
        return transaction

    def delete_transaction(self, transaction_id: Union[str, uuid.UUID]) -> None:
        """
        Remove a transaction that has not occurred yet

        Raises:
            NotFoundError: no transaction has this id
            AlreadyCompletedError: the timestamp is now or in the past
        """
        transaction = self.get_transaction(transaction_id)
        if transaction.timestamp <= to_utc(self.clock()):
            raise AlreadyCompletedError()

        with self.storage.atomic():
            self.storage.delete(self.table_name, transaction.id)
            self.audit_trail.log_event(
                event_type=AuditEventType.TRANSACTION_DELETED,
                entity_type="transaction",
                entity_id=transaction.id,
                metadata=self._audit_metadata(transaction)
            )
        self.logger.debug("Transaction %s is deleted", transaction.id)

    def _get_active_account(self, account_number: int) -> Account:
        try:
            return self.account_manager.get_account(account_number)
        except NotFoundError:
            raise UnprocessableTransactionError("Account is not active") from None

    def _validate(
        self,
        transaction_type: Union[TransactionType, str],
        amount: Any,
        timestamp: Any
    ) -> Tuple[TransactionType, int, datetime]:
        messages = []

        if not isinstance(transaction_type, TransactionType):
            try:
                transaction_type = TransactionType(transaction_type)
            except ValueError:
                messages.append("Invalid transaction type")

        # bool is an int subclass but never a valid amount
        if isinstance(amount, bool) or not isinstance(amount, int):
            messages.append("Transaction amount must be an integer")
        elif amount <= 0:
            messages.append("Transaction amount must be positive")

        if not isinstance(timestamp, datetime):
            messages.append("Transaction timestamp must be a point in time")

        if messages:
            raise ValidationError(messages)
        return transaction_type, amount, to_utc(timestamp)

    def _save_transaction(self, transaction: Transaction) -> None:
        transaction.updated_at = utc_now()
        self.storage.save(self.table_name, transaction.id, self._transaction_to_dict(transaction))
        self.logger.debug("Transaction %s is saved", transaction.id)

    @staticmethod
    def _audit_metadata(transaction: Transaction) -> Dict[str, Any]:
        return {
            "account_number": transaction.account_number,
            "type": transaction.type.value,
            "amount": transaction.amount,
            "timestamp": format_timestamp(transaction.timestamp)
        }

    def _transaction_to_dict(self, transaction: Transaction) -> Dict[str, Any]:
        return {
            'id': transaction.id,
            'account_number': transaction.account_number,
            'type': transaction.type.value,
            'amount': transaction.amount,
            'timestamp': format_timestamp(transaction.timestamp),
            'created_at': format_timestamp(transaction.created_at),
            'updated_at': format_timestamp(transaction.updated_at)
        }

    def _transaction_from_dict(self, data: Dict[str, Any]) -> Transaction:
        return Transaction(
            id=data['id'],
            account_number=data['account_number'],
            type=TransactionType(data['type']),
            amount=data['amount'],
            timestamp=parse_timestamp(data['timestamp']),
            created_at=parse_timestamp(data['created_at']),
            updated_at=parse_timestamp(data['updated_at'])
        )
