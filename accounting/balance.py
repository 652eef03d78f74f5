"""
Balance Engine Module

Derives the balance of an account by folding its transaction history up to
a single evaluation instant. Future-dated transactions do not count.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .accounts import Account
from .clock import Clock, to_utc, utc_now
from .exceptions import NotFoundError
from .logging_config import get_logger
from .transactions import TransactionLedger


@dataclass(frozen=True)
class Balance:
    """Point-in-time balance of an account"""
    account_number: int
    balance: int
    as_of: datetime


class BalanceEngine:
    """Read-only fold over the transaction ledger"""

    def __init__(self, ledger: TransactionLedger, clock: Clock = utc_now):
        self.ledger = ledger
        self.clock = clock
        self.logger = get_logger("accounting.balance")

    def compute_balance(self, account: Account, as_of: Optional[datetime] = None) -> int:
        """
        Sum deposits minus withdrawals dated at or before the evaluation instant

        Args:
            account: Account to evaluate; must not be deleted
            as_of: Evaluation instant, sampled once from the clock if omitted

        Returns:
            Signed integer balance, possibly negative

        Raises:
            NotFoundError: the account is soft-deleted
        """
        return self.get_balance(account, as_of).balance

    def get_balance(self, account: Account, as_of: Optional[datetime] = None) -> Balance:
        """Same as compute_balance but also reports the evaluation instant"""
        if account.deleted:
            raise NotFoundError(f"Account {account.account_number} not found.")

        evaluation_instant = to_utc(as_of) if as_of is not None else to_utc(self.clock())
        settled = [
            transaction
            for transaction in self.ledger.list_transactions(account)
            if transaction.timestamp <= evaluation_instant
        ]
        self.logger.debug(
            "Balance of account %s uses %d settled transactions", account.account_number, len(settled)
        )

        # Python ints are unbounded, so the sum cannot wrap
        total = sum(transaction.signed_amount for transaction in settled)
        return Balance(account_number=account.account_number, balance=total, as_of=evaluation_instant)
