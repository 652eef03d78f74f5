"""
Tests for balance computation
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import pytest

from accounting.accounts import AccountManager
from accounting.audit import AuditTrail
from accounting.balance import Balance, BalanceEngine
from accounting.config import AccountingConfig
from accounting.exceptions import NotFoundError
from accounting.storage import InMemoryStorage
from accounting.transactions import TransactionLedger, TransactionType


NOW = datetime(2024, 3, 30, 12, 0, tzinfo=timezone.utc)


class TestBalanceEngine:
    """Test BalanceEngine folding over the ledger"""

    def setup_method(self):
        """Set up test fixtures"""
        storage = InMemoryStorage()
        audit_trail = AuditTrail(storage)
        self.account_manager = AccountManager(storage, audit_trail, AccountingConfig(storage_backend="memory"))
        self.ledger = TransactionLedger(storage, self.account_manager, audit_trail, clock=lambda: NOW)
        self.engine = BalanceEngine(self.ledger, clock=lambda: NOW)

        account = self.account_manager.prepare_account("John Doe")
        self.account = self.account_manager.activate_account(account.account_number, True)

    def _book(self, transaction_type, amount, timestamp):
        return self.ledger.create_transaction(self.account.account_number, transaction_type, amount, timestamp)

    def test_empty_account_has_zero_balance(self):
        assert self.engine.compute_balance(self.account) == 0

    def test_deposits_minus_withdrawals(self):
        """+10, +5, -37 in the past give -22"""
        self._book(TransactionType.DEPOSIT, 10, NOW - timedelta(days=3))
        self._book(TransactionType.DEPOSIT, 5, NOW - timedelta(days=2))
        self._book(TransactionType.WITHDRAWAL, 37, NOW - timedelta(days=1))

        assert self.engine.compute_balance(self.account) == -22

    def test_future_transactions_excluded(self):
        self._book(TransactionType.DEPOSIT, 100, NOW - timedelta(days=1))
        self._book(TransactionType.WITHDRAWAL, 40, NOW + timedelta(milliseconds=1))

        assert self.engine.compute_balance(self.account) == 100

    def test_transaction_at_evaluation_instant_included(self):
        self._book(TransactionType.DEPOSIT, 7, NOW)
        assert self.engine.compute_balance(self.account) == 7

    def test_explicit_evaluation_instant(self):
        self._book(TransactionType.DEPOSIT, 100, NOW - timedelta(days=2))
        self._book(TransactionType.DEPOSIT, 50, NOW + timedelta(days=2))

        assert self.engine.compute_balance(self.account, as_of=NOW + timedelta(days=3)) == 150
        assert self.engine.compute_balance(self.account, as_of=NOW - timedelta(days=3)) == 0

    def test_large_amounts_do_not_wrap(self):
        big = 2 ** 63 - 1
        self._book(TransactionType.DEPOSIT, big, NOW - timedelta(days=1))
        self._book(TransactionType.DEPOSIT, big, NOW - timedelta(days=1))

        assert self.engine.compute_balance(self.account) == 2 * big

    def test_get_balance_reports_instant(self):
        self._book(TransactionType.DEPOSIT, 3, NOW)
        balance = self.engine.get_balance(self.account)

        assert balance == Balance(account_number=self.account.account_number, balance=3, as_of=NOW)

    def test_updated_transaction_moves_into_the_future(self):
        transaction = self._book(TransactionType.DEPOSIT, 30, NOW - timedelta(days=1))
        self.ledger.update_transaction(transaction.id, TransactionType.DEPOSIT, 30, NOW + timedelta(days=1))

        assert self.engine.compute_balance(self.account) == 0

    def test_deleted_account_rejected(self):
        deleted = self.account_manager.deactivate_account(self.account.account_number)
        with pytest.raises(NotFoundError):
            self.engine.compute_balance(deleted)


class TestBalanceEvaluationInstant:
    """Repeated reads and the single clock sample per computation"""

    def setup_method(self):
        storage = InMemoryStorage()
        audit_trail = AuditTrail(storage)
        account_manager = AccountManager(storage, audit_trail, AccountingConfig(storage_backend="memory"))
        self.ledger = TransactionLedger(storage, account_manager, audit_trail, clock=lambda: NOW)
        account = account_manager.prepare_account("John Doe")
        self.account = account_manager.activate_account(account.account_number, True)

        self.ledger.create_transaction(self.account.account_number, TransactionType.DEPOSIT, 50, NOW - timedelta(hours=1))
        self.ledger.create_transaction(self.account.account_number, TransactionType.WITHDRAWAL, 20, NOW + timedelta(hours=1))

    def test_repeated_reads_agree(self):
        engine = BalanceEngine(self.ledger, clock=lambda: NOW)
        first = engine.get_balance(self.account)
        second = engine.get_balance(self.account)

        assert first == second
        assert first.balance == 50

    def test_clock_sampled_once_per_computation(self):
        """Each read uses one instant; a later read sees the transaction that came due"""
        instants = iter([NOW, NOW + timedelta(hours=2)])
        clock = Mock(side_effect=lambda: next(instants))
        engine = BalanceEngine(self.ledger, clock=clock)

        before = engine.get_balance(self.account)
        assert clock.call_count == 1
        after = engine.get_balance(self.account)
        assert clock.call_count == 2

        assert before.balance == 50
        assert before.as_of == NOW
        assert after.balance == 30
        assert after.as_of == NOW + timedelta(hours=2)
