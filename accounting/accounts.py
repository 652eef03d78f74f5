"""
Account Management Module

Manages the account lifecycle: an account is prepared for a holder, checked
by the external security validator, activated when the check passes and
finally soft-deleted. Only active accounts are visible to readers.
"""

import secrets
from concurrent.futures import Future
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, List, Optional

from .audit import AuditTrail, AuditEventType
from .clock import format_timestamp, parse_timestamp, utc_now
from .config import AccountingConfig, MIN_ACCOUNT_NUMBER, MAX_ACCOUNT_NUMBER
from .exceptions import (
    InsecureHolderError, InvalidStateTransitionError, NotFoundError, ValidationError
)
from .logging_config import get_logger, log_action
from .security import SecurityCheckDispatcher
from .storage import StorageInterface


MAX_NUMBER_ATTEMPTS = 10


def generate_account_number() -> int:
    """Draw a 16-digit account number from a cryptographically strong source"""
    return MIN_ACCOUNT_NUMBER + secrets.randbelow(MAX_ACCOUNT_NUMBER - MIN_ACCOUNT_NUMBER + 1)


class AccountStatus(Enum):
    """Account lifecycle states"""
    PREPARED = "prepared"  # Awaiting the security verdict
    ACTIVE = "active"      # Activated, accepts transactions
    DELETED = "deleted"    # Soft-deleted, terminal


@dataclass(eq=False)
class Account:
    """
    Bank account. Persisted as the created/deleted flag pair; code paths
    reason about the derived status instead.
    """
    bank_id: int
    account_holder_name: str
    account_number: int = field(default_factory=generate_account_number)
    created: bool = False
    deleted: bool = False
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    @property
    def status(self) -> AccountStatus:
        if self.deleted:
            return AccountStatus.DELETED
        if self.created:
            return AccountStatus.ACTIVE
        return AccountStatus.PREPARED

    @property
    def is_active(self) -> bool:
        return self.status == AccountStatus.ACTIVE

    def activate(self) -> None:
        """Move a prepared (or already active) account to active"""
        if self.status == AccountStatus.DELETED:
            raise InvalidStateTransitionError(f"Account {self.account_number} is deleted")
        self.created = True

    def deactivate(self) -> None:
        """Soft-delete an active account"""
        if self.status != AccountStatus.ACTIVE:
            raise InvalidStateTransitionError(
                f"Account {self.account_number} is {self.status.value}, not active"
            )
        self.deleted = True

    def __eq__(self, other) -> bool:
        if not isinstance(other, Account):
            return NotImplemented
        return self.account_number == other.account_number

    def __hash__(self) -> int:
        return hash(self.account_number)


class AccountManager:
    """
    Owns account creation, activation and deactivation
    """

    def __init__(
        self,
        storage: StorageInterface,
        audit_trail: AuditTrail,
        config: AccountingConfig,
        security_dispatcher: Optional[SecurityCheckDispatcher] = None,
        number_generator: Callable[[], int] = generate_account_number
    ):
        self.storage = storage
        self.audit_trail = audit_trail
        self.config = config
        self.security_dispatcher = security_dispatcher
        self.number_generator = number_generator
        self.accounts_table = "accounts"
        self.logger = get_logger("accounting.accounts")

    def prepare_account(self, account_holder_name: str) -> Account:
        """
        Persist a new account in the prepared state

        Args:
            account_holder_name: Name of the holder, must not be blank

        Returns:
            The prepared Account with a fresh account number

        Raises:
            ValidationError: if the holder name is empty or blank
        """
        self._validate_holder_name(account_holder_name)

        account = Account(
            bank_id=self.config.bank_id,
            account_holder_name=account_holder_name,
            account_number=self._new_account_number()
        )
        with self.storage.atomic():
            self._save_account(account)
            self.audit_trail.log_event(
                event_type=AuditEventType.ACCOUNT_PREPARED,
                entity_type="account",
                entity_id=str(account.account_number),
                metadata={"bank_id": account.bank_id, "account_holder_name": account_holder_name}
            )
        return account

    def request_security_check(self, account: Account) -> Optional[Future]:
        """
        Hand the account to the security validator without waiting for it.
        The verdict arrives later through activate_account.
        """
        if self.security_dispatcher is None:
            self.logger.info(
                "Security validator not configured, skipping check of account %s", account.account_number
            )
            return None

        future = self.security_dispatcher.submit(account.account_number, account.account_holder_name)
        self.audit_trail.log_event(
            event_type=AuditEventType.SECURITY_CHECK_REQUESTED,
            entity_type="account",
            entity_id=str(account.account_number),
            metadata={"callback_url": self.security_dispatcher.callback_url}
        )
        return future

    def activate_account(self, account_number: int, security_check_passed: bool) -> Account:
        """
        Apply the security verdict to a not-deleted account

        Raises:
            NotFoundError: no prepared or active account has this number
            InsecureHolderError: the check failed; the account is left untouched
        """
        account = self._find_account(account_number, {"deleted": False})

        if not security_check_passed:
            log_action(
                self.logger, "warning", "Security check failed, account not activated",
                action="activate", resource=str(account_number)
            )
            self.audit_trail.log_event(
                event_type=AuditEventType.ACCOUNT_ACTIVATION_REJECTED,
                entity_type="account",
                entity_id=str(account_number),
                metadata={"account_holder_name": account.account_holder_name}
            )
            raise InsecureHolderError(account.account_holder_name)

        account.activate()
        with self.storage.atomic():
            self._save_account(account)
            self.audit_trail.log_event(
                event_type=AuditEventType.ACCOUNT_ACTIVATED,
                entity_type="account",
                entity_id=str(account_number)
            )
        return account

    def get_account(self, account_number: int) -> Account:
        """Get an active account; prepared and deleted accounts are not found"""
        return self._find_account(account_number, {"deleted": False, "created": True})

    def list_accounts(self) -> List[Account]:
        """List all active accounts in creation order"""
        accounts_data = self.storage.find(self.accounts_table, {"deleted": False, "created": True})
        return [self._account_from_dict(data) for data in accounts_data]

    def deactivate_account(self, account_number: int) -> Account:
        """Soft-delete an active account"""
        account = self.get_account(account_number)
        account.deactivate()
        with self.storage.atomic():
            self._save_account(account)
            self.audit_trail.log_event(
                event_type=AuditEventType.ACCOUNT_DEACTIVATED,
                entity_type="account",
                entity_id=str(account_number)
            )
        return account

    def _find_account(self, account_number: int, state: Dict[str, bool]) -> Account:
        data = self.storage.load(self.accounts_table, str(account_number))
        if data is None or any(data.get(key) != value for key, value in state.items()):
            raise NotFoundError(f"Account {account_number} not found.")
        return self._account_from_dict(data)

    def _validate_holder_name(self, account_holder_name: str) -> None:
        if not isinstance(account_holder_name, str) or not account_holder_name:
            raise ValidationError(["accountHolderName must not be empty"])
        if not account_holder_name.strip():
            raise ValidationError(["accountHolderName must not be blank"])

    def _new_account_number(self) -> int:
        """Generate an account number not used by any stored account, deleted ones included"""
        for _ in range(MAX_NUMBER_ATTEMPTS):
            account_number = self.number_generator()
            if not self.storage.exists(self.accounts_table, str(account_number)):
                return account_number
        raise RuntimeError(f"Could not generate a unique account number in {MAX_NUMBER_ATTEMPTS} attempts")

    def _save_account(self, account: Account) -> None:
        account.updated_at = utc_now()
        self.storage.save(self.accounts_table, str(account.account_number), self._account_to_dict(account))
        self.logger.debug("Account %s is saved with status %s", account.account_number, account.status.value)

    def _account_to_dict(self, account: Account) -> Dict:
        """Convert Account to dictionary for storage"""
        return {
            'id': str(account.account_number),
            'account_number': account.account_number,
            'bank_id': account.bank_id,
            'account_holder_name': account.account_holder_name,
            'created': account.created,
            'deleted': account.deleted,
            'created_at': format_timestamp(account.created_at),
            'updated_at': format_timestamp(account.updated_at)
        }

    def _account_from_dict(self, data: Dict) -> Account:
        """Convert dictionary to Account"""
        return Account(
            bank_id=data['bank_id'],
            account_holder_name=data['account_holder_name'],
            account_number=data['account_number'],
            created=data['created'],
            deleted=data['deleted'],
            created_at=parse_timestamp(data['created_at']),
            updated_at=parse_timestamp(data['updated_at'])
        )
