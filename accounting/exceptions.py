"""Error kinds raised by the accounting core."""

from typing import List, Optional


class AccountingError(Exception):
    """Base exception for all accounting errors."""


class ValidationError(AccountingError):
    """Raised when input fails structural or semantic constraints."""

    def __init__(self, messages: List[str]):
        self.messages = list(messages)
        super().__init__("; ".join(self.messages))


class NotFoundError(AccountingError):
    """Raised when an account or transaction is absent in the required state."""


class InsecureHolderError(AccountingError):
    """Raised when the security check rejected the account holder."""

    def __init__(self, account_holder_name: str):
        self.account_holder_name = account_holder_name
        super().__init__(f"Security check failed for account holder {account_holder_name}")


class UnprocessableTransactionError(AccountingError):
    """Raised when the target account cannot currently accept a transaction."""


class AlreadyCompletedError(AccountingError):
    """Raised when deleting a transaction whose time has already come."""

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or "Completed transaction cannot be deleted")


class InvalidStateTransitionError(AccountingError):
    """Raised when an account lifecycle move is not allowed from its current state."""
