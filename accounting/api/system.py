"""
Accounting system container and FastAPI dependency
"""

from typing import Optional

from ..accounts import AccountManager
from ..audit import AuditTrail
from ..balance import BalanceEngine
from ..config import AccountingConfig, get_config
from ..security import SecurityCheckDispatcher, create_dispatcher
from ..storage import InMemoryStorage, SQLiteStorage, StorageInterface
from ..transactions import TransactionLedger


class AccountingSystem:
    """Accounting components wired over one storage backend"""

    def __init__(
        self,
        config: Optional[AccountingConfig] = None,
        storage: Optional[StorageInterface] = None,
        security_dispatcher: Optional[SecurityCheckDispatcher] = None
    ):
        self.config = config or get_config()
        self.storage = storage if storage is not None else self._create_storage()
        self.audit_trail = AuditTrail(self.storage, enabled=self.config.enable_audit_logging)

        if security_dispatcher is None:
            security_dispatcher = create_dispatcher(
                self.config.security_validator_url,
                self.config.security_validator_callback_url,
                timeout=self.config.security_validator_timeout,
                max_workers=self.config.security_check_workers
            )
        self.security_dispatcher = security_dispatcher

        self.account_manager = AccountManager(
            self.storage, self.audit_trail, self.config, self.security_dispatcher
        )
        self.transaction_ledger = TransactionLedger(self.storage, self.account_manager, self.audit_trail)
        self.balance_engine = BalanceEngine(self.transaction_ledger)

    def _create_storage(self) -> StorageInterface:
        """Create storage backend based on configuration"""
        if self.config.storage_backend == "memory":
            return InMemoryStorage()
        return SQLiteStorage(self.config.database_path)

    def close(self) -> None:
        if self.security_dispatcher is not None:
            self.security_dispatcher.shutdown()
        self.storage.close()


_accounting_system: Optional[AccountingSystem] = None


def get_accounting_system() -> AccountingSystem:
    """Dependency returning the process-wide system, built on first use"""
    global _accounting_system
    if _accounting_system is None:
        _accounting_system = AccountingSystem()
    return _accounting_system


def close_accounting_system() -> None:
    global _accounting_system
    if _accounting_system is not None:
        _accounting_system.close()
        _accounting_system = None
