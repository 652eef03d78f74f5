"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Literal, Optional


MIN_ACCOUNT_NUMBER = 1_000_000_000_000_000
MAX_ACCOUNT_NUMBER = 9_999_999_999_999_999


class AccountingConfig(BaseSettings):
    """Accounting service configuration"""

    # Bank identity (16 digits, same range as account numbers)
    bank_id: int = Field(default=1234567812345678, ge=MIN_ACCOUNT_NUMBER, le=MAX_ACCOUNT_NUMBER)

    # Storage configuration
    storage_backend: Literal["sqlite", "memory"] = "sqlite"
    database_path: str = "accounting.db"

    # Security validator configuration
    security_validator_url: str = ""  # Empty = outbound check disabled
    security_validator_timeout: float = 5.0
    security_validator_callback_url: str = "http://localhost:8090/api/v1/accounts/create"
    security_check_workers: int = 4

    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8090

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    log_file: Optional[str] = None  # If None, logs to stdout

    # Feature flags
    enable_audit_logging: bool = True

    model_config = SettingsConfigDict(env_prefix="ACCOUNTING_", env_file=".env", case_sensitive=False)


# Global configuration instance
config = AccountingConfig()


def get_config() -> AccountingConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> AccountingConfig:
    """Reload configuration from environment"""
    global config
    config = AccountingConfig()
    return config
