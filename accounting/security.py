"""
Security Validator Module

REST client for the external security validator and the background worker
pool that dispatches checks without blocking the caller. The validator
reports its verdict later through the account activation endpoint.
"""

import httpx
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, asdict
from typing import Optional

from .logging_config import get_logger

logger = get_logger("accounting.security")


@dataclass
class ValidationRequest:
    """Payload sent to the security validator"""
    accountNumber: int
    accountHolderName: str
    callbackUrl: str


class SecurityValidatorClient:
    """REST client for the security validator service"""

    def __init__(self, base_url: str, timeout: float = 5.0):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = httpx.Client(timeout=timeout)

    def security_check(self, request: ValidationRequest) -> None:
        """Ask the validator to check an account holder in the background

        Raises:
            httpx.HTTPError: when the validator is unreachable or answers non-2xx
        """
        response = self._client.post(
            f"{self.base_url}/background-security-check",
            json=asdict(request)
        )
        response.raise_for_status()

    def close(self):
        """Close the HTTP client"""
        self._client.close()


class SecurityCheckDispatcher:
    """
    Hands security checks to a worker pool.

    Failures of the outbound call are logged and never reach the submitter;
    the returned future resolves to True when the request was delivered.
    """

    def __init__(self, client: SecurityValidatorClient, callback_url: str, max_workers: int = 4):
        self.client = client
        self.callback_url = callback_url
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="security-check")

    def submit(self, account_number: int, account_holder_name: str) -> Future:
        """Queue a security check and return immediately"""
        request = ValidationRequest(account_number, account_holder_name, self.callback_url)
        return self._executor.submit(self._run_check, request)

    def _run_check(self, request: ValidationRequest) -> bool:
        try:
            self.client.security_check(request)
        except Exception:
            logger.warning(
                "Error when requesting security check of account %s", request.accountNumber,
                exc_info=True
            )
            return False
        logger.debug("Security check requested for account %s", request.accountNumber)
        return True

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting checks and optionally wait for queued ones"""
        self._executor.shutdown(wait=wait)
        self.client.close()


def create_dispatcher(base_url: str, callback_url: str, timeout: float = 5.0,
                      max_workers: int = 4) -> Optional[SecurityCheckDispatcher]:
    """Build a dispatcher, or None when no validator URL is configured"""
    if not base_url:
        return None
    return SecurityCheckDispatcher(
        SecurityValidatorClient(base_url, timeout=timeout),
        callback_url,
        max_workers=max_workers
    )
