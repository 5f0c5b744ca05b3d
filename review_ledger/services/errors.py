"""Error taxonomy shared by the ledger and the upstream gateway."""

from __future__ import annotations

from typing import Optional


class LedgerError(Exception):
    """Base class for review ledger failures."""

    retryable: bool = False


class InvalidPayload(LedgerError, ValueError):
    """Raised when a verification submission is malformed."""


class StorageUnavailable(LedgerError):
    """Raised when the ledger's backing store cannot be read or written."""

    def __init__(self, message: str, retryable: bool = False) -> None:
        super().__init__(message)
        self.retryable = retryable


class UpstreamUnavailable(LedgerError):
    """Raised when the external review service is unreachable or rejects a call."""

    def __init__(self, message: str, status_code: Optional[int] = None, retryable: bool = False) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.retryable = retryable
