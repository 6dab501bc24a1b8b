"""Shared exception types for the DCA execution core."""

from typing import List, Optional


class ExecutorError(RuntimeError):
    """Base class for every error raised by the executor."""


class AccountReadError(ExecutorError):
    """Raised when a DCA account cannot be fetched or decoded."""

    NOT_FOUND = "not_found"
    DECODE = "decode"
    UNREACHABLE = "unreachable"

    def __init__(self, account_id: str, kind: str, detail: str, original: Optional[Exception] = None):
        super().__init__(f"{kind}: {detail}")
        self.account_id = account_id
        self.kind = kind
        self.detail = detail
        self.original = original


class ConfigurationError(ExecutorError):
    """Account-level config or logic error. Retrying cannot fix it."""


class UnsupportedAdapterError(ConfigurationError):
    def __init__(self, adapter: str, implemented: bool = False):
        if implemented:
            message = f"Adapter {adapter} not yet implemented"
        else:
            message = f"Unknown adapter: {adapter}"
        super().__init__(message)
        self.adapter = adapter


class DelegateeMismatchError(ConfigurationError):
    def __init__(self, expected: Optional[str], actual: str):
        super().__init__(f"Delegatee mismatch: expected {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


class LedgerError(ExecutorError):
    """Transport or JSON-RPC level failure inside the ledger client."""

    def __init__(self, method: str, detail: str, original: Optional[Exception] = None):
        super().__init__(f"{method} failed: {detail}")
        self.method = method
        self.detail = detail
        self.original = original


class SubmissionError(ExecutorError):
    """A signed or simulated submission failed; the caller may retry."""

    def __init__(self, cause: str, original: Optional[Exception] = None):
        super().__init__(cause)
        self.cause = cause
        self.original = original


class CycleAbortedError(ExecutorError):
    """The account list itself is unusable; the whole cycle stops."""


class AlertDeliveryError(ExecutorError):
    """Webhook delivery failed. Always logged and swallowed by callers."""


class ConfigLoadError(ExecutorError):
    def __init__(self, path: str, errors: List[str]):
        super().__init__(f"Invalid configuration in {path}: {len(errors)} error(s) found")
        self.path = path
        self.errors = errors
