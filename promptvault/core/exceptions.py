"""
Error taxonomy for PromptVault.

Every error raised by the record store carries a machine-readable code, both as
the ``code`` attribute and as a prefix of its message (``"NOT_FOUND: ..."``), so
that the request facade can map it to a response error code.
"""

from typing import Optional


VALIDATION_ERROR = "VALIDATION_ERROR"
NOT_FOUND = "NOT_FOUND"
STORAGE_ERROR = "STORAGE_ERROR"
CANCELLED = "CANCELLED"
INVALID_FORMAT = "INVALID_FORMAT"
CONFIGURATION_ERROR = "CONFIGURATION_ERROR"


class PromptVaultError(Exception):
    """Base class for all PromptVault errors."""

    code: str = STORAGE_ERROR

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"{self.code}: {detail}")


class ValidationError(PromptVaultError):
    """Malformed or missing required input, rejected before any storage call."""

    code = VALIDATION_ERROR


class NotFoundError(PromptVaultError):
    """A referenced identity does not exist."""

    code = NOT_FOUND


class StorageError(PromptVaultError):
    """Underlying database or network failure."""

    code = STORAGE_ERROR


class CancelledError(PromptVaultError):
    """The user aborted an interactive file selection."""

    code = CANCELLED


class InvalidFormatError(PromptVaultError):
    """An import file could not be understood."""

    code = INVALID_FORMAT


class ConfigurationError(PromptVaultError):
    """Required configuration is missing or unreadable."""

    code = CONFIGURATION_ERROR


_PREFIXED_CODES = (VALIDATION_ERROR, NOT_FOUND, CANCELLED, INVALID_FORMAT)


def classify_error(error: BaseException, fallback: str) -> str:
    """
    Map an exception to a response error code.

    Known error classes map to their own code (storage errors map to the
    operation's fallback code). Foreign exceptions are matched on a recognised
    message prefix. Anything else gets the fallback.

    Args:
        error: The exception raised by the operation
        fallback: Operation specific code, e.g. ``"CREATE_FAILED"``

    Returns:
        Error code for the response envelope
    """
    code: Optional[str] = getattr(error, "code", None)
    if isinstance(error, PromptVaultError) and code in _PREFIXED_CODES:
        return code

    message = str(error)
    for prefix in _PREFIXED_CODES:
        if message.startswith(prefix):
            return prefix

    return fallback
