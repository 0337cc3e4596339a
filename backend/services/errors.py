"""Domain exceptions raised by the services and mapped to HTTP codes in main.py."""

from typing import List


class FinanceError(Exception):
    """Base class for expected, user-facing failures."""


class ValidationError(FinanceError, ValueError):
    """Request data is missing or malformed (HTTP 400)."""


class NotFoundError(FinanceError, LookupError):
    """User, transaction or goal does not exist or is not the caller's (HTTP 404)."""


class TransactionImportError(ValidationError):
    """
    Import produced nothing to save.

    ``reason`` is ``"empty"`` when the file parsed but held no valid rows and
    ``"unreadable"`` when the file itself could not be parsed.
    """

    EMPTY = "empty"
    UNREADABLE = "unreadable"

    def __init__(self, message: str, reason: str, warnings: List[str] = None):
        super().__init__(message)
        self.reason = reason
        self.warnings = warnings or []
