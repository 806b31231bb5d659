"""
Exception hierarchy for ledger operations.

Two families:

1. ``RepositoryException`` and its subclasses describe requests the ledger
   refused (missing ids, bad input, a book already out). Callers recover
   from these and report them.
2. ``IntegrityViolationError`` and ``StorageFailureError`` mean the ledger
   itself is in trouble. They are never converted into results and never
   retried.
"""


class LedgerError(Exception):
    """Base class for every error raised by the ledger."""


class RepositoryException(LedgerError):
    """Base exception for refused repository operations."""

    kind = "repository_error"

    def __init__(self, message: str, subject: object | None = None):
        super().__init__(message)
        self.subject = subject


class NotFoundError(RepositoryException):
    """Raised when a referenced entity id does not exist."""

    kind = "not_found"


class InvalidReferenceError(RepositoryException):
    """Raised when a foreign-key target is missing at create/update time."""

    kind = "invalid_reference"


class InvalidFormatError(RepositoryException):
    """Raised when an input value is malformed (e.g. an email without '@')."""

    kind = "invalid_format"


class AlreadyBorrowedError(RepositoryException):
    """Raised when borrowing a book that is already out."""

    kind = "already_borrowed"


class NoActiveBorrowError(RepositoryException):
    """Raised when returning a book that is not out."""

    kind = "no_active_borrow"


class IntegrityViolationError(LedgerError):
    """Raised when stored state contradicts a ledger invariant."""

    kind = "integrity_violation"


class StorageFailureError(LedgerError):
    """Raised when the underlying store fails; wraps the SQLAlchemy error."""

    kind = "storage_failure"
