"""
Tagged results returned by every ledger tool.

A tool never lets a refused request escape as an exception. It returns an
``OperationResult`` that either carries the value (``ok=True``) or names the
error kind, a human-readable message and the offending id or value, so a
front end can render one message per outcome.
"""

import enum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict

from ..database.errors import RepositoryException

T = TypeVar("T")


class ErrorKind(enum.StrEnum):
    """Kinds of refusal a tool can report."""

    NOT_FOUND = "not_found"
    INVALID_REFERENCE = "invalid_reference"
    INVALID_FORMAT = "invalid_format"
    ALREADY_BORROWED = "already_borrowed"
    NO_ACTIVE_BORROW = "no_active_borrow"


class OperationResult(BaseModel, Generic[T]):
    """Outcome of one ledger operation."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    ok: bool
    value: T | None = None
    error: ErrorKind | None = None
    message: str | None = None
    subject: Any = None

    @classmethod
    def success(cls, value: Any = None) -> "OperationResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, exc: RepositoryException) -> "OperationResult":
        return cls(ok=False, error=ErrorKind(exc.kind), message=str(exc), subject=exc.subject)

    def unwrap(self) -> T:
        """
        Return the value of a successful result.

        Raises:
            ValueError: If the operation was refused
        """
        if not self.ok:
            raise ValueError(f"{self.error.value}: {self.message}")
        return self.value
