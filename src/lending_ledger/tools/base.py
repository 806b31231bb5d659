"""
Shared plumbing for the ledger tools.

Every tool call runs in its own transaction on a fresh session. Refusals
(``RepositoryException``) become failed results and are logged at INFO;
integrity violations and storage failures are logged and re-raised
untouched, because they point at a defect or a broken store rather than a
bad request.
"""

import logging
from collections.abc import Callable
from datetime import date
from typing import TypeVar

from sqlalchemy.orm import Session

from ..database.errors import IntegrityViolationError, RepositoryException, StorageFailureError
from ..database.session import DatabaseManager, get_db_manager
from .results import OperationResult

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LedgerTool:
    """Base class for the consumer-facing ledger components."""

    def __init__(
        self,
        db_manager: DatabaseManager | None = None,
        today: Callable[[], date] = date.today,
    ):
        """
        Args:
            db_manager: Database to operate on; defaults to the global one
            today: Clock used for borrow and return dates
        """
        self.db = db_manager or get_db_manager()
        self.today = today

    def _execute(self, operation: str, fn: Callable[[Session], T]) -> OperationResult[T]:
        try:
            value = self.db.run_atomic(fn)
        except RepositoryException as e:
            logger.info("%s refused - %s: %s", operation, e.kind, e)
            return OperationResult.failure(e)
        except (IntegrityViolationError, StorageFailureError):
            logger.exception("%s failed", operation)
            raise

        logger.debug("%s succeeded", operation)
        return OperationResult.success(value)
