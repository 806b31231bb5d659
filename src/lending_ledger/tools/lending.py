"""
Lending tools for the Lending Ledger.

The lending engine is the consumer-facing side of the borrow/return state
machine:

    borrow(book, patron)   Available -> Borrowed, returns the record ID
    return_book(book)      Borrowed -> Available, returns the return date

Refusals (missing book or patron, book already out, book not out) come back
as failed results. An integrity violation is raised, never reported as a
result: it means the ledger's own invariant is broken.
"""

import logging
from datetime import date

from ..database.lending_repository import LendingRepository
from ..models.borrow import BorrowRecord, OpenBorrow
from .base import LedgerTool
from .results import OperationResult

logger = logging.getLogger(__name__)


class LendingEngine(LedgerTool):
    """Borrowing, returning and borrowing history."""

    def _repo(self, session) -> LendingRepository:
        return LendingRepository(session, today=self.today)

    def borrow(self, book_id: int, patron_id: int) -> OperationResult[int]:
        """Lend a book to a patron; returns the new borrow record's ID."""
        return self._execute("borrow", lambda s: self._repo(s).borrow(book_id, patron_id).id)

    def return_book(self, book_id: int) -> OperationResult[date]:
        """Close the book's open loan; returns the return date."""
        return self._execute("return_book", lambda s: self._repo(s).return_book(book_id))

    def history_for_patron(self, patron_id: int) -> OperationResult[list[BorrowRecord]]:
        """All of a patron's borrow records, oldest first."""
        return self._execute(
            "history_for_patron", lambda s: self._repo(s).history_for_patron(patron_id)
        )

    def list_open_borrows_for_patron(self, patron_id: int) -> OperationResult[list[OpenBorrow]]:
        """The patron's open loans with their books, read from the live store."""
        return self._execute(
            "list_open_borrows_for_patron",
            lambda s: self._repo(s).open_borrows_for_patron(patron_id),
        )

    def get_borrow_record(self, record_id: int) -> OperationResult[BorrowRecord]:
        return self._execute("get_borrow_record", lambda s: self._repo(s).get_record(record_id))

    def check_integrity(self) -> OperationResult[int]:
        """
        Audit every book's borrowed flag against its open records.

        Returns the number of books checked; raises IntegrityViolationError
        on the first inconsistency.
        """
        return self._execute("check_integrity", lambda s: self._repo(s).check_integrity())
