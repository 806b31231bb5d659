"""
Lending repository implementation for the Lending Ledger.

This is the core of the ledger. It owns the borrow/return state machine of
every book and is the only code that writes ``books.is_borrowed``:

    Available --borrow--> Borrowed --return--> Available

The invariant it maintains is that a book is flagged borrowed exactly when
one open borrow record (no return date) exists for it. Each transition
writes the record and the flag in the same commit. Anything that destroys an
open record outside of a return, such as deleting the borrowing patron, has
to go through ``release_books_for_patron`` in the same transaction.

Concurrent borrowers of one book are serialized three ways: the book row is
read FOR UPDATE where the database supports it, the flag flip is a
conditional UPDATE that must hit exactly one row, and the partial unique
index on open records rejects a second open loan outright.
"""

import logging
from collections.abc import Callable
from datetime import date

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..models.book import Book as BookModel
from ..models.borrow import BorrowRecord as BorrowRecordModel
from ..models.borrow import OpenBorrow
from .errors import (
    AlreadyBorrowedError,
    IntegrityViolationError,
    NoActiveBorrowError,
    NotFoundError,
    StorageFailureError,
)
from .schema import Book as BookDB
from .schema import BorrowRecord as BorrowDB
from .schema import Patron as PatronDB
from .session import safe_commit, safe_query

logger = logging.getLogger(__name__)


class LendingRepository:
    """
    Repository for borrow and return operations.

    Each public mutating method is one transaction. Reads never reuse rows
    the session already holds.
    """

    def __init__(self, session: Session, today: Callable[[], date] = date.today):
        """
        Initialize with a database session.

        Args:
            session: Database session
            today: Clock used for borrow and return dates
        """
        self.session = session
        self.today = today

    # === State transitions ===

    def borrow(self, book_id: int, patron_id: int) -> BorrowRecordModel:
        """
        Lend a book to a patron.

        Checks run in this order: the book exists, the book is not out, the
        patron exists. On success an open record dated today is inserted and
        the book is flagged borrowed, in one commit.

        Raises:
            NotFoundError: If the book or the patron does not exist
            AlreadyBorrowedError: If the book is already out
            IntegrityViolationError: If the book's flag and records disagree
        """
        book = self._lock_book(book_id)
        open_records = self._open_records_for_book(book_id)
        self._check_consistency(book, open_records)

        if book.is_borrowed:
            raise AlreadyBorrowedError(
                f"Book {book_id} is already borrowed (record {open_records[0].id})", book_id
            )

        patron = safe_query(
            self.session,
            lambda s: s.get(PatronDB, patron_id, populate_existing=True),
            "Failed to get patron for borrow",
        )
        if patron is None:
            raise NotFoundError(f"Patron {patron_id} not found", patron_id)

        record = BorrowDB(
            book_id=book_id,
            borrower_id=patron_id,
            borrow_date=self.today(),
            return_date=None,
        )

        try:
            self.session.add(record)
            self._set_borrowed(book_id, expected=False, borrowed=True)
            self.session.flush()
        except IntegrityError as e:
            self.session.rollback()
            if "UNIQUE" in str(e.orig).upper():
                # Another session opened a record for this book first
                raise AlreadyBorrowedError(f"Book {book_id} is already borrowed", book_id) from e
            raise StorageFailureError(f"Borrow of book {book_id} failed: {e!s}") from e
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StorageFailureError(f"Borrow of book {book_id} failed: {e!s}") from e

        safe_commit(self.session, "borrow book")
        logger.info(
            "Book %s borrowed by patron %s (record %s)", book_id, patron_id, record.id
        )
        return BorrowRecordModel.model_validate(record)

    def return_book(self, book_id: int) -> date:
        """
        Close the open borrow record of a book.

        Returns:
            The return date written to the record

        Raises:
            NotFoundError: If the book does not exist
            NoActiveBorrowError: If the book is not out
            IntegrityViolationError: If the book has several open records,
                or its flag and records disagree
        """
        book = self._lock_book(book_id)
        open_records = self._open_records_for_book(book_id)
        self._check_consistency(book, open_records)

        if not open_records:
            raise NoActiveBorrowError(f"Book {book_id} is not currently borrowed", book_id)

        record = open_records[0]
        return_date = self.today()

        try:
            record.return_date = return_date
            self._set_borrowed(book_id, expected=True, borrowed=False)
            self.session.flush()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StorageFailureError(f"Return of book {book_id} failed: {e!s}") from e

        safe_commit(self.session, "return book")
        logger.info(
            "Book %s returned by patron %s on %s (record %s)",
            book_id,
            record.borrower_id,
            return_date.isoformat(),
            record.id,
        )
        return return_date

    def release_books_for_patron(self, patron_id: int) -> list[int]:
        """
        Clear the borrowed flag of every book the patron holds.

        Call this in the same transaction that deletes the patron, before
        the delete: the database cascade removes the open records but has
        no way to reset the flags. Does not commit.

        Returns:
            IDs of the books that became available
        """
        book_ids = list(
            safe_query(
                self.session,
                lambda s: s.execute(
                    select(BorrowDB.book_id)
                    .where(BorrowDB.borrower_id == patron_id, BorrowDB.return_date.is_(None))
                    .order_by(BorrowDB.book_id)
                ).scalars().all(),
                "Failed to find open borrows for patron",
            )
        )

        if not book_ids:
            return book_ids

        try:
            result = self.session.execute(
                update(BookDB)
                .where(BookDB.id.in_(book_ids), BookDB.is_borrowed.is_(True))
                .values(is_borrowed=False)
                .execution_options(synchronize_session=False)
            )
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StorageFailureError(
                f"Release of books held by patron {patron_id} failed: {e!s}"
            ) from e

        if result.rowcount != len(book_ids):
            self.session.rollback()
            raise IntegrityViolationError(
                f"Patron {patron_id} holds open records on books {book_ids} "
                f"but only {result.rowcount} of them are flagged borrowed"
            )

        logger.info("Released books %s held by patron %s", book_ids, patron_id)
        return book_ids

    # === Queries ===

    def get_record(self, record_id: int) -> BorrowRecordModel:
        """
        Get a borrow record by ID.

        Raises:
            NotFoundError: If no record has this ID
        """
        record = safe_query(
            self.session,
            lambda s: s.get(BorrowDB, record_id, populate_existing=True),
            "Failed to get borrow record",
        )
        if record is None:
            raise NotFoundError(f"Borrow record {record_id} not found", record_id)
        return BorrowRecordModel.model_validate(record)

    def history_for_patron(self, patron_id: int) -> list[BorrowRecordModel]:
        """
        Get every borrow record of a patron, open and closed, by record ID.

        A patron who never borrowed (or does not exist) has an empty history.
        """
        query = (
            select(BorrowDB)
            .where(BorrowDB.borrower_id == patron_id)
            .order_by(BorrowDB.id)
            .execution_options(populate_existing=True)
        )
        results = safe_query(
            self.session,
            lambda s: s.execute(query).scalars().all(),
            "Failed to get patron history",
        )
        return [BorrowRecordModel.model_validate(record) for record in results]

    def open_borrows_for_patron(self, patron_id: int) -> list[OpenBorrow]:
        """
        Get the patron's open records, each joined with its book.

        This is what a return workflow offers the patron to choose from.
        """
        query = (
            select(BorrowDB, BookDB)
            .join(BookDB, BorrowDB.book_id == BookDB.id)
            .where(BorrowDB.borrower_id == patron_id, BorrowDB.return_date.is_(None))
            .order_by(BorrowDB.id)
            .execution_options(populate_existing=True)
        )
        rows = safe_query(
            self.session,
            lambda s: s.execute(query).all(),
            "Failed to get open borrows for patron",
        )
        return [
            OpenBorrow(
                record=BorrowRecordModel.model_validate(record),
                book=BookModel.model_validate(book),
            )
            for record, book in rows
        ]

    def check_integrity(self) -> int:
        """
        Audit every book against its open records.

        Returns:
            Number of books checked

        Raises:
            IntegrityViolationError: On the first book whose flag disagrees
                with its open records, or that has several open records
        """
        open_counts = (
            select(BorrowDB.book_id, func.count(BorrowDB.id).label("open_count"))
            .where(BorrowDB.return_date.is_(None))
            .group_by(BorrowDB.book_id)
            .subquery()
        )
        query = (
            select(BookDB.id, BookDB.is_borrowed, func.coalesce(open_counts.c.open_count, 0))
            .outerjoin(open_counts, open_counts.c.book_id == BookDB.id)
            .order_by(BookDB.id)
        )
        rows = safe_query(
            self.session,
            lambda s: s.execute(query).all(),
            "Failed to audit lending state",
        )

        for book_id, is_borrowed, open_count in rows:
            if open_count > 1:
                raise IntegrityViolationError(
                    f"Book {book_id} has {open_count} open borrow records"
                )
            if bool(is_borrowed) != (open_count == 1):
                raise IntegrityViolationError(
                    f"Book {book_id} is_borrowed={bool(is_borrowed)} "
                    f"but has {open_count} open borrow records"
                )

        return len(rows)

    # === Internals ===

    def _lock_book(self, book_id: int) -> BookDB:
        query = (
            select(BookDB)
            .where(BookDB.id == book_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        book = safe_query(
            self.session,
            lambda s: s.execute(query).scalar_one_or_none(),
            "Failed to get book for lending",
        )
        if book is None:
            raise NotFoundError(f"Book {book_id} not found", book_id)
        return book

    def _open_records_for_book(self, book_id: int) -> list[BorrowDB]:
        query = (
            select(BorrowDB)
            .where(BorrowDB.book_id == book_id, BorrowDB.return_date.is_(None))
            .order_by(BorrowDB.id)
            .execution_options(populate_existing=True)
        )
        return list(
            safe_query(
                self.session,
                lambda s: s.execute(query).scalars().all(),
                "Failed to get open borrow records",
            )
        )

    def _check_consistency(self, book: BookDB, open_records: list[BorrowDB]) -> None:
        if len(open_records) > 1:
            ids = [record.id for record in open_records]
            logger.error("Book %s has several open borrow records: %s", book.id, ids)
            raise IntegrityViolationError(
                f"Book {book.id} has {len(open_records)} open borrow records {ids}"
            )
        if book.is_borrowed != bool(open_records):
            logger.error(
                "Book %s is_borrowed=%s disagrees with %d open records",
                book.id,
                book.is_borrowed,
                len(open_records),
            )
            raise IntegrityViolationError(
                f"Book {book.id} is_borrowed={book.is_borrowed} "
                f"but has {len(open_records)} open borrow records"
            )

    def _set_borrowed(self, book_id: int, expected: bool, borrowed: bool) -> None:
        result = self.session.execute(
            update(BookDB)
            .where(BookDB.id == book_id, BookDB.is_borrowed == expected)
            .values(is_borrowed=borrowed)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            # Someone else flipped the flag since we read it
            self.session.rollback()
            if borrowed:
                raise AlreadyBorrowedError(f"Book {book_id} is already borrowed", book_id)
            raise NoActiveBorrowError(f"Book {book_id} is not currently borrowed", book_id)
