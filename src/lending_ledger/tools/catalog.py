"""
Catalog tools for the Lending Ledger.

The catalog manager maintains authors and books. Its rules:
1. A book can only be added under an existing author; the author is never
   created implicitly
2. Deleting an author deletes the author's books and their borrow records
   in one transaction
3. Deleting a book deletes its borrow records, open or closed
"""

import logging

from ..database.author_repository import AuthorCreateSchema, AuthorRepository
from ..database.book_repository import BookCreateSchema, BookRepository, BookUpdateSchema
from ..database.repository import KeysetSequence, parse_input
from ..models.author import Author, AuthorWithBooks
from ..models.book import Book
from .base import LedgerTool
from .results import OperationResult

logger = logging.getLogger(__name__)


class CatalogManager(LedgerTool):
    """CRUD over authors and books."""

    # === Authors ===

    def add_author(self, name: str) -> OperationResult[int]:
        """Add an author and return the new author's ID."""

        def run(session):
            data = parse_input(AuthorCreateSchema, name=name)
            author = AuthorRepository(session).create(data)
            logger.info("Added author %s: %s", author.id, author.name)
            return author.id

        return self._execute("add_author", run)

    def get_author(self, author_id: int) -> OperationResult[Author]:
        return self._execute("get_author", lambda s: AuthorRepository(s).require(author_id))

    def list_authors(self) -> OperationResult[list[Author]]:
        """List all authors ordered by ID."""
        return self._execute("list_authors", lambda s: AuthorRepository(s).get_all())

    def list_authors_with_books(self) -> OperationResult[list[AuthorWithBooks]]:
        """List all authors, each with the author's books."""
        return self._execute(
            "list_authors_with_books", lambda s: AuthorRepository(s).list_with_books()
        )

    def delete_author(self, author_id: int) -> OperationResult[None]:
        """
        Delete an author together with the author's books and their borrow
        records. Nothing is deleted unless everything is.
        """

        def run(session):
            AuthorRepository(session).delete(author_id)
            logger.info("Deleted author %s with all of the author's books", author_id)

        return self._execute("delete_author", run)

    # === Books ===

    def add_book(self, author_id: int, title: str, genre: str) -> OperationResult[int]:
        """Add an available book under an existing author; returns its ID."""

        def run(session):
            data = parse_input(BookCreateSchema, author_id=author_id, title=title, genre=genre)
            book = BookRepository(session).create(data)
            logger.info("Added book %s: %r by author %s", book.id, book.title, book.author_id)
            return book.id

        return self._execute("add_book", run)

    def get_book(self, book_id: int) -> OperationResult[Book]:
        return self._execute("get_book", lambda s: BookRepository(s).require(book_id))

    def list_books(self) -> OperationResult[list[Book]]:
        """List the whole catalog ordered by book ID."""
        return self._execute("list_books", lambda s: BookRepository(s).get_all())

    def update_book(
        self,
        book_id: int,
        title: str | None = None,
        genre: str | None = None,
        author_id: int | None = None,
    ) -> OperationResult[Book]:
        """Change any of title, genre and author; omitted fields are kept."""
        changes = {
            key: value
            for key, value in {"title": title, "genre": genre, "author_id": author_id}.items()
            if value is not None
        }

        def run(session):
            data = parse_input(BookUpdateSchema, **changes)
            book = BookRepository(session).update(book_id, data)
            logger.info("Updated book %s: %s", book_id, sorted(changes))
            return book

        return self._execute("update_book", run)

    def delete_book(self, book_id: int) -> OperationResult[None]:
        """Delete a book and all of its borrow records."""

        def run(session):
            BookRepository(session).delete(book_id)
            logger.info("Deleted book %s", book_id)

        return self._execute("delete_book", run)

    def list_books_by_author(self, author_id: int) -> OperationResult[KeysetSequence]:
        """
        Lazily list an author's books ordered by ID.

        The returned sequence reads nothing until iterated and re-reads the
        catalog on every iteration.
        """
        return self._execute(
            "list_books_by_author",
            lambda s: BookRepository(s).books_by_author(
                author_id, open_session=self.db.session_scope
            ),
        )
