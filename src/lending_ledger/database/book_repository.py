"""
Book repository implementation for the Lending Ledger.

This repository owns the catalog side of books:

1. **Creation**: a book can only be added under an author that exists
2. **Updates**: title, genre and author; the borrowed flag is not editable
   here, the lending repository maintains it
3. **Deletion**: removes the book's borrow records through the database
   cascade
4. **Listing**: per-author sequences ordered by book ID
"""

import logging

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.exc import IntegrityError

from ..models.book import Book as BookModel
from .errors import InvalidReferenceError
from .repository import BaseRepository, KeysetSequence, SessionOpener
from .schema import Author as AuthorDB
from .schema import Book as BookDB
from .session import safe_query

logger = logging.getLogger(__name__)


class BookCreateSchema(BaseModel):
    """Schema for creating a new book."""

    model_config = ConfigDict(str_strip_whitespace=True)

    author_id: int
    title: str = Field(..., min_length=1, max_length=500)
    genre: str = Field(..., max_length=100)


class BookUpdateSchema(BaseModel):
    """Schema for updating a book - all fields optional."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str | None = Field(None, min_length=1, max_length=500)
    genre: str | None = Field(None, max_length=100)
    author_id: int | None = None


class BookRepository(BaseRepository[BookDB, BookCreateSchema, BookUpdateSchema, BookModel]):
    """Repository for book data access."""

    @property
    def model_class(self):
        return BookDB

    @property
    def response_schema(self):
        return BookModel

    def create(self, data: BookCreateSchema) -> BookModel:
        """
        Add a book under an existing author.

        New books are always available.

        Raises:
            InvalidReferenceError: If the author does not exist
        """
        self._check_author(data.author_id)
        return super().create(data)

    def update(self, id: int, data: BookUpdateSchema) -> BookModel:
        """
        Update title, genre and/or author of a book.

        Raises:
            NotFoundError: If the book does not exist
            InvalidReferenceError: If a new author does not exist
        """
        self._require_db_obj(id)
        if data.author_id is not None:
            self._check_author(data.author_id)
        return super().update(id, data)

    def books_by_author(
        self, author_id: int, open_session: SessionOpener | None = None
    ) -> KeysetSequence[BookDB, BookModel]:
        """
        Lazily list an author's books ordered by book ID.

        The sequence can be iterated any number of times; each pass reads
        the current catalog.
        """
        return self.iter_all(BookDB.author_id == author_id, open_session=open_session)

    def _check_author(self, author_id: int) -> None:
        found = safe_query(
            self.session,
            lambda s: s.get(AuthorDB, author_id, populate_existing=True),
            "Failed to check author reference",
        )
        if found is None:
            raise InvalidReferenceError(f"Author {author_id} does not exist", author_id)

    def _integrity_error(self, operation: str, error: IntegrityError) -> Exception:
        # The author can vanish between the check and the flush
        if "FOREIGN KEY" in str(error.orig).upper():
            return InvalidReferenceError(f"{operation} failed: author reference is not valid")
        return super()._integrity_error(operation, error)
