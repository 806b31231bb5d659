"""
Author repository implementation for the Lending Ledger.

Authors are the parents of the catalog. Deleting one is the widest cascade
the ledger has: the author's books go, and with them every borrow record
that referenced those books, open or closed. The whole cascade is a single
commit.
"""

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import select
from sqlalchemy.orm import selectinload

from ..models.author import Author as AuthorModel
from ..models.author import AuthorWithBooks
from ..models.book import Book as BookModel
from .repository import BaseRepository
from .schema import Author as AuthorDB
from .session import safe_query


class AuthorCreateSchema(BaseModel):
    """Schema for creating a new author."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=200)


class AuthorUpdateSchema(BaseModel):
    """Schema for renaming an author."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str | None = Field(None, min_length=1, max_length=200)


class AuthorRepository(
    BaseRepository[AuthorDB, AuthorCreateSchema, AuthorUpdateSchema, AuthorModel]
):
    """Repository for author data access."""

    @property
    def model_class(self):
        return AuthorDB

    @property
    def response_schema(self):
        return AuthorModel

    def list_with_books(self) -> list[AuthorWithBooks]:
        """
        Get every author with the author's books.

        Authors are ordered by ID and each author's books by book ID.
        """
        query = (
            select(AuthorDB)
            .options(selectinload(AuthorDB.books))
            .order_by(AuthorDB.id)
            .execution_options(populate_existing=True)
        )
        results = safe_query(
            self.session,
            lambda s: s.execute(query).scalars().all(),
            "Failed to list authors with books",
        )
        return [self._to_model_with_books(author) for author in results]

    def _to_model_with_books(self, db_author: AuthorDB) -> AuthorWithBooks:
        return AuthorWithBooks(
            id=db_author.id,
            name=db_author.name,
            books=[BookModel.model_validate(book) for book in db_author.books],
        )
