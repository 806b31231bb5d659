"""
Author model for the Lending Ledger.

Authors own books: every book references exactly one author, and deleting an
author removes the author's books from the catalog.
"""

from pydantic import BaseModel, ConfigDict, Field

from .book import Book


class Author(BaseModel):
    """Represents an author in the catalog."""

    id: int = Field(
        ...,
        description="Unique identifier for the author",
        gt=0,
        examples=[1, 42],
    )

    name: str = Field(
        ...,
        description="Full name of the author",
        min_length=1,
        max_length=200,
        examples=["George Orwell", "Harper Lee"],
    )

    model_config = ConfigDict(
        from_attributes=True,
        str_strip_whitespace=True,
        json_schema_extra={"example": {"id": 1, "name": "George Orwell"}},
    )


class AuthorWithBooks(Author):
    """Author together with the author's books, ordered by book id."""

    books: list[Book] = Field(
        default_factory=list,
        description="Books written by this author",
    )

    @property
    def book_count(self) -> int:
        """Get the number of books by this author."""
        return len(self.books)
