"""
Book model for the Lending Ledger.

``is_borrowed`` is true exactly while an open borrow record exists for the
book. Callers never set it; the lending engine does.
"""

from pydantic import BaseModel, ConfigDict, Field


class Book(BaseModel):
    """Represents a book in the catalog."""

    id: int = Field(
        ...,
        description="Unique identifier for the book",
        gt=0,
        examples=[1, 7],
    )

    author_id: int = Field(
        ...,
        description="Identifier of the book's author",
        gt=0,
        examples=[1],
    )

    title: str = Field(
        ...,
        description="The title of the book",
        min_length=1,
        max_length=500,
        examples=["1984", "To Kill a Mockingbird"],
    )

    genre: str = Field(
        ...,
        description="Literary genre or category of the book",
        max_length=100,
        examples=["Dystopian", "Fiction"],
    )

    is_borrowed: bool = Field(
        default=False,
        description="Whether the book is currently lent out",
    )

    @property
    def is_available(self) -> bool:
        """Check if the book can be borrowed."""
        return not self.is_borrowed

    model_config = ConfigDict(
        from_attributes=True,
        str_strip_whitespace=True,
        json_schema_extra={
            "example": {
                "id": 1,
                "author_id": 1,
                "title": "1984",
                "genre": "Dystopian",
                "is_borrowed": False,
            }
        },
    )
