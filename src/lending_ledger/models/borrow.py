"""
Borrow record models for the Lending Ledger.

A borrow record links one patron to one book for the span of a loan:
- open: ``return_date`` is unset and the book is out
- closed: ``return_date`` is set and the record is history

Dates are whole days; they serialize as ISO ``YYYY-MM-DD`` strings.
"""

from datetime import date

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .book import Book


class BorrowRecord(BaseModel):
    """Represents one loan of a book to a patron."""

    id: int = Field(
        ...,
        description="Unique identifier for the borrow record",
        gt=0,
    )

    book_id: int = Field(
        ...,
        description="Identifier of the borrowed book",
        gt=0,
    )

    borrower_id: int = Field(
        ...,
        description="Identifier of the borrowing patron",
        gt=0,
    )

    borrow_date: date = Field(
        ...,
        description="Day the book was lent out",
        examples=["2024-03-01"],
    )

    return_date: date | None = Field(
        None,
        description="Day the book came back; unset while the loan is open",
        examples=["2024-03-15", None],
    )

    @model_validator(mode="after")
    def validate_dates(self) -> "BorrowRecord":
        """A book cannot come back before it went out."""
        if self.return_date is not None and self.return_date < self.borrow_date:
            raise ValueError("Return date cannot be before borrow date")
        return self

    @property
    def is_open(self) -> bool:
        """Check if the book is still out on this record."""
        return self.return_date is None

    @property
    def loan_days(self) -> int | None:
        """Length of a closed loan in days."""
        if self.return_date is None:
            return None
        return (self.return_date - self.borrow_date).days

    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "id": 1,
                "book_id": 1,
                "borrower_id": 1,
                "borrow_date": "2024-03-01",
                "return_date": None,
            }
        },
    )


class OpenBorrow(BaseModel):
    """An open borrow record joined with the book it lends out."""

    record: BorrowRecord
    book: Book
