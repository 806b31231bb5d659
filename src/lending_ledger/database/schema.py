"""
SQLAlchemy database schema for the Lending Ledger.

This module defines the four tables of the ledger and the foreign-key rules
the database enforces on our behalf:

1. books.author_id -> authors.id: ON DELETE CASCADE, ON UPDATE RESTRICT
2. borrow_records.book_id -> books.id: ON DELETE CASCADE, ON UPDATE CASCADE
3. borrow_records.borrower_id -> patrons.id: ON DELETE CASCADE, ON UPDATE RESTRICT

Every table uses AUTOINCREMENT on SQLite so deleted ids are never handed out
again.

The database cannot keep ``books.is_borrowed`` in step with the borrow
records by itself; the lending repository owns that flag. What the database
can do is refuse a second open record for the same book, which the partial
unique index ``uq_open_borrow_per_book`` guarantees.
"""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
    false,
    text,
)
from sqlalchemy.orm import declarative_base, relationship, validates

# Base class for all SQLAlchemy models
Base = declarative_base()


class Author(Base):
    """
    Authors table - parent of the catalog.

    Deleting an author removes all of the author's books, and through them
    their borrow records.
    """

    __tablename__ = "authors"

    id = Column(Integer, primary_key=True)
    name = Column(String(200), nullable=False)

    # Relationships
    books = relationship(
        "Book",
        back_populates="author",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Book.id",
    )

    __table_args__ = (
        Index("idx_author_name", "name"),
        {"sqlite_autoincrement": True},
    )


class Book(Base):
    """
    Books table - the library catalog.

    ``is_borrowed`` mirrors whether an open borrow record exists for the
    book. The lending repository is the only writer of this column.
    """

    __tablename__ = "books"

    id = Column(Integer, primary_key=True)
    author_id = Column(
        Integer,
        ForeignKey("authors.id", ondelete="CASCADE", onupdate="RESTRICT"),
        nullable=False,
    )
    title = Column(String(500), nullable=False)
    genre = Column(String(100), nullable=False)
    is_borrowed = Column(Boolean, nullable=False, default=False, server_default=false())

    # Relationships
    author = relationship("Author", back_populates="books")
    borrow_records = relationship(
        "BorrowRecord",
        back_populates="book",
        cascade="all",
        passive_deletes=True,
        order_by="BorrowRecord.id",
    )

    __table_args__ = (
        Index("idx_book_author", "author_id"),
        Index("idx_book_title", "title"),
        {"sqlite_autoincrement": True},
    )


class Patron(Base):
    """
    Patrons table - people who borrow books.

    Deleting a patron destroys the patron's whole borrowing history.
    """

    __tablename__ = "patrons"

    id = Column(Integer, primary_key=True)
    name = Column(String(200), nullable=False)
    email = Column(String(255), nullable=False)

    # Relationships
    borrow_records = relationship(
        "BorrowRecord",
        back_populates="borrower",
        cascade="all",
        passive_deletes=True,
        order_by="BorrowRecord.id",
    )

    __table_args__ = (
        Index("idx_patron_email", "email"),
        CheckConstraint("email LIKE '%@%'", name="check_patron_email_format"),
        {"sqlite_autoincrement": True},
    )

    @validates("email")
    def validate_email(self, key, value):  # noqa: ARG002
        """Reject addresses without an '@' before they reach the database."""
        if value is None or "@" not in value:
            raise ValueError(f"Invalid email address: {value!r}")
        return value


class BorrowRecord(Base):
    """
    Borrow records table - one row per loan.

    A record without a return date is open: the book is currently out.
    """

    __tablename__ = "borrow_records"

    id = Column(Integer, primary_key=True)
    book_id = Column(
        Integer,
        ForeignKey("books.id", ondelete="CASCADE", onupdate="CASCADE"),
        nullable=False,
    )
    borrower_id = Column(
        Integer,
        ForeignKey("patrons.id", ondelete="CASCADE", onupdate="RESTRICT"),
        nullable=False,
    )
    borrow_date = Column(Date, nullable=False)
    return_date = Column(Date, nullable=True)

    # Relationships
    book = relationship("Book", back_populates="borrow_records")
    borrower = relationship("Patron", back_populates="borrow_records")

    __table_args__ = (
        Index("idx_borrow_book", "book_id"),
        Index("idx_borrow_borrower", "borrower_id"),
        # At most one open record per book
        Index(
            "uq_open_borrow_per_book",
            "book_id",
            unique=True,
            sqlite_where=text("return_date IS NULL"),
            postgresql_where=text("return_date IS NULL"),
        ),
        CheckConstraint(
            "return_date IS NULL OR return_date >= borrow_date",
            name="check_return_after_borrow",
        ),
        {"sqlite_autoincrement": True},
    )

    @property
    def is_open(self) -> bool:
        """Check if the book is still out on this record."""
        return self.return_date is None
