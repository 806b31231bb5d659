"""
Database package for the Lending Ledger.

This package provides:
- SQLAlchemy schema definitions with the ledger's foreign-key rules (schema.py)
- Session management and transactional scopes (session.py)
- Repositories for authors, books, patrons and lending
- The exception hierarchy shared by every layer (errors.py)
"""

from .author_repository import AuthorCreateSchema, AuthorRepository, AuthorUpdateSchema
from .book_repository import BookCreateSchema, BookRepository, BookUpdateSchema
from .errors import (
    AlreadyBorrowedError,
    IntegrityViolationError,
    InvalidFormatError,
    InvalidReferenceError,
    LedgerError,
    NoActiveBorrowError,
    NotFoundError,
    RepositoryException,
    StorageFailureError,
)
from .lending_repository import LendingRepository
from .patron_repository import PatronCreateSchema, PatronRepository, PatronUpdateSchema
from .repository import BaseRepository, KeysetSequence, parse_input
from .schema import Author, Base, Book, BorrowRecord, Patron
from .session import (
    DatabaseManager,
    get_db_manager,
    reset_db_manager,
    safe_commit,
    safe_query,
)

__all__ = [
    "AlreadyBorrowedError",
    "Author",
    "AuthorCreateSchema",
    "AuthorRepository",
    "AuthorUpdateSchema",
    "Base",
    "BaseRepository",
    "Book",
    "BookCreateSchema",
    "BookRepository",
    "BookUpdateSchema",
    "BorrowRecord",
    "DatabaseManager",
    "IntegrityViolationError",
    "InvalidFormatError",
    "InvalidReferenceError",
    "KeysetSequence",
    "LedgerError",
    "LendingRepository",
    "NoActiveBorrowError",
    "NotFoundError",
    "Patron",
    "PatronCreateSchema",
    "PatronRepository",
    "PatronUpdateSchema",
    "RepositoryException",
    "StorageFailureError",
    "get_db_manager",
    "parse_input",
    "reset_db_manager",
    "safe_commit",
    "safe_query",
]
