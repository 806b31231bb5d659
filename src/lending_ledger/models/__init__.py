"""
Lending Ledger Models.

Pydantic models for the entities of the ledger. Repositories return these
detached, validated values instead of live database rows, so nothing a
caller holds can go stale behind its back.

The models represent:
- Author: book authors, optionally with their books
- Book: catalog items and their borrowed flag
- Patron: library members who can borrow books
- BorrowRecord: open and closed loans
"""

from .author import Author, AuthorWithBooks
from .book import Book
from .borrow import BorrowRecord, OpenBorrow
from .patron import Patron, validate_email_address

__all__ = [
    "Author",
    "AuthorWithBooks",
    "Book",
    "BorrowRecord",
    "OpenBorrow",
    "Patron",
    "validate_email_address",
]
