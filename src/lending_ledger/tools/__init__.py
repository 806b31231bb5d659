"""
Consumer-facing ledger components.

Each method runs one operation in its own transaction and returns an
``OperationResult`` instead of raising for refused requests:
- CatalogManager: authors and books
- PatronRegistry: patrons
- LendingEngine: borrow, return and borrowing history
"""

from .catalog import CatalogManager
from .lending import LendingEngine
from .patrons import PatronRegistry
from .results import ErrorKind, OperationResult

__all__ = [
    "CatalogManager",
    "ErrorKind",
    "LendingEngine",
    "OperationResult",
    "PatronRegistry",
]
