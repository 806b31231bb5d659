"""
Lending Ledger package.

Keeps the lending records of a small library consistent: authors, books,
patrons and the open/closed borrow records linking patrons to books.

Key Components:
- models: Pydantic models handed to callers
- database: SQLAlchemy schema, sessions and repositories
- tools: CatalogManager, PatronRegistry and LendingEngine, returning
  tagged results
- config: Configuration management with pydantic-settings
"""

__version__ = "0.1.0"

from .config import LedgerConfig, configure_logging, get_config, reset_config
from .tools import CatalogManager, ErrorKind, LendingEngine, OperationResult, PatronRegistry

__all__ = [
    "CatalogManager",
    "ErrorKind",
    "LedgerConfig",
    "LendingEngine",
    "OperationResult",
    "PatronRegistry",
    "__version__",
    "configure_logging",
    "get_config",
    "reset_config",
]
