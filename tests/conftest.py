"""Test configuration and fixtures for the Lending Ledger.

Every test gets:
1. Its own SQLite database file with foreign keys enforced
2. A clean configuration singleton and no LENDING_LEDGER_* variables
   leaking in from the developer's shell
3. A fixed clock, so borrow and return dates are predictable
"""

import os
from collections.abc import Generator
from datetime import date
from pathlib import Path

import pytest
from sqlalchemy import text
from sqlalchemy.orm import Session

from lending_ledger.config import LedgerConfig, reset_config
from lending_ledger.database import (
    AuthorCreateSchema,
    AuthorRepository,
    BookCreateSchema,
    BookRepository,
    DatabaseManager,
    LendingRepository,
    PatronCreateSchema,
    PatronRepository,
    reset_db_manager,
)
from lending_ledger.tools import CatalogManager, LendingEngine, PatronRegistry

TODAY = date(2024, 3, 15)


# === Environment Fixtures ===


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Keep configuration and the global database manager per-test."""
    for key in list(os.environ):
        if key.upper().startswith("LENDING_LEDGER_"):
            monkeypatch.delenv(key)

    monkeypatch.setenv("LENDING_LEDGER_DATABASE_PATH", str(tmp_path / "default.db"))
    reset_config()
    reset_db_manager()

    yield

    reset_db_manager()
    reset_config()


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Provide an environment without any LENDING_LEDGER_* variables."""
    for key in list(os.environ):
        if key.upper().startswith("LENDING_LEDGER_"):
            monkeypatch.delenv(key)


# === Test Database Fixtures ===


@pytest.fixture
def test_db_path(tmp_path: Path) -> Path:
    """Provide a temporary database path for each test."""
    return tmp_path / "test_ledger.db"


@pytest.fixture
def test_database_url(test_db_path: Path) -> str:
    return f"sqlite:///{test_db_path}"


@pytest.fixture
def db_manager(test_database_url: str) -> Generator[DatabaseManager, None, None]:
    """Provide an initialized database manager on a fresh SQLite file."""
    manager = DatabaseManager(test_database_url)
    manager.init_database()
    yield manager
    manager.close()


@pytest.fixture
def test_db_session(db_manager: DatabaseManager) -> Generator[Session, None, None]:
    """Provide a session; committed changes are visible to other sessions."""
    session = db_manager.create_session()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def test_config(test_db_path: Path) -> Generator[LedgerConfig, None, None]:
    """Provide a test-specific configuration."""
    reset_config()
    config = LedgerConfig(database_path=test_db_path, debug=True, log_level="DEBUG")
    yield config
    reset_config()


# === Clock ===


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def clock(today: date):
    """A clock that always reads ``today``."""
    return lambda: today


# === Repository Fixtures ===


@pytest.fixture
def repositories(test_db_session: Session, clock) -> dict:
    """Create repository instances sharing one session."""
    return {
        "author": AuthorRepository(test_db_session),
        "book": BookRepository(test_db_session),
        "patron": PatronRepository(test_db_session),
        "lending": LendingRepository(test_db_session, today=clock),
    }


@pytest.fixture
def sample_catalog(repositories) -> dict:
    """Orwell with two books, Lee with one, and two patrons."""
    orwell = repositories["author"].create(AuthorCreateSchema(name="George Orwell"))
    lee = repositories["author"].create(AuthorCreateSchema(name="Harper Lee"))

    nineteen = repositories["book"].create(
        BookCreateSchema(author_id=orwell.id, title="1984", genre="Dystopian")
    )
    farm = repositories["book"].create(
        BookCreateSchema(author_id=orwell.id, title="Animal Farm", genre="Satire")
    )
    mockingbird = repositories["book"].create(
        BookCreateSchema(author_id=lee.id, title="To Kill a Mockingbird", genre="Fiction")
    )

    ann = repositories["patron"].create(PatronCreateSchema(name="Ann", email="ann@x.com"))
    bob = repositories["patron"].create(PatronCreateSchema(name="Bob", email="bob@x.com"))

    return {
        "orwell": orwell,
        "lee": lee,
        "1984": nineteen,
        "animal_farm": farm,
        "mockingbird": mockingbird,
        "ann": ann,
        "bob": bob,
    }


# === Tool Fixtures ===


@pytest.fixture
def catalog(db_manager: DatabaseManager) -> CatalogManager:
    return CatalogManager(db_manager)


@pytest.fixture
def patrons(db_manager: DatabaseManager) -> PatronRegistry:
    return PatronRegistry(db_manager)


@pytest.fixture
def lending(db_manager: DatabaseManager, clock) -> LendingEngine:
    return LendingEngine(db_manager, today=clock)


# === Utility Functions ===


def open_record_counts(session: Session) -> dict[int, tuple[bool, int]]:
    """Map each book id to (is_borrowed, number of open records), read with raw SQL."""
    rows = session.execute(
        text(
            """
            SELECT b.id, b.is_borrowed,
                   (SELECT COUNT(*) FROM borrow_records r
                     WHERE r.book_id = b.id AND r.return_date IS NULL)
            FROM books b ORDER BY b.id
            """
        )
    ).all()
    return {book_id: (bool(flag), count) for book_id, flag, count in rows}


def _assert_lending_invariant(session: Session) -> None:
    """Every book is flagged borrowed exactly when it has one open record."""
    for book_id, (is_borrowed, open_count) in open_record_counts(session).items():
        assert open_count <= 1, f"book {book_id} has {open_count} open records"
        assert is_borrowed == (open_count == 1), (
            f"book {book_id}: is_borrowed={is_borrowed}, open records={open_count}"
        )


@pytest.fixture
def assert_invariant(db_manager: DatabaseManager):
    """Check the borrowed flags against the open records on a fresh session."""

    def check() -> None:
        with db_manager.session_scope() as session:
            _assert_lending_invariant(session)

    return check
