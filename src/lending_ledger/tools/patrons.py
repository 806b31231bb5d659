"""
Patron tools for the Lending Ledger.

Email addresses are validated before the patron is written; a malformed
address is reported as ``invalid_format`` and leaves no row behind. Whether
to ask the user again is the caller's decision.
"""

import logging

from ..database.patron_repository import (
    PatronCreateSchema,
    PatronRepository,
    PatronUpdateSchema,
)
from ..database.repository import parse_input
from ..models.patron import Patron
from .base import LedgerTool
from .results import OperationResult

logger = logging.getLogger(__name__)


class PatronRegistry(LedgerTool):
    """CRUD over patrons."""

    def add_patron(self, name: str, email: str) -> OperationResult[int]:
        """Register a patron and return the new patron's ID."""

        def run(session):
            data = parse_input(PatronCreateSchema, name=name, email=email)
            patron = PatronRepository(session).create(data)
            logger.info("Registered patron %s: %s", patron.id, patron.name)
            return patron.id

        return self._execute("add_patron", run)

    def get_patron(self, patron_id: int) -> OperationResult[Patron]:
        return self._execute("get_patron", lambda s: PatronRepository(s).require(patron_id))

    def list_patrons(self) -> OperationResult[list[Patron]]:
        return self._execute("list_patrons", lambda s: PatronRepository(s).get_all())

    def update_patron(
        self, patron_id: int, name: str | None = None, email: str | None = None
    ) -> OperationResult[Patron]:
        """Change a patron's name and/or email; the new email is validated."""
        changes = {
            key: value for key, value in {"name": name, "email": email}.items() if value is not None
        }

        def run(session):
            data = parse_input(PatronUpdateSchema, **changes)
            return PatronRepository(session).update(patron_id, data)

        return self._execute("update_patron", run)

    def delete_patron(self, patron_id: int) -> OperationResult[None]:
        """
        Delete a patron and the patron's entire borrowing history.

        Books the patron still holds become available again.
        """
        return self._execute("delete_patron", lambda s: PatronRepository(s).delete(patron_id))
