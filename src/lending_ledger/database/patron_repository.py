"""
Patron repository implementation for the Lending Ledger.

This repository manages library members:

1. **Registration**: the contact address is validated before anything is
   written
2. **Deletion**: removes the patron's whole borrowing history through the
   database cascade, and releases any books the patron still holds
"""

import logging

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..models.patron import Patron as PatronModel
from ..models.patron import validate_email_address
from .lending_repository import LendingRepository
from .repository import BaseRepository
from .schema import Patron as PatronDB
from .session import safe_commit

logger = logging.getLogger(__name__)


class PatronCreateSchema(BaseModel):
    """Schema for registering a new patron."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=200)
    email: str = Field(..., max_length=255)

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str) -> str:
        return validate_email_address(v)


class PatronUpdateSchema(BaseModel):
    """Schema for updating a patron - all fields optional."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str | None = Field(None, min_length=1, max_length=200)
    email: str | None = Field(None, max_length=255)

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return validate_email_address(v)


class PatronRepository(
    BaseRepository[PatronDB, PatronCreateSchema, PatronUpdateSchema, PatronModel]
):
    """Repository for patron data access."""

    @property
    def model_class(self):
        return PatronDB

    @property
    def response_schema(self):
        return PatronModel

    def delete(self, id: int) -> None:
        """
        Delete a patron and the patron's borrow records.

        Books the patron still holds become available in the same commit
        that removes the records.

        Raises:
            NotFoundError: If the patron does not exist
        """
        db_obj = self._require_db_obj(id)

        released = LendingRepository(self.session).release_books_for_patron(id)

        self.session.delete(db_obj)
        self._flush("delete Patron")
        safe_commit(self.session, "delete Patron")
        self.session.expire_all()

        logger.info("Deleted patron %s (released books: %s)", id, released)
