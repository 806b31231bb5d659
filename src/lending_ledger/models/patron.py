"""
Patron model for the Lending Ledger.

Patrons borrow books. The only rule on their contact address is that it has
to contain an '@'; anything stricter is left to whoever sends mail to it.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator


def validate_email_address(value: str) -> str:
    """Return the trimmed address, or raise ValueError if it lacks an '@'."""
    value = value.strip()
    if "@" not in value:
        raise ValueError(f"Email address must contain '@': {value!r}")
    return value


class Patron(BaseModel):
    """Represents a library patron who can borrow books."""

    id: int = Field(
        ...,
        description="Unique identifier for the patron",
        gt=0,
        examples=[1, 12],
    )

    name: str = Field(
        ...,
        description="Full name of the patron",
        min_length=1,
        max_length=200,
        examples=["Ann", "John Smith"],
    )

    email: str = Field(
        ...,
        description="Contact address of the patron",
        max_length=255,
        examples=["ann@x.com", "john.smith@example.com"],
    )

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str) -> str:
        return validate_email_address(v)

    model_config = ConfigDict(
        from_attributes=True,
        str_strip_whitespace=True,
        json_schema_extra={"example": {"id": 1, "name": "Ann", "email": "ann@x.com"}},
    )
