"""
Repository pattern implementation for the Lending Ledger.

Repositories are the storage contract the rest of the ledger is written
against. Each one wraps a single table and offers the same small set of
operations:

- ``create(data)``: insert a row and return it as a Pydantic model
- ``get_by_id(id)`` / ``require(id)``: fetch one row
- ``get_all(*criteria)`` / ``count(*criteria)`` / ``exists(id)``: queries
- ``update(id, data)`` / ``delete(id)``: modify a row

Every mutating call commits exactly once, so a call is a transaction. Every
read goes back to the database (``populate_existing``) instead of trusting
objects the session already holds; rows removed by a database-level cascade
must not linger in the identity map.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator, Sequence
from contextlib import AbstractContextManager, nullcontext
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ValidationError
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .errors import InvalidFormatError, NotFoundError, StorageFailureError
from .schema import Base
from .session import safe_commit, safe_query

# Type variables for generic repository
ModelType = TypeVar("ModelType", bound=Base)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)
UpdateSchemaType = TypeVar("UpdateSchemaType", bound=BaseModel)
ResponseSchemaType = TypeVar("ResponseSchemaType", bound=BaseModel)
SchemaType = TypeVar("SchemaType", bound=BaseModel)

SessionOpener = Callable[[], AbstractContextManager[Session]]


def parse_input(schema: type[SchemaType], **values: Any) -> SchemaType:
    """
    Validate raw input against a schema before anything touches the store.

    Raises:
        InvalidFormatError: If any field fails validation
    """
    try:
        return schema.model_validate(values)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(loc) for loc in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        subject = next((values.get(str(err["loc"][0])) for err in e.errors() if err["loc"]), None)
        raise InvalidFormatError(f"Invalid {schema.__name__}: {problems}", subject) from e


class KeysetSequence(Generic[ModelType, ResponseSchemaType]):
    """
    Lazy, restartable sequence of rows ordered by primary key.

    Nothing is read until iteration starts, and every new iteration queries
    the database again. Rows are fetched in batches keyed on the last id
    seen, each batch in its own session from ``open_session``, so no cursor
    stays open between batches.
    """

    def __init__(
        self,
        open_session: SessionOpener,
        model_class: type[ModelType],
        criteria: Sequence[Any],
        convert: Callable[[ModelType], ResponseSchemaType],
        batch_size: int = 100,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self._open_session = open_session
        self._model_class = model_class
        self._criteria = tuple(criteria)
        self._convert = convert
        self._batch_size = batch_size

    def __iter__(self) -> Iterator[ResponseSchemaType]:
        last_id = 0
        while True:
            query = (
                select(self._model_class)
                .where(*self._criteria, self._model_class.id > last_id)
                .order_by(self._model_class.id)
                .limit(self._batch_size)
                .execution_options(populate_existing=True)
            )
            with self._open_session() as session:
                rows = safe_query(
                    session,
                    lambda s: s.execute(query).scalars().all(),
                    f"Failed to fetch {self._model_class.__name__} batch",
                )
                batch = [self._convert(row) for row in rows]

            yield from batch

            if len(rows) < self._batch_size:
                return
            last_id = rows[-1].id

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._model_class.__name__})"


class BaseRepository(
    ABC, Generic[ModelType, CreateSchemaType, UpdateSchemaType, ResponseSchemaType]
):
    """
    Abstract base repository providing common CRUD operations.

    Store failures surface as StorageFailureError; missing rows as
    NotFoundError.
    """

    def __init__(self, session: Session):
        """Initialize repository with database session."""
        self.session = session

    @property
    @abstractmethod
    def model_class(self) -> type[ModelType]:
        """Return the SQLAlchemy model class."""

    @property
    @abstractmethod
    def response_schema(self) -> type[ResponseSchemaType]:
        """Return the Pydantic response schema."""

    @property
    def entity_name(self) -> str:
        return self.model_class.__name__

    def _to_response_model(self, db_obj: ModelType) -> ResponseSchemaType:
        """Convert database model to Pydantic response model."""
        return self.response_schema.model_validate(db_obj, from_attributes=True)

    def _get_db_obj(self, id: int, for_update: bool = False) -> ModelType | None:
        """Fetch the live row for ``id``, refreshed from the database."""
        query = (
            select(self.model_class)
            .where(self.model_class.id == id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            query = query.with_for_update()

        return safe_query(
            self.session,
            lambda s: s.execute(query).scalar_one_or_none(),
            f"Failed to get {self.entity_name} by ID",
        )

    def _require_db_obj(self, id: int, for_update: bool = False) -> ModelType:
        db_obj = self._get_db_obj(id, for_update=for_update)
        if db_obj is None:
            raise NotFoundError(f"{self.entity_name} {id} not found", id)
        return db_obj

    def get_by_id(self, id: int) -> ResponseSchemaType | None:
        """
        Get entity by ID.

        Returns:
            Pydantic model or None if not found
        """
        db_obj = self._get_db_obj(id)
        if db_obj is None:
            return None
        return self._to_response_model(db_obj)

    def require(self, id: int) -> ResponseSchemaType:
        """
        Get entity by ID.

        Raises:
            NotFoundError: If no entity has this ID
        """
        return self._to_response_model(self._require_db_obj(id))

    def get_all(self, *criteria: Any) -> list[ResponseSchemaType]:
        """
        Get all entities matching ``criteria``, ordered by ID.

        Args:
            criteria: SQLAlchemy filter expressions, ANDed together
        """
        query = (
            select(self.model_class)
            .where(*criteria)
            .order_by(self.model_class.id)
            .execution_options(populate_existing=True)
        )
        results = safe_query(
            self.session,
            lambda s: s.execute(query).scalars().all(),
            f"Failed to list {self.entity_name}",
        )
        return [self._to_response_model(item) for item in results]

    def iter_all(
        self, *criteria: Any, open_session: SessionOpener | None = None
    ) -> KeysetSequence[ModelType, ResponseSchemaType]:
        """
        Lazily iterate entities matching ``criteria``, ordered by ID.

        Args:
            criteria: SQLAlchemy filter expressions, ANDed together
            open_session: Session source for each batch; defaults to this
                repository's own session
        """
        if open_session is None:
            open_session = lambda: nullcontext(self.session)  # noqa: E731
        return KeysetSequence(open_session, self.model_class, criteria, self._to_response_model)

    def count(self, *criteria: Any) -> int:
        """Count entities matching ``criteria``."""
        query = select(func.count()).select_from(self.model_class).where(*criteria)
        return (
            safe_query(
                self.session,
                lambda s: s.execute(query).scalar(),
                f"Failed to count {self.entity_name}",
            )
            or 0
        )

    def exists(self, id: int) -> bool:
        """Check if entity exists by ID."""
        return self.count(self.model_class.id == id) > 0

    def create(self, data: CreateSchemaType) -> ResponseSchemaType:
        """
        Create new entity.

        The ID comes from the table's sequence and is never reused.

        Raises:
            StorageFailureError: On database errors
        """
        db_obj = self.model_class(**data.model_dump())
        self.session.add(db_obj)
        self._flush(f"create {self.entity_name}")
        safe_commit(self.session, f"create {self.entity_name}")
        return self._to_response_model(db_obj)

    def update(self, id: int, data: UpdateSchemaType) -> ResponseSchemaType:
        """
        Update the fields set on ``data``.

        Raises:
            NotFoundError: If no entity has this ID
        """
        db_obj = self._require_db_obj(id)

        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(db_obj, field, value)

        self._flush(f"update {self.entity_name}")
        safe_commit(self.session, f"update {self.entity_name}")
        return self._to_response_model(db_obj)

    def delete(self, id: int) -> None:
        """
        Delete entity by ID, along with everything the database cascades to.

        Raises:
            NotFoundError: If no entity has this ID
        """
        db_obj = self._require_db_obj(id)
        self.session.delete(db_obj)
        self._flush(f"delete {self.entity_name}")
        safe_commit(self.session, f"delete {self.entity_name}")
        # Cascaded rows were removed behind the session's back
        self.session.expire_all()

    def _flush(self, operation: str) -> None:
        """Flush pending changes, translating constraint failures."""
        try:
            self.session.flush()
        except IntegrityError as e:
            self.session.rollback()
            raise self._integrity_error(operation, e) from e
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StorageFailureError(f"Database operation '{operation}' failed: {e!s}") from e

    def _integrity_error(self, operation: str, error: IntegrityError) -> Exception:
        """Map a constraint failure to a ledger exception."""
        return StorageFailureError(f"Database operation '{operation}' failed: {error.orig}")
