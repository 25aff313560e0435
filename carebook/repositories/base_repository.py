# carebook/repositories/base_repository.py
"""
Base Repository Pattern for the CareBook scheduling core.

Provides the foundation for all repository classes with:
- Common read/create operations
- Type safety with generics
- Transaction support (managed by services)
- Translation of driver errors into repository exceptions

Repositories never commit. They flush so generated ids are available, and
leave commit/rollback to the owning service.
"""

from abc import ABC, abstractmethod
import logging
from typing import Any, Generic, List, Optional, Type, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Query, Session

from ..core.exceptions import (
    IntegrityConstraintException,
    LockContentionException,
    RepositoryException,
    is_lock_contention,
)

# Type variable for generic model support
T = TypeVar("T")

logger = logging.getLogger(__name__)


class IRepository(ABC, Generic[T]):
    """
    Abstract repository interface defining core data access methods.

    All repositories must implement these methods to ensure consistency
    across the application.
    """

    @abstractmethod
    def get_by_id(self, id: str) -> Optional[T]:
        """
        Retrieve an entity by its primary key.

        Returns:
            The entity if found, None otherwise
        """

    @abstractmethod
    def create(self, **kwargs: Any) -> T:
        """
        Create a new entity.

        Raises:
            RepositoryException: If creation fails
        """

    @abstractmethod
    def count(self, **kwargs: Any) -> int:
        """Count entities matching given criteria."""


class BaseRepository(IRepository[T]):
    """
    Concrete base repository implementation with common data access patterns.

    Attributes:
        db: SQLAlchemy session
        model: SQLAlchemy model class
    """

    def __init__(self, db: Session, model: Type[T]):
        """
        Initialize repository with database session and model.

        Args:
            db: SQLAlchemy session (managed by service layer)
            model: SQLAlchemy model class
        """
        self.db = db
        self.model = model
        self.logger = logging.getLogger(f"{__name__}.{model.__name__}")

    def get_by_id(self, id: str, *, refresh: bool = False) -> Optional[T]:
        """
        Retrieve an entity by its primary key.

        ``refresh=True`` overwrites any identity-map copy with the row as it is
        now, which matters after a conditional bulk UPDATE.
        """
        try:
            query = self.db.query(self.model).filter(self.model.id == id)
            if refresh:
                query = query.populate_existing()
            return query.first()
        except SQLAlchemyError as e:
            raise self._wrap_error(e, f"get {self.model.__name__} {id}")

    def create(self, **kwargs: Any) -> T:
        """
        Create a new entity.

        Note: Does NOT commit - transaction management is handled by service layer.
        """
        entity = self.model(**kwargs)
        try:
            self.db.add(entity)
            self.db.flush()  # Get ID without committing
            return entity
        except SQLAlchemyError as e:
            raise self._wrap_error(e, f"create {self.model.__name__}")

    def flush(self) -> None:
        """Flush pending ORM changes."""
        try:
            self.db.flush()
        except SQLAlchemyError as e:
            raise self._wrap_error(e, "flush")

    def count(self, **kwargs: Any) -> int:
        """Count entities matching given criteria."""
        try:
            return self.db.query(self.model).filter_by(**kwargs).count()
        except SQLAlchemyError as e:
            raise self._wrap_error(e, "count records")

    def find_by(self, **kwargs: Any) -> List[T]:
        """
        Find entities by given criteria.

        Args:
            **kwargs: Filter criteria (exact match)

        Returns:
            List of matching entities
        """
        try:
            return self.db.query(self.model).filter_by(**kwargs).all()
        except SQLAlchemyError as e:
            raise self._wrap_error(e, "find records")

    # Protected helper methods for use by subclasses

    def _build_query(self) -> Query:
        """Get base query for the model."""
        try:
            return self.db.query(self.model)
        except SQLAlchemyError as e:
            raise self._wrap_error(e, "build query")

    def _execute_query(self, query: Query) -> List[T]:
        """Execute query with error handling."""
        try:
            return query.all()
        except SQLAlchemyError as e:
            raise self._wrap_error(e, "execute query")

    def _execute_update(self, query: Query, values: dict) -> int:
        """
        Run a bulk UPDATE for ``query`` and return the matched row count.

        The WHERE clause carries the guard, so a zero count means the guard
        failed (or the row is gone), not that an error happened.
        """
        try:
            return query.update(values, synchronize_session=False)
        except SQLAlchemyError as e:
            raise self._wrap_error(e, "conditional update")

    def _execute_delete(self, query: Query) -> int:
        """Run a bulk DELETE for ``query`` and return the deleted row count."""
        try:
            return query.delete(synchronize_session=False)
        except SQLAlchemyError as e:
            raise self._wrap_error(e, "conditional delete")

    def _wrap_error(self, exc: SQLAlchemyError, action: str) -> RepositoryException:
        """Translate a driver error into the repository exception hierarchy."""
        if is_lock_contention(exc):
            self.logger.warning("Lock contention during %s: %s", action, exc)
            wrapped: RepositoryException = LockContentionException(
                f"Database busy while trying to {action}"
            )
        elif isinstance(exc, IntegrityError):
            self.logger.warning("Integrity error during %s: %s", action, exc)
            wrapped = IntegrityConstraintException(f"Integrity constraint violated: {exc.orig}")
        else:
            self.logger.error("Error during %s: %s", action, exc)
            wrapped = RepositoryException(f"Failed to {action}: {exc}")
        wrapped.__cause__ = exc
        return wrapped
