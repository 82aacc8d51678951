# schedkit/repositories/base_repository.py
"""
Base Repository Pattern for schedkit

Repositories own every query against the schedule store. Services manage
the transaction; repositories only flush. Any SQLAlchemy failure leaves a
repository as a RepositoryException naming the operation that failed.
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
import logging
from typing import Any, Generic, Iterator, List, Optional, Type, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session

from ..core.exceptions import RepositoryException

T = TypeVar("T")

logger = logging.getLogger(__name__)


class IRepository(ABC, Generic[T]):
    """Lookups every repository supports."""

    @abstractmethod
    def get_by_id(self, id: str, load_relationships: bool = True) -> Optional[T]:
        """
        Fetch one row by primary key.

        Args:
            id: Primary key (a ULID string)
            load_relationships: Apply the repository's eager loading

        Returns:
            The row, or None when it does not exist
        """

    @abstractmethod
    def exists(self, **criteria: Any) -> bool:
        """True when at least one row matches the column criteria."""

    @abstractmethod
    def count(self, **criteria: Any) -> int:
        """Number of rows matching the column criteria."""


class BaseRepository(IRepository[T]):
    """
    SQLAlchemy implementation of the common lookups.

    Subclasses override _apply_eager_loading to declare which relationships
    travel with the entity.
    """

    def __init__(self, db: Session, model: Type[T]):
        self.db = db
        self.model = model
        self.logger = logging.getLogger(f"{__name__}.{model.__name__}")

    @contextmanager
    def _wrap_errors(self, operation: str) -> Iterator[None]:
        """Translate SQLAlchemy errors raised inside the block."""
        try:
            yield
        except SQLAlchemyError as e:
            self.logger.error(f"{self.model.__name__} {operation} failed: {str(e)}")
            raise RepositoryException(f"Failed to {operation} {self.model.__name__}: {str(e)}") from e

    def get_by_id(self, id: str, load_relationships: bool = True) -> Optional[T]:
        query = self.db.query(self.model).filter(self.model.id == id)
        if load_relationships:
            query = self._apply_eager_loading(query)
        with self._wrap_errors("retrieve"):
            return query.one_or_none()

    def exists(self, **criteria: Any) -> bool:
        with self._wrap_errors("check existence of"):
            return self.db.query(self.model).filter_by(**criteria).first() is not None

    def count(self, **criteria: Any) -> int:
        with self._wrap_errors("count"):
            return self.db.query(self.model).filter_by(**criteria).count()

    # Subclass hooks

    def _apply_eager_loading(self, query: Query) -> Query:
        return query

    def _execute_query(self, query: Query) -> List[T]:
        with self._wrap_errors("query"):
            return query.all()
