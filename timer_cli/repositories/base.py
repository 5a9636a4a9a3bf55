"""Base repository with common session handling"""
import logging
from contextlib import contextmanager
from typing import Generic, Iterator, List, Type, TypeVar

from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from timer_cli.exceptions import StoreUnavailable

logger = logging.getLogger(__name__)

T = TypeVar('T', bound=BaseModel)


class BaseRepository(Generic[T]):
    """
    Base repository providing transaction handling and model conversion.
    Hides SQLAlchemy details from the rest of the application.
    """

    def __init__(self, session_factory: sessionmaker, model_class: Type[T]):
        self._session_factory = session_factory
        self._model_class = model_class

    def _to_model(self, row) -> T:
        """Convert ORM row to domain model"""
        return self._model_class.model_validate(row)

    def _to_models(self, rows) -> List[T]:
        """Convert ORM rows to domain models"""
        return [self._to_model(row) for row in rows]

    @contextmanager
    def _transaction(self, operation: str) -> Iterator[Session]:
        """
        Run a block in one transaction.

        IntegrityError passes through untouched so callers can react to
        constraint conflicts; any other database error becomes
        StoreUnavailable.
        """
        try:
            with self._session_factory() as session, session.begin():
                yield session
        except IntegrityError:
            raise
        except SQLAlchemyError as e:
            logger.error(f"Timer store {operation} failed: {e}")
            raise StoreUnavailable(f"Timer store {operation} failed: {e}") from e
