import logging
from contextlib import contextmanager
from typing import Any, Generic, Iterator, Optional, Type, TypeVar

from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from carver.core.exceptions import (
    ConstraintViolationException,
    DatabaseConnectionException,
    StorageException,
)
from carver.db.base import Base

logger = logging.getLogger(__name__)

ModelType = TypeVar("ModelType", bound=Base)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)


class CRUDBase(Generic[ModelType, CreateSchemaType]):
    def __init__(self, model: Type[ModelType]):
        """
        CRUD object with default methods to Get, Create, Save and Remove.

        Write failures are rolled back and re-raised as StorageException
        subclasses carrying an operation-specific message.
        """
        self.model = model

    def get(self, db: Session, id: Any) -> Optional[ModelType]:
        return db.get(self.model, id)

    def create(self, db: Session, *, obj_in: CreateSchemaType, action: str = "create record") -> ModelType:
        db_obj = self.model(**obj_in.model_dump())
        return self.save(db, db_obj, action=action)

    def save(self, db: Session, db_obj: ModelType, *, action: str = "save record") -> ModelType:
        db.add(db_obj)
        self.commit(db, action=action)
        db.refresh(db_obj)
        return db_obj

    def remove(self, db: Session, *, db_obj: ModelType, action: str = "delete record") -> None:
        db.delete(db_obj)
        self.commit(db, action=action)

    def commit(self, db: Session, *, action: str) -> None:
        with self.write_guard(db, action=action):
            db.commit()

    @contextmanager
    def write_guard(self, db: Session, *, action: str) -> Iterator[None]:
        """Roll back and translate SQLAlchemy errors raised inside the block."""
        try:
            yield
        except IntegrityError as e:
            db.rollback()
            logger.error(f"Integrity error while trying to {action}: {e.orig}")
            raise ConstraintViolationException(f"Failed to {action}: constraint violation") from e
        except OperationalError as e:
            db.rollback()
            logger.error(f"Database unavailable while trying to {action}: {e}")
            raise DatabaseConnectionException(f"Failed to {action}: database unavailable") from e
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Database error while trying to {action}: {e}")
            raise StorageException(f"Failed to {action}") from e
