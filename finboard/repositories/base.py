from typing import Generic, TypeVar, Type, Optional, Dict, Any, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from finboard.core.db import Base
from finboard.core.logger import logger

T = TypeVar("T", bound=Base)


class RepositoryError(Exception):
    """Custom exception for repository operations"""
    pass


class BaseRepository(Generic[T]):
    def __init__(self, db: Session, model: Type[T]):
        self.db = db
        self.model = model

    def get(self, id_: Union[int, str]) -> Optional[T]:
        """Get a single record by ID"""
        try:
            return self.db.get(self.model, id_)
        except SQLAlchemyError as e:
            logger.error(f"Error getting {self.model.__name__} with id {id_}: {e}")
            raise RepositoryError(f"Failed to get {self.model.__name__}") from e

    def create(self, obj_in: Dict[str, Any]) -> T:
        """Create a new record"""
        try:
            db_obj = self.model(**obj_in)
            self.db.add(db_obj)
            self.db.commit()
            self.db.refresh(db_obj)
            return db_obj
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error creating {self.model.__name__}: {e}")
            raise RepositoryError(f"Failed to create {self.model.__name__}") from e

    def update(self, id_: Union[int, str], obj_in: Dict[str, Any]) -> Optional[T]:
        """Update an existing record"""
        try:
            db_obj = self.get(id_)
            if not db_obj:
                return None

            for field, value in obj_in.items():
                if hasattr(db_obj, field):
                    setattr(db_obj, field, value)

            self.db.commit()
            self.db.refresh(db_obj)
            return db_obj
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error updating {self.model.__name__} with id {id_}: {e}")
            raise RepositoryError(f"Failed to update {self.model.__name__}") from e

    def count(self) -> int:
        """Count total records"""
        try:
            return self.db.query(self.model).count()
        except SQLAlchemyError as e:
            logger.error(f"Error counting {self.model.__name__}: {e}")
            raise RepositoryError(f"Failed to count {self.model.__name__}") from e
