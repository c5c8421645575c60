"""
Base Repository class shared by the catalog repositories.
"""

from typing import Type, TypeVar, Optional, Any
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
import logging

from models import Base

logger = logging.getLogger(__name__)

T = TypeVar('T', bound=Base)

class BaseRepository:
    """Lookups and writes common to every model, inside the caller's session."""

    def __init__(self, model: Type[T], session: Session):
        self.model = model
        self.session = session

    def get(self, id: Any) -> Optional[T]:
        try:
            return self.session.get(self.model, id)
        except SQLAlchemyError as e:
            logger.error(f"Error loading {self.model.__name__} {id}: {e}")
            raise

    def create(self, **values) -> T:
        """Add a new row and flush it so the generated id is available."""
        instance = self.model(**values)
        try:
            self.session.add(instance)
            self.session.flush()
        except SQLAlchemyError as e:
            logger.error(f"Error creating {self.model.__name__}: {e}")
            raise
        return instance

    def update(self, id: Any, **values) -> Optional[T]:
        """Set attributes on an existing row; returns None when it does not exist."""
        instance = self.get(id)
        if instance is None:
            return None

        for key, value in values.items():
            if not hasattr(instance, key):
                raise AttributeError(f"{self.model.__name__} has no attribute '{key}'")
            setattr(instance, key, value)

        try:
            self.session.flush()
        except SQLAlchemyError as e:
            logger.error(f"Error updating {self.model.__name__} {id}: {e}")
            raise
        return instance
