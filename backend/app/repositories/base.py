from typing import TypeVar, Generic, Type, Optional, List, Dict, Any
from uuid import UUID
from sqlalchemy.exc import SQLAlchemyError
from ..extensions import db

T = TypeVar('T')


class BaseRepository(Generic[T]):
    """
    Base repository with the CRUD operations shared by every model.
    Writes commit immediately and roll the session back on SQLAlchemyError.
    """
    
    def __init__(self, model_class: Type[T]):
        self.model_class = model_class

    @property
    def session(self):
        return db.session
    
    def create(self, **kwargs) -> T:
        """
        Create and persist a new instance.
        
        Raises:
            SQLAlchemyError: If database operation fails
        """
        instance = self.model_class(**kwargs)
        self.session.add(instance)
        self.commit()
        return instance
    
    def get_by_id(self, id: UUID) -> Optional[T]:
        return self.session.get(self.model_class, id)
    
    def get_all(self, filters: Optional[Dict[str, Any]] = None) -> List[T]:
        query = self.session.query(self.model_class)
        if filters:
            query = query.filter_by(**filters)
        return query.all()
    
    def update(self, id: UUID, **kwargs) -> Optional[T]:
        """
        Update an existing instance; unknown attributes are ignored.
        
        Returns:
            The updated instance or None if not found
        """
        instance = self.get_by_id(id)
        if not instance:
            return None
        
        for key, value in kwargs.items():
            if hasattr(instance, key):
                setattr(instance, key, value)
        
        self.commit()
        return instance
    
    def delete(self, id: UUID) -> bool:
        """
        Delete an instance by ID.
        
        Returns:
            True if deleted, False if not found
        """
        instance = self.get_by_id(id)
        if not instance:
            return False
        
        self.session.delete(instance)
        self.commit()
        return True
    
    def commit(self) -> None:
        """Commit the current transaction, rolling back on failure."""
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise e
    
    def rollback(self) -> None:
        self.session.rollback()
