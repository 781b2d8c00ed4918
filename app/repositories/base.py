"""
Base repository class for data access layer.

The repository pattern provides:
1. Separation of data access logic from business logic
2. Single place for query logic (easier to maintain)
3. Easier testing (can mock repositories)
4. Consistent interface for data operations

Example:
    class SoccerMatchRepository(BaseRepository[SoccerMatch]):
        def find_by_match_id(self, match_id: int) -> Optional[SoccerMatch]:
            return self.where_first(SoccerMatch.match_id == match_id)
"""
from abc import ABC
from typing import TypeVar, Generic, Type, Optional, List
from sqlalchemy.orm import Query, Session

T = TypeVar("T")


class BaseRepository(Generic[T], ABC):
    """
    Base repository class providing common data access methods.

    All repositories should extend this class and specify their model type.

    Attributes:
        model_type: The SQLAlchemy model class this repository manages
        db: The database session
    """

    def __init__(self, model_type: Type[T], db: Session):
        self.model_type = model_type
        self.db = db

    # ========================================================================
    # CRUD Operations
    # ========================================================================

    def find_by_id(self, id: int) -> Optional[T]:
        """Find a single record by primary key."""
        return self.db.query(self.model_type).filter(self.model_type.id == id).first()

    def create(self, **kwargs) -> T:
        """
        Create a new record.

        Returns:
            The created record (not yet committed to database)
        """
        instance = self.model_type(**kwargs)
        self.db.add(instance)
        return instance

    # ========================================================================
    # Query Builders
    # ========================================================================

    def query(self) -> Query:
        """Get a new query object for this model."""
        return self.db.query(self.model_type)

    def where(self, *criterion) -> List[T]:
        """Filter records using SQLAlchemy expressions."""
        return self.db.query(self.model_type).filter(*criterion).all()

    def where_first(self, *criterion) -> Optional[T]:
        """Filter records using SQLAlchemy expressions and return first match."""
        return self.db.query(self.model_type).filter(*criterion).first()

    # ========================================================================
    # Save Operations
    # ========================================================================

    def save(self) -> None:
        """Commit pending changes to the database."""
        self.db.commit()

    def flush(self) -> None:
        """Flush pending changes without committing."""
        self.db.flush()

    def rollback(self) -> None:
        """Rollback pending changes."""
        self.db.rollback()
