"""
Base repository class for data access.

Repositories receive the SQLAlchemy session they work on; nothing in the
data layer reaches for a module-level client. Transaction boundaries belong
to the caller (``save`` / ``rollback``) unless a method documents otherwise.

Example:
    class FixtureRepository(BaseRepository[Match]):
        def find_by_external_id(self, external_id: int) -> Optional[Match]:
            return self.where_first(Match.external_id == external_id)
"""
from abc import ABC
from typing import TypeVar, Generic, Type, Optional, List

from sqlalchemy import func
from sqlalchemy.orm import Query, Session

T = TypeVar("T")


class BaseRepository(Generic[T], ABC):
    """
    Common data access helpers.

    Attributes:
        model_type: The SQLAlchemy model class this repository manages
        db: The database session
    """

    def __init__(self, model_type: Type[T], db: Session):
        self.model_type = model_type
        self.db = db

    def find_by_id(self, id) -> Optional[T]:
        """Find a single record by primary key."""
        return self.db.get(self.model_type, id)

    def query(self) -> Query:
        """Get a new query object for this model."""
        return self.db.query(self.model_type)

    def where(self, *criterion) -> List[T]:
        """Filter records using SQLAlchemy expressions."""
        return self.query().filter(*criterion).all()

    def where_first(self, *criterion) -> Optional[T]:
        """Filter records using SQLAlchemy expressions and return first match."""
        return self.query().filter(*criterion).first()

    def count(self, *criterion) -> int:
        """Count records matching optional criterion."""
        query = self.db.query(func.count(self.model_type.id))
        if criterion:
            query = query.filter(*criterion)
        return query.scalar() or 0

    def add(self, instance: T) -> T:
        """Stage a new instance (not committed)."""
        self.db.add(instance)
        return instance

    def save(self) -> None:
        """Commit pending changes to the database."""
        self.db.commit()

    def flush(self) -> None:
        """Flush pending changes without committing."""
        self.db.flush()

    def rollback(self) -> None:
        """Rollback pending changes."""
        self.db.rollback()
