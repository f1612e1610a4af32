"""
Base repository class with common CRUD operations using async SQLAlchemy.
Updates go through loaded instances so attribute validators and mapper hooks run;
soft-deletable models are flagged rather than removed and hidden from reads.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from sqlalchemy.orm import selectinload
from marketplace.database import Base
from typing import TypeVar, Generic, Optional, List, Dict, Any, Type
import uuid
import logging

logger = logging.getLogger(__name__)

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Base repository class providing common CRUD operations.
    Uses async SQLAlchemy for all database operations with proper error handling.
    """

    def __init__(self, model: Type[ModelType], db: AsyncSession):
        """
        Initialize repository with model class and database session.

        Args:
            model: SQLAlchemy model class
            db: Async database session
        """
        self.model = model
        self.db = db

    @property
    def is_paranoid(self) -> bool:
        return hasattr(self.model, "deleted_at")

    def _live(self, query, include_deleted: bool = False):
        if self.is_paranoid and not include_deleted:
            query = query.where(self.model.deleted_at.is_(None))
        return query

    def _apply_filters(self, query, filters: Optional[Dict[str, Any]]):
        for field, value in (filters or {}).items():
            if not hasattr(self.model, field):
                continue
            column = getattr(self.model, field)
            if isinstance(value, (list, tuple, set)):
                query = query.where(column.in_(list(value)))
            elif value is None:
                query = query.where(column.is_(None))
            else:
                query = query.where(column == value)
        return query

    def _apply_ordering(self, query, order_by: Optional[str]):
        if not order_by:
            return query.order_by(self.model.created_at.desc())
        descending = order_by.startswith('-')
        field_name = order_by.lstrip('-')
        if not hasattr(self.model, field_name):
            return query.order_by(self.model.created_at.desc())
        column = getattr(self.model, field_name)
        return query.order_by(column.desc() if descending else column)

    async def save(self, db_obj: ModelType) -> ModelType:
        """
        Flush pending changes on an instance and commit.

        Args:
            db_obj: Model instance already attached to the session

        Returns:
            The refreshed instance

        Raises:
            Exception: If database operation fails
        """
        try:
            self.db.add(db_obj)
            await self.db.commit()
            await self.db.refresh(db_obj)
            logger.debug(f"Saved {self.model.__name__} with id: {db_obj.id}")
            return db_obj
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to save {self.model.__name__}: {e}")
            raise

    async def create(self, obj_in: Dict[str, Any]) -> ModelType:
        """
        Create a new record in the database.

        Args:
            obj_in: Dictionary of field values for the new record

        Returns:
            Created model instance

        Raises:
            ValueError: If a field or cross-field rule rejects the data
            Exception: If database operation fails
        """
        try:
            db_obj = self.model(**obj_in)
            self.db.add(db_obj)
            await self.db.commit()
            await self.db.refresh(db_obj)
            logger.debug(f"Created {self.model.__name__} with id: {db_obj.id}")
            return db_obj
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to create {self.model.__name__}: {e}")
            raise

    async def get_by_id(
        self,
        id: uuid.UUID,
        load_relationships: bool = False,
        include_deleted: bool = False
    ) -> Optional[ModelType]:
        """
        Get a record by its ID.

        Args:
            id: UUID of the record to retrieve
            load_relationships: Whether to eagerly load relationships
            include_deleted: Whether soft-deleted rows are returned

        Returns:
            Model instance if found, None otherwise
        """
        try:
            query = self._live(select(self.model).where(self.model.id == id), include_deleted)

            if load_relationships:
                for relationship in self.model.__mapper__.relationships:
                    query = query.options(selectinload(getattr(self.model, relationship.key)))

            result = await self.db.execute(query)
            obj = result.scalar_one_or_none()

            if obj:
                logger.debug(f"Retrieved {self.model.__name__} with id: {id}")
            else:
                logger.debug(f"{self.model.__name__} with id {id} not found")

            return obj
        except Exception as e:
            logger.error(f"Failed to get {self.model.__name__} by id {id}: {e}")
            raise

    async def get_multi(
        self,
        skip: int = 0,
        limit: int = 100,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        include_deleted: bool = False
    ) -> List[ModelType]:
        """
        Get multiple records with optional filtering, pagination, and ordering.

        Args:
            skip: Number of records to skip (for pagination)
            limit: Maximum number of records to return
            filters: Dictionary of field filters (lists match any value)
            order_by: Field name to order by (prefix with '-' for descending)
            include_deleted: Whether soft-deleted rows are returned

        Returns:
            List of model instances
        """
        try:
            query = self._live(select(self.model), include_deleted)
            query = self._apply_filters(query, filters)
            query = self._apply_ordering(query, order_by)
            query = query.offset(skip).limit(limit)

            result = await self.db.execute(query)
            objects = result.scalars().all()

            logger.debug(f"Retrieved {len(objects)} {self.model.__name__} records")
            return list(objects)
        except Exception as e:
            logger.error(f"Failed to get multiple {self.model.__name__} records: {e}")
            raise

    async def update(self, id: uuid.UUID, obj_in: Dict[str, Any]) -> Optional[ModelType]:
        """
        Update a record by its ID.
        Keys present in obj_in are assigned, including explicit None values.

        Args:
            id: UUID of the record to update
            obj_in: Dictionary of field values to update

        Returns:
            Updated model instance if found, None otherwise

        Raises:
            ValueError: If a validator or lifecycle hook rejects the change
            Exception: If database operation fails
        """
        db_obj = await self.get_by_id(id)
        if db_obj is None:
            logger.debug(f"{self.model.__name__} with id {id} not found for update")
            return None

        try:
            for field, value in obj_in.items():
                if field in ("id", "created_at", "updated_at"):
                    continue
                setattr(db_obj, field, value)
            await self.db.commit()
            await self.db.refresh(db_obj)
            logger.debug(f"Updated {self.model.__name__} with id: {id}")
            return db_obj
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to update {self.model.__name__} {id}: {e}")
            raise

    async def delete(self, id: uuid.UUID) -> bool:
        """
        Delete a record by its ID; soft-deletable models only get deleted_at set.

        Args:
            id: UUID of the record to delete

        Returns:
            True if record was deleted, False if not found

        Raises:
            Exception: If database operation fails
        """
        db_obj = await self.get_by_id(id)
        if db_obj is None:
            logger.debug(f"{self.model.__name__} with id {id} not found for deletion")
            return False

        try:
            if self.is_paranoid:
                db_obj.soft_delete()
            else:
                await self.db.delete(db_obj)
            await self.db.commit()
            logger.debug(f"Deleted {self.model.__name__} with id: {id}")
            return True
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to delete {self.model.__name__} {id}: {e}")
            raise

    async def hard_delete(self, id: uuid.UUID) -> bool:
        """Remove a row permanently, bypassing soft delete."""
        db_obj = await self.get_by_id(id, include_deleted=True)
        if db_obj is None:
            return False

        try:
            await self.db.delete(db_obj)
            await self.db.commit()
            logger.debug(f"Hard deleted {self.model.__name__} with id: {id}")
            return True
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to hard delete {self.model.__name__} {id}: {e}")
            raise

    async def restore(self, id: uuid.UUID) -> Optional[ModelType]:
        db_obj = await self.get_by_id(id, include_deleted=True)
        if db_obj is None or not self.is_paranoid:
            return db_obj
        db_obj.restore()
        return await self.save(db_obj)

    async def count(self, filters: Optional[Dict[str, Any]] = None) -> int:
        """
        Count live records with optional filtering.

        Args:
            filters: Dictionary of field filters

        Returns:
            Number of matching records
        """
        try:
            query = self._live(select(func.count(self.model.id)))
            query = self._apply_filters(query, filters)

            result = await self.db.execute(query)
            count = result.scalar()

            logger.debug(f"Counted {count} {self.model.__name__} records")
            return count
        except Exception as e:
            logger.error(f"Failed to count {self.model.__name__} records: {e}")
            raise

    async def exists(self, id: uuid.UUID) -> bool:
        """
        Check if a live record exists by its ID.

        Args:
            id: UUID of the record to check

        Returns:
            True if record exists, False otherwise
        """
        try:
            query = self._live(select(func.count(self.model.id)).where(self.model.id == id))
            result = await self.db.execute(query)
            exists = result.scalar() > 0
            logger.debug(f"{self.model.__name__} with id {id} exists: {exists}")
            return exists
        except Exception as e:
            logger.error(f"Failed to check existence of {self.model.__name__} {id}: {e}")
            raise

    async def get_by_field(self, field: str, value: Any) -> Optional[ModelType]:
        """
        Get a live record by a specific field value.

        Args:
            field: Field name to search by
            value: Value to search for

        Returns:
            Model instance if found, None otherwise
        """
        try:
            if not hasattr(self.model, field):
                raise ValueError(f"Field '{field}' does not exist on {self.model.__name__}")

            query = self._live(select(self.model).where(getattr(self.model, field) == value))
            result = await self.db.execute(query)
            obj = result.scalars().first()

            if obj:
                logger.debug(f"Retrieved {self.model.__name__} by {field}: {value}")
            else:
                logger.debug(f"{self.model.__name__} with {field}={value} not found")

            return obj
        except Exception as e:
            logger.error(f"Failed to get {self.model.__name__} by {field}={value}: {e}")
            raise
