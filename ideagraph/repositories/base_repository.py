from typing import Any, Dict, Generic, List, Optional, Type, TypeVar
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ideagraph.core.exceptions import DatabaseError
from ideagraph.utils.logging import get_logger

ModelType = TypeVar("ModelType")

LOGGER = get_logger(__name__)


class BaseRepository(Generic[ModelType]):
    """Common get / list / create / patch / delete operations for one model.

    Writes commit immediately so that other workers and readers observe
    them without waiting for the surrounding step to finish.
    """

    def __init__(self, session: AsyncSession, model: Type[ModelType]):
        self.session = session
        self.model = model
        self.logger = LOGGER

    async def get_by_id(self, id: UUID) -> Optional[ModelType]:
        try:
            query = select(self.model).where(self.model.id == id)
            result = await self.session.execute(query)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            self.logger.error(
                f"Error retrieving {self.model.__name__} by ID {id}: {str(e)}",
                exc_info=True
            )
            raise DatabaseError(f"Failed to load {self.model.__name__}", original_error=e)

    async def list_where(
        self,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[Any] = None,
        limit: Optional[int] = None,
    ) -> List[ModelType]:
        """List records whose columns equal the given filter values."""
        try:
            query = select(self.model)
            for field, value in (filters or {}).items():
                if hasattr(self.model, field):
                    query = query.where(getattr(self.model, field) == value)
            if order_by is not None:
                query = query.order_by(order_by)
            if limit is not None:
                query = query.limit(limit)
            result = await self.session.execute(query)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            self.logger.error(
                f"Error listing {self.model.__name__}: {str(e)}",
                exc_info=True
            )
            raise DatabaseError(f"Failed to list {self.model.__name__}", original_error=e)

    async def create(self, **kwargs) -> ModelType:
        try:
            instance = self.model(**kwargs)
            self.session.add(instance)
            await self.session.flush()
            await self.session.commit()
            return instance
        except SQLAlchemyError as e:
            await self.session.rollback()
            self.logger.error(
                f"Error creating {self.model.__name__}: {str(e)}",
                exc_info=True
            )
            raise DatabaseError(f"Failed to create {self.model.__name__}", original_error=e)

    async def create_many(self, rows: List[Dict[str, Any]]) -> int:
        """Insert several records in one commit."""
        if not rows:
            return 0
        try:
            self.session.add_all([self.model(**row) for row in rows])
            await self.session.flush()
            await self.session.commit()
            return len(rows)
        except SQLAlchemyError as e:
            await self.session.rollback()
            self.logger.error(
                f"Error bulk creating {self.model.__name__}: {str(e)}",
                exc_info=True
            )
            raise DatabaseError(f"Failed to create {self.model.__name__} records", original_error=e)

    async def patch(self, id: UUID, **kwargs) -> Optional[ModelType]:
        """Overwrite only the given fields of a record."""
        try:
            instance = await self.get_by_id(id)
            if not instance:
                return None

            for key, value in kwargs.items():
                if hasattr(instance, key):
                    setattr(instance, key, value)

            await self.session.flush()
            await self.session.commit()
            return instance
        except SQLAlchemyError as e:
            await self.session.rollback()
            self.logger.error(
                f"Error updating {self.model.__name__} {id}: {str(e)}",
                exc_info=True
            )
            raise DatabaseError(f"Failed to update {self.model.__name__}", original_error=e)

    async def delete_where(self, *conditions) -> int:
        """Delete every record matching the conditions; returns the row count."""
        try:
            result = await self.session.execute(delete(self.model).where(*conditions))
            await self.session.commit()
            return result.rowcount or 0
        except SQLAlchemyError as e:
            await self.session.rollback()
            self.logger.error(
                f"Error deleting {self.model.__name__}: {str(e)}",
                exc_info=True
            )
            raise DatabaseError(f"Failed to delete {self.model.__name__}", original_error=e)

    async def count(self, filters: Optional[Dict[str, Any]] = None) -> int:
        try:
            query = select(func.count()).select_from(self.model)
            for field, value in (filters or {}).items():
                if hasattr(self.model, field):
                    query = query.where(getattr(self.model, field) == value)
            result = await self.session.execute(query)
            return result.scalar_one()
        except SQLAlchemyError as e:
            self.logger.error(
                f"Error counting {self.model.__name__}: {str(e)}",
                exc_info=True
            )
            raise DatabaseError(f"Failed to count {self.model.__name__}", original_error=e)
