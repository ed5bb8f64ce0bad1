"""
Base Data Access Object.

WHAT: Generic persistence helpers shared by every DAO.

WHY: Services never build queries for plain lookups themselves. The
status-guarded updates that decide races live in the concrete DAOs; this
class holds what is the same for every table.

HOW: Operates on the caller's AsyncSession and never commits. Mutations
flush so generated ids and defaults are visible to the caller, and the
transaction boundary stays with the service or the request.
"""

from typing import Any, Dict, Generic, Optional, Type, TypeVar

from sqlalchemy import Select, delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from timebill.models.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseDAO(Generic[ModelType]):
    """
    Generic DAO bound to one model class.

    Concrete DAOs pass their model to ``__init__`` and add domain queries.
    """

    def __init__(self, model: Type[ModelType], session: AsyncSession):
        """
        Bind the DAO to a model and a session.

        Args:
            model: SQLAlchemy model class
            session: Async database session
        """
        self.model = model
        self.session = session

    def _column(self, field_name: str):
        if not hasattr(self.model, field_name):
            raise AttributeError(f"{self.model.__name__} has no field '{field_name}'")
        return getattr(self.model, field_name)

    def _filtered(self, query: Select, filters: Dict[str, Any]) -> Select:
        """Add an equality condition per filter; unknown fields raise AttributeError."""
        for field_name, value in filters.items():
            query = query.where(self._column(field_name) == value)
        return query

    async def create(self, **values: Any) -> ModelType:
        """
        Insert a row and return it with generated columns loaded.

        Raises:
            IntegrityError: On a unique or check constraint violation
        """
        instance = self.model(**values)
        self.session.add(instance)
        await self.session.flush()
        await self.session.refresh(instance)
        return instance

    async def get_by_id(self, id: int) -> Optional[ModelType]:
        result = await self.session.execute(select(self.model).where(self.model.id == id))
        return result.scalar_one_or_none()

    async def get_by_field(self, field_name: str, value: Any) -> Optional[ModelType]:
        """
        Fetch the row whose ``field_name`` equals ``value``.

        Intended for unique columns (invoice number, billing code, email).

        Raises:
            AttributeError: If the model has no such field
        """
        result = await self.session.execute(
            select(self.model).where(self._column(field_name) == value)
        )
        return result.scalar_one_or_none()

    async def reload(self, id: int) -> Optional[ModelType]:
        """
        Re-read a row, overwriting whatever the session holds for it.

        WHY: Conditional UPDATEs run with synchronize_session=False, so
        instances already in the identity map keep their old values until
        they are reloaded.
        """
        result = await self.session.execute(
            select(self.model)
            .where(self.model.id == id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def update(self, id: int, **values: Any) -> Optional[ModelType]:
        """
        Set attributes on a row and flush.

        Returns:
            The updated instance, or None if the row does not exist
        """
        instance = await self.get_by_id(id)
        if instance is None:
            return None
        for field_name, value in values.items():
            setattr(instance, field_name, value)
        await self.session.flush()
        await self.session.refresh(instance)
        return instance

    async def delete(self, id: int) -> bool:
        """
        Delete a row with a single DELETE statement.

        Returns:
            True if a row was removed
        """
        result = await self.session.execute(delete(self.model).where(self.model.id == id))
        return result.rowcount > 0

    async def count(self, **filters: Any) -> int:
        query = self._filtered(select(func.count()).select_from(self.model), filters)
        result = await self.session.execute(query)
        return int(result.scalar_one())

    async def exists(self, **filters: Any) -> bool:
        """Whether any row matches every filter."""
        query = self._filtered(select(self.model.id), filters).limit(1)
        result = await self.session.execute(query)
        return result.scalar_one_or_none() is not None
