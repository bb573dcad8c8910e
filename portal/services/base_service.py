# portal/services/base_service.py
from contextlib import asynccontextmanager
from typing import Any, Optional, Type, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.errors import NotFoundError

ModelT = TypeVar("ModelT")


class BaseService:
    def __init__(self, db: AsyncSession):
        self.db = db

    @asynccontextmanager
    async def transaction(self):
        """Commit the unit of work on success, roll it back on any error."""
        try:
            yield self.db
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

    async def _fetch(
        self,
        model: Type[ModelT],
        object_id: int,
        organization_id: Optional[int] = None,
        label: Optional[str] = None
    ) -> ModelT:
        """
        Load one row by primary key, reloading it from the database.

        Rows that belong to another organization are reported as missing.

        Raises:
            NotFoundError: If no matching row exists
        """
        stmt = select(model).where(model.id == object_id)
        if organization_id is not None:
            stmt = stmt.where(model.organization_id == organization_id)
        result = await self.db.execute(stmt.execution_options(populate_existing=True))
        instance = result.scalar_one_or_none()
        if instance is None:
            raise NotFoundError(f"{label or model.__name__} not found")
        return instance

    async def _scalars(self, stmt: Any) -> list:
        result = await self.db.execute(stmt.execution_options(populate_existing=True))
        return list(result.scalars().all())

    @staticmethod
    def _apply(instance: Any, data: dict) -> None:
        for field, value in data.items():
            setattr(instance, field, value)
