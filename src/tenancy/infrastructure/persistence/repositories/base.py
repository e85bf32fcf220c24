from abc import ABC
from typing import Generic, TypeVar

from tenancy.infrastructure.persistence.context import DataContext

ModelType = TypeVar("ModelType")


class BaseRepository(ABC, Generic[ModelType]):
    """
    Base repository implementing common CRUD operations over a data context.

    Reads go through the context, so global filters always apply. Writes are
    staged on the context; callers decide when to save().
    """

    def __init__(self, ctx: DataContext, model: type[ModelType]):
        self.ctx = ctx
        self.model = model

    async def get_by_id(self, id: str) -> ModelType | None:
        """Get a single record by ID"""
        return await self.ctx.get(self.model, id)

    async def create(self, obj: ModelType) -> ModelType:
        """Stage a new record and trigger hook"""
        self.ctx.add(obj)
        await self._on_after_create(obj)
        return obj

    async def delete(self, obj: ModelType) -> bool:
        """Stage a delete; returns True when it will be a soft delete"""
        await self._on_before_delete(obj)
        return await self.ctx.delete(obj)

    # Hooks - override in subclasses
    async def _on_after_create(self, obj: ModelType) -> None:
        """Hook called after staging a new record."""
        pass

    async def _on_before_delete(self, obj: ModelType) -> None:
        """Hook called before staging a delete."""
        pass
