"""Base repository."""

from collections.abc import Sequence
from typing import Any, cast

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession


class BaseRepository[T]:
    """Base repository over one mapped class.

    Repositories flush but never commit; the caller owns the transaction.
    """

    model_class: type[T]

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    def _base_query(self) -> Any:
        return select(cast(Any, self.model_class))

    async def get_by_id(self, id: Any) -> T | None:
        """Get entity by primary key."""
        return await self.session.get(self.model_class, id)

    async def get_many(self, ids: Sequence[Any]) -> Sequence[T]:
        """Get entities whose primary key is in ids."""
        if not ids:
            return []
        model = cast(Any, self.model_class)
        pk = model.__mapper__.primary_key[0]
        result = await self.session.execute(self._base_query().where(pk.in_(list(ids))))
        return result.scalars().all()

    async def create(self, entity: T) -> T:
        """Add a new entity and flush it so constraint violations surface here."""
        self.session.add(entity)
        await self.session.flush()
        return entity

    async def update(self, entity: T) -> T:
        """Flush pending changes on an existing entity."""
        await self.session.flush()
        return entity

    async def delete(self, entity: T) -> None:
        """Hard delete an entity."""
        await self.session.delete(entity)
        await self.session.flush()
