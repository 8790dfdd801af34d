"""Base repository with the CRUD operations shared by every table."""
from typing import Generic, Optional, Type, TypeVar

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from repogate.core.exceptions import StorageError

T = TypeVar('T')


class BaseRepository(Generic[T]):
    """Query object bound to one session and one mapped class."""

    def __init__(self, session: AsyncSession, model_class: Type[T]):
        self.session = session
        self.model_class = model_class

    async def find_by_id(self, id: int) -> Optional[T]:
        return await self.session.get(self.model_class, id)

    async def save(self, entity: T) -> T:
        """Add or update an entity and flush it.

        Constraint violations roll the session back and surface as
        ``StorageError``.
        """
        try:
            self.session.add(entity)
            await self.session.flush()
            return entity
        except IntegrityError as e:
            await self.session.rollback()
            raise StorageError(
                f"Failed to save {self.model_class.__name__}",
                details={"error": str(e.orig)}
            ) from e

    async def delete(self, id: int) -> bool:
        entity = await self.find_by_id(id)
        if entity is None:
            return False
        await self.session.delete(entity)
        await self.session.flush()
        return True
