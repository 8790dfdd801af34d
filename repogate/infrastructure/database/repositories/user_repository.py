"""User data access repository."""
from typing import Iterable, List, Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from repogate.infrastructure.database.models.user import UserModel
from repogate.infrastructure.database.repositories.base import BaseRepository


class UserRepository(BaseRepository[UserModel]):
    """User data access only."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, UserModel)

    async def find_by_ids(self, ids: Iterable[int]) -> List[UserModel]:
        """Find the users among ``ids``."""
        ids = list(ids)
        if not ids:
            return []
        stmt = select(UserModel).where(UserModel.id.in_(ids))
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def find_by_name(self, name: str) -> Optional[UserModel]:
        """Find user by login name, ignoring case."""
        stmt = select(UserModel).where(UserModel.lower_name == name.lower())
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()
