"""Collaboration data access repository."""
from typing import List, Optional
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from repogate.infrastructure.database.models.collaboration import CollaborationModel
from repogate.infrastructure.database.repositories.base import BaseRepository


class CollaborationRepository(BaseRepository[CollaborationModel]):
    """Collaboration data access only."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, CollaborationModel)

    async def find_by_repo_and_user(
        self,
        repo_id: int,
        user_id: int
    ) -> Optional[CollaborationModel]:
        stmt = select(CollaborationModel).where(
            CollaborationModel.repo_id == repo_id,
            CollaborationModel.user_id == user_id
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def find_by_repo(self, repo_id: int) -> List[CollaborationModel]:
        stmt = (
            select(CollaborationModel)
            .where(CollaborationModel.repo_id == repo_id)
            .order_by(CollaborationModel.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def delete_by_repo_and_user(self, repo_id: int, user_id: int) -> bool:
        stmt = delete(CollaborationModel).where(
            CollaborationModel.repo_id == repo_id,
            CollaborationModel.user_id == user_id
        )
        result = await self.session.execute(stmt)
        await self.session.flush()
        return result.rowcount > 0
