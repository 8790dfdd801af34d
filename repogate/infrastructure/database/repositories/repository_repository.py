"""Repository data access for repositories and their units."""
from typing import List
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from repogate.infrastructure.database.models.repository import RepositoryModel, RepoUnitModel
from repogate.infrastructure.database.repositories.base import BaseRepository


class RepositoryRepository(BaseRepository[RepositoryModel]):
    """Repository data access only."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, RepositoryModel)

    async def find_unit_types(self, repo_id: int) -> List[int]:
        """Enabled unit types of a repository in insertion order."""
        stmt = (
            select(RepoUnitModel.type)
            .where(RepoUnitModel.repo_id == repo_id)
            .order_by(RepoUnitModel.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def replace_units(self, repo_id: int, unit_types: List[int]) -> None:
        """Replace the enabled units of a repository."""
        await self.session.execute(
            delete(RepoUnitModel).where(RepoUnitModel.repo_id == repo_id)
        )
        for unit_type in dict.fromkeys(unit_types):
            self.session.add(RepoUnitModel(repo_id=repo_id, type=unit_type))
        await self.session.flush()
