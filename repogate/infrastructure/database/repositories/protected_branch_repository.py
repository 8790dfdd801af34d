"""Protected branch data access repository."""
from typing import List, Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from repogate.infrastructure.database.models.protected_branch import ProtectedBranchModel
from repogate.infrastructure.database.repositories.base import BaseRepository


class ProtectedBranchRepository(BaseRepository[ProtectedBranchModel]):
    """Protected branch data access only."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, ProtectedBranchModel)

    async def find_by_repo_and_branch(
        self,
        repo_id: int,
        branch_name: str,
        for_update: bool = False
    ) -> Optional[ProtectedBranchModel]:
        stmt = select(ProtectedBranchModel).where(
            ProtectedBranchModel.repo_id == repo_id,
            ProtectedBranchModel.branch_name == branch_name
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def find_by_repo_and_id(
        self,
        repo_id: int,
        rule_id: int
    ) -> Optional[ProtectedBranchModel]:
        stmt = select(ProtectedBranchModel).where(
            ProtectedBranchModel.repo_id == repo_id,
            ProtectedBranchModel.id == rule_id
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def find_by_repo(self, repo_id: int) -> List[ProtectedBranchModel]:
        stmt = (
            select(ProtectedBranchModel)
            .where(ProtectedBranchModel.repo_id == repo_id)
            .order_by(ProtectedBranchModel.branch_name)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
