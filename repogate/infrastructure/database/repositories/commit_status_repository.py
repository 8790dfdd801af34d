"""Commit status data access repository."""
from datetime import datetime
from typing import List
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from repogate.infrastructure.database.models.commit_status import CommitStatusModel
from repogate.infrastructure.database.repositories.base import BaseRepository


class CommitStatusRepository(BaseRepository[CommitStatusModel]):
    """Commit status data access only."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, CommitStatusModel)

    async def find_contexts_since(self, repo_id: int, since: datetime) -> List[str]:
        """Distinct contexts reported on a repository since ``since``."""
        stmt = (
            select(CommitStatusModel.context)
            .where(
                CommitStatusModel.repo_id == repo_id,
                CommitStatusModel.created_at >= since
            )
            .distinct()
            .order_by(CommitStatusModel.context)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
