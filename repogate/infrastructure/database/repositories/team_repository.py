"""Team data access repository."""
from typing import List, Optional, Set
from sqlalchemy import exists, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from repogate.infrastructure.database.models.team import (
    TeamModel,
    TeamMemberModel,
    TeamRepoModel
)
from repogate.infrastructure.database.repositories.base import BaseRepository


class TeamRepository(BaseRepository[TeamModel]):
    """Team data access only."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, TeamModel)

    async def find_with_access(
        self,
        org_id: int,
        repo_id: int,
        min_mode: int,
        user_id: Optional[int] = None
    ) -> List[TeamModel]:
        """Teams of an organization with at least ``min_mode`` on a repository."""
        has_repo = exists().where(
            TeamRepoModel.team_id == TeamModel.id,
            TeamRepoModel.repo_id == repo_id
        )
        stmt = select(TeamModel).where(
            TeamModel.org_id == org_id,
            TeamModel.access_mode >= min_mode,
            or_(TeamModel.includes_all_repositories.is_(True), has_repo)
        )
        if user_id is not None:
            stmt = stmt.where(
                exists().where(
                    TeamMemberModel.team_id == TeamModel.id,
                    TeamMemberModel.user_id == user_id
                )
            )
        result = await self.session.execute(stmt.order_by(TeamModel.id))
        return list(result.scalars().all())

    async def find_team_ids_for_user(self, org_id: int, user_id: int) -> Set[int]:
        stmt = (
            select(TeamModel.id)
            .join(TeamMemberModel, TeamMemberModel.team_id == TeamModel.id)
            .where(TeamModel.org_id == org_id, TeamMemberModel.user_id == user_id)
        )
        result = await self.session.execute(stmt)
        return set(result.scalars().all())

    async def is_member_of_owner_team(
        self,
        org_id: int,
        user_id: int,
        owner_mode: int
    ) -> bool:
        stmt = (
            select(TeamMemberModel.team_id)
            .join(TeamModel, TeamModel.id == TeamMemberModel.team_id)
            .where(
                TeamModel.org_id == org_id,
                TeamModel.access_mode >= owner_mode,
                TeamMemberModel.user_id == user_id
            )
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def add_repository(self, team_id: int, repo_id: int) -> None:
        if await self.session.get(TeamRepoModel, (team_id, repo_id)) is None:
            self.session.add(TeamRepoModel(team_id=team_id, repo_id=repo_id))
            await self.session.flush()
