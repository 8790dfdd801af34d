"""Unit of Work pattern for transaction management."""
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession

from .repositories.user_repository import UserRepository
from .repositories.repository_repository import RepositoryRepository
from .repositories.collaboration_repository import CollaborationRepository
from .repositories.team_repository import TeamRepository
from .repositories.protected_branch_repository import ProtectedBranchRepository
from .repositories.commit_status_repository import CommitStatusRepository


class UnitOfWork:
    """Unit of Work pattern for transaction management."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self._users: Optional[UserRepository] = None
        self._repositories: Optional[RepositoryRepository] = None
        self._collaborations: Optional[CollaborationRepository] = None
        self._teams: Optional[TeamRepository] = None
        self._protected_branches: Optional[ProtectedBranchRepository] = None
        self._commit_statuses: Optional[CommitStatusRepository] = None

    @property
    def users(self) -> UserRepository:
        if self._users is None:
            self._users = UserRepository(self.session)
        return self._users

    @property
    def repositories(self) -> RepositoryRepository:
        if self._repositories is None:
            self._repositories = RepositoryRepository(self.session)
        return self._repositories

    @property
    def collaborations(self) -> CollaborationRepository:
        if self._collaborations is None:
            self._collaborations = CollaborationRepository(self.session)
        return self._collaborations

    @property
    def teams(self) -> TeamRepository:
        if self._teams is None:
            self._teams = TeamRepository(self.session)
        return self._teams

    @property
    def protected_branches(self) -> ProtectedBranchRepository:
        if self._protected_branches is None:
            self._protected_branches = ProtectedBranchRepository(self.session)
        return self._protected_branches

    @property
    def commit_statuses(self) -> CommitStatusRepository:
        if self._commit_statuses is None:
            self._commit_statuses = CommitStatusRepository(self.session)
        return self._commit_statuses

    async def commit(self) -> None:
        """Commit transaction."""
        await self.session.commit()

    async def rollback(self) -> None:
        """Rollback transaction."""
        await self.session.rollback()

    async def __aenter__(self):
        """Enter transaction context."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Exit transaction context."""
        if exc_type is not None:
            await self.rollback()
        else:
            await self.commit()
