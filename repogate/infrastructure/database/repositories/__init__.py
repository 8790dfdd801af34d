"""Database repositories module."""
from .base import BaseRepository
from .user_repository import UserRepository
from .repository_repository import RepositoryRepository
from .collaboration_repository import CollaborationRepository
from .team_repository import TeamRepository
from .protected_branch_repository import ProtectedBranchRepository
from .commit_status_repository import CommitStatusRepository

__all__ = [
    'BaseRepository',
    'UserRepository',
    'RepositoryRepository',
    'CollaborationRepository',
    'TeamRepository',
    'ProtectedBranchRepository',
    'CommitStatusRepository'
]
