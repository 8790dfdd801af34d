"""Database models module."""
from .base import Base, TimestampedModel, IntegerIDModel
from .user import UserModel
from .repository import RepositoryModel, RepoUnitModel
from .collaboration import CollaborationModel
from .team import TeamModel, TeamMemberModel, TeamRepoModel
from .protected_branch import ProtectedBranchModel
from .commit_status import CommitStatusModel

__all__ = [
    'Base',
    'TimestampedModel',
    'IntegerIDModel',
    'UserModel',
    'RepositoryModel',
    'RepoUnitModel',
    'CollaborationModel',
    'TeamModel',
    'TeamMemberModel',
    'TeamRepoModel',
    'ProtectedBranchModel',
    'CommitStatusModel'
]
