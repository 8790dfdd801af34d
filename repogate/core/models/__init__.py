from repogate.core.models.access import AccessMode
from repogate.core.models.collaboration import Collaboration
from repogate.core.models.permission import Permission
from repogate.core.models.protected_branch import (ProtectBranchForm,
                                                   ProtectedBranchMutation,
                                                   ProtectedBranchRule,
                                                   WhitelistOptions)
from repogate.core.models.repository import Repository
from repogate.core.models.review import (CommitStatus, CommitStatusState,
                                         Review, ReviewState)
from repogate.core.models.unit import UnitRegistry, UnitType
from repogate.core.models.user import GHOST_USER_ID, Team, User

__all__ = [
    "AccessMode",
    "UnitType",
    "UnitRegistry",
    "User",
    "Team",
    "GHOST_USER_ID",
    "Repository",
    "Collaboration",
    "Permission",
    "ProtectedBranchRule",
    "ProtectedBranchMutation",
    "WhitelistOptions",
    "ProtectBranchForm",
    "Review",
    "ReviewState",
    "CommitStatus",
    "CommitStatusState",
]
