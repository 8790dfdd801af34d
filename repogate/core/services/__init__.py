"""Services that combine stored data with permission checks."""

from repogate.core.services.collaboration import CollaborationService
from repogate.core.services.protected_branch import (
    ProtectedBranchService,
    ProtectedBranchSettings
)
from repogate.core.services.branch_protection import BranchProtectionService

__all__ = [
    "CollaborationService",
    "ProtectedBranchService",
    "ProtectedBranchSettings",
    "BranchProtectionService",
]
