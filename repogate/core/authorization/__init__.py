"""Permission resolution and branch protection evaluation"""
from .resolver import PermissionResolver, combine_unit_modes
from .patterns import match_path, matches_any, find_protected_files
from .branch_protection import (
    Actor,
    BranchAction,
    BranchProtectionDecision,
    BranchProtectionEvaluator,
    DecisionPath,
    DenyReason,
    MergeRequest,
    PushRequest
)

__all__ = [
    'PermissionResolver',
    'combine_unit_modes',
    'match_path',
    'matches_any',
    'find_protected_files',
    'Actor',
    'BranchAction',
    'BranchProtectionDecision',
    'BranchProtectionEvaluator',
    'DecisionPath',
    'DenyReason',
    'MergeRequest',
    'PushRequest'
]
