from datetime import datetime
from typing import Any, ClassVar, Dict, FrozenSet, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from repogate.core.models.user import GHOST_USER_ID

PATTERN_SEPARATOR = ";"

# A whitelist reference is either an id or a user/team name
WhitelistRef = Union[int, str]


def split_patterns(value: Union[str, List[str], Tuple[str, ...], None]) -> Tuple[str, ...]:
    """Split a ``;``-separated pattern string into trimmed, non-empty globs"""
    if value is None:
        return ()
    if isinstance(value, str):
        value = value.split(PATTERN_SEPARATOR)
    patterns: List[str] = []
    for item in value:
        item = item.strip()
        if item and item not in patterns:
            patterns.append(item)
    return tuple(patterns)


def join_patterns(patterns: Tuple[str, ...]) -> str:
    return PATTERN_SEPARATOR.join(patterns)


def _dedupe(contexts) -> Tuple[str, ...]:
    result: List[str] = []
    for ctx in contexts or ():
        ctx = ctx.strip()
        if ctx and ctx not in result:
            result.append(ctx)
    return tuple(result)


class ProtectedBranchRule(BaseModel):
    """Protection policy for one (repository, branch name) pair.

    Instances are immutable snapshots; use ``model_copy(update=...)`` to
    derive a changed rule.
    """

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: Optional[int] = Field(default=None, description="Storage id, None until saved")
    repo_id: int
    branch_name: str = Field(..., min_length=1, max_length=255)

    can_push: bool = False
    enable_whitelist: bool = False
    whitelist_user_ids: FrozenSet[int] = Field(default_factory=frozenset)
    whitelist_team_ids: FrozenSet[int] = Field(default_factory=frozenset)
    whitelist_deploy_keys: bool = False

    enable_merge_whitelist: bool = False
    merge_whitelist_user_ids: FrozenSet[int] = Field(default_factory=frozenset)
    merge_whitelist_team_ids: FrozenSet[int] = Field(default_factory=frozenset)

    required_approvals: int = 0
    enable_approvals_whitelist: bool = False
    approvals_whitelist_user_ids: FrozenSet[int] = Field(default_factory=frozenset)
    approvals_whitelist_team_ids: FrozenSet[int] = Field(default_factory=frozenset)

    status_check_contexts: Tuple[str, ...] = Field(default_factory=tuple)

    block_on_rejected_reviews: bool = False
    block_on_official_review_requests: bool = False
    dismiss_stale_approvals: bool = False
    require_signed_commits: bool = False
    block_on_outdated_branch: bool = False

    protected_file_patterns: Tuple[str, ...] = Field(default_factory=tuple)
    unprotected_file_patterns: Tuple[str, ...] = Field(default_factory=tuple)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @field_validator("protected_file_patterns", "unprotected_file_patterns", mode="before")
    @classmethod
    def validate_patterns(cls, v):
        from repogate.core.authorization.patterns import validate_pattern
        return tuple(validate_pattern(p) for p in split_patterns(v))

    @field_validator("status_check_contexts", mode="before")
    @classmethod
    def validate_contexts(cls, v):
        return _dedupe(v)

    @field_validator(
        "whitelist_user_ids",
        "merge_whitelist_user_ids",
        "approvals_whitelist_user_ids",
        mode="after",
    )
    @classmethod
    def drop_ghost(cls, v: FrozenSet[int]) -> FrozenSet[int]:
        return frozenset(uid for uid in v if uid != GHOST_USER_ID)

    @property
    def is_protected(self) -> bool:
        return self.id is not None

    @property
    def enable_status_check(self) -> bool:
        return bool(self.status_check_contexts)

    def is_context_required(self, context: str) -> bool:
        return context in self.status_check_contexts

    def to_dict(self) -> Dict[str, Any]:
        data = self.model_dump(mode="json")
        for key, value in data.items():
            if key.endswith("_ids"):
                data[key] = sorted(value)
        return data

    def __str__(self) -> str:
        return f"ProtectedBranchRule(repo={self.repo_id}, branch={self.branch_name})"


class ProtectedBranchMutation(BaseModel):
    """Partial update of a rule's flags; ``None`` leaves a field unchanged.

    Whitelist membership is not part of a mutation, see ``WhitelistOptions``.
    ``required_approvals`` is range-checked by the service so that callers get
    an ``InvalidArgumentError`` rather than a model validation error.
    """

    can_push: Optional[bool] = None
    enable_whitelist: Optional[bool] = None
    whitelist_deploy_keys: Optional[bool] = None
    enable_merge_whitelist: Optional[bool] = None
    required_approvals: Optional[int] = None
    enable_approvals_whitelist: Optional[bool] = None
    status_check_contexts: Optional[List[str]] = None
    block_on_rejected_reviews: Optional[bool] = None
    block_on_official_review_requests: Optional[bool] = None
    dismiss_stale_approvals: Optional[bool] = None
    require_signed_commits: Optional[bool] = None
    block_on_outdated_branch: Optional[bool] = None
    protected_file_patterns: Optional[Union[str, List[str]]] = None
    unprotected_file_patterns: Optional[Union[str, List[str]]] = None

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class WhitelistOptions(BaseModel):
    """Complete desired whitelist membership, replacing the stored sets"""

    user_ids: List[WhitelistRef] = Field(default_factory=list)
    team_ids: List[WhitelistRef] = Field(default_factory=list)
    merge_user_ids: List[WhitelistRef] = Field(default_factory=list)
    merge_team_ids: List[WhitelistRef] = Field(default_factory=list)
    approvals_user_ids: List[WhitelistRef] = Field(default_factory=list)
    approvals_team_ids: List[WhitelistRef] = Field(default_factory=list)

    USER_FIELDS: ClassVar[Dict[str, str]] = {
        "user_ids": "whitelist_user_ids",
        "merge_user_ids": "merge_whitelist_user_ids",
        "approvals_user_ids": "approvals_whitelist_user_ids",
    }
    TEAM_FIELDS: ClassVar[Dict[str, str]] = {
        "team_ids": "whitelist_team_ids",
        "merge_team_ids": "merge_whitelist_team_ids",
        "approvals_team_ids": "approvals_whitelist_team_ids",
    }


def parse_whitelist_refs(value: Optional[str]) -> List[WhitelistRef]:
    """Parse a comma-separated list of ids and/or names"""
    if value is None or not value.strip():
        return []
    refs: List[WhitelistRef] = []
    for item in value.split(","):
        item = item.strip()
        if not item:
            continue
        try:
            refs.append(int(item))
        except ValueError:
            refs.append(item)
    return refs


class ProtectBranchForm(BaseModel):
    """Settings submitted when (un)protecting a branch"""

    model_config = ConfigDict(str_strip_whitespace=True)

    protected: bool = True
    enable_push: Literal["none", "all", "whitelist"] = "none"
    whitelist_users: str = ""
    whitelist_teams: str = ""
    whitelist_deploy_keys: bool = False
    enable_merge_whitelist: bool = False
    merge_whitelist_users: str = ""
    merge_whitelist_teams: str = ""
    enable_status_check: bool = False
    status_check_contexts: List[str] = Field(default_factory=list)
    required_approvals: int = 0
    enable_approvals_whitelist: bool = False
    approvals_whitelist_users: str = ""
    approvals_whitelist_teams: str = ""
    block_on_rejected_reviews: bool = False
    block_on_official_review_requests: bool = False
    block_on_outdated_branch: bool = False
    dismiss_stale_approvals: bool = False
    require_signed_commits: bool = False
    protected_file_patterns: str = ""
    unprotected_file_patterns: str = ""

    def to_mutation(self) -> ProtectedBranchMutation:
        if self.enable_push == "all":
            can_push, enable_whitelist, deploy_keys = True, False, False
        elif self.enable_push == "whitelist":
            can_push, enable_whitelist, deploy_keys = True, True, self.whitelist_deploy_keys
        else:
            can_push, enable_whitelist, deploy_keys = False, False, False

        return ProtectedBranchMutation(
            can_push=can_push,
            enable_whitelist=enable_whitelist,
            whitelist_deploy_keys=deploy_keys,
            enable_merge_whitelist=self.enable_merge_whitelist,
            required_approvals=self.required_approvals,
            enable_approvals_whitelist=self.enable_approvals_whitelist,
            status_check_contexts=(
                list(self.status_check_contexts) if self.enable_status_check else []
            ),
            block_on_rejected_reviews=self.block_on_rejected_reviews,
            block_on_official_review_requests=self.block_on_official_review_requests,
            dismiss_stale_approvals=self.dismiss_stale_approvals,
            require_signed_commits=self.require_signed_commits,
            block_on_outdated_branch=self.block_on_outdated_branch,
            protected_file_patterns=self.protected_file_patterns,
            unprotected_file_patterns=self.unprotected_file_patterns,
        )

    def to_whitelists(self) -> WhitelistOptions:
        """Whitelists of disabled features are submitted empty"""
        options = WhitelistOptions()
        if self.enable_push == "whitelist":
            options.user_ids = parse_whitelist_refs(self.whitelist_users)
            options.team_ids = parse_whitelist_refs(self.whitelist_teams)
        if self.enable_merge_whitelist:
            options.merge_user_ids = parse_whitelist_refs(self.merge_whitelist_users)
            options.merge_team_ids = parse_whitelist_refs(self.merge_whitelist_teams)
        if self.enable_approvals_whitelist:
            options.approvals_user_ids = parse_whitelist_refs(self.approvals_whitelist_users)
            options.approvals_team_ids = parse_whitelist_refs(self.approvals_whitelist_teams)
        return options
