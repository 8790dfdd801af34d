"""Branch protection policy evaluation.

The evaluator is pure: it receives an already resolved ``Permission``, the
rule of the target branch (``None`` when unprotected) and a request, and
returns a decision. Loading those inputs is the job of
``repogate.core.services.branch_protection``.
"""

from enum import Enum
from typing import Dict, FrozenSet, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from repogate.core.authorization.patterns import find_protected_files
from repogate.core.models import (GHOST_USER_ID, CommitStatusState,
                                  Permission, ProtectedBranchRule, Review,
                                  ReviewState, UnitType)
from repogate.infrastructure.logging import get_logger

logger = get_logger(__name__)


class BranchAction(str, Enum):
    """Branch-scoped actions subject to protection"""

    PUSH = "push"
    FORCE_PUSH = "force_push"
    DELETE = "delete"
    MERGE = "merge"


class DecisionPath(str, Enum):
    """Which rule let the action through"""

    UNPROTECTED = "unprotected"
    PERMISSION = "permission"
    WHITELIST = "whitelist"
    DEPLOY_KEY = "deploy_key"
    MERGE_WHITELIST = "merge_whitelist"
    DENIED = "denied"


class DenyReason(str, Enum):
    """Why an action was refused"""

    PUSH_DISABLED = "push_disabled"
    NO_WRITE_PERMISSION = "no_write_permission"
    NOT_WHITELISTED = "not_whitelisted"
    NOT_MERGE_WHITELISTED = "not_merge_whitelisted"
    PROTECTED_FILES = "protected_files"
    INSUFFICIENT_APPROVALS = "insufficient_approvals"
    REJECTED_REVIEWS = "rejected_reviews"
    OFFICIAL_REVIEW_REQUESTS = "official_review_requests"
    STATUS_CHECKS = "status_checks"
    UNSIGNED_COMMITS = "unsigned_commits"
    OUTDATED_BRANCH = "outdated_branch"


DENY_MESSAGES: Dict[DenyReason, str] = {
    DenyReason.PUSH_DISABLED: "Pushing to this branch is disabled",
    DenyReason.NO_WRITE_PERMISSION: "You do not have write access to the code",
    DenyReason.NOT_WHITELISTED: "You are not allowed to push to this branch",
    DenyReason.NOT_MERGE_WHITELISTED: "You are not allowed to merge into this branch",
    DenyReason.PROTECTED_FILES: "The change modifies protected files",
    DenyReason.INSUFFICIENT_APPROVALS: "The pull request does not have enough approvals",
    DenyReason.REJECTED_REVIEWS: "Changes were requested by an official reviewer",
    DenyReason.OFFICIAL_REVIEW_REQUESTS: "Official review requests are still outstanding",
    DenyReason.STATUS_CHECKS: "Required status checks have not succeeded",
    DenyReason.UNSIGNED_COMMITS: "The head commit is not signed or cannot be verified",
    DenyReason.OUTDATED_BRANCH: "The head branch is behind the base branch",
}


class Actor(BaseModel):
    """Who is performing a branch action"""

    model_config = ConfigDict(frozen=True)

    user_id: Optional[int] = None
    team_ids: FrozenSet[int] = Field(default_factory=frozenset)
    is_deploy_key: bool = False

    @property
    def is_ghost(self) -> bool:
        return self.user_id is None or self.user_id == GHOST_USER_ID


class PushRequest(BaseModel):
    """A proposed ref update on a branch"""

    model_config = ConfigDict(frozen=True)

    action: BranchAction = BranchAction.PUSH
    changed_files: List[str] = Field(default_factory=list)


class MergeRequest(BaseModel):
    """State of a pull request about to be merged into a branch"""

    model_config = ConfigDict(frozen=True)

    head_commit_id: Optional[str] = None
    reviews: List[Review] = Field(default_factory=list)
    status_states: Dict[str, CommitStatusState] = Field(
        default_factory=dict, description="Latest state per status context of the head commit"
    )
    signature_verified: Optional[bool] = None
    is_outdated: bool = False
    changed_files: List[str] = Field(default_factory=list)


class BranchProtectionDecision(BaseModel):
    """Outcome of evaluating one branch action"""

    model_config = ConfigDict(frozen=True)

    allowed: bool
    action: BranchAction
    path: DecisionPath
    reasons: List[DenyReason] = Field(default_factory=list)
    failed_status_contexts: List[str] = Field(default_factory=list)
    protected_files: List[str] = Field(default_factory=list)
    approvals: Optional[int] = None

    @property
    def messages(self) -> List[str]:
        return [DENY_MESSAGES[reason] for reason in self.reasons]

    def has_reason(self, reason: DenyReason) -> bool:
        return reason in self.reasons


def is_whitelisted(
    actor: Actor, user_ids: FrozenSet[int], team_ids: FrozenSet[int]
) -> bool:
    """Whitelist membership by user id or team; the ghost user never matches"""
    if actor.is_ghost:
        return False
    if actor.user_id in user_ids:
        return True
    return bool(team_ids) and not team_ids.isdisjoint(actor.team_ids)


class BranchProtectionEvaluator:
    """Decides push, force-push, delete and merge actions on a branch"""

    def evaluate(
        self,
        permission: Permission,
        rule: Optional[ProtectedBranchRule],
        actor: Actor,
        request,
    ) -> BranchProtectionDecision:
        if isinstance(request, MergeRequest):
            return self.evaluate_merge(permission, rule, actor, request)
        return self.evaluate_push(permission, rule, actor, request)

    def evaluate_push(
        self,
        permission: Permission,
        rule: Optional[ProtectedBranchRule],
        actor: Actor,
        request: PushRequest,
    ) -> BranchProtectionDecision:
        action = request.action

        if rule is None:
            allowed = permission.can_write(UnitType.CODE)
            return self._decide(
                action,
                DecisionPath.UNPROTECTED if allowed else DecisionPath.DENIED,
                [] if allowed else [DenyReason.NO_WRITE_PERMISSION],
            )

        path, reason = self._push_gate(permission, rule, actor)
        protected = find_protected_files(
            request.changed_files,
            rule.protected_file_patterns,
            rule.unprotected_file_patterns,
        )

        reasons = [reason] if reason is not None else []
        if protected:
            reasons.append(DenyReason.PROTECTED_FILES)

        decision = self._decide(
            action,
            path if not reasons else DecisionPath.DENIED,
            reasons,
            protected_files=protected,
        )
        self._log(rule, actor, decision)
        return decision

    def evaluate_merge(
        self,
        permission: Permission,
        rule: Optional[ProtectedBranchRule],
        actor: Actor,
        request: MergeRequest,
    ) -> BranchProtectionDecision:
        action = BranchAction.MERGE

        if rule is None:
            allowed = permission.can_write(UnitType.CODE)
            return self._decide(
                action,
                DecisionPath.UNPROTECTED if allowed else DecisionPath.DENIED,
                [] if allowed else [DenyReason.NO_WRITE_PERMISSION],
            )

        if rule.enable_merge_whitelist:
            if is_whitelisted(actor, rule.merge_whitelist_user_ids, rule.merge_whitelist_team_ids):
                path, gate_reason = DecisionPath.MERGE_WHITELIST, None
            else:
                path, gate_reason = DecisionPath.DENIED, DenyReason.NOT_MERGE_WHITELISTED
        else:
            path, gate_reason = self._push_gate(permission, rule, actor)

        if gate_reason is not None:
            decision = self._decide(action, DecisionPath.DENIED, [gate_reason])
            self._log(rule, actor, decision)
            return decision

        reasons: List[DenyReason] = []

        latest = self._latest_reviews(request.reviews)
        counted = [
            review for review in latest.values()
            if not review.dismissed and self._counts(rule, review)
        ]

        approvals = sum(
            1 for review in counted
            if review.state == ReviewState.APPROVE and not self._is_stale(rule, review, request)
        )
        if approvals < rule.required_approvals:
            reasons.append(DenyReason.INSUFFICIENT_APPROVALS)

        if rule.block_on_rejected_reviews and any(
            review.state == ReviewState.REJECT and review.official
            for review in latest.values() if not review.dismissed
        ):
            reasons.append(DenyReason.REJECTED_REVIEWS)

        if rule.block_on_official_review_requests and self._has_official_requests(request.reviews):
            reasons.append(DenyReason.OFFICIAL_REVIEW_REQUESTS)

        failed_contexts = [
            context for context in rule.status_check_contexts
            if not self._status_succeeded(request.status_states.get(context))
        ]
        if failed_contexts:
            reasons.append(DenyReason.STATUS_CHECKS)

        if rule.require_signed_commits and request.signature_verified is not True:
            reasons.append(DenyReason.UNSIGNED_COMMITS)

        if rule.block_on_outdated_branch and request.is_outdated:
            reasons.append(DenyReason.OUTDATED_BRANCH)

        protected = find_protected_files(
            request.changed_files,
            rule.protected_file_patterns,
            rule.unprotected_file_patterns,
        )
        if protected:
            reasons.append(DenyReason.PROTECTED_FILES)

        decision = self._decide(
            action,
            path if not reasons else DecisionPath.DENIED,
            reasons,
            failed_status_contexts=failed_contexts,
            protected_files=protected,
            approvals=approvals,
        )
        self._log(rule, actor, decision)
        return decision

    def _push_gate(self, permission: Permission, rule: ProtectedBranchRule, actor: Actor):
        """Coarse push permission on a protected branch, ignoring file rules"""
        if not rule.can_push:
            return DecisionPath.DENIED, DenyReason.PUSH_DISABLED

        if not rule.enable_whitelist:
            if permission.can_write(UnitType.CODE):
                return DecisionPath.PERMISSION, None
            return DecisionPath.DENIED, DenyReason.NO_WRITE_PERMISSION

        if is_whitelisted(actor, rule.whitelist_user_ids, rule.whitelist_team_ids):
            return DecisionPath.WHITELIST, None
        if actor.is_deploy_key and rule.whitelist_deploy_keys:
            return DecisionPath.DEPLOY_KEY, None
        return DecisionPath.DENIED, DenyReason.NOT_WHITELISTED

    @staticmethod
    def _latest_reviews(reviews: List[Review]) -> Dict[int, Review]:
        """Latest approve/reject review per reviewer, excluding the ghost user"""
        latest: Dict[int, Review] = {}
        for review in sorted(reviews, key=lambda r: r.submitted_at):
            if review.reviewer_id == GHOST_USER_ID:
                continue
            if review.state in (ReviewState.APPROVE, ReviewState.REJECT):
                latest[review.reviewer_id] = review
        return latest

    @staticmethod
    def _counts(rule: ProtectedBranchRule, review: Review) -> bool:
        return review.official if rule.enable_approvals_whitelist else True

    @staticmethod
    def _is_stale(rule: ProtectedBranchRule, review: Review, request: MergeRequest) -> bool:
        return (
            rule.dismiss_stale_approvals
            and request.head_commit_id is not None
            and review.commit_id != request.head_commit_id
        )

    @staticmethod
    def _has_official_requests(reviews: List[Review]) -> bool:
        """An official request is outstanding until the reviewer submits a review"""
        pending: Dict[int, bool] = {}
        for review in sorted(reviews, key=lambda r: r.submitted_at):
            if review.state == ReviewState.REQUEST:
                pending[review.reviewer_id] = review.official and not review.dismissed
            else:
                pending[review.reviewer_id] = False
        return any(pending.values())

    @staticmethod
    def _status_succeeded(state: Optional[CommitStatusState]) -> bool:
        return state is not None and state.is_success

    @staticmethod
    def _decide(
        action: BranchAction,
        path: DecisionPath,
        reasons: List[DenyReason],
        **details,
    ) -> BranchProtectionDecision:
        return BranchProtectionDecision(
            allowed=not reasons,
            action=action,
            path=path,
            reasons=reasons,
            **details,
        )

    @staticmethod
    def _log(
        rule: ProtectedBranchRule,
        actor: Actor,
        decision: BranchProtectionDecision,
    ) -> None:
        if decision.allowed:
            logger.debug(
                "branch_protection_allowed",
                repo_id=rule.repo_id,
                branch=rule.branch_name,
                doer_id=actor.user_id,
                action=decision.action.value,
                path=decision.path.value,
            )
        else:
            logger.info(
                "branch_protection_denied",
                repo_id=rule.repo_id,
                branch=rule.branch_name,
                doer_id=actor.user_id,
                action=decision.action.value,
                reasons=[r.value for r in decision.reasons],
            )
