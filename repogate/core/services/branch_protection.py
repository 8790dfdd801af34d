"""Branch protection checks: load the inputs, then evaluate"""

from typing import FrozenSet, List, Optional

from repogate.core.authorization.branch_protection import (
    Actor, BranchAction, BranchProtectionDecision, BranchProtectionEvaluator,
    MergeRequest, PushRequest, is_whitelisted)
from repogate.core.authorization.resolver import PermissionResolver
from repogate.core.models import (ProtectedBranchRule, Repository, Review,
                                  ReviewState, UnitType, User)
from repogate.core.storage import AuthorizationStore
from repogate.infrastructure.logging import bind_context, get_logger, unbind_context

logger = get_logger(__name__)


class BranchProtectionService:
    """Answers "may this user do this to this branch" against stored rules"""

    def __init__(
        self,
        store: AuthorizationStore,
        resolver: Optional[PermissionResolver] = None,
        evaluator: Optional[BranchProtectionEvaluator] = None,
    ):
        self.store = store
        self.resolver = resolver or PermissionResolver(store)
        self.evaluator = evaluator or BranchProtectionEvaluator()

    async def is_protected_branch(self, repository: Repository, branch_name: str) -> bool:
        rule = await self.store.load_protected_branch_rule(repository.id, branch_name)
        return rule is not None

    async def check_push(
        self,
        repository: Repository,
        user: Optional[User],
        branch_name: str,
        request: Optional[PushRequest] = None,
        is_deploy_key: bool = False,
    ) -> BranchProtectionDecision:
        """Evaluate a push, force-push or deletion of ``branch_name``"""
        request = request or PushRequest(action=BranchAction.PUSH)
        bind_context(repo_id=repository.id, branch=branch_name)
        try:
            permission = await self.resolver.resolve(repository, user)
            rule = await self.store.load_protected_branch_rule(repository.id, branch_name)
            actor = await self._actor(repository, user, rule, is_deploy_key)
            return self.evaluator.evaluate_push(permission, rule, actor, request)
        finally:
            unbind_context("repo_id", "branch")

    async def check_merge(
        self,
        repository: Repository,
        user: Optional[User],
        branch_name: str,
        request: MergeRequest,
    ) -> BranchProtectionDecision:
        """Evaluate merging a pull request into ``branch_name``.

        Review authority is recomputed from the current rule, so callers do
        not need to set ``Review.official`` themselves.
        """
        bind_context(repo_id=repository.id, branch=branch_name)
        try:
            permission = await self.resolver.resolve(repository, user)
            rule = await self.store.load_protected_branch_rule(repository.id, branch_name)
            actor = await self._actor(repository, user, rule, False)
            if rule is not None:
                request = request.model_copy(
                    update={"reviews": await self.mark_official_reviews(repository, rule, request.reviews)}
                )
            return self.evaluator.evaluate_merge(permission, rule, actor, request)
        finally:
            unbind_context("repo_id", "branch")

    async def is_user_official_reviewer(
        self,
        repository: Repository,
        rule: ProtectedBranchRule,
        user: User,
    ) -> bool:
        """Whether the user's reviews carry authority on the rule's branch.

        With an approvals whitelist that is whitelist membership, otherwise
        write access to the code.
        """
        if user.is_ghost:
            return False
        if not rule.enable_approvals_whitelist:
            permission = await self.resolver.resolve(repository, user)
            return permission.can_write(UnitType.CODE)

        team_ids = await self._team_ids(repository, user.id)
        actor = Actor(user_id=user.id, team_ids=team_ids)
        return is_whitelisted(
            actor, rule.approvals_whitelist_user_ids, rule.approvals_whitelist_team_ids
        )

    async def mark_official_reviews(
        self,
        repository: Repository,
        rule: ProtectedBranchRule,
        reviews: List[Review],
    ) -> List[Review]:
        authority = {}
        marked = []
        for review in reviews:
            if review.reviewer_id not in authority:
                reviewer = await self.store.load_user(review.reviewer_id)
                authority[review.reviewer_id] = (
                    reviewer is not None
                    and await self.is_user_official_reviewer(repository, rule, reviewer)
                )
            official = authority[review.reviewer_id]
            if review.state == ReviewState.COMMENT:
                official = False
            marked.append(review.model_copy(update={"official": official}))
        return marked

    async def _actor(
        self,
        repository: Repository,
        user: Optional[User],
        rule: Optional[ProtectedBranchRule],
        is_deploy_key: bool,
    ) -> Actor:
        if user is None:
            return Actor(is_deploy_key=is_deploy_key)

        team_ids: FrozenSet[int] = frozenset()
        if rule is not None and (rule.whitelist_team_ids or rule.merge_whitelist_team_ids):
            team_ids = await self._team_ids(repository, user.id)

        return Actor(user_id=user.id, team_ids=team_ids, is_deploy_key=is_deploy_key)

    async def _team_ids(self, repository: Repository, user_id: int) -> FrozenSet[int]:
        if not repository.owner.is_organization:
            return frozenset()
        return frozenset(await self.store.load_user_team_ids(repository.owner_id, user_id))
