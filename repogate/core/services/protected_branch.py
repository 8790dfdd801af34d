"""Lifecycle of protected branch rules"""

from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Set, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from repogate.core.config import settings
from repogate.core.exceptions import InvalidArgumentError, NotFoundError
from repogate.core.models import (AccessMode, ProtectBranchForm,
                                  ProtectedBranchMutation, ProtectedBranchRule,
                                  Repository, Team, User, WhitelistOptions)
from repogate.core.models.protected_branch import WhitelistRef
from repogate.core.services.collaboration import CollaborationService
from repogate.core.storage import AuthorizationStore
from repogate.infrastructure.logging import get_logger

logger = get_logger(__name__)


class ProtectedBranchSettings(BaseModel):
    """Everything a settings screen needs to edit one branch's protection"""

    model_config = ConfigDict(frozen=True)

    rule: ProtectedBranchRule
    users: List[User] = Field(default_factory=list)
    teams: List[Team] = Field(default_factory=list)
    status_check_contexts: List[str] = Field(default_factory=list)

    def is_context_required(self, context: str) -> bool:
        return self.rule.is_context_required(context)


class ProtectedBranchService:
    """Creates, updates, deletes and lists protected branch rules"""

    def __init__(
        self,
        store: AuthorizationStore,
        collaborations: Optional[CollaborationService] = None,
    ):
        self.store = store
        self.collaborations = collaborations or CollaborationService(store)

    async def get_protected_branch(
        self, repository: Repository, branch_name: str
    ) -> Optional[ProtectedBranchRule]:
        """Rule of a branch, None when the branch is unprotected"""
        return await self.store.load_protected_branch_rule(repository.id, branch_name)

    async def get_protected_branches(self, repository: Repository) -> List[ProtectedBranchRule]:
        return await self.store.list_protected_branch_rules(repository.id)

    async def get_unprotected_branches(
        self, repository: Repository, branch_names: Iterable[str]
    ) -> List[str]:
        """Filter existing branch names down to those without a rule"""
        protected = {
            rule.branch_name for rule in await self.get_protected_branches(repository)
        }
        return [name for name in branch_names if name not in protected]

    async def update_protect_branch(
        self,
        repository: Repository,
        branch_name: str,
        mutation: Optional[ProtectedBranchMutation] = None,
        whitelists: Optional[WhitelistOptions] = None,
    ) -> ProtectedBranchRule:
        """Create the rule with defaults if missing, then apply the changes.

        When ``whitelists`` is given every whitelist is replaced by the
        resolved members; unresolvable references are dropped.
        """
        mutation = mutation or ProtectedBranchMutation()
        changes = mutation.changes()

        if changes.get("required_approvals", 0) < 0:
            raise InvalidArgumentError(
                "Required approvals must not be negative",
                details={"required_approvals": changes["required_approvals"]},
            )

        existing = await self.store.load_protected_branch_rule(repository.id, branch_name)
        base = existing or ProtectedBranchRule(repo_id=repository.id, branch_name=branch_name)

        data: Dict[str, Any] = base.model_dump()
        data.update(changes)

        if whitelists is not None:
            data.update(await self._resolve_whitelists(repository, whitelists))

        try:
            rule = ProtectedBranchRule.model_validate(data)
        except ValidationError as e:
            raise InvalidArgumentError(
                "Invalid protected branch settings", details={"errors": e.errors()}
            ) from e

        stored = await self.store.upsert_protected_branch_rule(rule)

        logger.info(
            "protected_branch_updated" if existing else "protected_branch_created",
            repo_id=repository.id,
            branch=branch_name,
            rule_id=stored.id,
            can_push=stored.can_push,
            enable_whitelist=stored.enable_whitelist,
            required_approvals=stored.required_approvals,
        )
        return stored

    async def protect_branch(
        self,
        repository: Repository,
        branch_name: str,
        form: Union[ProtectBranchForm, Dict[str, Any]],
    ) -> Optional[ProtectedBranchRule]:
        """Apply a submitted settings form; ``protected=False`` removes the rule"""
        if not isinstance(form, ProtectBranchForm):
            try:
                form = ProtectBranchForm.model_validate(form)
            except ValidationError as e:
                raise InvalidArgumentError(
                    "Invalid protect branch form", details={"errors": e.errors()}
                ) from e

        if form.protected:
            return await self.update_protect_branch(
                repository, branch_name, form.to_mutation(), form.to_whitelists()
            )

        existing = await self.store.load_protected_branch_rule(repository.id, branch_name)
        if existing is not None:
            await self.delete_protected_branch(repository, existing.id)
        return None

    async def delete_protected_branch(self, repository: Repository, rule_id: int) -> None:
        """Remove a rule; the branch, reviews and statuses are left untouched"""
        rule = await self.store.load_protected_branch_rule_by_id(repository.id, rule_id)
        if rule is None or not await self.store.delete_protected_branch_rule(repository.id, rule_id):
            raise NotFoundError(
                "Protected branch", details={"repo_id": repository.id, "rule_id": rule_id}
            )
        logger.info(
            "protected_branch_deleted",
            repo_id=repository.id,
            rule_id=rule_id,
            branch=rule.branch_name,
        )

    async def find_recent_status_contexts(
        self,
        repository: Repository,
        window: Optional[timedelta] = None,
    ) -> List[str]:
        """Distinct status contexts reported within the trailing window"""
        if window is None:
            window = timedelta(days=settings.status_context_window_days)
        since = datetime.utcnow() - window
        return await self.store.find_recent_status_contexts(repository.id, since)

    async def get_protected_branch_settings(
        self, repository: Repository, branch_name: str
    ) -> ProtectedBranchSettings:
        rule = await self.get_protected_branch(repository, branch_name)
        if rule is None:
            rule = ProtectedBranchRule(repo_id=repository.id, branch_name=branch_name)

        contexts = await self.find_recent_status_contexts(repository)
        for context in rule.status_check_contexts:
            if context not in contexts:
                contexts.append(context)

        teams: List[Team] = []
        if repository.owner.is_organization:
            teams = await self.store.load_teams_with_access(
                repository.owner_id, repository.id, AccessMode.READ
            )

        return ProtectedBranchSettings(
            rule=rule,
            users=await self.collaborations.get_repo_readers(repository),
            teams=teams,
            status_check_contexts=contexts,
        )

    async def _resolve_whitelists(
        self, repository: Repository, whitelists: WhitelistOptions
    ) -> Dict[str, frozenset]:
        resolved: Dict[str, frozenset] = {}

        for option_field, rule_field in WhitelistOptions.USER_FIELDS.items():
            resolved[rule_field] = await self._resolve_users(getattr(whitelists, option_field))

        candidates: List[Team] = []
        if repository.owner.is_organization:
            candidates = await self.store.load_teams_with_access(
                repository.owner_id, repository.id, AccessMode.READ
            )
        for option_field, rule_field in WhitelistOptions.TEAM_FIELDS.items():
            resolved[rule_field] = self._resolve_teams(
                candidates, getattr(whitelists, option_field)
            )

        return resolved

    async def _resolve_users(self, refs: List[WhitelistRef]) -> frozenset:
        ids: Set[int] = set()
        for ref in refs:
            if isinstance(ref, int):
                user = await self.store.load_user(ref)
            else:
                user = await self.store.find_user_by_name(ref)
            if user is None or user.is_ghost or user.is_organization:
                logger.debug("whitelist_user_dropped", reference=ref)
                continue
            ids.add(user.id)
        return frozenset(ids)

    @staticmethod
    def _resolve_teams(candidates: List[Team], refs: List[WhitelistRef]) -> frozenset:
        by_id = {team.id: team for team in candidates}
        by_name = {team.name.lower(): team for team in candidates}
        ids: Set[int] = set()
        for ref in refs:
            team = by_id.get(ref) if isinstance(ref, int) else by_name.get(ref.lower())
            if team is None:
                logger.debug("whitelist_team_dropped", reference=ref)
                continue
            ids.add(team.id)
        return frozenset(ids)
