"""SQLAlchemy implementation of the authorization store.

Every public method runs in its own session and transaction. Driver errors
are reported as ``StorageError``.
"""
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Set

from sqlalchemy.exc import SQLAlchemyError

from repogate.core.exceptions import StorageError
from repogate.core.models import (
    AccessMode,
    Collaboration,
    CommitStatus,
    ProtectedBranchRule,
    Repository,
    Team,
    UnitType,
    User
)
from repogate.core.models.protected_branch import join_patterns
from repogate.core.storage import AuthorizationStore
from repogate.infrastructure.database.connection import DatabaseConnection
from repogate.infrastructure.database.models import (
    CollaborationModel,
    CommitStatusModel,
    ProtectedBranchModel,
    RepositoryModel,
    TeamMemberModel,
    TeamModel,
    UserModel
)
from repogate.infrastructure.database.unit_of_work import UnitOfWork
from repogate.infrastructure.logging import get_logger

logger = get_logger(__name__)

RULE_FLAG_COLUMNS = (
    "can_push",
    "enable_whitelist",
    "whitelist_deploy_keys",
    "enable_merge_whitelist",
    "required_approvals",
    "enable_approvals_whitelist",
    "block_on_rejected_reviews",
    "block_on_official_review_requests",
    "dismiss_stale_approvals",
    "require_signed_commits",
    "block_on_outdated_branch",
)

RULE_ID_COLUMNS = (
    "whitelist_user_ids",
    "whitelist_team_ids",
    "merge_whitelist_user_ids",
    "merge_whitelist_team_ids",
    "approvals_whitelist_user_ids",
    "approvals_whitelist_team_ids",
)


def _user_from_model(model: UserModel) -> User:
    return User(
        id=model.id,
        name=model.name,
        is_admin=model.is_admin,
        is_organization=model.is_organization,
        is_active=model.is_active,
    )


def _team_from_model(model: TeamModel) -> Team:
    units = None
    if model.units is not None:
        units = {UnitType(int(k)): AccessMode(v) for k, v in model.units.items()}
    return Team(
        id=model.id,
        org_id=model.org_id,
        name=model.name,
        access_mode=AccessMode(model.access_mode),
        includes_all_repositories=model.includes_all_repositories,
        units=units,
        member_ids=frozenset(m.user_id for m in model.members),
    )


def _collaboration_from_model(model: CollaborationModel) -> Collaboration:
    return Collaboration(
        repo_id=model.repo_id,
        user_id=model.user_id,
        mode=AccessMode(model.mode),
        created_at=model.created_at,
    )


def _rule_from_model(model: ProtectedBranchModel) -> ProtectedBranchRule:
    data: Dict[str, Any] = {
        name: getattr(model, name) for name in RULE_FLAG_COLUMNS + RULE_ID_COLUMNS
    }
    return ProtectedBranchRule(
        id=model.id,
        repo_id=model.repo_id,
        branch_name=model.branch_name,
        status_check_contexts=model.status_check_contexts or [],
        protected_file_patterns=model.protected_file_patterns,
        unprotected_file_patterns=model.unprotected_file_patterns,
        created_at=model.created_at,
        updated_at=model.updated_at,
        **data,
    )


def _rule_values(rule: ProtectedBranchRule) -> Dict[str, Any]:
    values: Dict[str, Any] = {name: getattr(rule, name) for name in RULE_FLAG_COLUMNS}
    for name in RULE_ID_COLUMNS:
        values[name] = sorted(getattr(rule, name))
    values["status_check_contexts"] = list(rule.status_check_contexts)
    values["protected_file_patterns"] = join_patterns(rule.protected_file_patterns)
    values["unprotected_file_patterns"] = join_patterns(rule.unprotected_file_patterns)
    return values


class SqlAlchemyAuthorizationStore(AuthorizationStore):
    """Authorization storage backed by a relational database"""

    def __init__(self, connection: DatabaseConnection):
        self.connection = connection

    @asynccontextmanager
    async def _unit_of_work(self):
        try:
            async with self.connection.get_session() as session:
                async with UnitOfWork(session) as uow:
                    yield uow
        except SQLAlchemyError as e:
            logger.error("storage_operation_failed", error=str(e), exc_info=True)
            raise StorageError(details={"error": str(e)}) from e

    # Seeding and lookup helpers used by callers that own the data

    async def save_user(self, user: User) -> User:
        async with self._unit_of_work() as uow:
            model = await uow.users.find_by_id(user.id)
            if model is None:
                model = UserModel(id=user.id)
            model.name = user.name
            model.lower_name = user.name.lower()
            model.is_admin = user.is_admin
            model.is_organization = user.is_organization
            model.is_active = user.is_active
            await uow.users.save(model)
        return user

    async def save_repository(self, repository: Repository) -> Repository:
        """Store a repository, and its unit list when it has been loaded"""
        async with self._unit_of_work() as uow:
            model = await uow.repositories.find_by_id(repository.id)
            if model is None:
                model = RepositoryModel(id=repository.id)
            model.name = repository.name
            model.owner_id = repository.owner_id
            model.is_private = repository.is_private
            model.default_branch = repository.default_branch
            await uow.repositories.save(model)
            if repository.units_loaded:
                await uow.repositories.replace_units(
                    repository.id, [int(u) for u in repository.units]
                )
        return repository

    async def load_repository(self, repo_id: int) -> Optional[Repository]:
        async with self._unit_of_work() as uow:
            model = await uow.repositories.find_by_id(repo_id)
            if model is None:
                return None
            return Repository(
                id=model.id,
                owner=_user_from_model(model.owner),
                name=model.name,
                is_private=model.is_private,
                default_branch=model.default_branch,
            )

    async def set_units(self, repo_id: int, units: Iterable[UnitType]) -> None:
        async with self._unit_of_work() as uow:
            await uow.repositories.replace_units(repo_id, [int(u) for u in units])

    async def add_team_repository(self, team_id: int, repo_id: int) -> None:
        async with self._unit_of_work() as uow:
            await uow.teams.add_repository(team_id, repo_id)

    async def add_commit_status(self, status: CommitStatus) -> None:
        async with self._unit_of_work() as uow:
            await uow.commit_statuses.save(
                CommitStatusModel(
                    repo_id=status.repo_id,
                    sha=status.sha,
                    context=status.context,
                    state=status.state.value,
                    description=status.description,
                    created_at=status.created_at,
                )
            )

    # Users

    async def load_user(self, user_id: int) -> Optional[User]:
        async with self._unit_of_work() as uow:
            model = await uow.users.find_by_id(user_id)
            return _user_from_model(model) if model is not None else None

    async def load_users(self, user_ids: Iterable[int]) -> List[User]:
        ordered = list(dict.fromkeys(user_ids))
        async with self._unit_of_work() as uow:
            models = {m.id: m for m in await uow.users.find_by_ids(ordered)}
        return [_user_from_model(models[uid]) for uid in ordered if uid in models]

    async def find_user_by_name(self, name: str) -> Optional[User]:
        async with self._unit_of_work() as uow:
            model = await uow.users.find_by_name(name)
            return _user_from_model(model) if model is not None else None

    # Collaborations

    async def load_collaboration(self, repo_id: int, user_id: int) -> Optional[Collaboration]:
        async with self._unit_of_work() as uow:
            model = await uow.collaborations.find_by_repo_and_user(repo_id, user_id)
            return _collaboration_from_model(model) if model is not None else None

    async def load_collaborations(self, repo_id: int) -> List[Collaboration]:
        async with self._unit_of_work() as uow:
            models = await uow.collaborations.find_by_repo(repo_id)
            return [_collaboration_from_model(m) for m in models]

    async def save_collaboration(self, collaboration: Collaboration) -> Collaboration:
        async with self._unit_of_work() as uow:
            model = await uow.collaborations.find_by_repo_and_user(
                collaboration.repo_id, collaboration.user_id
            )
            if model is None:
                model = CollaborationModel(
                    repo_id=collaboration.repo_id,
                    user_id=collaboration.user_id,
                    created_at=collaboration.created_at,
                    updated_at=datetime.utcnow(),
                )
            else:
                model.updated_at = datetime.utcnow()
            model.mode = int(collaboration.mode)
            await uow.collaborations.save(model)
            logger.debug(
                "collaboration_stored",
                repo_id=collaboration.repo_id,
                user_id=collaboration.user_id,
                mode=str(collaboration.mode),
            )
            return _collaboration_from_model(model)

    async def delete_collaboration(self, repo_id: int, user_id: int) -> bool:
        async with self._unit_of_work() as uow:
            return await uow.collaborations.delete_by_repo_and_user(repo_id, user_id)

    # Teams

    async def load_teams_with_access(
        self,
        org_id: int,
        repo_id: int,
        min_mode: AccessMode,
        user_id: Optional[int] = None,
    ) -> List[Team]:
        async with self._unit_of_work() as uow:
            models = await uow.teams.find_with_access(org_id, repo_id, int(min_mode), user_id)
            return [_team_from_model(m) for m in models]

    async def load_user_team_ids(self, org_id: int, user_id: int) -> Set[int]:
        async with self._unit_of_work() as uow:
            return await uow.teams.find_team_ids_for_user(org_id, user_id)

    async def is_organization_owner(self, org_id: int, user_id: int) -> bool:
        async with self._unit_of_work() as uow:
            return await uow.teams.is_member_of_owner_team(
                org_id, user_id, int(AccessMode.OWNER)
            )

    async def save_team(self, team: Team) -> Team:
        async with self._unit_of_work() as uow:
            model = await uow.teams.find_by_id(team.id)
            if model is None:
                model = TeamModel(id=team.id, members=[])
            model.org_id = team.org_id
            model.name = team.name
            model.lower_name = team.name.lower()
            model.access_mode = int(team.access_mode)
            model.includes_all_repositories = team.includes_all_repositories
            model.units = (
                {str(int(k)): int(v) for k, v in team.units.items()}
                if team.units is not None else None
            )

            current = {m.user_id for m in model.members}
            for member in list(model.members):
                if member.user_id not in team.member_ids:
                    model.members.remove(member)
            for user_id in sorted(team.member_ids - current):
                model.members.append(TeamMemberModel(team_id=team.id, user_id=user_id))

            await uow.teams.save(model)
            return _team_from_model(model)

    # Units

    async def load_enabled_units(self, repo_id: int) -> List[UnitType]:
        async with self._unit_of_work() as uow:
            return [UnitType(t) for t in await uow.repositories.find_unit_types(repo_id)]

    # Protected branches

    async def load_protected_branch_rule(
        self, repo_id: int, branch_name: str
    ) -> Optional[ProtectedBranchRule]:
        async with self._unit_of_work() as uow:
            model = await uow.protected_branches.find_by_repo_and_branch(repo_id, branch_name)
            return _rule_from_model(model) if model is not None else None

    async def load_protected_branch_rule_by_id(
        self, repo_id: int, rule_id: int
    ) -> Optional[ProtectedBranchRule]:
        async with self._unit_of_work() as uow:
            model = await uow.protected_branches.find_by_repo_and_id(repo_id, rule_id)
            return _rule_from_model(model) if model is not None else None

    async def list_protected_branch_rules(self, repo_id: int) -> List[ProtectedBranchRule]:
        async with self._unit_of_work() as uow:
            models = await uow.protected_branches.find_by_repo(repo_id)
            return [_rule_from_model(m) for m in models]

    async def upsert_protected_branch_rule(
        self, rule: ProtectedBranchRule
    ) -> ProtectedBranchRule:
        now = datetime.utcnow()
        async with self._unit_of_work() as uow:
            model = await uow.protected_branches.find_by_repo_and_branch(
                rule.repo_id, rule.branch_name, for_update=True
            )
            if model is None:
                model = ProtectedBranchModel(
                    repo_id=rule.repo_id,
                    branch_name=rule.branch_name,
                    created_at=rule.created_at,
                )
            for name, value in _rule_values(rule).items():
                setattr(model, name, value)
            model.updated_at = now
            await uow.protected_branches.save(model)
            return _rule_from_model(model)

    async def delete_protected_branch_rule(self, repo_id: int, rule_id: int) -> bool:
        async with self._unit_of_work() as uow:
            model = await uow.protected_branches.find_by_repo_and_id(repo_id, rule_id)
            if model is None:
                return False
            return await uow.protected_branches.delete(model.id)

    # Commit statuses

    async def find_recent_status_contexts(self, repo_id: int, since: datetime) -> List[str]:
        async with self._unit_of_work() as uow:
            return await uow.commit_statuses.find_contexts_since(repo_id, since)
