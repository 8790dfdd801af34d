"""Storage contract for authorization data with an in-memory implementation"""

from abc import ABC, abstractmethod
from datetime import datetime
from itertools import count
from threading import Lock
from typing import Dict, Iterable, List, Optional, Set, Tuple

from repogate.core.models import (AccessMode, Collaboration, CommitStatus,
                                  ProtectedBranchRule, Team, UnitType, User)
from repogate.infrastructure.logging import get_logger

logger = get_logger(__name__)


class AuthorizationStore(ABC):
    """Abstract base class for authorization storage.

    Every method may raise ``StorageError``. Lookups of single records return
    ``None`` when the record does not exist.
    """

    # Users

    @abstractmethod
    async def load_user(self, user_id: int) -> Optional[User]:
        """Load a user or organization by id"""
        pass

    @abstractmethod
    async def load_users(self, user_ids: Iterable[int]) -> List[User]:
        """Load the existing users among ``user_ids``"""
        pass

    @abstractmethod
    async def find_user_by_name(self, name: str) -> Optional[User]:
        """Case-insensitive lookup by login name"""
        pass

    # Collaborations

    @abstractmethod
    async def load_collaboration(self, repo_id: int, user_id: int) -> Optional[Collaboration]:
        pass

    @abstractmethod
    async def load_collaborations(self, repo_id: int) -> List[Collaboration]:
        pass

    @abstractmethod
    async def save_collaboration(self, collaboration: Collaboration) -> Collaboration:
        """Insert or replace the record for (repo_id, user_id)"""
        pass

    @abstractmethod
    async def delete_collaboration(self, repo_id: int, user_id: int) -> bool:
        pass

    # Teams

    @abstractmethod
    async def load_teams_with_access(
        self,
        org_id: int,
        repo_id: int,
        min_mode: AccessMode,
        user_id: Optional[int] = None,
    ) -> List[Team]:
        """Teams of ``org_id`` with at least ``min_mode`` on ``repo_id``.

        When ``user_id`` is given only teams containing that user are returned.
        """
        pass

    @abstractmethod
    async def load_user_team_ids(self, org_id: int, user_id: int) -> Set[int]:
        """Ids of the teams of ``org_id`` the user belongs to"""
        pass

    @abstractmethod
    async def is_organization_owner(self, org_id: int, user_id: int) -> bool:
        """Whether the user is in an owner team of the organization"""
        pass

    @abstractmethod
    async def save_team(self, team: Team) -> Team:
        pass

    # Units

    @abstractmethod
    async def load_enabled_units(self, repo_id: int) -> List[UnitType]:
        pass

    # Protected branches

    @abstractmethod
    async def load_protected_branch_rule(
        self, repo_id: int, branch_name: str
    ) -> Optional[ProtectedBranchRule]:
        pass

    @abstractmethod
    async def load_protected_branch_rule_by_id(
        self, repo_id: int, rule_id: int
    ) -> Optional[ProtectedBranchRule]:
        pass

    @abstractmethod
    async def list_protected_branch_rules(self, repo_id: int) -> List[ProtectedBranchRule]:
        pass

    @abstractmethod
    async def upsert_protected_branch_rule(
        self, rule: ProtectedBranchRule
    ) -> ProtectedBranchRule:
        """Atomically write flags and whitelists of a rule, assigning an id if new"""
        pass

    @abstractmethod
    async def delete_protected_branch_rule(self, repo_id: int, rule_id: int) -> bool:
        pass

    # Commit statuses

    @abstractmethod
    async def find_recent_status_contexts(self, repo_id: int, since: datetime) -> List[str]:
        """Distinct status contexts reported on the repository since ``since``"""
        pass


class InMemoryAuthorizationStore(AuthorizationStore):
    """In-memory authorization storage implementation"""

    def __init__(self):
        self._users: Dict[int, User] = {}
        self._collaborations: Dict[Tuple[int, int], Collaboration] = {}
        self._teams: Dict[int, Team] = {}
        self._team_repos: Dict[int, Set[int]] = {}  # team_id -> repo_ids
        self._units: Dict[int, List[UnitType]] = {}
        self._rules: Dict[Tuple[int, str], ProtectedBranchRule] = {}
        self._statuses: List[CommitStatus] = []
        self._rule_ids = count(1)
        self._lock = Lock()

    # Seeding helpers

    def add_user(self, user: User) -> User:
        with self._lock:
            self._users[user.id] = user
            return user

    def set_units(self, repo_id: int, units: Iterable[UnitType]) -> None:
        with self._lock:
            self._units[repo_id] = list(units)

    def add_team(self, team: Team, repo_ids: Iterable[int] = ()) -> Team:
        with self._lock:
            self._teams[team.id] = team
            self._team_repos.setdefault(team.id, set()).update(repo_ids)
            return team

    def add_team_repository(self, team_id: int, repo_id: int) -> None:
        with self._lock:
            self._team_repos.setdefault(team_id, set()).add(repo_id)

    def add_commit_status(self, status: CommitStatus) -> None:
        with self._lock:
            self._statuses.append(status)

    # Users

    async def load_user(self, user_id: int) -> Optional[User]:
        with self._lock:
            return self._users.get(user_id)

    async def load_users(self, user_ids: Iterable[int]) -> List[User]:
        with self._lock:
            return [self._users[uid] for uid in dict.fromkeys(user_ids) if uid in self._users]

    async def find_user_by_name(self, name: str) -> Optional[User]:
        lowered = name.lower()
        with self._lock:
            for user in self._users.values():
                if user.name.lower() == lowered:
                    return user
            return None

    # Collaborations

    async def load_collaboration(self, repo_id: int, user_id: int) -> Optional[Collaboration]:
        with self._lock:
            return self._collaborations.get((repo_id, user_id))

    async def load_collaborations(self, repo_id: int) -> List[Collaboration]:
        with self._lock:
            return [c for (rid, _), c in self._collaborations.items() if rid == repo_id]

    async def save_collaboration(self, collaboration: Collaboration) -> Collaboration:
        with self._lock:
            self._collaborations[(collaboration.repo_id, collaboration.user_id)] = collaboration
            logger.debug(
                "collaboration_stored",
                repo_id=collaboration.repo_id,
                user_id=collaboration.user_id,
                mode=str(collaboration.mode),
            )
            return collaboration

    async def delete_collaboration(self, repo_id: int, user_id: int) -> bool:
        with self._lock:
            return self._collaborations.pop((repo_id, user_id), None) is not None

    # Teams

    async def load_teams_with_access(
        self,
        org_id: int,
        repo_id: int,
        min_mode: AccessMode,
        user_id: Optional[int] = None,
    ) -> List[Team]:
        with self._lock:
            teams = []
            for team in self._teams.values():
                if team.org_id != org_id or team.access_mode < min_mode:
                    continue
                if not (team.includes_all_repositories
                        or repo_id in self._team_repos.get(team.id, ())):
                    continue
                if user_id is not None and not team.has_member(user_id):
                    continue
                teams.append(team)
            return sorted(teams, key=lambda t: t.id)

    async def load_user_team_ids(self, org_id: int, user_id: int) -> Set[int]:
        with self._lock:
            return {
                team.id for team in self._teams.values()
                if team.org_id == org_id and team.has_member(user_id)
            }

    async def is_organization_owner(self, org_id: int, user_id: int) -> bool:
        with self._lock:
            return any(
                team.org_id == org_id and team.is_owner_team and team.has_member(user_id)
                for team in self._teams.values()
            )

    async def save_team(self, team: Team) -> Team:
        with self._lock:
            self._teams[team.id] = team
            self._team_repos.setdefault(team.id, set())
            return team

    # Units

    async def load_enabled_units(self, repo_id: int) -> List[UnitType]:
        with self._lock:
            return list(self._units.get(repo_id, ()))

    # Protected branches

    async def load_protected_branch_rule(
        self, repo_id: int, branch_name: str
    ) -> Optional[ProtectedBranchRule]:
        with self._lock:
            return self._rules.get((repo_id, branch_name))

    async def load_protected_branch_rule_by_id(
        self, repo_id: int, rule_id: int
    ) -> Optional[ProtectedBranchRule]:
        with self._lock:
            for rule in self._rules.values():
                if rule.repo_id == repo_id and rule.id == rule_id:
                    return rule
            return None

    async def list_protected_branch_rules(self, repo_id: int) -> List[ProtectedBranchRule]:
        with self._lock:
            rules = [r for r in self._rules.values() if r.repo_id == repo_id]
            return sorted(rules, key=lambda r: r.branch_name)

    async def upsert_protected_branch_rule(
        self, rule: ProtectedBranchRule
    ) -> ProtectedBranchRule:
        with self._lock:
            key = (rule.repo_id, rule.branch_name)
            existing = self._rules.get(key)
            rule_id = existing.id if existing is not None else next(self._rule_ids)
            stored = rule.model_copy(update={"id": rule_id, "updated_at": datetime.utcnow()})
            self._rules[key] = stored
            return stored

    async def delete_protected_branch_rule(self, repo_id: int, rule_id: int) -> bool:
        with self._lock:
            for key, rule in list(self._rules.items()):
                if rule.repo_id == repo_id and rule.id == rule_id:
                    del self._rules[key]
                    return True
            return False

    # Commit statuses

    async def find_recent_status_contexts(self, repo_id: int, since: datetime) -> List[str]:
        with self._lock:
            contexts = {
                s.context for s in self._statuses
                if s.repo_id == repo_id and s.created_at >= since
            }
            return sorted(contexts)
