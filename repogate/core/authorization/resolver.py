"""Resolution of a user's effective access on a repository"""

from typing import Dict, FrozenSet, Iterable, Optional

from repogate.core.models import (AccessMode, Collaboration, Permission,
                                  Repository, Team, UnitRegistry, UnitType,
                                  User)
from repogate.core.storage import AuthorizationStore
from repogate.infrastructure.logging import get_logger

logger = get_logger(__name__)


def combine_unit_modes(
    units: Iterable[UnitType],
    collaboration: Optional[Collaboration],
    teams: Iterable[Team],
    is_public: bool,
) -> Permission:
    """Build a Permission from the non-terminal access sources.

    Per unit the effective mode is the maximum of the collaboration mode,
    every team's mode for that unit and, for public repositories, READ.
    """
    enabled: FrozenSet[UnitType] = frozenset(units)
    teams = list(teams)
    floor = AccessMode.READ if is_public else AccessMode.NONE
    collab_mode = collaboration.mode if collaboration is not None else AccessMode.NONE

    coarse = max([floor, collab_mode] + [team.access_mode for team in teams])

    units_mode: Dict[UnitType, AccessMode] = {}
    for unit in enabled:
        mode = max(floor, collab_mode)
        for team in teams:
            mode = max(mode, team.unit_access_mode(unit))
        units_mode[unit] = AccessMode(mode)

    if all(mode == coarse for mode in units_mode.values()):
        return Permission(access_mode=AccessMode(coarse), units=enabled)

    return Permission(access_mode=AccessMode(coarse), units=enabled, units_mode=units_mode)


class PermissionResolver:
    """Computes ``Permission`` values from stored access data.

    Precedence: site admin, then owner (including organization owners), then
    the maximum of collaboration and team access, then the public read floor.
    """

    def __init__(
        self,
        store: AuthorizationStore,
        unit_registry: Optional[UnitRegistry] = None,
    ):
        self.store = store
        self.unit_registry = unit_registry or UnitRegistry.from_settings()

    async def resolve(self, repository: Repository, user: Optional[User]) -> Permission:
        """Resolve the permission of ``user`` (None for anonymous) on ``repository``"""
        units = frozenset(await repository.load_units(self.store, self.unit_registry))

        if user is None or user.is_ghost:
            permission = combine_unit_modes(units, None, (), repository.is_public)
            self._log(repository, user, permission, "anonymous")
            return permission

        if user.is_site_admin:
            permission = Permission.owner(units)
            self._log(repository, user, permission, "site_admin")
            return permission

        if await self._is_owner(repository, user):
            permission = Permission.owner(units)
            self._log(repository, user, permission, "owner")
            return permission

        collaboration = await self.store.load_collaboration(repository.id, user.id)
        if collaboration is not None and collaboration.mode < AccessMode.READ:
            collaboration = None

        teams = []
        if repository.owner.is_organization:
            teams = await self.store.load_teams_with_access(
                repository.owner_id, repository.id, AccessMode.READ, user_id=user.id
            )

        permission = combine_unit_modes(units, collaboration, teams, repository.is_public)
        self._log(
            repository,
            user,
            permission,
            "membership",
            collaboration=str(collaboration.mode) if collaboration else None,
            teams=[team.id for team in teams],
        )
        return permission

    async def resolve_by_id(self, repository: Repository, user_id: int) -> Permission:
        """Resolve for a stored user; unknown ids resolve as anonymous"""
        user = await self.store.load_user(user_id)
        return await self.resolve(repository, user)

    async def _is_owner(self, repository: Repository, user: User) -> bool:
        if repository.owner_id == user.id:
            return True
        if repository.owner.is_organization:
            return await self.store.is_organization_owner(repository.owner_id, user.id)
        return False

    def _log(
        self,
        repository: Repository,
        user: Optional[User],
        permission: Permission,
        source: str,
        **extra,
    ) -> None:
        logger.debug(
            "permission_resolved",
            repo_id=repository.id,
            repository=repository.full_name,
            doer_id=user.id if user is not None else None,
            access_mode=str(permission.access_mode),
            per_unit=permission.units_mode is not None,
            source=source,
            **extra,
        )
