from typing import Dict, List, Optional

from repogate.core.config import settings
from repogate.core.exceptions import (AlreadyExistsError, InvalidArgumentError,
                                      NotFoundError)
from repogate.core.models import (AccessMode, Collaboration, Repository, Team,
                                  UnitType, User)
from repogate.core.storage import AuthorizationStore
from repogate.infrastructure.logging import get_logger

logger = get_logger(__name__)


class CollaborationService:
    """Maintains direct collaboration grants and team unit access"""

    def __init__(self, store: AuthorizationStore, default_mode: Optional[AccessMode] = None):
        self.store = store
        self.default_mode = default_mode or AccessMode.parse(settings.default_collaboration_mode)

    async def add_collaborator(
        self,
        repository: Repository,
        user: User,
        mode: Optional[AccessMode] = None,
    ) -> Collaboration:
        """Grant ``user`` direct access to ``repository``"""
        if user.is_ghost or user.is_organization:
            raise InvalidArgumentError(
                "Only regular users can be collaborators",
                details={"user_id": user.id},
            )
        if user.id == repository.owner_id:
            raise InvalidArgumentError(
                "The repository owner cannot be added as a collaborator",
                details={"repo_id": repository.id, "user_id": user.id},
            )

        mode = self._validate_mode(mode or self.default_mode)

        if await self.store.load_collaboration(repository.id, user.id) is not None:
            raise AlreadyExistsError(
                f"{user.name} is already a collaborator of {repository.full_name}",
                details={"repo_id": repository.id, "user_id": user.id},
            )

        collaboration = await self.store.save_collaboration(
            Collaboration(repo_id=repository.id, user_id=user.id, mode=mode)
        )
        logger.info(
            "collaborator_added",
            repo_id=repository.id,
            user_id=user.id,
            mode=str(mode),
        )
        return collaboration

    async def change_collaboration_access_mode(
        self,
        repository: Repository,
        user_id: int,
        mode: AccessMode,
    ) -> Collaboration:
        mode = self._validate_mode(mode)

        existing = await self.store.load_collaboration(repository.id, user_id)
        if existing is None:
            raise NotFoundError(
                "Collaboration", details={"repo_id": repository.id, "user_id": user_id}
            )
        if existing.mode == mode:
            return existing

        collaboration = await self.store.save_collaboration(
            existing.model_copy(update={"mode": mode})
        )
        logger.info(
            "collaboration_mode_changed",
            repo_id=repository.id,
            user_id=user_id,
            old_mode=str(existing.mode),
            new_mode=str(mode),
        )
        return collaboration

    async def remove_collaborator(self, repository: Repository, user_id: int) -> None:
        if not await self.store.delete_collaboration(repository.id, user_id):
            raise NotFoundError(
                "Collaboration", details={"repo_id": repository.id, "user_id": user_id}
            )
        logger.info("collaborator_removed", repo_id=repository.id, user_id=user_id)

    async def get_collaborators(self, repository: Repository) -> List[Collaboration]:
        return await self.store.load_collaborations(repository.id)

    async def get_repo_readers(self, repository: Repository) -> List[User]:
        """Users that can read the repository through ownership, collaboration or teams.

        Used to offer whitelist candidates on the settings screen.
        """
        user_ids: Dict[int, None] = {}

        if not repository.owner.is_organization:
            user_ids[repository.owner_id] = None

        for collaboration in await self.store.load_collaborations(repository.id):
            if collaboration.mode >= AccessMode.READ:
                user_ids[collaboration.user_id] = None

        if repository.owner.is_organization:
            teams = await self.store.load_teams_with_access(
                repository.owner_id, repository.id, AccessMode.READ
            )
            for team in teams:
                for member_id in sorted(team.member_ids):
                    user_ids[member_id] = None

        users = await self.store.load_users(user_ids)
        return sorted(
            (u for u in users if not u.is_ghost and not u.is_organization),
            key=lambda u: u.name.lower(),
        )

    async def update_team_units(
        self,
        team: Team,
        units: Optional[Dict[UnitType, AccessMode]],
    ) -> Team:
        """Replace a team's unit map; ``None`` grants the team mode on every unit"""
        updated = await self.store.save_team(team.model_copy(update={"units": units}))
        logger.info(
            "team_units_updated",
            team_id=team.id,
            org_id=team.org_id,
            units=sorted(u.key for u in units) if units is not None else "all",
        )
        return updated

    @staticmethod
    def _validate_mode(mode: AccessMode) -> AccessMode:
        try:
            mode = AccessMode(mode)
        except ValueError:
            raise InvalidArgumentError(f"Invalid access mode: {mode!r}")
        if mode <= AccessMode.NONE or mode >= AccessMode.OWNER:
            raise InvalidArgumentError(
                f"Collaboration mode must be read, write or admin, got {mode}"
            )
        return mode
