from typing import ClassVar, Dict, FrozenSet, Optional

from pydantic import BaseModel, ConfigDict, Field

from repogate.core.models.access import AccessMode
from repogate.core.models.unit import UnitType

GHOST_USER_ID = -1
GHOST_USER_NAME = "Ghost"


class User(BaseModel):
    """A site account; organizations are users with ``is_organization`` set"""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: int = Field(..., description="Unique user identifier")
    name: str = Field(..., min_length=1, max_length=40, description="Unique login name")
    is_admin: bool = Field(default=False, description="Site administrator flag")
    is_organization: bool = Field(default=False, description="Whether this is an organization")
    is_active: bool = Field(default=True, description="Whether the account is active")

    @classmethod
    def ghost(cls) -> "User":
        """Sentinel standing in for deleted accounts"""
        return cls(id=GHOST_USER_ID, name=GHOST_USER_NAME, is_active=False)

    @property
    def is_ghost(self) -> bool:
        return self.id == GHOST_USER_ID

    @property
    def is_site_admin(self) -> bool:
        """Admin flag that is never honoured for the ghost user"""
        return self.is_admin and not self.is_ghost

    def __str__(self) -> str:
        return f"User({self.name})"


class Team(BaseModel):
    """A group of organization members sharing an access mode"""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    OWNER_TEAM_NAME: ClassVar[str] = "Owners"

    id: int = Field(..., description="Unique team identifier")
    org_id: int = Field(..., description="Owning organization id")
    name: str = Field(..., min_length=1, max_length=255)
    access_mode: AccessMode = Field(default=AccessMode.READ)
    includes_all_repositories: bool = Field(
        default=False, description="Team has access to every organization repository"
    )
    units: Optional[Dict[UnitType, AccessMode]] = Field(
        default=None, description="Per-unit modes; None grants access_mode on every unit"
    )
    member_ids: FrozenSet[int] = Field(default_factory=frozenset)

    @property
    def is_owner_team(self) -> bool:
        return self.access_mode >= AccessMode.OWNER

    def has_member(self, user_id: int) -> bool:
        return user_id in self.member_ids

    def unit_access_mode(self, unit: UnitType) -> AccessMode:
        """Mode this team grants on a single unit"""
        if self.is_owner_team or self.units is None:
            return self.access_mode
        return self.units.get(unit, AccessMode.NONE)

    def __str__(self) -> str:
        return f"Team({self.name})"
