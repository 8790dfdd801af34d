from typing import TYPE_CHECKING, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator

from repogate.core.models.unit import UnitRegistry, UnitType
from repogate.core.models.user import User

if TYPE_CHECKING:
    from repogate.core.storage import AuthorizationStore


class Repository(BaseModel):
    """A hosted repository as seen by one request.

    The enabled unit list is loaded lazily and kept on the instance, so a
    value must not outlive the request that loaded it.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    id: int = Field(..., description="Unique repository identifier")
    owner: User = Field(..., description="Owning user or organization")
    name: str = Field(..., min_length=1, max_length=128, description="Repository name")
    is_private: bool = Field(default=False, description="Whether the repository is private")
    default_branch: str = Field(default="main", description="Default branch name")

    _units: Optional[Tuple[UnitType, ...]] = PrivateAttr(default=None)

    @field_validator("default_branch")
    @classmethod
    def validate_branch_name(cls, v: str) -> str:
        if not v:
            return "main"

        invalid_chars = ["~", "^", ":", "\\", " ", "?", "*", "["]
        for char in invalid_chars:
            if char in v:
                raise ValueError(f"Branch name cannot contain '{char}'")

        return v

    @property
    def owner_id(self) -> int:
        return self.owner.id

    @property
    def is_public(self) -> bool:
        return not self.is_private

    @property
    def full_name(self) -> str:
        return f"{self.owner.name}/{self.name}"

    @property
    def units_loaded(self) -> bool:
        return self._units is not None

    @property
    def units(self) -> Tuple[UnitType, ...]:
        """Enabled units; ``load_units`` must have been awaited first"""
        if self._units is None:
            raise RuntimeError(f"Units of {self.full_name} have not been loaded")
        return self._units

    def set_units(self, units: List[UnitType]) -> None:
        self._units = tuple(units)

    async def load_units(
        self,
        store: "AuthorizationStore",
        registry: Optional[UnitRegistry] = None,
    ) -> Tuple[UnitType, ...]:
        """Load the enabled units once and return the cached tuple afterwards"""
        if self._units is None:
            registry = registry or UnitRegistry.from_settings()
            configured = await store.load_enabled_units(self.id)
            self._units = tuple(registry.enabled_units(configured))
        return self._units

    def has_unit(self, unit: UnitType) -> bool:
        return unit in self.units

    def __str__(self) -> str:
        return f"Repository({self.full_name})"
