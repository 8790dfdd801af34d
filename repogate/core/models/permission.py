from typing import Any, Dict, FrozenSet, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from repogate.core.models.access import AccessMode
from repogate.core.models.unit import UnitType


class Permission(BaseModel):
    """Resolved access of one user on one repository.

    ``units_mode`` is only present when some enabled unit differs from the
    coarse ``access_mode``; lookups consult it first and fall back to the
    coarse mode. Units outside ``units`` are always denied.
    """

    model_config = ConfigDict(frozen=True)

    access_mode: AccessMode = Field(default=AccessMode.NONE)
    units: FrozenSet[UnitType] = Field(default_factory=frozenset)
    units_mode: Optional[Mapping[UnitType, AccessMode]] = Field(default=None)

    @classmethod
    def none(cls, units: FrozenSet[UnitType] = frozenset()) -> "Permission":
        return cls(access_mode=AccessMode.NONE, units=units)

    @classmethod
    def owner(cls, units: FrozenSet[UnitType]) -> "Permission":
        return cls(access_mode=AccessMode.OWNER, units=units)

    def is_owner(self) -> bool:
        return self.access_mode >= AccessMode.OWNER

    def is_admin(self) -> bool:
        return self.access_mode >= AccessMode.ADMIN

    def has_access(self) -> bool:
        """Whether the user can read at least one unit"""
        if self.units_mode is None:
            return self.access_mode >= AccessMode.READ and bool(self.units)
        return any(mode >= AccessMode.READ for mode in self.units_mode.values())

    def unit_access_mode(self, unit: UnitType) -> AccessMode:
        if unit not in self.units:
            return AccessMode.NONE
        if self.units_mode is not None and unit in self.units_mode:
            return self.units_mode[unit]
        return self.access_mode

    def can_access(self, mode: AccessMode, unit: UnitType) -> bool:
        return self.unit_access_mode(unit) >= mode

    def can_read(self, unit: UnitType) -> bool:
        return self.can_access(AccessMode.READ, unit)

    def can_write(self, unit: UnitType) -> bool:
        return self.can_access(AccessMode.WRITE, unit)

    def can_read_any(self, *units: UnitType) -> bool:
        return any(self.can_read(u) for u in units)

    def can_write_any(self, *units: UnitType) -> bool:
        return any(self.can_write(u) for u in units)

    def can_read_issues_or_pulls(self, is_pull: bool) -> bool:
        return self.can_read(UnitType.PULL_REQUESTS if is_pull else UnitType.ISSUES)

    def can_write_issues_or_pulls(self, is_pull: bool) -> bool:
        return self.can_write(UnitType.PULL_REQUESTS if is_pull else UnitType.ISSUES)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "access_mode": str(self.access_mode),
            "units": sorted(u.key for u in self.units),
            "units_mode": (
                {u.key: str(m) for u, m in sorted(self.units_mode.items())}
                if self.units_mode is not None else None
            ),
        }

    def __str__(self) -> str:
        return f"Permission({self.access_mode}, units={len(self.units)})"
