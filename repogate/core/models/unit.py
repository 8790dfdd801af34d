from enum import IntEnum
from typing import ClassVar, FrozenSet, Iterable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class UnitType(IntEnum):
    """Independently enabled and permissioned repository sub-features"""

    CODE = 1
    ISSUES = 2
    PULL_REQUESTS = 3
    RELEASES = 4
    WIKI = 5
    EXTERNAL_WIKI = 6
    EXTERNAL_TRACKER = 7
    PROJECTS = 8
    PACKAGES = 9

    @property
    def key(self) -> str:
        return f"repo.{self.name.lower()}"

    @classmethod
    def parse(cls, value: str) -> "UnitType":
        """Parse a unit from ``repo.code``, ``code`` or ``pull_requests``"""
        name = value.strip().lower()
        if name.startswith("repo."):
            name = name[len("repo."):]
        name = name.replace("-", "_")
        if name == "pulls":
            name = "pull_requests"
        try:
            return cls[name.upper()]
        except KeyError:
            raise ValueError(f"Unknown unit type: {value!r}")

    def __str__(self) -> str:
        return self.key


class UnitRegistry(BaseModel):
    """Catalog of repository units and the site-wide disabled set"""

    model_config = ConfigDict(frozen=True)

    disabled: FrozenSet[UnitType] = Field(
        default_factory=frozenset, description="Units disabled site-wide"
    )

    ALL_UNITS: ClassVar[Tuple[UnitType, ...]] = tuple(UnitType)

    DEFAULT_UNITS: ClassVar[Tuple[UnitType, ...]] = (
        UnitType.CODE,
        UnitType.ISSUES,
        UnitType.PULL_REQUESTS,
        UnitType.RELEASES,
        UnitType.WIKI,
        UnitType.PROJECTS,
        UnitType.PACKAGES,
    )

    @classmethod
    def from_keys(cls, keys: Iterable[str]) -> "UnitRegistry":
        return cls(disabled=frozenset(UnitType.parse(k) for k in keys))

    @classmethod
    def from_settings(cls, settings=None) -> "UnitRegistry":
        if settings is None:
            from repogate.core.config import settings as default_settings
            settings = default_settings
        return cls.from_keys(settings.disabled_repo_units)

    def is_disabled(self, unit: UnitType) -> bool:
        return unit in self.disabled

    def default_units(self) -> List[UnitType]:
        return [u for u in self.DEFAULT_UNITS if u not in self.disabled]

    def enabled_units(self, configured: Iterable[UnitType]) -> List[UnitType]:
        """Filter a repository's configured units against the registry.

        Keeps the first occurrence order, drops duplicates and site-wide
        disabled units.
        """
        result: List[UnitType] = []
        for unit in configured:
            unit = UnitType(unit)
            if unit in self.disabled or unit in result:
                continue
            result.append(unit)
        return result

    def find_unit(self, key: str) -> Optional[UnitType]:
        try:
            return UnitType.parse(key)
        except ValueError:
            return None
