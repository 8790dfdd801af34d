from enum import IntEnum


class AccessMode(IntEnum):
    """Ordered access levels on a repository"""

    NONE = 0
    READ = 1
    WRITE = 2
    ADMIN = 3
    OWNER = 4

    @classmethod
    def parse(cls, value: str) -> "AccessMode":
        """Parse a mode from its case-insensitive name"""
        try:
            return cls[value.strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown access mode: {value!r}")

    def __str__(self) -> str:
        return self.name.lower()
