"""Access levels granted on a table."""

from enum import Enum


class AccessLevel(str, Enum):
    """Effective permission on a table, ordered none < read < write < admin."""

    NONE = "none"
    READ = "read"
    WRITE = "write"
    ADMIN = "admin"

    @property
    def rank(self) -> int:
        return _RANKS[self]

    def allows(self, required: "AccessLevel") -> bool:
        """Whether this level satisfies ``required``."""
        return self.rank >= required.rank


_RANKS = {
    AccessLevel.NONE: 0,
    AccessLevel.READ: 1,
    AccessLevel.WRITE: 2,
    AccessLevel.ADMIN: 3,
}
