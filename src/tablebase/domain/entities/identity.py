"""Ownership identities for tables and rows.

Tables and rows are owned by either a human user or an API token. The
owner is a tagged value object persisted as (kind, id), so a user id can
never be mistaken for a token id that happens to share its characters.
"""

from dataclasses import dataclass
from enum import Enum


class IdentityKind(str, Enum):
    """Kind of actor behind an identity."""

    USER = "user"
    API_TOKEN = "api_token"


@dataclass(frozen=True)
class OwnerIdentity:
    """Identity of the actor that owns a table or authored a row.

    Attributes:
        kind: Whether the actor is a user or an API token.
        id: The user id or token id.
    """

    kind: IdentityKind
    id: str

    def __post_init__(self) -> None:
        """Validate identity data after initialization."""
        if not self.id:
            raise ValueError("Identity ID is required")
        # Accept plain strings from persistence and normalise to the enum
        object.__setattr__(self, "kind", IdentityKind(self.kind))

    @classmethod
    def user(cls, user_id: str) -> "OwnerIdentity":
        """Build a user identity."""
        return cls(IdentityKind.USER, user_id)

    @classmethod
    def api_token(cls, token_id: str) -> "OwnerIdentity":
        """Build an API token identity."""
        return cls(IdentityKind.API_TOKEN, token_id)

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.id}"


@dataclass(frozen=True)
class Requester:
    """The actor making a request against the table engine.

    Attributes:
        identity: The authenticated identity, or None for anonymous requests.
        is_admin: Whether the actor holds the admin role.
    """

    identity: OwnerIdentity | None = None
    is_admin: bool = False

    @property
    def is_authenticated(self) -> bool:
        return self.identity is not None
