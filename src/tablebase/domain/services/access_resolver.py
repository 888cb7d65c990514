"""Access resolution for user tables.

Resolves the effective access level of a requester on a table from the
table's visibility tier, its owner and the requester's admin role.

| Visibility | Anonymous | Authenticated non-owner | Owner | Admin |
|------------|-----------|-------------------------|-------|-------|
| private    | none      | none                    | admin | admin |
| public     | read      | read                    | admin | admin |
| shared     | read      | write                   | admin | admin |
"""

from tablebase.core.logging import get_logger
from tablebase.domain.entities import AccessLevel, Requester, Visibility
from tablebase.domain.exceptions import ForbiddenError
from tablebase.infrastructure.persistence.models import UserTableModel

logger = get_logger(__name__)

# (anonymous, authenticated non-owner) level per visibility tier
_NON_OWNER_ACCESS: dict[Visibility, tuple[AccessLevel, AccessLevel]] = {
    Visibility.PRIVATE: (AccessLevel.NONE, AccessLevel.NONE),
    Visibility.PUBLIC: (AccessLevel.READ, AccessLevel.READ),
    Visibility.SHARED: (AccessLevel.READ, AccessLevel.WRITE),
}


def resolve_access(table: UserTableModel, requester: Requester) -> AccessLevel:
    """Resolve the requester's access level on a table.

    Ownership is decided by comparing tagged identities, so a user and an
    API token that share an id string are different owners.

    Args:
        table: The table being accessed.
        requester: The requesting actor.

    Returns:
        The effective access level.
    """
    if requester.is_admin:
        return AccessLevel.ADMIN
    if requester.identity is not None and requester.identity == table.owner:
        return AccessLevel.ADMIN

    anonymous, authenticated = _NON_OWNER_ACCESS[Visibility(table.visibility)]
    return authenticated if requester.is_authenticated else anonymous


def require_access(table: UserTableModel, requester: Requester, level: AccessLevel) -> AccessLevel:
    """Ensure the requester holds at least ``level`` on a table.

    Args:
        table: The table being accessed.
        requester: The requesting actor.
        level: The minimum level the operation needs.

    Returns:
        The resolved access level.

    Raises:
        ForbiddenError: If the resolved level is below ``level``.
    """
    granted = resolve_access(table, requester)
    if not granted.allows(level):
        logger.info(
            "Access denied",
            table_id=table.id,
            requester=str(requester.identity) if requester.identity else "anonymous",
            granted=granted.value,
            required=level.value,
        )
        raise ForbiddenError(f"{level.value.capitalize()} access to this table is required")
    return granted
