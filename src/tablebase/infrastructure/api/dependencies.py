"""FastAPI dependencies for the requester and access checks.

Authentication happens upstream. The authenticating proxy forwards the
caller's identity in ``X-User-Id`` or ``X-Api-Token-Id`` and the admin role
in ``X-User-Role``.
"""

from typing import Annotated

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from tablebase.core.logging import get_logger
from tablebase.domain.entities import AccessLevel, OwnerIdentity, Requester
from tablebase.domain.services import SchemaService, require_access
from tablebase.infrastructure.persistence.database import get_db_session
from tablebase.infrastructure.persistence.models import UserTableModel

logger = get_logger(__name__)

ADMIN_ROLE = "admin"


async def get_requester(
    x_user_id: Annotated[str | None, Header()] = None,
    x_api_token_id: Annotated[str | None, Header()] = None,
    x_user_role: Annotated[str | None, Header()] = None,
) -> Requester:
    """Build the requester from the forwarded identity headers.

    Returns:
        Requester: The requesting actor; anonymous when no identity header is set.

    Raises:
        HTTPException: 400 if both a user and an API token identity are sent.
    """
    if x_user_id and x_api_token_id:
        logger.info("Rejected request with both user and API token identity")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Send either X-User-Id or X-Api-Token-Id, not both",
        )

    identity = None
    if x_user_id:
        identity = OwnerIdentity.user(x_user_id)
    elif x_api_token_id:
        identity = OwnerIdentity.api_token(x_api_token_id)

    is_admin = identity is not None and (x_user_role or "").lower() == ADMIN_ROLE
    return Requester(identity=identity, is_admin=is_admin)


async def get_authenticated_requester(
    requester: Annotated[Requester, Depends(get_requester)],
) -> Requester:
    """Require an identified requester.

    Raises:
        HTTPException: 401 if the request is anonymous.
    """
    if requester.identity is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="An X-User-Id or X-Api-Token-Id header is required",
        )
    return requester


async def load_table(
    session: AsyncSession, table_id: str, requester: Requester, level: AccessLevel
) -> UserTableModel:
    """Load a table and check the requester holds ``level`` on it.

    Raises:
        NotFoundError: If the table does not exist.
        ForbiddenError: If the requester's access is below ``level``.
    """
    table = await SchemaService(session).get_table(table_id)
    require_access(table, requester, level)
    return table


# Type aliases for dependency injection
RequesterDep = Annotated[Requester, Depends(get_requester)]
AuthenticatedRequester = Annotated[Requester, Depends(get_authenticated_requester)]
SessionDep = Annotated[AsyncSession, Depends(get_db_session)]
