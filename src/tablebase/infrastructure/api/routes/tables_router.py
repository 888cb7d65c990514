"""Tables API routes.

Provides endpoints for creating, listing, updating, deleting, cloning and
bulk-editing user tables.
"""

from fastapi import APIRouter, Query, status
from fastapi.responses import Response

from tablebase.domain.entities import AccessLevel
from tablebase.domain.services import (
    MassActionService,
    SchemaService,
    TableCloner,
    resolve_access,
)
from tablebase.infrastructure.api.dependencies import (
    AuthenticatedRequester,
    RequesterDep,
    SessionDep,
    load_table,
)
from tablebase.infrastructure.api.schemas import (
    AccessResponse,
    CloneTableRequest,
    CreateTableRequest,
    MassActionRequest,
    MassActionResponse,
    TableDetailResponse,
    TableListResponse,
    TableResponse,
    UpdateTableRequest,
    table_detail_response,
    table_response,
)

router = APIRouter()


@router.get("", status_code=status.HTTP_200_OK, response_model=TableListResponse)
async def list_tables(
    requester: RequesterDep,
    session: SessionDep,
    page: int = Query(default=1, ge=1, description="Page number"),
    page_size: int = Query(default=25, ge=1, le=100, description="Items per page"),
    sort_by: str = Query(default="created_at", description="Field to sort by"),
    sort_order: str = Query(default="desc", description="Sort order: asc or desc"),
    name: str | None = Query(default=None, description="Case-insensitive name substring"),
    visibility: str | None = Query(default=None),
    table_type: str | None = Query(default=None),
    owned: bool = Query(default=False, description="Only tables owned by the requester"),
) -> TableListResponse:
    """List the tables visible to the requester."""
    tables, total = await SchemaService(session).list_tables(
        requester,
        page=page,
        page_size=page_size,
        sort_by=sort_by,
        sort_order=sort_order,
        name=name,
        visibility=visibility,
        table_type=table_type,
        owned=owned,
    )
    return TableListResponse(
        items=[table_response(table) for table in tables],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=TableDetailResponse,
    responses={400: {"description": "Validation error"}},
)
async def create_table(
    request: CreateTableRequest,
    requester: AuthenticatedRequester,
    session: SessionDep,
) -> TableDetailResponse:
    """Create a table with its columns, owned by the requester."""
    table, columns = await SchemaService(session).create_table(
        name=request.name,
        owner=requester.identity,
        columns=[column.model_dump() for column in request.columns],
        description=request.description,
        visibility=request.visibility,
        table_type=request.table_type,
        product_id_column=request.product_id_column,
        rental_period=request.rental_period,
    )
    return table_detail_response(table, columns)


@router.post("/mass-action", status_code=status.HTTP_200_OK, response_model=MassActionResponse)
async def table_mass_action(
    request: MassActionRequest,
    requester: RequesterDep,
    session: SessionDep,
) -> MassActionResponse:
    """Change visibility of, or delete, several tables.

    Without the admin role only the requester's own tables are affected.
    """
    result = await MassActionService(session).execute_table_action(
        request.action, request.ids, requester
    )
    return MassActionResponse(action=result.action, requested=result.requested, affected=result.affected)


@router.post(
    "/clone",
    status_code=status.HTTP_201_CREATED,
    response_model=TableDetailResponse,
    responses={404: {"description": "Table not found"}},
)
async def clone_table(
    request: CloneTableRequest,
    requester: AuthenticatedRequester,
    session: SessionDep,
) -> TableDetailResponse:
    """Clone a table's structure (no rows) for the requester."""
    await load_table(session, request.table_id, requester, AccessLevel.READ)
    clone, columns = await TableCloner(session).clone_table(
        request.table_id,
        requester.identity,
        name=request.name,
        description=request.description,
        visibility=request.visibility,
    )
    return table_detail_response(clone, columns)


@router.get("/{table_id}", status_code=status.HTTP_200_OK, response_model=TableDetailResponse)
async def get_table(table_id: str, requester: RequesterDep, session: SessionDep) -> TableDetailResponse:
    """Get a table with its columns."""
    await load_table(session, table_id, requester, AccessLevel.READ)
    table, columns = await SchemaService(session).get_table_schema(table_id)
    return table_detail_response(table, columns)


@router.get("/{table_id}/access", status_code=status.HTTP_200_OK, response_model=AccessResponse)
async def get_table_access(table_id: str, requester: RequesterDep, session: SessionDep) -> AccessResponse:
    """Get the requester's effective access level on a table."""
    table = await SchemaService(session).get_table(table_id)
    return AccessResponse(table_id=table.id, access=resolve_access(table, requester).value)


@router.patch("/{table_id}", status_code=status.HTTP_200_OK, response_model=TableResponse)
async def update_table(
    table_id: str,
    request: UpdateTableRequest,
    requester: RequesterDep,
    session: SessionDep,
) -> TableResponse:
    """Apply a sparse update to a table."""
    await load_table(session, table_id, requester, AccessLevel.ADMIN)
    table = await SchemaService(session).update_table(
        table_id, request.model_dump(exclude_unset=True)
    )
    return table_response(table)


@router.delete("/{table_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_table(table_id: str, requester: RequesterDep, session: SessionDep) -> Response:
    """Delete a table with its columns and rows."""
    await load_table(session, table_id, requester, AccessLevel.ADMIN)
    await SchemaService(session).delete_table(table_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
