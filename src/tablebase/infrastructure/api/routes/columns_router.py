"""Column API routes.

Provides endpoints for the columns of one table. Every mutation needs
admin access on the table.
"""

from fastapi import APIRouter, status
from fastapi.responses import Response

from tablebase.domain.entities import AccessLevel
from tablebase.domain.services import MassActionService, SchemaService
from tablebase.infrastructure.api.dependencies import RequesterDep, SessionDep, load_table
from tablebase.infrastructure.api.schemas import (
    ColumnDefinition,
    ColumnResponse,
    MassActionRequest,
    MassActionResponse,
    MoveColumnRequest,
    SwapColumnsRequest,
    UpdateColumnRequest,
)

router = APIRouter()


@router.get("", status_code=status.HTTP_200_OK, response_model=list[ColumnResponse])
async def list_columns(table_id: str, requester: RequesterDep, session: SessionDep) -> list[ColumnResponse]:
    """Get a table's columns ordered by position."""
    table = await load_table(session, table_id, requester, AccessLevel.READ)
    columns = await SchemaService(session).get_columns(table_id)
    return [ColumnResponse.from_model(column, table) for column in columns]


@router.post("", status_code=status.HTTP_201_CREATED, response_model=ColumnResponse)
async def add_column(
    table_id: str,
    request: ColumnDefinition,
    requester: RequesterDep,
    session: SessionDep,
) -> ColumnResponse:
    """Add a column; without a position it is appended."""
    table = await load_table(session, table_id, requester, AccessLevel.ADMIN)
    column = await SchemaService(session).add_column(table_id, request.model_dump())
    return ColumnResponse.from_model(column, table)


@router.post("/swap", status_code=status.HTTP_200_OK, response_model=list[ColumnResponse])
async def swap_columns(
    table_id: str,
    request: SwapColumnsRequest,
    requester: RequesterDep,
    session: SessionDep,
) -> list[ColumnResponse]:
    """Exchange the positions of two columns."""
    table = await load_table(session, table_id, requester, AccessLevel.ADMIN)
    columns = await SchemaService(session).swap_columns(table_id, request.column_id_a, request.column_id_b)
    return [ColumnResponse.from_model(column, table) for column in columns]


@router.post("/mass-action", status_code=status.HTTP_200_OK, response_model=MassActionResponse)
async def column_mass_action(
    table_id: str,
    request: MassActionRequest,
    requester: RequesterDep,
    session: SessionDep,
) -> MassActionResponse:
    """Delete, or change the required flag of, several columns."""
    result = await MassActionService(session).execute_column_action(
        table_id, request.action, request.ids, requester
    )
    return MassActionResponse(action=result.action, requested=result.requested, affected=result.affected)


@router.patch("/{column_id}", status_code=status.HTTP_200_OK, response_model=ColumnResponse)
async def update_column(
    table_id: str,
    column_id: str,
    request: UpdateColumnRequest,
    requester: RequesterDep,
    session: SessionDep,
) -> ColumnResponse:
    """Apply a sparse update to a column."""
    table = await load_table(session, table_id, requester, AccessLevel.ADMIN)
    column = await SchemaService(session).update_column(
        table_id, column_id, request.model_dump(exclude_unset=True)
    )
    return ColumnResponse.from_model(column, table)


@router.delete("/{column_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_column(
    table_id: str,
    column_id: str,
    requester: RequesterDep,
    session: SessionDep,
) -> Response:
    """Delete a column. Protected columns cannot be deleted."""
    await load_table(session, table_id, requester, AccessLevel.ADMIN)
    await SchemaService(session).delete_column(table_id, column_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{column_id}/move", status_code=status.HTTP_200_OK, response_model=list[ColumnResponse])
async def move_column(
    table_id: str,
    column_id: str,
    request: MoveColumnRequest,
    requester: RequesterDep,
    session: SessionDep,
) -> list[ColumnResponse]:
    """Move a column one step up or down."""
    table = await load_table(session, table_id, requester, AccessLevel.ADMIN)
    columns = await SchemaService(session).move_column(table_id, column_id, request.direction)
    return [ColumnResponse.from_model(column, table) for column in columns]
