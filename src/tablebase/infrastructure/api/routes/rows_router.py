"""Row API routes.

Provides endpoints for the rows of one table. Reads need read access,
writes need write access and clearing the table needs admin access.
"""

import json

from fastapi import APIRouter, Query, status
from fastapi.responses import Response

from tablebase.domain.entities import AccessLevel
from tablebase.domain.exceptions import ValidationError
from tablebase.domain.services import MassActionService, RowService
from tablebase.infrastructure.api.dependencies import RequesterDep, SessionDep, load_table
from tablebase.infrastructure.api.schemas import (
    ClearRowsResponse,
    MassActionResponse,
    RowListResponse,
    RowMassActionRequest,
    RowResponse,
    RowWriteRequest,
    row_response,
)

router = APIRouter()


def _parse_filters(raw: str | None) -> dict[str, str]:
    """Parse the ``filters`` query parameter, a JSON object of substrings."""
    if not raw:
        return {}
    try:
        filters = json.loads(raw)
    except json.JSONDecodeError:
        raise ValidationError("filters must be a JSON object") from None
    if not isinstance(filters, dict):
        raise ValidationError("filters must be a JSON object")
    return {str(name): str(value) for name, value in filters.items() if value is not None}


@router.get("", status_code=status.HTTP_200_OK, response_model=RowListResponse)
async def list_rows(
    table_id: str,
    requester: RequesterDep,
    session: SessionDep,
    page: int = Query(default=1, ge=1, description="Page number"),
    page_size: int = Query(default=25, ge=1, le=100, description="Items per page"),
    sort_by: str | None = Query(default=None, description="Column, created_at or updated_at"),
    sort_order: str = Query(default="desc", description="Sort order: asc or desc"),
    filters: str | None = Query(default=None, description='JSON object, e.g. {"name": "lamp"}'),
) -> RowListResponse:
    """List a page of a table's rows."""
    await load_table(session, table_id, requester, AccessLevel.READ)
    rows, total = await RowService(session).list_rows(
        table_id,
        filters=_parse_filters(filters),
        sort_by=sort_by,
        descending=sort_order != "asc",
        page=page,
        page_size=page_size,
    )
    return RowListResponse(
        items=[row_response(row) for row in rows],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.post("", status_code=status.HTTP_201_CREATED, response_model=RowResponse)
async def insert_row(
    table_id: str,
    request: RowWriteRequest,
    requester: RequesterDep,
    session: SessionDep,
) -> RowResponse:
    """Insert a row."""
    await load_table(session, table_id, requester, AccessLevel.WRITE)
    row = await RowService(session).insert_row(table_id, request.data, author=requester.identity)
    return row_response(row)


@router.delete("", status_code=status.HTTP_200_OK, response_model=ClearRowsResponse)
async def clear_rows(table_id: str, requester: RequesterDep, session: SessionDep) -> ClearRowsResponse:
    """Delete every row of a table."""
    await load_table(session, table_id, requester, AccessLevel.ADMIN)
    deleted = await RowService(session).clear_table(table_id)
    return ClearRowsResponse(deleted=deleted)


@router.post("/mass-action", status_code=status.HTTP_200_OK, response_model=MassActionResponse)
async def row_mass_action(
    table_id: str,
    request: RowMassActionRequest,
    requester: RequesterDep,
    session: SessionDep,
) -> MassActionResponse:
    """Delete, or set one field on, several rows."""
    result = await MassActionService(session).execute_row_action(
        table_id,
        request.action,
        request.ids,
        requester,
        field_name=request.field_name,
        value=request.value,
    )
    return MassActionResponse(action=result.action, requested=result.requested, affected=result.affected)


@router.get("/{row_id}", status_code=status.HTTP_200_OK, response_model=RowResponse)
async def get_row(table_id: str, row_id: str, requester: RequesterDep, session: SessionDep) -> RowResponse:
    """Get a row."""
    await load_table(session, table_id, requester, AccessLevel.READ)
    return row_response(await RowService(session).get_row(table_id, row_id))


@router.patch("/{row_id}", status_code=status.HTTP_200_OK, response_model=RowResponse)
async def update_row(
    table_id: str,
    row_id: str,
    request: RowWriteRequest,
    requester: RequesterDep,
    session: SessionDep,
) -> RowResponse:
    """Merge partial data into a row."""
    await load_table(session, table_id, requester, AccessLevel.WRITE)
    row = await RowService(session).update_row(table_id, row_id, request.data)
    return row_response(row)


@router.delete("/{row_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_row(table_id: str, row_id: str, requester: RequesterDep, session: SessionDep) -> Response:
    """Delete a row."""
    await load_table(session, table_id, requester, AccessLevel.WRITE)
    await RowService(session).delete_row(table_id, row_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
