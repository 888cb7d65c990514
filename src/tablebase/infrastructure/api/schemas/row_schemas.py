"""Pydantic schemas for row and mass action endpoints."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from tablebase.domain.entities import decode_cells, plain_values
from tablebase.infrastructure.api.schemas.table_schemas import OwnerResponse
from tablebase.infrastructure.persistence.models import TableRowModel


class RowWriteRequest(BaseModel):
    """Request body for inserting or updating a row."""

    data: dict[str, Any] = Field(default_factory=dict, description="Values keyed by column name")


class RowResponse(BaseModel):
    """Response for a row."""

    id: str
    table_id: str
    data: dict[str, Any]
    created_by: OwnerResponse | None = None
    created_at: datetime
    updated_at: datetime


class RowListResponse(BaseModel):
    """Response for a page of rows."""

    items: list[RowResponse]
    total: int
    page: int
    page_size: int


class ClearRowsResponse(BaseModel):
    """Response for clearing every row of a table."""

    deleted: int


class MassActionRequest(BaseModel):
    """Request body for a mass action."""

    action: str = Field(..., min_length=1)
    ids: list[str] = Field(..., min_length=1)


class RowMassActionRequest(MassActionRequest):
    """Request body for a row mass action.

    ``field_name`` and ``value`` are used by set_field_value.
    """

    field_name: str | None = None
    value: Any = None


class MassActionResponse(BaseModel):
    """Result of a mass action."""

    action: str
    requested: int = Field(..., description="Number of distinct ids requested")
    affected: int = Field(..., description="Number of entities changed")


def row_response(row: TableRowModel) -> RowResponse:
    """Build the response for a row, stripping cell tags."""
    author = row.created_by
    return RowResponse(
        id=row.id,
        table_id=row.table_id,
        data=plain_values(decode_cells(row.data)),
        created_by=OwnerResponse(kind=author.kind.value, id=author.id) if author else None,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
