"""Pydantic schemas for table endpoints."""

from datetime import datetime

from pydantic import BaseModel, Field

from tablebase.infrastructure.api.schemas.column_schemas import ColumnDefinition, ColumnResponse
from tablebase.infrastructure.persistence.models import TableColumnModel, UserTableModel


class OwnerResponse(BaseModel):
    """A tagged owner or author identity."""

    kind: str = Field(..., description="user or api_token")
    id: str


class CreateTableRequest(BaseModel):
    """Request body for creating a table."""

    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    visibility: str = Field(default="private", description="private, public or shared")
    table_type: str = Field(default="default", description="default, sale or rent")
    product_id_column: str | None = None
    rental_period: str | None = Field(default=None, description="day, week or month (rent tables)")
    columns: list[ColumnDefinition] = Field(default_factory=list)


class UpdateTableRequest(BaseModel):
    """Request body for a sparse table update."""

    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    visibility: str | None = None
    table_type: str | None = None
    product_id_column: str | None = None
    rental_period: str | None = None


class CloneTableRequest(BaseModel):
    """Request body for cloning a table's structure."""

    table_id: str = Field(..., min_length=1)
    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    visibility: str | None = None


class TableResponse(BaseModel):
    """Response for a table."""

    id: str = Field(..., description="Table ID (UUID)")
    name: str
    description: str | None = None
    owner: OwnerResponse
    visibility: str
    table_type: str
    product_id_column: str | None = None
    rental_period: str | None = None
    created_at: datetime
    updated_at: datetime


class TableDetailResponse(TableResponse):
    """Response for a table with its columns."""

    columns: list[ColumnResponse]


class TableListResponse(BaseModel):
    """Response for a page of tables."""

    items: list[TableResponse]
    total: int
    page: int
    page_size: int


class AccessResponse(BaseModel):
    """Effective access level of the requester on a table."""

    table_id: str
    access: str


def table_response(table: UserTableModel) -> TableResponse:
    """Build the response for a table."""
    return TableResponse(
        id=table.id,
        name=table.name,
        description=table.description,
        owner=OwnerResponse(kind=table.owner_kind, id=table.owner_id),
        visibility=table.visibility,
        table_type=table.table_type,
        product_id_column=table.product_id_column,
        rental_period=table.rental_period,
        created_at=table.created_at,
        updated_at=table.updated_at,
    )


def table_detail_response(
    table: UserTableModel, columns: list[TableColumnModel]
) -> TableDetailResponse:
    """Build the response for a table with its columns."""
    return TableDetailResponse(
        **table_response(table).model_dump(),
        columns=[ColumnResponse.from_model(column, table) for column in columns],
    )
