"""API Schemas for request/response validation."""

from tablebase.infrastructure.api.schemas.column_schemas import (
    ColumnDefinition,
    ColumnResponse,
    MoveColumnRequest,
    SwapColumnsRequest,
    UpdateColumnRequest,
)
from tablebase.infrastructure.api.schemas.row_schemas import (
    ClearRowsResponse,
    MassActionRequest,
    MassActionResponse,
    RowListResponse,
    RowMassActionRequest,
    RowResponse,
    RowWriteRequest,
    row_response,
)
from tablebase.infrastructure.api.schemas.table_schemas import (
    AccessResponse,
    CloneTableRequest,
    CreateTableRequest,
    OwnerResponse,
    TableDetailResponse,
    TableListResponse,
    TableResponse,
    UpdateTableRequest,
    table_detail_response,
    table_response,
)

__all__ = [
    "AccessResponse",
    "ClearRowsResponse",
    "CloneTableRequest",
    "ColumnDefinition",
    "ColumnResponse",
    "CreateTableRequest",
    "MassActionRequest",
    "MassActionResponse",
    "MoveColumnRequest",
    "OwnerResponse",
    "RowListResponse",
    "RowMassActionRequest",
    "RowResponse",
    "RowWriteRequest",
    "SwapColumnsRequest",
    "TableDetailResponse",
    "TableListResponse",
    "TableResponse",
    "UpdateColumnRequest",
    "UpdateTableRequest",
    "row_response",
    "table_detail_response",
    "table_response",
]
