"""Persistence repositories for database operations."""

from tablebase.infrastructure.persistence.repositories.column_repository import (
    ColumnRepository,
)
from tablebase.infrastructure.persistence.repositories.row_repository import (
    RowRepository,
)
from tablebase.infrastructure.persistence.repositories.table_repository import (
    TableRepository,
)

__all__ = [
    "ColumnRepository",
    "RowRepository",
    "TableRepository",
]
