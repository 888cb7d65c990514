"""Row service for row data stored against user tables.

Values are validated against their column types and stored as tagged
cells. Writes to a table's rows take the table's lock so the
duplicate-value check and the write it guards cannot interleave.
"""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from tablebase.core.config import get_settings
from tablebase.core.logging import get_logger
from tablebase.domain.entities import CellValue, OwnerIdentity, decode_cells, encode_cells
from tablebase.domain.exceptions import FieldError, NotFoundError, ValidationError
from tablebase.domain.services.row_validator import RowValidator
from tablebase.domain.services.transaction import table_transaction
from tablebase.infrastructure.persistence.models import TableColumnModel, TableRowModel, UserTableModel
from tablebase.infrastructure.persistence.repositories import (
    ColumnRepository,
    RowRepository,
    TableRepository,
)
from tablebase.infrastructure.persistence.repositories.row_repository import SYSTEM_SORT_FIELDS

logger = get_logger(__name__)

DEFAULT_ROW_SORT = "updated_at"


class RowService:
    """Service for row data of user tables."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the service.

        Args:
            session: SQLAlchemy async session.
        """
        self.session = session
        self.tables = TableRepository(session)
        self.columns = ColumnRepository(session)
        self.rows = RowRepository(session)

    async def _get_table(self, table_id: str) -> UserTableModel:
        table = await self.tables.get_by_id(table_id)
        if table is None:
            raise NotFoundError(f"Table '{table_id}' not found")
        return table

    async def get_row(self, table_id: str, row_id: str) -> TableRowModel:
        """Get a row of a table.

        Raises:
            NotFoundError: If the table or row does not exist.
        """
        await self._get_table(table_id)
        row = await self.rows.get_by_id(table_id, row_id)
        if row is None:
            raise NotFoundError(f"Row '{row_id}' not found")
        return row

    async def validate_cells(
        self,
        table_id: str,
        data: dict[str, Any],
        columns: list[TableColumnModel],
        partial: bool = False,
        exclude_row_ids: set[str] | None = None,
    ) -> dict[str, CellValue]:
        """Validate row data and check columns that disallow duplicates.

        Args:
            table_id: The table ID.
            data: Row data keyed by column name.
            columns: The table's columns.
            partial: Only validate the supplied columns.
            exclude_row_ids: Rows whose current values do not count as duplicates.

        Returns:
            The validated cells.

        Raises:
            ValidationError: If any value is invalid.
        """
        cells, errors = RowValidator.validate_and_apply_defaults(
            data,
            columns,
            partial=partial,
            reject_unknown=get_settings().reject_unknown_row_fields,
        )
        if not errors:
            errors.extend(await self._duplicate_errors(table_id, cells, columns, exclude_row_ids or set()))
        if errors:
            logger.info("Row validation failed", table_id=table_id, errors=len(errors))
            raise ValidationError.from_errors(errors)
        return cells

    async def _duplicate_errors(
        self,
        table_id: str,
        cells: dict[str, CellValue],
        columns: list[TableColumnModel],
        exclude_row_ids: set[str],
    ) -> list[FieldError]:
        errors = []
        for column in columns:
            cell = cells.get(column.name)
            if column.allow_duplicates or cell is None or cell.value is None:
                continue
            for row_id, stored in await self.rows.stored_cells(table_id, column.name):
                if row_id not in exclude_row_ids and CellValue.from_json(stored).value == cell.value:
                    errors.append(
                        FieldError(
                            field=column.name,
                            message=f"Value for '{column.name}' must be unique in this table",
                            code="duplicate_value",
                        )
                    )
                    break
        return errors

    async def insert_row(
        self, table_id: str, data: dict[str, Any], author: OwnerIdentity | None = None
    ) -> TableRowModel:
        """Insert a row into a table.

        Missing columns with a default receive the parsed default; missing
        required columns without one are rejected.

        Args:
            table_id: The table ID.
            data: Row data keyed by column name.
            author: Identity creating the row (None for anonymous writes).

        Returns:
            The created row.

        Raises:
            ValidationError: If the data does not satisfy the columns.
            NotFoundError: If the table does not exist.
        """
        async with table_transaction(self.session, table_id):
            await self._get_table(table_id)
            columns = await self.columns.list_for_table(table_id)
            cells = await self.validate_cells(table_id, data, columns)

            now = datetime.utcnow()
            row = TableRowModel(
                id=str(uuid.uuid4()),
                table_id=table_id,
                data=encode_cells(cells),
                created_at=now,
                updated_at=now,
            )
            row.created_by = author
            await self.rows.create(row)

        logger.info(
            "Row inserted",
            table_id=table_id,
            row_id=row.id,
            created_by=str(author) if author else None,
        )
        return row

    async def update_row(self, table_id: str, row_id: str, data: dict[str, Any]) -> TableRowModel:
        """Merge partial data into a row.

        Only the supplied columns are validated; the rest of the stored
        mapping, raw cells included, is kept.

        Raises:
            ValidationError: If no data or an invalid value is supplied.
            NotFoundError: If the table or row does not exist.
        """
        if not data:
            raise ValidationError("No fields to update")

        async with table_transaction(self.session, table_id):
            row = await self.get_row(table_id, row_id)
            columns = await self.columns.list_for_table(table_id)
            cells = await self.validate_cells(
                table_id, data, columns, partial=True, exclude_row_ids={row_id}
            )

            merged = decode_cells(row.data)
            merged.update(cells)
            row.data = encode_cells(merged)
            row.updated_at = datetime.utcnow()
            await self.rows.update(row)

        logger.info("Row updated", table_id=table_id, row_id=row_id, fields=sorted(data))
        return row

    async def delete_row(self, table_id: str, row_id: str) -> None:
        """Delete a row.

        Raises:
            NotFoundError: If the table or row does not exist.
        """
        async with table_transaction(self.session, table_id):
            row = await self.get_row(table_id, row_id)
            await self.rows.delete(row)
        logger.info("Row deleted", table_id=table_id, row_id=row_id)

    async def clear_table(self, table_id: str) -> int:
        """Delete every row of a table.

        Returns:
            The number of rows removed.
        """
        async with table_transaction(self.session, table_id):
            await self._get_table(table_id)
            removed = await self.rows.delete_for_tables([table_id])
        logger.info("Table rows cleared", table_id=table_id, rows_deleted=removed)
        return removed

    async def list_rows(
        self,
        table_id: str,
        filters: dict[str, str] | None = None,
        sort_by: str | None = None,
        descending: bool = True,
        page: int = 1,
        page_size: int | None = None,
    ) -> tuple[list[TableRowModel], int]:
        """List a page of a table's rows.

        Args:
            table_id: The table ID.
            filters: ``{column: substring}`` over declared columns.
            sort_by: A declared column, ``created_at`` or ``updated_at``;
                anything else sorts by ``updated_at`` descending.
            descending: Sort direction.
            page: Page number (1-indexed).
            page_size: Number of rows per page.

        Returns:
            Tuple of (rows, total count).

        Raises:
            ValidationError: If a filter names an undeclared column.
            NotFoundError: If the table does not exist.
        """
        await self._get_table(table_id)
        columns = {column.name: column for column in await self.columns.list_for_table(table_id)}

        filters = {name: value for name, value in (filters or {}).items() if value not in (None, "")}
        unknown = [name for name in filters if name not in columns]
        if unknown:
            raise ValidationError.from_errors(
                [
                    FieldError(field=name, message=f"Cannot filter on unknown column '{name}'", code="unknown_field")
                    for name in unknown
                ]
            )

        sort_kind = None
        if sort_by in columns:
            sort_kind = columns[sort_by].column_type.cell_kind
        elif sort_by not in SYSTEM_SORT_FIELDS:
            sort_by, descending = DEFAULT_ROW_SORT, True

        settings = get_settings()
        page_size = min(page_size or settings.default_page_size, settings.max_page_size)
        return await self.rows.list_paginated(
            table_id,
            filters=filters,
            sort_by=sort_by,
            sort_kind=sort_kind,
            descending=descending,
            page=max(page, 1),
            page_size=max(page_size, 1),
        )
