"""Repository for table row operations.

Rows store tagged cells in a JSON document. Filtering and sorting reach
into that document through SQLAlchemy JSON path expressions, so every
user-supplied value travels as a bound parameter.
"""

from typing import Any

from sqlalchemy import and_, delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tablebase.domain.entities import CellKind, OwnerIdentity
from tablebase.domain.entities.cell import VALUE_KEY
from tablebase.infrastructure.persistence.models import TableRowModel

SYSTEM_SORT_FIELDS = frozenset({"created_at", "updated_at"})


def created_by(identity: OwnerIdentity):
    """SQL condition matching rows authored by ``identity``."""
    return and_(
        TableRowModel.created_by_kind == identity.kind.value,
        TableRowModel.created_by_id == identity.id,
    )


def _cell_value(column_name: str, kind: CellKind):
    """JSON path expression for the stored value of a column."""
    path = TableRowModel.data[(column_name, VALUE_KEY)]
    if kind == CellKind.NUMBER:
        return path.as_float()
    if kind == CellKind.BOOLEAN:
        return path.as_boolean()
    return path.as_string()


class RowRepository:
    """Repository for table row database operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository with a database session.

        Args:
            session: SQLAlchemy async session.
        """
        self.session = session

    async def create(self, row: TableRowModel) -> TableRowModel:
        """Create a new row.

        Args:
            row: The row model to create.

        Returns:
            The created row model.
        """
        self.session.add(row)
        await self.session.flush()
        return row

    async def get_by_id(self, table_id: str, row_id: str) -> TableRowModel | None:
        """Get a row of a table by ID.

        Args:
            table_id: The table ID.
            row_id: The row ID.

        Returns:
            The row model if found, None otherwise.
        """
        result = await self.session.execute(
            select(TableRowModel).where(
                TableRowModel.table_id == table_id,
                TableRowModel.id == row_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_by_ids(
        self, table_id: str, row_ids: list[str], author: OwnerIdentity | None = None
    ) -> list[TableRowModel]:
        """Get rows of a table by ID, optionally restricted to one author.

        Args:
            table_id: The table ID.
            row_ids: Row IDs to fetch.
            author: When given, only rows created by this identity are returned.

        Returns:
            List of row models.
        """
        query = select(TableRowModel).where(
            TableRowModel.table_id == table_id,
            TableRowModel.id.in_(row_ids),
        )
        if author is not None:
            query = query.where(created_by(author))
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def update(self, row: TableRowModel) -> TableRowModel:
        """Flush pending changes to a row."""
        await self.session.flush()
        return row

    async def delete(self, row: TableRowModel) -> None:
        """Delete a row."""
        await self.session.delete(row)
        await self.session.flush()

    async def list_paginated(
        self,
        table_id: str,
        filters: dict[str, str] | None = None,
        sort_by: str = "updated_at",
        sort_kind: CellKind | None = None,
        descending: bool = True,
        page: int = 1,
        page_size: int = 25,
    ) -> tuple[list[TableRowModel], int]:
        """Get a page of rows of a table.

        Args:
            table_id: The table ID.
            filters: ``{column: substring}``; each value is matched
                case-insensitively against the column's stored value, with
                ``%`` and ``_`` taken literally.
            sort_by: A system field or a column name (when ``sort_kind`` is set).
            sort_kind: Cell kind of the sort column; None sorts by a system field.
            descending: Sort direction.
            page: Page number (1-indexed).
            page_size: Number of items per page.

        Returns:
            Tuple of (list of rows, total count).
        """
        query = select(TableRowModel).where(TableRowModel.table_id == table_id)

        for column_name, needle in (filters or {}).items():
            query = query.where(
                TableRowModel.data[(column_name, VALUE_KEY)]
                .as_string()
                .icontains(needle, autoescape=True)
            )

        count_query = select(func.count()).select_from(query.subquery())
        total = (await self.session.execute(count_query)).scalar_one()

        if sort_kind is None:
            sort_column = getattr(TableRowModel, sort_by)
        else:
            sort_column = _cell_value(sort_by, sort_kind)
        order = sort_column.desc() if descending else sort_column.asc()
        query = query.order_by(order, TableRowModel.id.asc())

        offset = (page - 1) * page_size
        query = query.offset(offset).limit(page_size)

        result = await self.session.execute(query)
        return list(result.scalars().all()), total

    async def stored_cells(self, table_id: str, column_name: str) -> list[tuple[str, Any]]:
        """Get the stored cell of one column for every row of a table.

        Rows without the column are skipped.

        Returns:
            List of ``(row_id, stored_cell_json)`` pairs.
        """
        result = await self.session.execute(
            select(TableRowModel.id, TableRowModel.data).where(TableRowModel.table_id == table_id)
        )
        return [
            (row_id, data[column_name])
            for row_id, data in result.all()
            if data and column_name in data
        ]

    async def count_for_table(self, table_id: str) -> int:
        """Count the rows of a table."""
        result = await self.session.execute(
            select(func.count(TableRowModel.id)).where(TableRowModel.table_id == table_id)
        )
        return result.scalar_one()

    async def delete_by_ids(
        self, table_id: str, row_ids: list[str], author: OwnerIdentity | None = None
    ) -> int:
        """Delete several rows of a table in one statement.

        Args:
            table_id: The table ID.
            row_ids: Row IDs to delete.
            author: When given, only rows created by this identity are deleted.

        Returns:
            Number of rows deleted.
        """
        stmt = delete(TableRowModel).where(
            TableRowModel.table_id == table_id,
            TableRowModel.id.in_(row_ids),
        )
        if author is not None:
            stmt = stmt.where(created_by(author))
        result = await self.session.execute(stmt.execution_options(synchronize_session=False))
        return result.rowcount

    async def delete_for_tables(self, table_ids: list[str]) -> int:
        """Delete every row of the given tables.

        Returns:
            Number of rows deleted.
        """
        if not table_ids:
            return 0
        result = await self.session.execute(
            delete(TableRowModel)
            .where(TableRowModel.table_id.in_(table_ids))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount
