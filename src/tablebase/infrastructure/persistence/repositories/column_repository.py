"""Repository for table column operations.

Position writes go through ``set_position``, which flushes a single-row
UPDATE at a time so the (table_id, position) constraint is checked against
each intermediate state rather than a batch the unit of work reorders.
"""

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from tablebase.infrastructure.persistence.models import TableColumnModel


class ColumnRepository:
    """Repository for table column database operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository with a database session.

        Args:
            session: SQLAlchemy async session.
        """
        self.session = session

    async def create(self, column: TableColumnModel) -> TableColumnModel:
        """Create a new column.

        Args:
            column: The column model to create.

        Returns:
            The created column model.
        """
        self.session.add(column)
        await self.session.flush()
        return column

    async def get_by_id(self, table_id: str, column_id: str) -> TableColumnModel | None:
        """Get a column of a table by ID.

        Args:
            table_id: The table ID.
            column_id: The column ID.

        Returns:
            The column model if found, None otherwise.
        """
        result = await self.session.execute(
            select(TableColumnModel).where(
                TableColumnModel.table_id == table_id,
                TableColumnModel.id == column_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_by_ids(self, table_id: str, column_ids: list[str]) -> list[TableColumnModel]:
        """Get the columns of a table whose IDs are in ``column_ids``."""
        result = await self.session.execute(
            select(TableColumnModel)
            .where(
                TableColumnModel.table_id == table_id,
                TableColumnModel.id.in_(column_ids),
            )
            .order_by(TableColumnModel.position.asc())
        )
        return list(result.scalars().all())

    async def get_by_name(self, table_id: str, name: str) -> TableColumnModel | None:
        """Get a column by name, ignoring case.

        Args:
            table_id: The table ID.
            name: The column name.

        Returns:
            The column model if found, None otherwise.
        """
        result = await self.session.execute(
            select(TableColumnModel)
            .where(
                TableColumnModel.table_id == table_id,
                func.lower(TableColumnModel.name) == name.lower(),
            )
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def list_for_table(self, table_id: str) -> list[TableColumnModel]:
        """Get all columns of a table ordered ascending by position.

        Args:
            table_id: The table ID.

        Returns:
            List of column models.
        """
        result = await self.session.execute(
            select(TableColumnModel)
            .where(TableColumnModel.table_id == table_id)
            .order_by(TableColumnModel.position.asc(), TableColumnModel.created_at.asc())
        )
        return list(result.scalars().all())

    async def count_for_table(self, table_id: str) -> int:
        """Count the columns of a table."""
        result = await self.session.execute(
            select(func.count(TableColumnModel.id)).where(TableColumnModel.table_id == table_id)
        )
        return result.scalar_one()

    async def set_position(self, column: TableColumnModel, position: int) -> None:
        """Move a column to ``position`` and flush the single-row update.

        Args:
            column: The column model.
            position: New position.
        """
        column.position = position
        await self.session.flush()

    async def update(self, column: TableColumnModel) -> TableColumnModel:
        """Flush pending changes to a column.

        Args:
            column: The column model with updated fields.

        Returns:
            The updated column model.
        """
        await self.session.flush()
        return column

    async def delete(self, column: TableColumnModel) -> None:
        """Delete a column.

        Args:
            column: The column model to delete.
        """
        await self.session.delete(column)
        await self.session.flush()

    async def delete_by_ids(self, table_id: str, column_ids: list[str]) -> int:
        """Delete several columns of a table in one statement.

        Returns:
            Number of columns deleted.
        """
        result = await self.session.execute(
            delete(TableColumnModel)
            .where(
                TableColumnModel.table_id == table_id,
                TableColumnModel.id.in_(column_ids),
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def delete_for_tables(self, table_ids: list[str]) -> int:
        """Delete every column of the given tables.

        Returns:
            Number of columns deleted.
        """
        if not table_ids:
            return 0
        result = await self.session.execute(
            delete(TableColumnModel)
            .where(TableColumnModel.table_id.in_(table_ids))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def set_required(self, table_id: str, column_ids: list[str], required: bool) -> int:
        """Set ``is_required`` on several columns in one statement.

        Returns:
            Number of columns updated.
        """
        result = await self.session.execute(
            update(TableColumnModel)
            .where(
                TableColumnModel.table_id == table_id,
                TableColumnModel.id.in_(column_ids),
            )
            .values(is_required=required)
            .execution_options(synchronize_session="evaluate")
        )
        return result.rowcount
