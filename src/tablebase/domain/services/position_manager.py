"""Column ordering within a table.

Positions of a table's N columns form the dense range 0..N-1 after every
operation in this module. Each operation compacts first, so a gap left by
a plain column delete is closed by the next positional mutation.

Positions change one row at a time and never pass through a duplicate:
insertion shifts columns from the highest position down, and exchanges park
one column at a temporary negative position. Callers must hold the table's
lock (see table_lock) and commit afterwards.
"""

from tablebase.core.logging import get_logger
from tablebase.domain.entities import MoveDirection
from tablebase.domain.exceptions import FieldError, NotFoundError, ValidationError
from tablebase.infrastructure.persistence.models import TableColumnModel
from tablebase.infrastructure.persistence.repositories import ColumnRepository

logger = get_logger(__name__)

PARKED_POSITION = -1


class PositionManager:
    """Maintains the dense ordering of a table's columns."""

    def __init__(self, repository: ColumnRepository) -> None:
        """Initialize the manager.

        Args:
            repository: Column repository bound to the current session.
        """
        self.repository = repository

    async def compact(self, table_id: str) -> list[TableColumnModel]:
        """Renumber a table's columns to 0..N-1, keeping their order.

        Args:
            table_id: The table ID.

        Returns:
            The table's columns ordered by position.
        """
        columns = await self.repository.list_for_table(table_id)
        moved = 0
        for index, column in enumerate(columns):
            if column.position != index:
                await self.repository.set_position(column, index)
                moved += 1
        if moved:
            logger.info("Column positions compacted", table_id=table_id, moved=moved)
        return columns

    async def append(self, table_id: str, column: TableColumnModel) -> TableColumnModel:
        """Add a new column after the last one."""
        columns = await self.compact(table_id)
        column.position = len(columns)
        return await self.repository.create(column)

    async def insert_at(self, table_id: str, column: TableColumnModel, target: int) -> TableColumnModel:
        """Add a new column at ``target``, shifting later columns up by one.

        A target past the end is clamped to the end.

        Args:
            table_id: The table ID.
            column: The unsaved column model.
            target: Zero-based position for the new column.

        Returns:
            The created column model.

        Raises:
            ValidationError: If target is negative.
        """
        if target < 0:
            raise ValidationError.from_errors(
                [FieldError("position", "Position must be a non-negative integer", "position_invalid")]
            )

        columns = await self.compact(table_id)
        target = min(target, len(columns))

        for existing in reversed(columns[target:]):
            await self.repository.set_position(existing, existing.position + 1)

        column.position = target
        created = await self.repository.create(column)
        logger.info(
            "Column inserted",
            table_id=table_id,
            column_id=created.id,
            position=target,
            shifted=len(columns) - target,
        )
        return created

    async def move(self, table_id: str, column_id: str, direction: MoveDirection) -> list[TableColumnModel]:
        """Swap a column with its neighbour in ``direction``.

        Moving the first column up or the last column down does nothing.

        Returns:
            The table's columns ordered by position.
        """
        columns = await self.compact(table_id)
        index = self._index_of(columns, column_id)
        neighbour = index - 1 if direction == MoveDirection.UP else index + 1

        if neighbour < 0 or neighbour >= len(columns):
            logger.debug("Column already at boundary", table_id=table_id, column_id=column_id)
            return columns

        await self._exchange(columns[index], columns[neighbour])
        columns[index], columns[neighbour] = columns[neighbour], columns[index]
        logger.info("Column moved", table_id=table_id, column_id=column_id, direction=direction.value)
        return columns

    async def move_to(self, table_id: str, column_id: str, target: int) -> list[TableColumnModel]:
        """Move a column to ``target``, shifting the columns in between by one.

        A target past the end is clamped to the last position.

        Returns:
            The table's columns ordered by position.

        Raises:
            ValidationError: If target is negative.
            NotFoundError: If the column does not belong to the table.
        """
        if target < 0:
            raise ValidationError.from_errors(
                [FieldError("position", "Position must be a non-negative integer", "position_invalid")]
            )

        columns = await self.compact(table_id)
        current = self._index_of(columns, column_id)
        target = min(target, len(columns) - 1)
        if target == current:
            return columns

        column = columns[current]
        await self.repository.set_position(column, PARKED_POSITION)
        if target < current:
            for other in reversed(columns[target:current]):
                await self.repository.set_position(other, other.position + 1)
        else:
            for other in columns[current + 1 : target + 1]:
                await self.repository.set_position(other, other.position - 1)
        await self.repository.set_position(column, target)

        columns.insert(target, columns.pop(current))
        logger.info("Column moved", table_id=table_id, column_id=column_id, position=target)
        return columns

    async def swap(self, table_id: str, column_id_a: str, column_id_b: str) -> list[TableColumnModel]:
        """Exchange the positions of two columns.

        Raises:
            ValidationError: If both ids name the same column.
            NotFoundError: If either column does not belong to the table.
        """
        if column_id_a == column_id_b:
            raise ValidationError.from_errors(
                [FieldError("column_ids", "Cannot swap a column with itself", "swap_same_column")]
            )

        columns = await self.compact(table_id)
        index_a = self._index_of(columns, column_id_a)
        index_b = self._index_of(columns, column_id_b)

        await self._exchange(columns[index_a], columns[index_b])
        columns[index_a], columns[index_b] = columns[index_b], columns[index_a]
        logger.info("Columns swapped", table_id=table_id, column_a=column_id_a, column_b=column_id_b)
        return columns

    async def _exchange(self, first: TableColumnModel, second: TableColumnModel) -> None:
        first_position, second_position = first.position, second.position
        await self.repository.set_position(first, PARKED_POSITION)
        await self.repository.set_position(second, first_position)
        await self.repository.set_position(first, second_position)

    @staticmethod
    def _index_of(columns: list[TableColumnModel], column_id: str) -> int:
        for index, column in enumerate(columns):
            if column.id == column_id:
                return index
        raise NotFoundError(f"Column '{column_id}' not found")
