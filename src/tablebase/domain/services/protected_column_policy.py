"""Protected columns mandated by a table's type.

Sale tables carry ``price`` and ``qty``; rent tables carry ``price``,
``fee``, ``used`` and ``available``. While the table has that type those
columns exist and cannot be renamed or removed. Switching back to the
default type lifts the protection and keeps the columns and their data.
"""

import uuid
from dataclasses import dataclass

from tablebase.core.logging import get_logger
from tablebase.domain.entities import ColumnType, TableType
from tablebase.infrastructure.persistence.models import TableColumnModel, UserTableModel
from tablebase.infrastructure.persistence.repositories import ColumnRepository

logger = get_logger(__name__)


@dataclass(frozen=True)
class RequiredColumn:
    """A column a table type requires."""

    name: str
    type: ColumnType
    required: bool = True
    default: str | None = None


_REQUIRED_COLUMNS: dict[TableType, tuple[RequiredColumn, ...]] = {
    TableType.DEFAULT: (),
    TableType.SALE: (
        RequiredColumn("price", ColumnType.NUMBER),
        RequiredColumn("qty", ColumnType.NUMBER, default="1"),
    ),
    TableType.RENT: (
        RequiredColumn("price", ColumnType.NUMBER),
        RequiredColumn("fee", ColumnType.NUMBER, default="0"),
        RequiredColumn("used", ColumnType.BOOLEAN, default="false"),
        RequiredColumn("available", ColumnType.BOOLEAN, default="true"),
    ),
}


def required_columns_for(table_type: TableType | str) -> tuple[RequiredColumn, ...]:
    """Get the columns a table type requires, in display order."""
    return _REQUIRED_COLUMNS[TableType(table_type)]


def protected_column_names(table_type: TableType | str) -> frozenset[str]:
    """Get the names of the columns protected under a table type."""
    return frozenset(column.name for column in required_columns_for(table_type))


def is_protected(table: UserTableModel, column_name: str) -> bool:
    """Whether the table's current type protects ``column_name``.

    The match is on the exact name.
    """
    return column_name in protected_column_names(table.table_type)


async def ensure_required_columns(
    repository: ColumnRepository, table: UserTableModel
) -> list[TableColumnModel]:
    """Create the columns the table's type requires and that are missing.

    Missing columns are appended after the existing ones in the order given
    by required_columns_for. A column whose name matches ignoring case is
    renamed to the required name rather than duplicated. Existing columns
    are never retyped or removed, so calling this twice changes nothing the
    second time. The caller holds the table's lock and commits.

    Args:
        repository: Column repository bound to the current session.
        table: The table whose type drives the requirement.

    Returns:
        The columns created by this call.
    """
    required = required_columns_for(table.table_type)
    if not required:
        return []

    columns = await repository.list_for_table(table.id)
    by_lower = {column.name.lower(): column for column in columns}
    next_position = max((column.position for column in columns), default=-1) + 1

    created: list[TableColumnModel] = []
    for required_column in required:
        existing = by_lower.get(required_column.name.lower())
        if existing is not None:
            if existing.name != required_column.name:
                logger.info(
                    "Renaming column to protected name",
                    table_id=table.id,
                    column_id=existing.id,
                    old_name=existing.name,
                    new_name=required_column.name,
                )
                existing.name = required_column.name
                await repository.update(existing)
            continue

        column = TableColumnModel(
            id=str(uuid.uuid4()),
            table_id=table.id,
            name=required_column.name,
            type=required_column.type.value,
            is_required=required_column.required,
            allow_duplicates=True,
            default_value=required_column.default,
            position=next_position,
        )
        await repository.create(column)
        by_lower[required_column.name.lower()] = column
        created.append(column)
        next_position += 1

    if created:
        logger.info(
            "Required columns created",
            table_id=table.id,
            table_type=table.table_type,
            columns=[column.name for column in created],
        )
    return created
