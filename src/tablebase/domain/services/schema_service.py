"""Schema service for table and column definitions.

Handles table creation, sparse updates, deletion and listing, and every
column mutation. Column mutations of a table run under that table's lock
and commit before the lock is released.
"""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from tablebase.core.config import get_settings
from tablebase.core.logging import get_logger
from tablebase.domain.entities import (
    DEFAULT_RENTAL_PERIOD,
    ColumnType,
    MoveDirection,
    OwnerIdentity,
    Requester,
    TableType,
    Visibility,
)
from tablebase.domain.exceptions import (
    FieldError,
    NotFoundError,
    ProtectedColumnError,
    ValidationError,
)
from tablebase.domain.services.position_manager import PositionManager
from tablebase.domain.services.protected_column_policy import (
    ensure_required_columns,
    is_protected,
    protected_column_names,
)
from tablebase.domain.services.table_validator import TableValidator
from tablebase.domain.services.transaction import table_transaction
from tablebase.infrastructure.persistence.models import TableColumnModel, UserTableModel
from tablebase.infrastructure.persistence.repositories import (
    ColumnRepository,
    RowRepository,
    TableRepository,
)

logger = get_logger(__name__)

TABLE_UPDATE_FIELDS = frozenset(
    {"name", "description", "visibility", "table_type", "product_id_column", "rental_period"}
)
COLUMN_UPDATE_FIELDS = frozenset(
    {"name", "type", "is_required", "allow_duplicates", "default_value", "position"}
)


def _raise_if(errors: list[FieldError]) -> None:
    if errors:
        raise ValidationError.from_errors(errors)


def _duplicate_name_error(name: str, field: str = "name") -> ValidationError:
    return ValidationError.from_errors(
        [
            FieldError(
                field=field,
                message=f"A column named '{name}' already exists in this table",
                code="column_name_duplicate",
            )
        ]
    )


def _dense_order(columns: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Order column definitions by explicit position, then definition order."""

    def sort_key(item: tuple[int, dict[str, Any]]) -> tuple[int, int]:
        index, column = item
        position = column.get("position")
        return (index if position is None else position, index)

    return [column for _, column in sorted(enumerate(columns), key=sort_key)]


class SchemaService:
    """Service for table and column definitions."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the service.

        Args:
            session: SQLAlchemy async session.
        """
        self.session = session
        self.tables = TableRepository(session)
        self.columns = ColumnRepository(session)
        self.rows = RowRepository(session)
        self.positions = PositionManager(self.columns)

    # Tables

    async def create_table(
        self,
        name: str,
        owner: OwnerIdentity,
        columns: list[dict[str, Any]],
        description: str | None = None,
        visibility: str = Visibility.PRIVATE.value,
        table_type: str = TableType.DEFAULT.value,
        product_id_column: str | None = None,
        rental_period: str | None = None,
    ) -> tuple[UserTableModel, list[TableColumnModel]]:
        """Create a table together with its columns.

        Columns are stored in definition order unless they carry explicit
        positions, then renumbered to 0..N-1. Sale and rent tables receive
        their required columns in the same transaction.

        Args:
            name: Table name.
            owner: Identity that owns the new table.
            columns: List of column definitions.
            description: Optional description.
            visibility: Visibility tier.
            table_type: Table type.
            product_id_column: Optional name of the product id column.
            rental_period: Billing period for rent tables (defaults to month).

        Returns:
            Tuple of (table, columns ordered by position).

        Raises:
            ValidationError: If the definition is invalid.
        """
        errors = TableValidator.validate(
            name,
            columns,
            description=description,
            visibility=visibility,
            table_type=table_type,
            rental_period=rental_period,
        )
        if not errors:
            # Protected names first: ensure_required_columns renames case variants to them
            known_names = sorted(protected_column_names(table_type))
            known_names.extend(column.get("name") or "" for column in columns)
            errors.extend(TableValidator.validate_product_id_column(product_id_column, known_names))
        _raise_if(errors)
        product_id_column = TableValidator.canonical_column_name(product_id_column, known_names)

        if table_type == TableType.RENT.value and rental_period is None:
            rental_period = DEFAULT_RENTAL_PERIOD.value

        table_id = str(uuid.uuid4())
        now = datetime.utcnow()

        async with table_transaction(self.session, table_id):
            table = UserTableModel(
                id=table_id,
                name=name.strip(),
                description=description,
                visibility=visibility,
                table_type=table_type,
                product_id_column=product_id_column,
                rental_period=rental_period,
                created_at=now,
                updated_at=now,
            )
            table.owner = owner
            await self.tables.create(table)

            for position, definition in enumerate(_dense_order(columns)):
                await self.columns.create(self._build_column(table_id, definition, position))

            await ensure_required_columns(self.columns, table)
            created_columns = await self.columns.list_for_table(table_id)

        logger.info(
            "Table created",
            table_id=table_id,
            name=table.name,
            owner=str(owner),
            table_type=table_type,
            columns_count=len(created_columns),
        )
        return table, created_columns

    async def get_table(self, table_id: str) -> UserTableModel:
        """Get a table by ID.

        Raises:
            NotFoundError: If the table does not exist.
        """
        table = await self.tables.get_by_id(table_id)
        if table is None:
            raise NotFoundError(f"Table '{table_id}' not found")
        return table

    async def get_table_schema(self, table_id: str) -> tuple[UserTableModel, list[TableColumnModel]]:
        """Get a table and its columns ordered by position."""
        table = await self.get_table(table_id)
        return table, await self.columns.list_for_table(table_id)

    async def list_tables(
        self,
        requester: Requester,
        page: int = 1,
        page_size: int | None = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
        name: str | None = None,
        visibility: str | None = None,
        table_type: str | None = None,
        owned: bool = False,
    ) -> tuple[list[UserTableModel], int]:
        """List the tables visible to the requester.

        Admins see every table; everyone else sees their own tables plus
        public and shared ones.

        Returns:
            Tuple of (tables, total count).
        """
        settings = get_settings()
        page_size = min(page_size or settings.default_page_size, settings.max_page_size)
        return await self.tables.list_paginated(
            requester,
            page=max(page, 1),
            page_size=max(page_size, 1),
            sort_by=sort_by,
            sort_order=sort_order,
            name=name,
            visibility=visibility,
            table_type=table_type,
            owned=owned,
        )

    async def update_table(self, table_id: str, changes: dict[str, Any]) -> UserTableModel:
        """Apply a sparse update to a table.

        Only the supplied fields change; ``updated_at`` is always refreshed.
        Switching to a sale or rent type creates the missing required
        columns in the same transaction; switching to the default type only
        lifts their protection.

        Args:
            table_id: The table ID.
            changes: Subset of name, description, visibility, table_type,
                product_id_column and rental_period.

        Returns:
            The updated table.

        Raises:
            ValidationError: If no field or an invalid value is supplied.
            NotFoundError: If the table does not exist.
        """
        unknown = set(changes) - TABLE_UPDATE_FIELDS
        if not changes or unknown:
            raise ValidationError(
                f"Unknown fields: {', '.join(sorted(unknown))}" if unknown else "No fields to update"
            )

        errors: list[FieldError] = []
        if "name" in changes:
            errors.extend(TableValidator.validate_name(changes["name"]))
        if "description" in changes:
            errors.extend(TableValidator.validate_description(changes["description"]))
        if "visibility" in changes:
            errors.extend(TableValidator.validate_visibility(changes["visibility"]))
        if "table_type" in changes:
            errors.extend(TableValidator.validate_table_type(changes["table_type"]))
        if "rental_period" in changes:
            errors.extend(TableValidator.validate_rental_period(changes["rental_period"]))
        _raise_if(errors)

        async with table_transaction(self.session, table_id):
            table = await self.get_table(table_id)
            type_changed = "table_type" in changes and changes["table_type"] != table.table_type

            if "product_id_column" in changes and changes["product_id_column"] is not None:
                new_type = changes.get("table_type", table.table_type)
                known_names = sorted(protected_column_names(new_type))
                known_names.extend(column.name for column in await self.columns.list_for_table(table_id))
                _raise_if(
                    TableValidator.validate_product_id_column(changes["product_id_column"], known_names)
                )
                changes = {
                    **changes,
                    "product_id_column": TableValidator.canonical_column_name(
                        changes["product_id_column"], known_names
                    ),
                }

            for field, value in changes.items():
                if field == "name":
                    value = value.strip()
                setattr(table, field, value)

            if table.table_type == TableType.RENT.value:
                if table.rental_period is None:
                    table.rental_period = DEFAULT_RENTAL_PERIOD.value
            elif type_changed and "rental_period" not in changes:
                table.rental_period = None

            table.updated_at = datetime.utcnow()
            await self.tables.update(table)

            if type_changed and table.table_type != TableType.DEFAULT.value:
                await self.positions.compact(table_id)
                await ensure_required_columns(self.columns, table)

        logger.info("Table updated", table_id=table_id, fields=sorted(changes))
        return table

    async def delete_table(self, table_id: str) -> None:
        """Delete a table with its columns and rows.

        Raises:
            NotFoundError: If the table does not exist.
        """
        async with table_transaction(self.session, table_id):
            table = await self.get_table(table_id)
            rows_deleted = await self.rows.delete_for_tables([table_id])
            columns_deleted = await self.columns.delete_for_tables([table_id])
            await self.tables.delete(table)

        logger.info(
            "Table deleted",
            table_id=table_id,
            rows_deleted=rows_deleted,
            columns_deleted=columns_deleted,
        )

    # Columns

    async def get_columns(self, table_id: str) -> list[TableColumnModel]:
        """Get a table's columns ordered ascending by position.

        Raises:
            NotFoundError: If the table does not exist.
        """
        await self.get_table(table_id)
        return await self.columns.list_for_table(table_id)

    async def get_column(self, table_id: str, column_id: str) -> TableColumnModel:
        """Get a column of a table.

        Raises:
            NotFoundError: If the column does not exist.
        """
        column = await self.columns.get_by_id(table_id, column_id)
        if column is None:
            raise NotFoundError(f"Column '{column_id}' not found")
        return column

    async def add_column(
        self, table_id: str, definition: dict[str, Any], position: int | None = None
    ) -> TableColumnModel:
        """Add a column to a table.

        Without a position the column is appended; with one it is inserted
        there and the columns at or after it shift up by one.

        Args:
            table_id: The table ID.
            definition: The column definition.
            position: Optional target position (overrides ``definition["position"]``).

        Returns:
            The created column.

        Raises:
            ValidationError: If the definition is invalid or the name is taken.
            NotFoundError: If the table does not exist.
        """
        if position is None:
            position = definition.get("position")
        _raise_if(TableValidator.validate_column({**definition, "position": position}, "column"))

        async with table_transaction(self.session, table_id):
            table = await self.get_table(table_id)
            if await self.columns.get_by_name(table_id, definition["name"]) is not None:
                raise _duplicate_name_error(definition["name"])

            column = self._build_column(table_id, definition, 0)
            if position is None:
                column = await self.positions.append(table_id, column)
            else:
                column = await self.positions.insert_at(table_id, column, position)

            table.updated_at = datetime.utcnow()
            await self.tables.update(table)

        logger.info(
            "Column added",
            table_id=table_id,
            column_id=column.id,
            name=column.name,
            position=column.position,
        )
        return column

    async def update_column(
        self, table_id: str, column_id: str, changes: dict[str, Any]
    ) -> TableColumnModel:
        """Apply a sparse update to a column.

        Args:
            table_id: The table ID.
            column_id: The column ID.
            changes: Subset of name, type, is_required, allow_duplicates,
                default_value and position.

        Returns:
            The updated column.

        Raises:
            ValidationError: If no field or an invalid value is supplied.
            ProtectedColumnError: If a protected column would be renamed.
            NotFoundError: If the table or column does not exist.
        """
        unknown = set(changes) - COLUMN_UPDATE_FIELDS
        if not changes or unknown:
            raise ValidationError(
                f"Unknown fields: {', '.join(sorted(unknown))}" if unknown else "No fields to update"
            )

        async with table_transaction(self.session, table_id):
            table = await self.get_table(table_id)
            column = await self.get_column(table_id, column_id)

            new_name = changes.get("name", column.name)
            renamed = new_name != column.name
            if renamed and is_protected(table, column.name):
                logger.info(
                    "Rename of protected column rejected",
                    table_id=table_id,
                    column_id=column_id,
                    name=column.name,
                )
                raise ProtectedColumnError(column.name)

            merged = {
                "name": new_name,
                "type": changes.get("type", column.type),
                "default_value": changes.get("default_value", column.default_value),
                "position": changes.get("position"),
            }
            _raise_if(TableValidator.validate_column(merged, "column"))

            if renamed:
                clash = await self.columns.get_by_name(table_id, new_name)
                if clash is not None and clash.id != column.id:
                    raise _duplicate_name_error(new_name)
                if table.product_id_column == column.name:
                    table.product_id_column = new_name

            for field in ("name", "type", "is_required", "allow_duplicates", "default_value"):
                if field in changes:
                    setattr(column, field, changes[field])
            await self.columns.update(column)

            if changes.get("position") is not None:
                await self.positions.move_to(table_id, column_id, changes["position"])

            table.updated_at = datetime.utcnow()
            await self.tables.update(table)

        logger.info("Column updated", table_id=table_id, column_id=column_id, fields=sorted(changes))
        return column

    async def delete_column(self, table_id: str, column_id: str) -> TableColumnModel:
        """Delete a column without renumbering its siblings.

        Row data is left as is; the removed column's values stay in the
        stored rows and are returned with them.

        Returns:
            The deleted column.

        Raises:
            ProtectedColumnError: If the table's type protects the column.
            NotFoundError: If the table or column does not exist.
        """
        async with table_transaction(self.session, table_id):
            table = await self.get_table(table_id)
            column = await self.get_column(table_id, column_id)

            if is_protected(table, column.name):
                logger.info(
                    "Delete of protected column rejected",
                    table_id=table_id,
                    column_id=column_id,
                    name=column.name,
                )
                raise ProtectedColumnError(column.name)

            await self.columns.delete(column)
            if table.product_id_column == column.name:
                table.product_id_column = None
            table.updated_at = datetime.utcnow()
            await self.tables.update(table)

        logger.info("Column deleted", table_id=table_id, column_id=column_id, name=column.name)
        return column

    async def move_column(
        self, table_id: str, column_id: str, direction: MoveDirection | str
    ) -> list[TableColumnModel]:
        """Swap a column with its neighbour in ``direction``.

        Returns:
            The table's columns ordered by position.
        """
        direction = MoveDirection(direction)
        async with table_transaction(self.session, table_id):
            await self.get_table(table_id)
            await self.get_column(table_id, column_id)
            columns = await self.positions.move(table_id, column_id, direction)
        return columns

    async def swap_columns(
        self, table_id: str, column_id_a: str, column_id_b: str
    ) -> list[TableColumnModel]:
        """Exchange the positions of two columns.

        Returns:
            The table's columns ordered by position.
        """
        async with table_transaction(self.session, table_id):
            await self.get_table(table_id)
            columns = await self.positions.swap(table_id, column_id_a, column_id_b)
        return columns

    async def compact_positions(self, table_id: str) -> list[TableColumnModel]:
        """Renumber a table's columns to 0..N-1 keeping their order."""
        async with table_transaction(self.session, table_id):
            await self.get_table(table_id)
            columns = await self.positions.compact(table_id)
        return columns

    async def ensure_required_columns(self, table_id: str) -> list[TableColumnModel]:
        """Create any required column missing for the table's type.

        Returns:
            The columns created (empty when nothing was missing).
        """
        async with table_transaction(self.session, table_id):
            table = await self.get_table(table_id)
            await self.positions.compact(table_id)
            created = await ensure_required_columns(self.columns, table)
        return created

    async def is_column_protected(self, table_id: str, column_name: str) -> bool:
        """Whether the table's current type protects ``column_name``."""
        table = await self.get_table(table_id)
        return is_protected(table, column_name)

    @staticmethod
    def _build_column(table_id: str, definition: dict[str, Any], position: int) -> TableColumnModel:
        return TableColumnModel(
            id=str(uuid.uuid4()),
            table_id=table_id,
            name=definition["name"],
            type=definition.get("type") or ColumnType.TEXT.value,
            is_required=bool(definition.get("is_required", False)),
            allow_duplicates=bool(definition.get("allow_duplicates", True)),
            default_value=definition.get("default_value"),
            position=position,
            created_at=datetime.utcnow(),
        )
