"""Mass action service for bulk operations on tables, rows and columns.

Each action is one transaction. Requesters without the admin role only
touch what they own: ids outside that scope are skipped, not rejected,
and the result reports both the requested and the affected counts.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from tablebase.core.logging import get_logger
from tablebase.domain.entities import (
    AccessLevel,
    OwnerIdentity,
    Requester,
    Visibility,
    decode_cells,
    encode_cells,
)
from tablebase.domain.exceptions import FieldError, NotFoundError, ProtectedColumnError, ValidationError
from tablebase.domain.services.access_resolver import require_access
from tablebase.domain.services.protected_column_policy import is_protected
from tablebase.domain.services.row_service import RowService
from tablebase.domain.services.transaction import table_transaction
from tablebase.infrastructure.persistence.models import UserTableModel
from tablebase.infrastructure.persistence.repositories import (
    ColumnRepository,
    RowRepository,
    TableRepository,
)

logger = get_logger(__name__)


class TableAction(str, Enum):
    """Bulk actions on tables."""

    MAKE_PUBLIC = "make_public"
    MAKE_PRIVATE = "make_private"
    MAKE_SHARED = "make_shared"
    DELETE = "delete"


class RowAction(str, Enum):
    """Bulk actions on the rows of one table."""

    DELETE = "delete"
    SET_FIELD_VALUE = "set_field_value"


class ColumnAction(str, Enum):
    """Bulk actions on the columns of one table."""

    DELETE = "delete"
    MAKE_REQUIRED = "make_required"
    MAKE_OPTIONAL = "make_optional"


_VISIBILITY_ACTIONS = {
    TableAction.MAKE_PUBLIC: Visibility.PUBLIC,
    TableAction.MAKE_PRIVATE: Visibility.PRIVATE,
    TableAction.MAKE_SHARED: Visibility.SHARED,
}


@dataclass
class MassActionResult:
    """Outcome of a mass action.

    Attributes:
        action: The action that ran.
        requested: Number of distinct ids requested.
        affected: Number of entities actually changed.
    """

    action: str
    requested: int
    affected: int


def _parse_action(action: str, enum_cls: type[Enum]) -> Any:
    try:
        return enum_cls(action)
    except ValueError:
        valid = ", ".join(item.value for item in enum_cls)
        raise ValidationError.from_errors(
            [FieldError("action", f"Unknown action '{action}'. Valid actions: {valid}", "action_invalid")]
        ) from None


def _unique_ids(ids: list[str]) -> list[str]:
    unique = list(dict.fromkeys(i for i in ids if i))
    if not unique:
        raise ValidationError.from_errors([FieldError("ids", "At least one id is required", "ids_required")])
    return unique


class MassActionService:
    """Service for bulk actions."""

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

    async def execute_table_action(
        self, action: str, ids: list[str], requester: Requester
    ) -> MassActionResult:
        """Change the visibility of, or delete, several tables.

        Without the admin role only the requester's own tables are affected.

        Args:
            action: make_public, make_private, make_shared or delete.
            ids: Table IDs.
            requester: The requesting actor.

        Returns:
            The mass action result.

        Raises:
            ValidationError: If the action is unknown or no ids are given.
        """
        parsed = _parse_action(action, TableAction)
        table_ids = _unique_ids(ids)

        async with table_transaction(self.session):
            if requester.is_admin:
                targets = await self.tables.filter_ids(table_ids)
            elif requester.identity is not None:
                targets = await self.tables.filter_ids(table_ids, owner=requester.identity)
            else:
                targets = []

            if parsed == TableAction.DELETE:
                await self.rows.delete_for_tables(targets)
                await self.columns.delete_for_tables(targets)
                affected = await self.tables.delete_by_ids(targets)
            else:
                affected = await self.tables.bulk_update(
                    targets,
                    {
                        "visibility": _VISIBILITY_ACTIONS[parsed].value,
                        "updated_at": datetime.utcnow(),
                    },
                )

        logger.info(
            "Table mass action executed",
            action=parsed.value,
            requested=len(table_ids),
            affected=affected,
            is_admin=requester.is_admin,
        )
        return MassActionResult(action=parsed.value, requested=len(table_ids), affected=affected)

    async def execute_row_action(
        self,
        table_id: str,
        action: str,
        ids: list[str],
        requester: Requester,
        field_name: str | None = None,
        value: Any = None,
    ) -> MassActionResult:
        """Delete, or set one field on, several rows of a table.

        Requires write access. Unless the requester is an admin or owns the
        table, only rows the requester created are affected.

        Args:
            table_id: The table ID.
            action: delete or set_field_value.
            ids: Row IDs.
            requester: The requesting actor.
            field_name: Column to set (set_field_value only).
            value: Value to set (set_field_value only).

        Returns:
            The mass action result.

        Raises:
            ValidationError: If the action, ids, field or value is invalid.
            ForbiddenError: If the requester lacks write access.
            NotFoundError: If the table does not exist.
        """
        parsed = _parse_action(action, RowAction)
        row_ids = _unique_ids(ids)

        async with table_transaction(self.session, table_id):
            table = await self._get_table(table_id)
            granted = require_access(table, requester, AccessLevel.WRITE)
            author = None if granted == AccessLevel.ADMIN else requester.identity

            if parsed == RowAction.DELETE:
                affected = await self.rows.delete_by_ids(table_id, row_ids, author=author)
            else:
                affected = await self._set_field_value(table_id, row_ids, author, field_name, value)

        logger.info(
            "Row mass action executed",
            table_id=table_id,
            action=parsed.value,
            requested=len(row_ids),
            affected=affected,
        )
        return MassActionResult(action=parsed.value, requested=len(row_ids), affected=affected)

    async def _set_field_value(
        self,
        table_id: str,
        row_ids: list[str],
        author: OwnerIdentity | None,
        field_name: str | None,
        value: Any,
    ) -> int:
        columns = await self.columns.list_for_table(table_id)
        column = next((c for c in columns if c.name == field_name), None)
        if column is None:
            raise ValidationError.from_errors(
                [FieldError("field_name", f"Unknown column '{field_name}'", "unknown_field")]
            )

        rows = await self.rows.get_by_ids(table_id, row_ids, author=author)
        if len(rows) > 1 and not column.allow_duplicates and value is not None:
            raise ValidationError.from_errors(
                [
                    FieldError(
                        column.name,
                        f"Value for '{column.name}' must be unique in this table",
                        "duplicate_value",
                    )
                ]
            )

        cells = await RowService(self.session).validate_cells(
            table_id,
            {column.name: value},
            columns,
            partial=True,
            exclude_row_ids={row.id for row in rows},
        )

        now = datetime.utcnow()
        for row in rows:
            merged = decode_cells(row.data)
            merged.update(cells)
            row.data = encode_cells(merged)
            row.updated_at = now
            await self.rows.update(row)
        return len(rows)

    async def execute_column_action(
        self, table_id: str, action: str, ids: list[str], requester: Requester
    ) -> MassActionResult:
        """Delete, or change the required flag of, several columns.

        Requires admin access on the table. A delete that includes a
        protected column is rejected as a whole.

        Args:
            table_id: The table ID.
            action: delete, make_required or make_optional.
            ids: Column IDs.
            requester: The requesting actor.

        Returns:
            The mass action result.

        Raises:
            ValidationError: If the action is unknown or no ids are given.
            ProtectedColumnError: If a protected column would be deleted.
            ForbiddenError: If the requester lacks admin access.
            NotFoundError: If the table does not exist.
        """
        parsed = _parse_action(action, ColumnAction)
        column_ids = _unique_ids(ids)

        async with table_transaction(self.session, table_id):
            table = await self._get_table(table_id)
            require_access(table, requester, AccessLevel.ADMIN)
            columns = await self.columns.get_by_ids(table_id, column_ids)

            if parsed == ColumnAction.DELETE:
                protected = [column.name for column in columns if is_protected(table, column.name)]
                if protected:
                    logger.info(
                        "Column mass delete rejected",
                        table_id=table_id,
                        protected=protected,
                    )
                    raise ProtectedColumnError(protected[0])
                affected = await self.columns.delete_by_ids(table_id, [c.id for c in columns])
                if table.product_id_column in {column.name for column in columns}:
                    table.product_id_column = None
            else:
                affected = await self.columns.set_required(
                    table_id,
                    [column.id for column in columns],
                    parsed == ColumnAction.MAKE_REQUIRED,
                )

            table.updated_at = datetime.utcnow()
            await self.tables.update(table)

        logger.info(
            "Column mass action executed",
            table_id=table_id,
            action=parsed.value,
            requested=len(column_ids),
            affected=affected,
        )
        return MassActionResult(action=parsed.value, requested=len(column_ids), affected=affected)
