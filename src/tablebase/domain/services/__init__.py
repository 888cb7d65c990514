"""Domain services for TableBase.

Services contain the table engine's business logic. They work through the
persistence repositories and raise the errors in domain.exceptions.
"""

from tablebase.domain.services.access_resolver import require_access, resolve_access
from tablebase.domain.services.mass_action_service import (
    ColumnAction,
    MassActionResult,
    MassActionService,
    RowAction,
    TableAction,
)
from tablebase.domain.services.position_manager import PositionManager
from tablebase.domain.services.protected_column_policy import (
    RequiredColumn,
    ensure_required_columns,
    is_protected,
    protected_column_names,
    required_columns_for,
)
from tablebase.domain.services.row_service import RowService
from tablebase.domain.services.row_validator import RowValidator
from tablebase.domain.services.schema_service import SchemaService
from tablebase.domain.services.table_cloner import TableCloner, disambiguate_name
from tablebase.domain.services.table_lock import TableLockRegistry, get_table_locks
from tablebase.domain.services.table_validator import TableValidator

__all__ = [
    "ColumnAction",
    "MassActionResult",
    "MassActionService",
    "PositionManager",
    "RequiredColumn",
    "RowAction",
    "RowService",
    "RowValidator",
    "SchemaService",
    "TableAction",
    "TableCloner",
    "TableLockRegistry",
    "TableValidator",
    "disambiguate_name",
    "ensure_required_columns",
    "get_table_locks",
    "is_protected",
    "protected_column_names",
    "require_access",
    "required_columns_for",
    "resolve_access",
]
