"""SQLAlchemy models for the TableBase engine.

All models inherit from the Base class defined in database.py and are
created on application startup.
"""

from tablebase.infrastructure.persistence.models.column import TableColumnModel
from tablebase.infrastructure.persistence.models.row import TableRowModel
from tablebase.infrastructure.persistence.models.table import UserTableModel

__all__ = [
    "TableColumnModel",
    "TableRowModel",
    "UserTableModel",
]
