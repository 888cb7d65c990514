"""API Routes for TableBase."""

from .columns_router import router as columns_router
from .rows_router import router as rows_router
from .tables_router import router as tables_router

__all__ = [
    "columns_router",
    "rows_router",
    "tables_router",
]
