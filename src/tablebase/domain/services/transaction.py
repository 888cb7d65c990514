"""Transaction scope shared by the mutating domain services.

Every mutating operation runs inside ``table_transaction``: the block is
committed on success and rolled back on any exception, so a failed
operation leaves no partial mutation behind.
"""

from contextlib import asynccontextmanager, nullcontext
from typing import AsyncIterator

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from tablebase.core.logging import get_logger
from tablebase.domain.exceptions import ConflictError, FieldError, ValidationError
from tablebase.domain.services.table_lock import get_table_locks
from tablebase.infrastructure.persistence.models.column import (
    NAME_CONSTRAINT,
    POSITION_CONSTRAINT,
)

logger = get_logger(__name__)


def translate_integrity_error(error: IntegrityError) -> Exception:
    """Map a column constraint violation to the matching engine error.

    Args:
        error: The IntegrityError raised by the database driver.

    Returns:
        ConflictError for a position clash, ValidationError for a name
        clash, or the original error for anything else.
    """
    detail = str(error.orig)
    if POSITION_CONSTRAINT in detail or "table_columns.position" in detail:
        return ConflictError("Column positions were changed concurrently; retry the operation")
    if NAME_CONSTRAINT in detail or "table_columns.name" in detail:
        return ValidationError.from_errors(
            [
                FieldError(
                    field="name",
                    message="A column with this name already exists",
                    code="column_name_duplicate",
                )
            ]
        )
    return error


@asynccontextmanager
async def table_transaction(session: AsyncSession, table_id: str | None = None) -> AsyncIterator[None]:
    """Run a block as one transaction, optionally under a table's lock.

    Args:
        session: The session the block writes through.
        table_id: When given, the table's lock is held until after commit.
    """
    scope = get_table_locks().hold(table_id) if table_id else nullcontext()
    async with scope:
        try:
            yield
            await session.commit()
        except IntegrityError as e:
            await session.rollback()
            translated = translate_integrity_error(e)
            logger.warning("Transaction rolled back", table_id=table_id, error=str(translated))
            if translated is e:
                raise
            raise translated from e
        except Exception:
            await session.rollback()
            raise
