"""Hollow cloning of user tables.

A clone copies a table's metadata and its column definitions, positions
included, but none of its rows.
"""

import uuid
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from tablebase.core.config import get_settings
from tablebase.core.logging import get_logger
from tablebase.domain.entities import OwnerIdentity
from tablebase.domain.exceptions import NotFoundError, ValidationError
from tablebase.domain.services.table_validator import TableValidator
from tablebase.domain.services.transaction import table_transaction
from tablebase.infrastructure.persistence.models import TableColumnModel, UserTableModel
from tablebase.infrastructure.persistence.repositories import ColumnRepository, TableRepository

logger = get_logger(__name__)

COPY_SUFFIX = "Copy"


def _with_suffix(base: str, suffix: str, max_length: int | None) -> str:
    if max_length is not None and len(base) + len(suffix) > max_length:
        base = base[: max(max_length - len(suffix), 0)].rstrip()
    return f"{base}{suffix}"


def disambiguate_name(
    base: str, taken: set[str], keep_base: bool = False, max_length: int | None = None
) -> str:
    """Pick the first free name among base, "base Copy", "base Copy 2", ...

    When ``max_length`` is given, ``base`` is shortened so that the name
    with its suffix fits.

    Args:
        base: The name to start from.
        taken: Names already in use, lower-cased.
        keep_base: Try ``base`` itself before the copy suffixes.
        max_length: Longest allowed name.

    Returns:
        A name not in ``taken`` (compared case-insensitively).
    """
    if keep_base and base.lower() not in taken and (max_length is None or len(base) <= max_length):
        return base

    candidate = _with_suffix(base, f" {COPY_SUFFIX}", max_length)
    counter = 2
    while candidate.lower() in taken:
        candidate = _with_suffix(base, f" {COPY_SUFFIX} {counter}", max_length)
        counter += 1
    return candidate


class TableCloner:
    """Creates structural copies of tables."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the cloner.

        Args:
            session: SQLAlchemy async session.
        """
        self.session = session
        self.tables = TableRepository(session)
        self.columns = ColumnRepository(session)

    async def clone_table(
        self,
        table_id: str,
        owner: OwnerIdentity,
        name: str | None = None,
        description: str | None = None,
        visibility: str | None = None,
    ) -> tuple[UserTableModel, list[TableColumnModel]]:
        """Clone a table's structure for ``owner``.

        Without an explicit name the clone is called "<source> Copy", then
        "<source> Copy 2", "<source> Copy 3"... skipping every name the
        owner can already see. An explicit name is kept when it is free.
        Table type, product id column, rental period, description and
        (unless overridden) visibility carry over.

        Args:
            table_id: The source table ID.
            owner: Identity that will own the clone.
            name: Optional name for the clone.
            description: Optional description overriding the source's.
            visibility: Optional visibility overriding the source's.

        Returns:
            Tuple of (clone, clone columns ordered by position).

        Raises:
            ValidationError: If an override is invalid.
            NotFoundError: If the source table does not exist.
        """
        errors = []
        if name is not None:
            errors.extend(TableValidator.validate_name(name))
        if description is not None:
            errors.extend(TableValidator.validate_description(description))
        if visibility is not None:
            errors.extend(TableValidator.validate_visibility(visibility))
        if errors:
            raise ValidationError.from_errors(errors)

        clone_id = str(uuid.uuid4())

        async with table_transaction(self.session, clone_id):
            source = await self.tables.get_by_id(table_id)
            if source is None:
                raise NotFoundError(f"Table '{table_id}' not found")
            source_columns = await self.columns.list_for_table(table_id)

            taken = {existing.lower() for existing in await self.tables.names_visible_to(owner)}
            clone_name = disambiguate_name(
                (name or source.name).strip(),
                taken,
                keep_base=name is not None,
                max_length=get_settings().max_table_name_length,
            )

            now = datetime.utcnow()
            clone = UserTableModel(
                id=clone_id,
                name=clone_name,
                description=description if description is not None else source.description,
                visibility=visibility or source.visibility,
                table_type=source.table_type,
                product_id_column=source.product_id_column,
                rental_period=source.rental_period,
                created_at=now,
                updated_at=now,
            )
            clone.owner = owner
            await self.tables.create(clone)

            cloned_columns = []
            for column in source_columns:
                cloned_columns.append(
                    await self.columns.create(
                        TableColumnModel(
                            id=str(uuid.uuid4()),
                            table_id=clone_id,
                            name=column.name,
                            type=column.type,
                            is_required=column.is_required,
                            allow_duplicates=column.allow_duplicates,
                            default_value=column.default_value,
                            position=column.position,
                            created_at=now,
                        )
                    )
                )

        logger.info(
            "Table cloned",
            source_table_id=table_id,
            table_id=clone_id,
            name=clone_name,
            owner=str(owner),
            columns_count=len(cloned_columns),
        )
        return clone, cloned_columns
