"""Repository for user table operations.

Provides CRUD, visibility-scoped listing and bulk updates for the
user_tables table.
"""

from typing import Any

from sqlalchemy import and_, delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from tablebase.domain.entities import OwnerIdentity, Requester, Visibility
from tablebase.infrastructure.persistence.models import UserTableModel

SORTABLE_FIELDS = frozenset({"name", "created_at", "updated_at", "visibility", "table_type"})
DEFAULT_SORT_FIELD = "created_at"

_OPEN_VISIBILITIES = (Visibility.PUBLIC.value, Visibility.SHARED.value)


def owned_by(identity: OwnerIdentity) -> ColumnElement[bool]:
    """SQL condition matching tables owned by ``identity``."""
    return and_(
        UserTableModel.owner_kind == identity.kind.value,
        UserTableModel.owner_id == identity.id,
    )


def visible_to(requester: Requester) -> ColumnElement[bool] | None:
    """SQL condition matching tables the requester can see.

    Returns None for admins, who see every table.
    """
    if requester.is_admin:
        return None
    open_tables = UserTableModel.visibility.in_(_OPEN_VISIBILITIES)
    if requester.identity is None:
        return open_tables
    return or_(owned_by(requester.identity), open_tables)


class TableRepository:
    """Repository for user table database operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository with a database session.

        Args:
            session: SQLAlchemy async session.
        """
        self.session = session

    async def create(self, table: UserTableModel) -> UserTableModel:
        """Create a new table.

        Args:
            table: The table model to create.

        Returns:
            The created table model.
        """
        self.session.add(table)
        await self.session.flush()
        return table

    async def get_by_id(self, table_id: str) -> UserTableModel | None:
        """Get a table by ID.

        Args:
            table_id: The table ID.

        Returns:
            The table model if found, None otherwise.
        """
        result = await self.session.execute(
            select(UserTableModel).where(UserTableModel.id == table_id)
        )
        return result.scalar_one_or_none()

    async def update(self, table: UserTableModel) -> UserTableModel:
        """Flush pending changes to a table.

        Args:
            table: The table model with updated fields.

        Returns:
            The updated table model.
        """
        await self.session.flush()
        return table

    async def delete(self, table: UserTableModel) -> None:
        """Delete a table.

        Args:
            table: The table model to delete.
        """
        await self.session.delete(table)
        await self.session.flush()

    async def list_paginated(
        self,
        requester: Requester,
        page: int = 1,
        page_size: int = 25,
        sort_by: str = DEFAULT_SORT_FIELD,
        sort_order: str = "desc",
        name: str | None = None,
        visibility: str | None = None,
        table_type: str | None = None,
        owned: bool = False,
    ) -> tuple[list[UserTableModel], int]:
        """Get a page of tables visible to the requester.

        Args:
            requester: The requesting actor; admins see every table.
            page: Page number (1-indexed).
            page_size: Number of items per page.
            sort_by: Column to sort by, one of SORTABLE_FIELDS.
            sort_order: Sort order (asc or desc).
            name: Optional case-insensitive substring of the table name
                (``%`` and ``_`` match literally).
            visibility: Optional visibility filter.
            table_type: Optional table type filter.
            owned: Only return tables owned by the requester.

        Returns:
            Tuple of (list of tables, total count).
        """
        query = select(UserTableModel)

        scope = visible_to(requester)
        if scope is not None:
            query = query.where(scope)
        if owned:
            if requester.identity is None:
                return [], 0
            query = query.where(owned_by(requester.identity))
        if name:
            query = query.where(UserTableModel.name.icontains(name, autoescape=True))
        if visibility:
            query = query.where(UserTableModel.visibility == visibility)
        if table_type:
            query = query.where(UserTableModel.table_type == table_type)

        count_query = select(func.count()).select_from(query.subquery())
        total = (await self.session.execute(count_query)).scalar_one()

        if sort_by not in SORTABLE_FIELDS:
            sort_by = DEFAULT_SORT_FIELD
        sort_column = getattr(UserTableModel, sort_by)
        if sort_order == "asc":
            query = query.order_by(sort_column.asc(), UserTableModel.id.asc())
        else:
            query = query.order_by(sort_column.desc(), UserTableModel.id.asc())

        offset = (page - 1) * page_size
        query = query.offset(offset).limit(page_size)

        result = await self.session.execute(query)
        return list(result.scalars().all()), total

    async def names_visible_to(self, identity: OwnerIdentity) -> list[str]:
        """Get the names of every table the identity can see.

        Args:
            identity: The identity whose view is used.

        Returns:
            Table names (may contain duplicates).
        """
        scope = visible_to(Requester(identity=identity))
        result = await self.session.execute(select(UserTableModel.name).where(scope))
        return list(result.scalars().all())

    async def filter_ids(
        self, table_ids: list[str], owner: OwnerIdentity | None = None
    ) -> list[str]:
        """Return the subset of ``table_ids`` that exist, optionally owned by ``owner``.

        Args:
            table_ids: Candidate table IDs.
            owner: When given, only tables owned by this identity are kept.

        Returns:
            Matching table IDs.
        """
        query = select(UserTableModel.id).where(UserTableModel.id.in_(table_ids))
        if owner is not None:
            query = query.where(owned_by(owner))
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def bulk_update(self, table_ids: list[str], values: dict[str, Any]) -> int:
        """Apply the same field values to several tables in one statement.

        Args:
            table_ids: IDs of the tables to update.
            values: Column values to set.

        Returns:
            Number of tables updated.
        """
        if not table_ids:
            return 0
        result = await self.session.execute(
            update(UserTableModel)
            .where(UserTableModel.id.in_(table_ids))
            .values(**values)
            .execution_options(synchronize_session="evaluate")
        )
        return result.rowcount

    async def delete_by_ids(self, table_ids: list[str]) -> int:
        """Delete several tables in one statement.

        Args:
            table_ids: IDs of the tables to delete.

        Returns:
            Number of tables deleted.
        """
        if not table_ids:
            return 0
        result = await self.session.execute(
            delete(UserTableModel)
            .where(UserTableModel.id.in_(table_ids))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount
