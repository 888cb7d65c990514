"""SQLAlchemy model for the table_rows table.

Row data is a JSON document of tagged cells keyed by column name.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from tablebase.domain.entities import OwnerIdentity
from tablebase.infrastructure.persistence.database import Base


class TableRowModel(Base):
    """SQLAlchemy model for the table_rows table.

    Attributes:
        id: Primary key (UUID string).
        table_id: Foreign key to user_tables.
        data: Tagged cells, ``{"<column>": {"t": kind, "v": value}}``.
        created_by_kind: Identity kind of the author.
        created_by_id: User id or token id of the author.
        created_at: Timestamp when the row was created.
        updated_at: Timestamp when the row was last updated.
    """

    __tablename__ = "table_rows"
    __table_args__ = (Index("ix_table_rows_author", "table_id", "created_by_kind", "created_by_id"),)

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        comment="Row ID (UUID)",
    )
    table_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("user_tables.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    data: Mapped[dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
    )
    created_by_kind: Mapped[str | None] = mapped_column(
        String(16),
        nullable=True,
    )
    created_by_id: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=datetime.utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=datetime.utcnow,
    )

    @property
    def created_by(self) -> OwnerIdentity | None:
        if self.created_by_kind is None or self.created_by_id is None:
            return None
        return OwnerIdentity(self.created_by_kind, self.created_by_id)

    @created_by.setter
    def created_by(self, identity: OwnerIdentity | None) -> None:
        self.created_by_kind = identity.kind.value if identity else None
        self.created_by_id = identity.id if identity else None

    def __repr__(self) -> str:
        return f"<TableRow(id={self.id}, table_id={self.table_id})>"
