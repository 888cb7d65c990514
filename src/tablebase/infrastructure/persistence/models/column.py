"""SQLAlchemy model for the table_columns table."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from tablebase.domain.entities import ColumnType
from tablebase.infrastructure.persistence.database import Base

POSITION_CONSTRAINT = "uq_table_columns_table_position"
NAME_CONSTRAINT = "uq_table_columns_table_name"


class TableColumnModel(Base):
    """SQLAlchemy model for the table_columns table.

    Positions are unique within a table. Every Position Manager operation
    leaves them as the dense range 0..N-1; a plain column delete may leave
    a gap until the next positional mutation compacts the table.

    Attributes:
        id: Primary key (UUID string).
        table_id: Foreign key to user_tables.
        name: Column name, unique per table ignoring case.
        type: Column type (see ColumnType).
        is_required: Whether rows must provide a value.
        allow_duplicates: Whether two rows may hold the same value.
        default_value: Default as a string, parsed into the column type on use.
        position: Zero-based display position.
        created_at: Timestamp when the column was created.
    """

    __tablename__ = "table_columns"
    __table_args__ = (
        UniqueConstraint("table_id", "position", name=POSITION_CONSTRAINT),
        UniqueConstraint("table_id", "name", name=NAME_CONSTRAINT),
    )

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        comment="Column ID (UUID)",
    )
    table_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("user_tables.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )
    type: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=ColumnType.TEXT.value,
    )
    is_required: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )
    allow_duplicates: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
    )
    default_value: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    position: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=datetime.utcnow,
    )

    @property
    def column_type(self) -> ColumnType:
        return ColumnType(self.type)

    def __repr__(self) -> str:
        return f"<TableColumn(id={self.id}, name={self.name}, position={self.position})>"
