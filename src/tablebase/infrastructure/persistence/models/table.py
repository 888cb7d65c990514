"""SQLAlchemy model for the user_tables table.

User tables hold the metadata of a user-defined schema: its name, owner,
visibility tier and e-commerce type.
"""

from datetime import datetime

from sqlalchemy import DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from tablebase.domain.entities import (
    OwnerIdentity,
    RentalPeriod,
    TableType,
    Visibility,
)
from tablebase.infrastructure.persistence.database import Base


class UserTableModel(Base):
    """SQLAlchemy model for the user_tables table.

    Attributes:
        id: Primary key (UUID string).
        name: Display name (not unique).
        description: Optional free-text description.
        owner_kind: Identity kind of the owner ("user" or "api_token").
        owner_id: User id or token id of the owner.
        visibility: private, public or shared.
        table_type: default, sale or rent.
        product_id_column: Name of the column that identifies a product.
        rental_period: Billing period, only meaningful for rent tables.
        created_at: Timestamp when the table was created.
        updated_at: Timestamp when the table was last updated.
    """

    __tablename__ = "user_tables"
    __table_args__ = (Index("ix_user_tables_owner", "owner_kind", "owner_id"),)

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        comment="Table ID (UUID)",
    )
    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        index=True,
    )
    description: Mapped[str | None] = mapped_column(
        String(500),
        nullable=True,
    )
    owner_kind: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        comment="Owner identity kind (user, api_token)",
    )
    owner_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Owner user ID or API token ID",
    )
    visibility: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default=Visibility.PRIVATE.value,
    )
    table_type: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default=TableType.DEFAULT.value,
    )
    product_id_column: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
    )
    rental_period: Mapped[str | None] = mapped_column(
        String(16),
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
    def owner(self) -> OwnerIdentity:
        return OwnerIdentity(self.owner_kind, self.owner_id)

    @owner.setter
    def owner(self, identity: OwnerIdentity) -> None:
        self.owner_kind = identity.kind.value
        self.owner_id = identity.id

    @property
    def type(self) -> TableType:
        return TableType(self.table_type)

    @property
    def visibility_tier(self) -> Visibility:
        return Visibility(self.visibility)

    @property
    def period(self) -> RentalPeriod | None:
        return RentalPeriod(self.rental_period) if self.rental_period else None

    def __repr__(self) -> str:
        return f"<UserTable(id={self.id}, name={self.name}, type={self.table_type})>"
