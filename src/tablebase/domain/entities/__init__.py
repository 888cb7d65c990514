"""Domain entities for TableBase.

Entities are plain Python value objects and enumerations that describe the
table engine's concepts. They have no dependencies on infrastructure.
"""

from tablebase.domain.entities.access import AccessLevel
from tablebase.domain.entities.cell import (
    CellValue,
    decode_cells,
    encode_cells,
    plain_values,
)
from tablebase.domain.entities.column import CellKind, ColumnType, MoveDirection
from tablebase.domain.entities.identity import IdentityKind, OwnerIdentity, Requester
from tablebase.domain.entities.table import (
    DEFAULT_RENTAL_PERIOD,
    RentalPeriod,
    TableType,
    Visibility,
)

__all__ = [
    "AccessLevel",
    "CellKind",
    "CellValue",
    "ColumnType",
    "DEFAULT_RENTAL_PERIOD",
    "IdentityKind",
    "MoveDirection",
    "OwnerIdentity",
    "RentalPeriod",
    "Requester",
    "TableType",
    "Visibility",
    "decode_cells",
    "encode_cells",
    "plain_values",
]
