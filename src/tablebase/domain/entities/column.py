"""Column type definitions.

Every column type stores its values as exactly one cell kind. Several types
share a kind (phone, email and country are all text on disk) and differ only
in the validation applied when a value is written.
"""

from enum import Enum


class CellKind(str, Enum):
    """Storage kind of a cell value."""

    TEXT = "text"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    TIME = "time"
    DATETIME = "datetime"
    # Values that predate their column's type or whose column is gone
    RAW = "raw"


class ColumnType(str, Enum):
    """Supported column types for user-defined tables."""

    TEXT = "text"
    TEXTAREA = "textarea"
    EMAIL = "email"
    URL = "url"
    PHONE = "phone"
    COUNTRY = "country"
    INTEGER = "integer"
    FLOAT = "float"
    CURRENCY = "currency"
    PERCENTAGE = "percentage"
    NUMBER = "number"
    DATE = "date"
    TIME = "time"
    DATETIME = "datetime"
    BOOLEAN = "boolean"
    RATING = "rating"
    COLOR = "color"

    @property
    def cell_kind(self) -> CellKind:
        """The storage kind for values of this column type."""
        return _CELL_KINDS[self]


_CELL_KINDS: dict[ColumnType, CellKind] = {
    ColumnType.TEXT: CellKind.TEXT,
    ColumnType.TEXTAREA: CellKind.TEXT,
    ColumnType.EMAIL: CellKind.TEXT,
    ColumnType.URL: CellKind.TEXT,
    ColumnType.PHONE: CellKind.TEXT,
    ColumnType.COUNTRY: CellKind.TEXT,
    ColumnType.COLOR: CellKind.TEXT,
    ColumnType.INTEGER: CellKind.NUMBER,
    ColumnType.FLOAT: CellKind.NUMBER,
    ColumnType.CURRENCY: CellKind.NUMBER,
    ColumnType.PERCENTAGE: CellKind.NUMBER,
    ColumnType.NUMBER: CellKind.NUMBER,
    ColumnType.RATING: CellKind.NUMBER,
    ColumnType.DATE: CellKind.DATE,
    ColumnType.TIME: CellKind.TIME,
    ColumnType.DATETIME: CellKind.DATETIME,
    ColumnType.BOOLEAN: CellKind.BOOLEAN,
}


class MoveDirection(str, Enum):
    """Direction for a single-step column move."""

    UP = "up"
    DOWN = "down"
