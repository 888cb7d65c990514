"""Tagged cell values stored in table rows.

A row's data is persisted as JSON of the form
``{"<column>": {"t": "<kind>", "v": <value>}}``. Decoding tolerates legacy
untagged values and tags it cannot recognise by surfacing them as RAW.
"""

from dataclasses import dataclass
from typing import Any

from tablebase.domain.entities.column import CellKind

KIND_KEY = "t"
VALUE_KEY = "v"


@dataclass(frozen=True)
class CellValue:
    """A single typed value in a row.

    Attributes:
        kind: Storage kind of the value.
        value: JSON-compatible payload (None for an explicit null).
    """

    kind: CellKind
    value: Any

    @classmethod
    def raw(cls, value: Any) -> "CellValue":
        return cls(CellKind.RAW, value)

    def to_json(self) -> dict[str, Any]:
        return {KIND_KEY: self.kind.value, VALUE_KEY: self.value}

    @classmethod
    def from_json(cls, stored: Any) -> "CellValue":
        """Decode one stored cell, falling back to RAW for anything untagged."""
        if isinstance(stored, dict) and set(stored) == {KIND_KEY, VALUE_KEY}:
            try:
                return cls(CellKind(stored[KIND_KEY]), stored[VALUE_KEY])
            except ValueError:
                return cls.raw(stored[VALUE_KEY])
        return cls.raw(stored)


def encode_cells(cells: dict[str, CellValue]) -> dict[str, Any]:
    """Encode a mapping of cells into its stored JSON form."""
    return {name: cell.to_json() for name, cell in cells.items()}


def decode_cells(stored: dict[str, Any] | None) -> dict[str, CellValue]:
    """Decode stored row JSON into cells."""
    return {name: CellValue.from_json(value) for name, value in (stored or {}).items()}


def plain_values(cells: dict[str, CellValue]) -> dict[str, Any]:
    """Strip tags, returning ``{column: value}`` for API responses."""
    return {name: cell.value for name, cell in cells.items()}
