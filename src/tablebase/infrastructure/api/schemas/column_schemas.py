"""Pydantic schemas for column endpoints."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from tablebase.domain.services.protected_column_policy import is_protected
from tablebase.infrastructure.persistence.models import TableColumnModel, UserTableModel


class ColumnDefinition(BaseModel):
    """Definition of a single column of a table."""

    name: str = Field(..., min_length=1, max_length=100, description="Column name, unique per table ignoring case")
    type: str = Field(
        default="text",
        description="Column type: text, textarea, email, url, phone, country, integer, float, "
        "currency, percentage, number, date, time, datetime, boolean, rating, color",
    )
    is_required: bool = Field(default=False, description="Whether rows must provide a value")
    allow_duplicates: bool = Field(default=True, description="Whether two rows may share a value")
    default_value: str | None = Field(
        default=None, description="Default value as a string, parsed into the column type"
    )
    position: int | None = Field(default=None, ge=0, description="Zero-based position")

    @field_validator("type")
    @classmethod
    def normalize_type(cls, v: str) -> str:
        """Normalize column type to lowercase."""
        return v.lower()


class UpdateColumnRequest(BaseModel):
    """Request body for a sparse column update."""

    name: str | None = Field(default=None, min_length=1, max_length=100)
    type: str | None = None
    is_required: bool | None = None
    allow_duplicates: bool | None = None
    default_value: str | None = None
    position: int | None = Field(default=None, ge=0)

    @field_validator("type")
    @classmethod
    def normalize_type(cls, v: str | None) -> str | None:
        """Normalize column type to lowercase."""
        return v.lower() if v is not None else v


class MoveColumnRequest(BaseModel):
    """Request body for moving a column one step."""

    direction: Literal["up", "down"]


class SwapColumnsRequest(BaseModel):
    """Request body for exchanging two columns' positions."""

    column_id_a: str = Field(..., min_length=1)
    column_id_b: str = Field(..., min_length=1)


class ColumnResponse(BaseModel):
    """Response for a column."""

    id: str = Field(..., description="Column ID (UUID)")
    table_id: str
    name: str
    type: str
    is_required: bool
    allow_duplicates: bool
    default_value: str | None = None
    position: int
    is_protected: bool = Field(default=False, description="Protected by the table type")
    created_at: datetime

    model_config = {"from_attributes": True}

    @classmethod
    def from_model(cls, column: TableColumnModel, table: UserTableModel) -> "ColumnResponse":
        """Build the response for a column of ``table``."""
        response = cls.model_validate(column)
        response.is_protected = is_protected(table, column.name)
        return response
