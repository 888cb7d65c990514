"""Row validation service for validating row data against table columns.

Validates each value against its column type, converts it into a tagged
cell, applies parsed default values and checks required columns.
"""

import re
from datetime import date, datetime, time
from typing import Any

import pycountry

from tablebase.domain.entities import CellKind, CellValue, ColumnType
from tablebase.domain.exceptions import FieldError
from tablebase.infrastructure.persistence.models import TableColumnModel

# Email validation pattern (simplified but effective)
EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")

# URL validation pattern (simplified)
URL_PATTERN = re.compile(r"^https?://[^\s/$.?#].[^\s]*$", re.IGNORECASE)

PHONE_PATTERN = re.compile(r"^\+?[0-9 ().\-]{7,20}$")
DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
TIME_PATTERN = re.compile(r"^\d{2}:\d{2}(:\d{2})?$")
COLOR_PATTERN = re.compile(r"^#([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")

TRUE_STRINGS = frozenset({"true", "1", "yes", "on"})
FALSE_STRINGS = frozenset({"false", "0", "no", "off"})

MIN_RATING = 1
MAX_RATING = 5


def _error(field_name: str, message: str, code: str) -> FieldError:
    return FieldError(field=field_name, message=message, code=code)


def _type_error(field_name: str, expected: str, value: Any) -> FieldError:
    return _error(
        field_name,
        f"Expected {expected} value, got {type(value).__name__}",
        "invalid_type",
    )


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class RowValidator:
    """Validator for row data against a table's columns.

    Each ``validate_*`` classmethod returns ``(normalised_value, error)``;
    exactly one of the two is meaningful.
    """

    @classmethod
    def validate_text(cls, value: Any, field_name: str) -> tuple[Any, FieldError | None]:
        """Validate a text or textarea value."""
        if not isinstance(value, str):
            return None, _type_error(field_name, "text", value)
        return value, None

    @classmethod
    def validate_email(cls, value: Any, field_name: str) -> tuple[Any, FieldError | None]:
        """Validate an email value."""
        if not isinstance(value, str):
            return None, _type_error(field_name, "email string", value)
        if not EMAIL_PATTERN.match(value):
            return None, _error(field_name, "Invalid email format", "invalid_email_format")
        return value, None

    @classmethod
    def validate_url(cls, value: Any, field_name: str) -> tuple[Any, FieldError | None]:
        """Validate a URL value."""
        if not isinstance(value, str):
            return None, _type_error(field_name, "URL string", value)
        if not URL_PATTERN.match(value):
            return None, _error(
                field_name,
                "Invalid URL format. Must start with http:// or https://",
                "invalid_url_format",
            )
        return value, None

    @classmethod
    def validate_phone(cls, value: Any, field_name: str) -> tuple[Any, FieldError | None]:
        """Validate a phone number value."""
        if not isinstance(value, str):
            return None, _type_error(field_name, "phone string", value)
        if not PHONE_PATTERN.match(value) or not any(ch.isdigit() for ch in value):
            return None, _error(field_name, "Invalid phone number format", "invalid_phone_format")
        return value, None

    @classmethod
    def validate_country(cls, value: Any, field_name: str) -> tuple[Any, FieldError | None]:
        """Validate an ISO 3166-1 alpha-2 country code.

        The code is normalised to upper case.
        """
        if not isinstance(value, str):
            return None, _type_error(field_name, "country code", value)
        code = value.strip().upper()
        if len(code) != 2 or pycountry.countries.get(alpha_2=code) is None:
            return None, _error(
                field_name,
                f"Unknown country code '{value}'. Use an ISO 3166-1 alpha-2 code",
                "invalid_country_code",
            )
        return code, None

    @classmethod
    def validate_color(cls, value: Any, field_name: str) -> tuple[Any, FieldError | None]:
        """Validate a hex color value (#RGB or #RRGGBB)."""
        if not isinstance(value, str):
            return None, _type_error(field_name, "color string", value)
        if not COLOR_PATTERN.match(value):
            return None, _error(
                field_name, "Invalid color. Use #RGB or #RRGGBB", "invalid_color_format"
            )
        return value, None

    @classmethod
    def validate_integer(cls, value: Any, field_name: str) -> tuple[Any, FieldError | None]:
        """Validate an integer value.

        Floats without a fractional part are accepted and stored as int.
        """
        if not _is_number(value):
            return None, _type_error(field_name, "integer", value)
        if isinstance(value, float):
            if not value.is_integer():
                return None, _error(field_name, "Expected a whole number", "invalid_integer")
            value = int(value)
        return value, None

    @classmethod
    def validate_number(cls, value: Any, field_name: str) -> tuple[Any, FieldError | None]:
        """Validate a number or float value."""
        if not _is_number(value):
            return None, _type_error(field_name, "number", value)
        return value, None

    @classmethod
    def validate_currency(cls, value: Any, field_name: str) -> tuple[Any, FieldError | None]:
        """Validate a currency amount, rounded to two decimal places."""
        if not _is_number(value):
            return None, _type_error(field_name, "currency amount", value)
        return round(float(value), 2), None

    @classmethod
    def validate_percentage(cls, value: Any, field_name: str) -> tuple[Any, FieldError | None]:
        """Validate a percentage between 0 and 100."""
        if not _is_number(value):
            return None, _type_error(field_name, "percentage", value)
        if not 0 <= value <= 100:
            return None, _error(
                field_name, "Percentage must be between 0 and 100", "out_of_range"
            )
        return value, None

    @classmethod
    def validate_rating(cls, value: Any, field_name: str) -> tuple[Any, FieldError | None]:
        """Validate a rating, a whole number from 1 to 5."""
        value, error = cls.validate_integer(value, field_name)
        if error:
            return None, error
        if not MIN_RATING <= value <= MAX_RATING:
            return None, _error(
                field_name,
                f"Rating must be between {MIN_RATING} and {MAX_RATING}",
                "out_of_range",
            )
        return value, None

    @classmethod
    def validate_boolean(cls, value: Any, field_name: str) -> tuple[Any, FieldError | None]:
        """Validate a boolean value."""
        if not isinstance(value, bool):
            return None, _type_error(field_name, "boolean", value)
        return value, None

    @classmethod
    def validate_date(cls, value: Any, field_name: str) -> tuple[Any, FieldError | None]:
        """Validate a date value (YYYY-MM-DD)."""
        if isinstance(value, date) and not isinstance(value, datetime):
            return value.isoformat(), None
        if not isinstance(value, str):
            return None, _type_error(field_name, "date string", value)
        try:
            if not DATE_PATTERN.match(value):
                raise ValueError(value)
            date.fromisoformat(value)
        except ValueError:
            return None, _error(
                field_name, "Invalid date format. Use YYYY-MM-DD", "invalid_date_format"
            )
        return value, None

    @classmethod
    def validate_time(cls, value: Any, field_name: str) -> tuple[Any, FieldError | None]:
        """Validate a time value (HH:MM or HH:MM:SS)."""
        if isinstance(value, time):
            return value.isoformat(), None
        if not isinstance(value, str):
            return None, _type_error(field_name, "time string", value)
        try:
            if not TIME_PATTERN.match(value):
                raise ValueError(value)
            time.fromisoformat(value)
        except ValueError:
            return None, _error(
                field_name, "Invalid time format. Use HH:MM or HH:MM:SS", "invalid_time_format"
            )
        return value, None

    @classmethod
    def validate_datetime(cls, value: Any, field_name: str) -> tuple[Any, FieldError | None]:
        """Validate a datetime value.

        Accepts ISO 8601 formatted strings or datetime objects.
        """
        if isinstance(value, datetime):
            return value.isoformat(), None
        if not isinstance(value, str):
            return None, _type_error(field_name, "datetime string", value)
        try:
            datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None, _error(
                field_name,
                "Invalid datetime format. Use ISO 8601 format (e.g., 2024-01-01T12:00:00Z)",
                "invalid_datetime_format",
            )
        return value, None

    @classmethod
    def to_cell(cls, value: Any, column_type: ColumnType, field_name: str) -> tuple[CellValue | None, FieldError | None]:
        """Validate a single value against its column type and tag it.

        Args:
            value: The value to validate (never None here).
            column_type: The column's declared type.
            field_name: The column name for error messages.

        Returns:
            Tuple of (cell, error); cell is None when the value is invalid.
        """
        validators = {
            ColumnType.TEXT: cls.validate_text,
            ColumnType.TEXTAREA: cls.validate_text,
            ColumnType.EMAIL: cls.validate_email,
            ColumnType.URL: cls.validate_url,
            ColumnType.PHONE: cls.validate_phone,
            ColumnType.COUNTRY: cls.validate_country,
            ColumnType.COLOR: cls.validate_color,
            ColumnType.INTEGER: cls.validate_integer,
            ColumnType.FLOAT: cls.validate_number,
            ColumnType.NUMBER: cls.validate_number,
            ColumnType.CURRENCY: cls.validate_currency,
            ColumnType.PERCENTAGE: cls.validate_percentage,
            ColumnType.RATING: cls.validate_rating,
            ColumnType.BOOLEAN: cls.validate_boolean,
            ColumnType.DATE: cls.validate_date,
            ColumnType.TIME: cls.validate_time,
            ColumnType.DATETIME: cls.validate_datetime,
        }
        normalised, error = validators[column_type](value, field_name)
        if error:
            return None, error
        return CellValue(column_type.cell_kind, normalised), None

    @classmethod
    def parse_default(
        cls, default_value: str, column_type: ColumnType, field_name: str
    ) -> tuple[CellValue | None, FieldError | None]:
        """Parse a column's string default into a typed cell.

        ``"1"`` becomes 1 for numeric columns and ``"false"`` becomes False
        for boolean columns; the parsed value is then validated like any
        written value.

        Args:
            default_value: The default as stored on the column.
            column_type: The column's declared type.
            field_name: The column name for error messages.

        Returns:
            Tuple of (cell, error).
        """
        kind = column_type.cell_kind
        value: Any = default_value
        text = default_value.strip()

        if kind == CellKind.NUMBER:
            try:
                value = int(text)
            except ValueError:
                try:
                    value = float(text)
                except ValueError:
                    return None, _error(
                        field_name,
                        f"Default value '{default_value}' is not a number",
                        "invalid_default",
                    )
        elif kind == CellKind.BOOLEAN:
            lowered = text.lower()
            if lowered in TRUE_STRINGS:
                value = True
            elif lowered in FALSE_STRINGS:
                value = False
            else:
                return None, _error(
                    field_name,
                    f"Default value '{default_value}' is not a boolean",
                    "invalid_default",
                )

        cell, error = cls.to_cell(value, column_type, field_name)
        if error:
            return None, _error(field_name, f"Invalid default value: {error.message}", "invalid_default")
        return cell, None

    @classmethod
    def validate_and_apply_defaults(
        cls,
        data: dict[str, Any],
        columns: list[TableColumnModel],
        partial: bool = False,
        reject_unknown: bool = True,
    ) -> tuple[dict[str, CellValue], list[FieldError]]:
        """Validate row data against a table's columns and apply default values.

        Args:
            data: The row data to validate, keyed by column name.
            columns: The table's columns.
            partial: If True, only validate columns present in data (for PATCH).
            reject_unknown: Reject keys that are not declared columns; when
                False they are stored untouched as raw cells.

        Returns:
            Tuple of (cells, errors). errors is empty if validation passed.
        """
        errors: list[FieldError] = []
        cells: dict[str, CellValue] = {}

        by_name = {column.name: column for column in columns}

        for field_name, value in data.items():
            if field_name in by_name:
                continue
            if reject_unknown:
                errors.append(
                    _error(
                        field_name,
                        f"Unknown field '{field_name}' is not a column of this table",
                        "unknown_field",
                    )
                )
            else:
                cells[field_name] = CellValue.raw(value)

        for column in columns:
            field_name = column.name
            column_type = column.column_type

            if field_name in data:
                value = data[field_name]
                if value is None:
                    if column.is_required:
                        errors.append(
                            _error(
                                field_name,
                                f"Required field '{field_name}' cannot be null",
                                "required_null",
                            )
                        )
                    else:
                        cells[field_name] = CellValue(column_type.cell_kind, None)
                    continue

                cell, error = cls.to_cell(value, column_type, field_name)
                if error:
                    errors.append(error)
                else:
                    cells[field_name] = cell
            elif not partial:
                if column.default_value is not None:
                    cell, error = cls.parse_default(column.default_value, column_type, field_name)
                    if error:
                        errors.append(error)
                    else:
                        cells[field_name] = cell
                elif column.is_required:
                    errors.append(
                        _error(
                            field_name,
                            f"Required field '{field_name}' is missing",
                            "required_missing",
                        )
                    )

        return cells, errors
