"""Table validation service for table metadata and column definitions.

Column definitions are plain dicts with the keys ``name``, ``type``,
``is_required``, ``allow_duplicates``, ``default_value`` and ``position``.
"""

from typing import Any

from tablebase.core.config import get_settings
from tablebase.domain.entities import ColumnType, RentalPeriod, TableType, Visibility
from tablebase.domain.exceptions import FieldError
from tablebase.domain.services.row_validator import RowValidator

# Characters that cannot appear in a column name because they would break
# the JSON path used to reach the column's cell
FORBIDDEN_NAME_CHARS = frozenset('"\\')


def _enum_error(field: str, label: str, value: Any, enum_cls: type) -> FieldError:
    valid = ", ".join(item.value for item in enum_cls)
    return FieldError(
        field=field,
        message=f"Invalid {label} '{value}'. Valid values: {valid}",
        code=f"{field.rsplit('.', 1)[-1]}_invalid",
    )


class TableValidator:
    """Validator for table and column definitions."""

    @classmethod
    def validate_name(cls, name: str | None) -> list[FieldError]:
        """Validate a table name.

        Args:
            name: The table name to validate.

        Returns:
            List of validation errors (empty if valid).
        """
        max_length = get_settings().max_table_name_length

        if not name or not name.strip():
            return [FieldError(field="name", message="Table name is required", code="name_required")]

        if len(name) > max_length:
            return [
                FieldError(
                    field="name",
                    message=f"Table name must be at most {max_length} characters",
                    code="name_too_long",
                )
            ]
        return []

    @classmethod
    def validate_description(cls, description: str | None) -> list[FieldError]:
        """Validate an optional table description."""
        max_length = get_settings().max_description_length
        if description is not None and len(description) > max_length:
            return [
                FieldError(
                    field="description",
                    message=f"Description must be at most {max_length} characters",
                    code="description_too_long",
                )
            ]
        return []

    @classmethod
    def validate_visibility(cls, visibility: str) -> list[FieldError]:
        if visibility not in {v.value for v in Visibility}:
            return [_enum_error("visibility", "visibility", visibility, Visibility)]
        return []

    @classmethod
    def validate_table_type(cls, table_type: str) -> list[FieldError]:
        if table_type not in {t.value for t in TableType}:
            return [_enum_error("table_type", "table type", table_type, TableType)]
        return []

    @classmethod
    def validate_rental_period(cls, rental_period: str | None) -> list[FieldError]:
        if rental_period is not None and rental_period not in {p.value for p in RentalPeriod}:
            return [_enum_error("rental_period", "rental period", rental_period, RentalPeriod)]
        return []

    @classmethod
    def validate_column_name(cls, name: str | None, field_path: str) -> list[FieldError]:
        """Validate a column name.

        Args:
            name: The column name to validate.
            field_path: Path of the field for error messages.

        Returns:
            List of validation errors (empty if valid).
        """
        max_length = get_settings().max_column_name_length

        if not name or not name.strip():
            return [
                FieldError(field=field_path, message="Column name is required", code="column_name_required")
            ]

        errors = []
        if len(name) > max_length:
            errors.append(
                FieldError(
                    field=field_path,
                    message=f"Column name must be at most {max_length} characters",
                    code="column_name_too_long",
                )
            )
        if name != name.strip() or any(ch in FORBIDDEN_NAME_CHARS or not ch.isprintable() for ch in name):
            errors.append(
                FieldError(
                    field=field_path,
                    message="Column name must not have surrounding spaces, quotes, backslashes or control characters",
                    code="column_name_invalid_format",
                )
            )
        return errors

    @classmethod
    def validate_column_type(cls, column_type: str | None, field_path: str) -> list[FieldError]:
        """Validate a column type.

        Args:
            column_type: The column type to validate.
            field_path: Path of the field for error messages.

        Returns:
            List of validation errors (empty if valid).
        """
        if not column_type:
            return [
                FieldError(field=field_path, message="Column type is required", code="column_type_required")
            ]

        valid_types = [t.value for t in ColumnType]
        if column_type not in valid_types:
            return [
                FieldError(
                    field=field_path,
                    message=f"Invalid column type '{column_type}'. Valid types: {', '.join(valid_types)}",
                    code="column_type_invalid",
                )
            ]
        return []

    @classmethod
    def validate_default(
        cls, default_value: str | None, column_type: str, field_path: str
    ) -> list[FieldError]:
        """Check that a default value parses into the column type."""
        if default_value is None or column_type not in {t.value for t in ColumnType}:
            return []
        _, error = RowValidator.parse_default(default_value, ColumnType(column_type), field_path)
        return [error] if error else []

    @classmethod
    def validate_column(cls, column: dict[str, Any], field_path: str) -> list[FieldError]:
        """Validate a single column definition.

        Args:
            column: The column definition dict with at least 'name' and 'type'.
            field_path: Path of the column for error messages.

        Returns:
            List of validation errors (empty if valid).
        """
        errors = []
        errors.extend(cls.validate_column_name(column.get("name"), f"{field_path}.name"))
        errors.extend(cls.validate_column_type(column.get("type"), f"{field_path}.type"))
        errors.extend(
            cls.validate_default(
                column.get("default_value"), column.get("type") or "", f"{field_path}.default_value"
            )
        )

        position = column.get("position")
        if position is not None and (not isinstance(position, int) or isinstance(position, bool) or position < 0):
            errors.append(
                FieldError(
                    field=f"{field_path}.position",
                    message="Position must be a non-negative integer",
                    code="position_invalid",
                )
            )
        return errors

    @classmethod
    def validate_columns(cls, columns: list[dict[str, Any]]) -> list[FieldError]:
        """Validate the column definitions of a new table.

        Args:
            columns: List of column definitions.

        Returns:
            List of validation errors (empty if valid).
        """
        errors = []
        seen_names: set[str] = set()
        seen_positions: set[int] = set()

        for i, column in enumerate(columns):
            errors.extend(cls.validate_column(column, f"columns[{i}]"))

            name = (column.get("name") or "").lower()
            if name and name in seen_names:
                errors.append(
                    FieldError(
                        field=f"columns[{i}].name",
                        message=f"Duplicate column name '{column.get('name')}'",
                        code="column_name_duplicate",
                    )
                )
            seen_names.add(name)

            position = column.get("position")
            if isinstance(position, int) and not isinstance(position, bool):
                if position in seen_positions:
                    errors.append(
                        FieldError(
                            field=f"columns[{i}].position",
                            message=f"Duplicate column position {position}",
                            code="position_duplicate",
                        )
                    )
                seen_positions.add(position)

        return errors

    @classmethod
    def validate_product_id_column(
        cls, product_id_column: str | None, column_names: list[str]
    ) -> list[FieldError]:
        """Check that the product id column names one of the table's columns."""
        if product_id_column is None:
            return []
        if product_id_column.lower() not in {name.lower() for name in column_names}:
            return [
                FieldError(
                    field="product_id_column",
                    message=f"Product ID column '{product_id_column}' is not a column of this table",
                    code="product_id_column_unknown",
                )
            ]
        return []

    @classmethod
    def canonical_column_name(cls, name: str | None, column_names: list[str]) -> str | None:
        """Resolve ``name`` to the first of ``column_names`` matching it ignoring case.

        Returns ``name`` unchanged when nothing matches.
        """
        if name is None:
            return None
        lowered = name.lower()
        return next((candidate for candidate in column_names if candidate.lower() == lowered), name)

    @classmethod
    def validate(
        cls,
        name: str,
        columns: list[dict[str, Any]],
        description: str | None = None,
        visibility: str = Visibility.PRIVATE.value,
        table_type: str = TableType.DEFAULT.value,
        rental_period: str | None = None,
    ) -> list[FieldError]:
        """Validate a complete table creation request.

        Returns:
            List of validation errors (empty if valid).
        """
        errors = []
        errors.extend(cls.validate_name(name))
        errors.extend(cls.validate_description(description))
        errors.extend(cls.validate_visibility(visibility))
        errors.extend(cls.validate_table_type(table_type))
        errors.extend(cls.validate_rental_period(rental_period))
        errors.extend(cls.validate_columns(columns))
        return errors
