"""Exceptions raised by the table engine.

All of these are raised synchronously to the caller; nothing in the engine
retries. The HTTP layer maps each class to a status code.
"""

from dataclasses import dataclass


@dataclass
class FieldError:
    """A single field-level validation problem."""

    field: str
    message: str
    code: str


class TableEngineError(Exception):
    """Base class for all table engine errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationError(TableEngineError):
    """Raised when input is missing, malformed or violates a schema rule."""

    def __init__(self, message: str, errors: list[FieldError] | None = None) -> None:
        self.errors = errors or []
        super().__init__(message)

    @classmethod
    def from_errors(cls, errors: list[FieldError], prefix: str = "Validation failed") -> "ValidationError":
        details = "; ".join(f"{e.field}: {e.message}" for e in errors)
        return cls(f"{prefix}: {details}", errors)


class NotFoundError(TableEngineError):
    """Raised when a table, column or row does not exist."""


class ForbiddenError(TableEngineError):
    """Raised when the requester lacks the access level an operation needs."""


class ProtectedColumnError(TableEngineError):
    """Raised on rename or removal of a column protected by the table type."""

    def __init__(self, column_name: str, message: str | None = None) -> None:
        self.column_name = column_name
        super().__init__(
            message
            or f"Column '{column_name}' is protected by the table type and cannot be renamed or removed"
        )


class ConflictError(TableEngineError):
    """Raised when a concurrent change broke the column position invariant."""
