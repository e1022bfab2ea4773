"""
Custom exceptions for mapping and database operations.
"""

from typing import Any, Iterable, Mapping

# canonical library-level exception

class RepositoryError(Exception):
    """
    Base exception for every error raised by tablemap.

    - message: human-friendly message
    - fields: optional list of column names related to the error (e.g., ['email'])
    - constraint: optional DB constraint name or identifier (for logs only)
    - error_code: canonical short code (e.g., 'duplicate', 'not_found') callers can branch on
    """

    def __init__(self, message: str, *, fields: Iterable[str] | None = None,
                 constraint: str | None = None, error_code: str | None = None):
        super().__init__(message)
        self.message = message
        self.fields = list(fields) if fields else None
        self.constraint = constraint
        self.error_code = error_code

    def __str__(self) -> str:
        base = self.message
        parts = []
        if self.fields:
            parts.append(f"fields: {', '.join(self.fields)}")
        if self.constraint:
            parts.append(f"constraint: {self.constraint}")
        if self.error_code:
            parts.append(f"code: {self.error_code}")
        if parts:
            return f"{base} ({'; '.join(parts)})"
        return base


class ConfigurationError(RepositoryError):
    """Raised when a database handle is used before credentials were injected."""

    def __init__(self, message: str):
        super().__init__(message, error_code="configuration")


class SQLError(RepositoryError):
    """
    A statement failed. Carries the SQL text that was sent and the driver's error code.
    """

    def __init__(self, query: str, message: str, code: Any = 0, *,
                 fields: Iterable[str] | None = None, constraint: str | None = None,
                 error_code: str | None = None):
        super().__init__(message, fields=fields, constraint=constraint, error_code=error_code)
        self.query = query
        self.code = code

    def get_query(self) -> str:
        return self.query


class DuplicateKeyError(SQLError):
    def __init__(self, query: str, message: str, *, fields: Iterable[str] | None = None,
                 constraint: str | None = None):
        # duplicate keys never carry the driver code; the class itself is the classification
        super().__init__(query, message, 0, fields=fields, constraint=constraint, error_code="duplicate")


class ObjectNotFoundError(SQLError):
    def __init__(self, query: str, class_name: str, pk: Mapping[str, Any] | None = None):
        keys = [f"{key} => {value}" for key, value in (pk or {}).items()]
        message = f"Could not find object of class {class_name} for key: ({', '.join(keys)})."
        super().__init__(query, message, error_code="not_found")
        self.class_name = class_name
        self.pk = dict(pk or {})


class MoreThanOneObjectError(SQLError):
    def __init__(self, query: str):
        super().__init__(query, "More than one object matched the key.", error_code="not_unique")


class UnmappedFieldError(RepositoryError):
    """Raised when a model is asked for a column it does not map."""

    def __init__(self, column: str, table: str | None, class_name: str):
        super().__init__(
            f"Column '{column}' is not mapped by {class_name} (table: {table})",
            fields=[column],
            error_code="invalid_field",
        )
        self.column = column
        self.table = table
        self.class_name = class_name


class IncompleteModelClassError(RepositoryError):
    """Raised when a ModelObject subclass does not declare its table or fields."""

    def __init__(self, class_name: str):
        super().__init__(class_name, error_code="incomplete_model")
        self.class_name = class_name


__all__ = [
    "RepositoryError",
    "ConfigurationError",
    "SQLError",
    "DuplicateKeyError",
    "ObjectNotFoundError",
    "MoreThanOneObjectError",
    "UnmappedFieldError",
    "IncompleteModelClassError",
]
