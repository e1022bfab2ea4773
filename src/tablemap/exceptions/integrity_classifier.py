r"""
Two levels of exception handling
================================

1. Constraint-specific errors (low-level, technical classification)

    ConstraintViolationError
    ├── UniqueConstraintError
    ├── NotNullConstraintError
    ├── ForeignKeyConstraintError
    ├── CheckConstraintError
    └── UnknownIntegrityError

These are only labels: `classify_integrity_error()` returns one of them to say
"what exactly failed in the database". They are never raised to callers.

2. Library-level errors (public API, see base.py)

    SQLError, DuplicateKeyError, ObjectNotFoundError, ...

mapper.py turns the label into the public exception:

| Constraint-level (internal) | -> | Library-level (external)        |
| --------------------------- | -- | ------------------------------- |
| `UniqueConstraintError`     | -> | `DuplicateKeyError`             |
| anything else               | -> | `SQLError` with the driver code |

Detection order: the driver's error code for the active dialect first
(SQLite extended result code, MySQL errno, PostgreSQL SQLSTATE), then the
message text for drivers that do not expose a code.
"""
import logging
from typing import Any, Type

from sqlalchemy.exc import DBAPIError

from .base import RepositoryError
from ..dialects import get_dialect
from ..dialects.mysql.error_codes import MysqlErrorCodes
from ..dialects.postgresql.error_codes import PostgresErrorCodes
from ..dialects.sqlite.error_codes import SqliteErrorCodes

logger = logging.getLogger(__name__)

# =================================================================================================================
# Constraint-specific exceptions
# =================================================================================================================


class ConstraintViolationError(RepositoryError):
    """Base for integrity/constraint violations (subclass of RepositoryError)."""
    pass


class UniqueConstraintError(ConstraintViolationError):
    """Unique constraint / duplicate value."""
    pass


class NotNullConstraintError(ConstraintViolationError):
    """NOT NULL violation (missing required field)."""
    pass


class ForeignKeyConstraintError(ConstraintViolationError):
    """Foreign key constraint violated."""
    pass


class CheckConstraintError(ConstraintViolationError):
    """CHECK constraint violated."""
    pass


class UnknownIntegrityError(ConstraintViolationError):
    """Unrecognized integrity error."""
    pass


# =================================================================================================================
# Driver error code mapping
# =================================================================================================================

CODE_EXCEPTION_MAP: dict[str, dict[Any, Type[ConstraintViolationError]]] = {
    "postgresql": {
        PostgresErrorCodes.UNIQUE_VIOLATION: UniqueConstraintError,
        PostgresErrorCodes.NOT_NULL_VIOLATION: NotNullConstraintError,
        PostgresErrorCodes.FOREIGN_KEY_VIOLATION: ForeignKeyConstraintError,
        PostgresErrorCodes.CHECK_VIOLATION: CheckConstraintError,
    },
    "mysql": {
        MysqlErrorCodes.DUP_ENTRY: UniqueConstraintError,
        MysqlErrorCodes.DUP_KEY: UniqueConstraintError,
        MysqlErrorCodes.BAD_NULL_ERROR: NotNullConstraintError,
        MysqlErrorCodes.NO_REFERENCED_ROW: ForeignKeyConstraintError,
        MysqlErrorCodes.ROW_IS_REFERENCED: ForeignKeyConstraintError,
        MysqlErrorCodes.CHECK_CONSTRAINT_VIOLATED: CheckConstraintError,
    },
    "sqlite": {
        SqliteErrorCodes.CONSTRAINT_UNIQUE: UniqueConstraintError,
        SqliteErrorCodes.CONSTRAINT_PRIMARYKEY: UniqueConstraintError,
        SqliteErrorCodes.CONSTRAINT_NOTNULL: NotNullConstraintError,
        SqliteErrorCodes.CONSTRAINT_FOREIGNKEY: ForeignKeyConstraintError,
        SqliteErrorCodes.CONSTRAINT_CHECK: CheckConstraintError,
    },
}
CODE_EXCEPTION_MAP["mariadb"] = CODE_EXCEPTION_MAP["mysql"]


# =================================================================================================================
# Integrity Error Classifiers
# =================================================================================================================

def _match_any(msg: str, keywords: list[str]) -> bool:
    return any(keyword in msg for keyword in keywords)


def driver_error_code(orig, dialect_name: str | None) -> Any:
    """
    Return the driver-specific error code carried by a DBAPI exception, or None.
    """
    dialect = get_dialect(dialect_name) if dialect_name else None
    if dialect is None or orig is None:
        return None
    return dialect.error_codes.error_code(orig)


def _classify_from_driver_code(orig, dialect_name: str | None) -> tuple[Type[ConstraintViolationError] | None, str | None]:
    """
    Classify an integrity error from the driver's error code for the active dialect.
    """
    code = driver_error_code(orig, dialect_name)
    if code is None:
        return None, None

    diag = getattr(orig, "diag", None)
    constraint_name = getattr(diag, "constraint_name", None) if diag else None
    constraint_name = constraint_name or getattr(orig, "constraint_name", None)

    exception_class = CODE_EXCEPTION_MAP.get(dialect_name, {}).get(code)

    if exception_class:
        logger.debug("Driver integrity diagnostic",
                     extra={"dialect": dialect_name, "error_code": code, "constraint_name": constraint_name}
        )
        return exception_class, constraint_name

    # SQLite reports the generic SQLITE_CONSTRAINT on older Pythons; let the message decide.
    if dialect_name == "sqlite" and code == SqliteErrorCodes.CONSTRAINT:
        return None, None

    logger.debug("Unmapped driver error code", extra={"dialect": dialect_name, "error_code": code})
    return None, constraint_name


def _classify_from_generic_message(msg: str) -> tuple[Type[ConstraintViolationError], None]:
    """
    Classify integrity error based on message content (fallback for drivers without codes).
    """
    normalized = msg.lower()

    if _match_any(normalized, ["unique constraint", "unique failed", "unique violation", "duplicate"]):
        return UniqueConstraintError, None

    if _match_any(normalized, ["not null constraint", "not null", "null value in column", "cannot be null"]):
        return NotNullConstraintError, None

    if _match_any(normalized, ["foreign key constraint", "foreign key", "is not present in table"]):
        return ForeignKeyConstraintError, None

    if _match_any(normalized, ["check constraint", "check failed"]):
        return CheckConstraintError, None

    logger.debug("Unknown integrity raw message", extra={"raw": msg})
    return UnknownIntegrityError, None


def classify_integrity_error(exc: DBAPIError, dialect_name: str | None = None) -> tuple[Type[ConstraintViolationError], str | None]:
    """
    Classify a SQLAlchemy DBAPIError into a specific ConstraintViolationError subclass.

    Returns:
        A tuple of (ExceptionClass, constraint_name if available)
    """
    orig = exc.orig

    exception_class, constraint_name = _classify_from_driver_code(orig, dialect_name)

    if exception_class is not None:
        return exception_class, constraint_name

    exception_class, _ = _classify_from_generic_message(str(orig) if orig is not None else str(exc))
    return exception_class, constraint_name


def is_duplicate_key(exc: DBAPIError, dialect_name: str | None = None) -> bool:
    exception_class, _ = classify_integrity_error(exc, dialect_name)
    return exception_class is UniqueConstraintError
