import re
import logging
from contextlib import asynccontextmanager

from sqlalchemy.exc import DBAPIError, IntegrityError

from .integrity_classifier import (
    classify_integrity_error,
    driver_error_code,
    UniqueConstraintError,
)
from .base import DuplicateKeyError, SQLError

logger = logging.getLogger(__name__)

# -----------------------
# Column extraction helpers
# -----------------------

def _extract_columns_postgres(msg: str) -> list[str] | None:
    """
    Try to extract involved column names from common Postgres messages:
      - 'null value in column "username" violates not-null constraint'
      - 'DETAIL:  Key (email, username)=(a@b.com, u) already exists.'
    """
    if not msg:
        return None

    m = re.search(r'null value in column "(?P<col>[^"]+)"', msg, flags=re.IGNORECASE)
    if m:
        return [m.group("col")]

    m = re.search(r'key \((?P<cols>[^)]+)\)=', msg, flags=re.IGNORECASE)
    if m:
        return [c.strip().strip('"') for c in m.group("cols").split(",")]

    return None


def _extract_columns_sqlite(msg: str) -> list[str] | None:
    # SQLite: 'UNIQUE constraint failed: users.email' / 'NOT NULL constraint failed: users.email'
    m = re.search(r'(?:UNIQUE|NOT NULL) constraint failed: (?P<cols>.+)$', msg, flags=re.IGNORECASE)
    if m:
        return [c.split('.')[-1].strip() for c in re.split(r',\s*', m.group("cols"))]

    return None


def _extract_columns_mysql(msg: str) -> list[str] | None:
    # MySQL: "Duplicate entry 'foo' for key 'users.idx_users_email'"
    m = re.search(r"Duplicate entry .* for key '?(?P<key>[^']+)'?", msg, flags=re.IGNORECASE)
    if m:
        return [m.group("key").split('.')[-1]]
    return None


def extract_columns_from_error(exc: DBAPIError) -> list[str] | None:
    """
    Best-effort extraction of column names from the DB message (Postgres, SQLite, MySQL).
    """
    orig = exc.orig
    msg = str(orig) if orig is not None else str(exc)

    for extractor in (_extract_columns_postgres, _extract_columns_sqlite, _extract_columns_mysql):
        cols = extractor(msg)
        if cols:
            return cols

    return None


def _driver_message(exc: DBAPIError) -> str:
    return str(exc.orig) if exc.orig is not None else str(exc)


# -----------------------
# Mapper
# -----------------------

def raise_mapped_sql_error(exc: DBAPIError, query: str, dialect_name: str | None = None,
                           model_name: str | None = None) -> None:
    """
    Map a SQLAlchemy DBAPIError raised while running `query` to a library exception and raise it.

    Unique / primary-key violations become DuplicateKeyError, everything else SQLError
    carrying the driver's error code. Populates `.fields` and `.constraint` where possible.
    """
    model_part = model_name or "Record"
    message = _driver_message(exc)
    code = driver_error_code(exc.orig, dialect_name)

    if isinstance(exc, IntegrityError):
        exc_cls, constraint_name = classify_integrity_error(exc, dialect_name)
        columns = extract_columns_from_error(exc)

        if exc_cls is UniqueConstraintError:
            # expected caller-level scenario, no stack trace
            logger.info(
                "mapper.duplicate_detected",
                extra={"model": model_part, "fields": columns, "constraint": constraint_name},
            )
            raise DuplicateKeyError(query, message, fields=columns, constraint=constraint_name) from exc

        logger.info(
            "mapper.integrity_violation",
            extra={
                "model": model_part,
                "violation": exc_cls.__name__,
                "fields": columns,
                "constraint": constraint_name,
            },
        )
        raise SQLError(query, message, code if code is not None else 0,
                       fields=columns, constraint=constraint_name) from exc

    logger.warning(
        "mapper.sql_error",
        extra={"model": model_part, "dialect": dialect_name, "error_code": code},
    )
    logger.debug("mapper.sql_error_raw", extra={"model": model_part, "raw": message, "query": query})
    raise SQLError(query, message, code if code is not None else 0) from exc


# -----------------------
# Async context manager to DRY error handling in Database
# -----------------------
@asynccontextmanager
async def sql_error_handler(query: str, dialect_name: str | None = None, model_name: str | None = None):
    """
    Usage:
        async with sql_error_handler(query, db.get_driver_name(), type(obj).__name__):
            await conn.exec_driver_sql(query)
    Driver errors are re-raised as DuplicateKeyError / SQLError carrying the query.
    Transaction handling stays with the caller.
    """
    try:
        yield
    except DBAPIError as exc:
        raise_mapped_sql_error(exc, query, dialect_name, model_name)
