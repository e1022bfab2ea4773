from enum import Enum


# https://www.postgresql.org/docs/current/errcodes-appendix.html
class PostgresErrorCodes(str, Enum):
    UNIQUE_VIOLATION = "23505"
    NOT_NULL_VIOLATION = "23502"
    FOREIGN_KEY_VIOLATION = "23503"
    CHECK_VIOLATION = "23514"


def error_code(orig) -> str | None:
    # psycopg exposes pgcode, asyncpg (through SQLAlchemy's adapter) sqlstate
    return getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
