from enum import IntEnum


# https://www.sqlite.org/rescode.html
class SqliteErrorCodes(IntEnum):
    CONSTRAINT = 19
    CONSTRAINT_NOTNULL = 1299
    CONSTRAINT_PRIMARYKEY = 1555
    CONSTRAINT_UNIQUE = 2067
    CONSTRAINT_FOREIGNKEY = 787
    CONSTRAINT_CHECK = 275


def error_code(orig) -> int | None:
    # sqlite3 exposes the extended result code since Python 3.11
    return getattr(orig, "sqlite_errorcode", None)
