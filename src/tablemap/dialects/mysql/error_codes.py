from enum import IntEnum


# https://dev.mysql.com/doc/mysql-errors/8.0/en/server-error-reference.html
class MysqlErrorCodes(IntEnum):
    DUP_ENTRY = 1062
    DUP_KEY = 1022
    BAD_NULL_ERROR = 1048
    NO_REFERENCED_ROW = 1452
    ROW_IS_REFERENCED = 1451
    CHECK_CONSTRAINT_VIOLATED = 3819


def error_code(orig) -> int | None:
    # pymysql / aiomysql errors carry (errno, message) as args
    args = getattr(orig, "args", None) or ()
    if args and isinstance(args[0], int):
        return args[0]
    return None
