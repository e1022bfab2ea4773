"""
Logging filters

ConnectionNameFilter stamps every LogRecord with the name of the Database
connection that produced it, so that the statements of two handles running in the
same program can be told apart in the logs.

The name lives in a ContextVar: Database sets it around each statement it runs,
and the value follows the statement across `await` points without leaking into
other tasks. Formatters can reference `%(connection)s` safely: records logged
outside of a statement get the sentinel "-".

RedactFilter masks LogRecord attributes whose name looks like a credential
(passwords, DSNs with embedded secrets, tokens) before any handler formats them.
"""

import logging
from logging import LogRecord
import contextvars

# Name of the Database handle executing in the current context, None outside a statement.
_connection_name_ctx: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "connection_name", default=None
)


def set_connection_name(connection_name: str | None):
    """
    Set the connection name in the current context.

    Returns:
        token: contextvars.Token to pass to reset_connection_name(token)
    """
    return _connection_name_ctx.set(connection_name)


def reset_connection_name(token):
    _connection_name_ctx.reset(token)


def get_connection_name() -> str | None:
    return _connection_name_ctx.get()


class ConnectionNameFilter(logging.Filter):
    """
    Guarantees every LogRecord has a `connection` attribute.

    Priority:
      - `extra={"connection": ...}` given at the logging call,
      - the contextvar set by Database while a statement runs,
      - "-".

    The default connection is named "" and is rendered as "default".
    """

    def filter(self, record: LogRecord) -> bool:
        explicit = getattr(record, "connection", None)
        if explicit is None:
            explicit = get_connection_name()

        if explicit is None:
            record.connection = "-"
        else:
            record.connection = explicit or "default"
        return True


class RedactFilter(logging.Filter):
    SENSITIVE = {"password", "passwd", "secret", "token", "dsn_password", "authorization"}

    def filter(self, record: LogRecord) -> bool:
        for key in list(record.__dict__.keys()):
            if key.lower() in self.SENSITIVE:
                record.__dict__[key] = "***REDACTED***"
        return True


__all__ = [
    "ConnectionNameFilter",
    "RedactFilter",
    "set_connection_name",
    "reset_connection_name",
    "get_connection_name",
]
