"""
Logging builder: build and apply a dictConfig logging configuration from Settings.

The library itself only creates module loggers (`logging.getLogger(__name__)`) and
never configures logging. Applications, and the `tablemap` command line, call
`setup_logging(settings)` once at startup.

Settings used:
 - LOG_LEVEL, LOG_FORMAT ("json" | "text"), ENV
 - LOG_TO_STDOUT: console only; otherwise LOG_DIR receives rotating files
 - LOG_MAX_BYTES, LOG_BACKUP_COUNT: rotation of those files
 - ENABLE_SQL_LOGGING: let SQLAlchemy's engine log every statement at DEBUG
"""

from __future__ import annotations

from pathlib import Path
import logging
import logging.config

from tablemap.config.settings import Settings
from tablemap.utils.logging import get_project_name

from .formatters import JsonFormatter, ColorFormatter
from .filters import ConnectionNameFilter, RedactFilter
from .handlers import (
    get_console_handler,
    get_file_handler,
    get_error_file_handler,
)


def make_dict_config(settings: Settings) -> dict:
    """
    Build the dictConfig mapping for `settings`.

    The returned mapping includes:
      - formatters: "standard" (colored in text mode) and "json"
      - filters: "connection", "redact"
      - handlers: console, plus file/error_file when LOG_TO_STDOUT is off and LOG_DIR is set
      - loggers: root, tablemap, sqlalchemy.engine
    """
    formatters = {
        "standard": {
            "()": ColorFormatter if settings.LOG_FORMAT == "text" else logging.Formatter,
            "format": "%(asctime)s | %(levelname)s | %(name)s | %(connection)s | %(message)s",
        },
        "json": {
            "()": JsonFormatter,
            "env": settings.ENV,
            "service": get_project_name(default="tablemap"),
        },
    }

    filters = {
        "connection": {"()": ConnectionNameFilter},
        "redact": {"()": RedactFilter},
    }

    handlers: dict[str, dict] = {"console": get_console_handler(settings)}

    if (not settings.LOG_TO_STDOUT) and settings.LOG_DIR:
        handlers["file"] = get_file_handler(settings)
        handlers["error_file"] = get_error_file_handler(settings)

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": formatters,
        "filters": filters,
        "handlers": handlers,
        "loggers": {
            "": {
                "handlers": list(handlers.keys()),
                "level": settings.LOG_LEVEL,
                "propagate": True,
            },
            "tablemap": {
                "level": settings.LOG_LEVEL,
                "propagate": True,
            },
            # statements contain the literal values, including the data being written
            "sqlalchemy.engine": {
                "level": "INFO" if settings.ENABLE_SQL_LOGGING else "WARNING",
                "handlers": ["console"],
                "propagate": False,
            },
        },
    }


def setup_logging(settings: Settings) -> None:
    """
    Apply make_dict_config(settings), creating LOG_DIR first when files are written.
    """
    if (not settings.LOG_TO_STDOUT) and settings.LOG_DIR:
        Path(settings.LOG_DIR).mkdir(parents=True, exist_ok=True)

    logging.config.dictConfig(make_dict_config(settings))

    # keeps %(connection)s safe for handlers added later by the application
    logging.getLogger().addFilter(ConnectionNameFilter())
