"""
Custom logging formatters.

  - JsonFormatter: one JSON object per line, for log collectors. Non-serializable
    extras are converted to strings, never raised.

  - ColorFormatter: compact ANSI-colored lines for a developer terminal.

builder.py picks one of them from Settings.LOG_FORMAT.
"""

import json
import logging
from typing import Any
from logging import LogRecord
from tablemap.utils.logging import get_project_version

PROJECT_VERSION = get_project_version()

# LogRecord attributes that are not user extras
_RESERVED_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}


class JsonFormatter(logging.Formatter):
    """
    Structured JSON formatter.

    Fields: timestamp, level, logger, message, connection, service, env, version,
    then every `extra={...}` key given at the logging call, then exc_info/stack_info
    when present.
    """

    def __init__(self, *, env: str | None = None, service: str = "tablemap", datefmt: str | None = None):
        super().__init__(datefmt=datefmt)
        self.env = env
        self.service = service

    def format(self, record: LogRecord) -> str:
        log_record: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "connection": getattr(record, "connection", "-"),
            "service": self.service,
            "env": self.env,
            "version": PROJECT_VERSION,
        }

        extras = {
            k: v
            for k, v in record.__dict__.items()
            if k not in log_record and k not in _RESERVED_ATTRS and not k.startswith("_")
        }
        for k, v in extras.items():
            try:
                json.dumps(v)
                log_record[k] = v
            except (TypeError, ValueError):
                log_record[k] = str(v)

        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            log_record["stack_info"] = self.formatStack(record.stack_info)

        return json.dumps(log_record, ensure_ascii=False, default=str)


class ColorFormatter(logging.Formatter):
    """
    Development-friendly colored formatter:

        TIMESTAMP | LEVEL | LOGGER | CONNECTION | MESSAGE key=value ...

    Only the level is colored. Extras are appended as key=value pairs so that the
    event names logged by the library stay readable in a terminal.
    """

    COLOR_CODES = {
        "DEBUG": "\033[1;36;47m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[1;41m",
        "RESET": "\033[0m",
    }

    def __init__(self, fmt: str | None = None, datefmt: str | None = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)

    def format(self, record: LogRecord) -> str:
        color = self.COLOR_CODES.get(record.levelname, "")
        reset = self.COLOR_CODES["RESET"]
        timestamp = self.formatTime(record, self.datefmt)

        base = (
            f"{timestamp} | {color}{record.levelname:<10}{reset} | "
            f"{record.name:<30} | "
            f"{getattr(record, 'connection', '-'):<10} | "
            f"{record.getMessage()}"
        )

        extras = [
            f"{k}={v}"
            for k, v in record.__dict__.items()
            if k not in _RESERVED_ATTRS and k != "connection" and not k.startswith("_")
        ]
        if extras:
            base = f"{base} {' '.join(extras)}"

        if record.exc_info:
            base = base + "\n" + self.formatException(record.exc_info)

        return base
