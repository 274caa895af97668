"""Logging setup for the auth service.

Two output styles: JSON lines for deployed environments and a compact text
format for local development. Both pass through ``RedactTokensFilter`` so a
JWT that ends up in a message (an exception string, a header dump) is never
written out verbatim.
"""

import json
import logging
import re
import sys
from typing import Literal

LOGGER_NAMESPACE = "football_auth"

DEV_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"

# header.payload.signature, each part base64url
_JWT_PATTERN = re.compile(r"eyJ[\w-]+\.[\w-]+\.[\w-]+")

_NOISY_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "aiosqlite")


class RedactTokensFilter(logging.Filter):
    """Replace anything shaped like a JWT with a short marker."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        if "eyJ" in message:
            record.msg = _JWT_PATTERN.sub("<redacted-token>", message)
            record.args = None
        return True


class JSONFormatter(logging.Formatter):
    def __init__(self):
        super().__init__(datefmt="%Y-%m-%dT%H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def setup_logging(
    level: str = "INFO",
    format_type: Literal["structured", "dev"] = "dev",
) -> None:
    """Install a single stdout handler on the root logger.

    Args:
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        format_type: 'structured' for JSON lines, 'dev' for plain text
    """
    numeric_level = getattr(logging, level.upper())

    handler = logging.StreamHandler(sys.stdout)
    if format_type == "structured":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(DEV_FORMAT, datefmt="%H:%M:%S"))
    handler.addFilter(RedactTokensFilter())

    logging.root.handlers = [handler]
    logging.root.setLevel(numeric_level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.DEBUG if numeric_level == logging.DEBUG else logging.WARNING
    )

    logging.getLogger(LOGGER_NAMESPACE).info(f"Logging ready ({format_type}, {level.upper()})")


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"{LOGGER_NAMESPACE}.{name}")
