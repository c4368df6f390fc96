from __future__ import annotations

import json
import logging
import os
import sys
from dataclasses import dataclass
from logging.handlers import RotatingFileHandler
from typing import Any, Optional


@dataclass(frozen=True)
class LoggingOptions:
    level: str = "WARNING"
    format: str = "text"  # text | json
    file: Optional[str] = None


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        context = getattr(record, "context", None)
        if context is not None:
            payload["context"] = context
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def _normalize_level(level: str) -> str:
    return level.strip().upper()


def _normalize_format(fmt: str) -> str:
    lowered = fmt.strip().lower()
    if lowered in {"text", "json"}:
        return lowered
    raise ValueError(f"Invalid log format: {fmt}")


def load_logging_options_from_env(
    base: Optional[LoggingOptions] = None,
    prefix: str = "MOUNTAIN",
) -> LoggingOptions:
    """Load logging options from environment.

    Env vars:
        - MOUNTAIN_LOG_LEVEL
        - MOUNTAIN_LOG_FORMAT
        - MOUNTAIN_LOG_FILE

    Unset variables keep the value from ``base`` (defaults if omitted).
    """
    base = base or LoggingOptions()
    level = os.getenv(f"{prefix}_LOG_LEVEL", base.level)
    fmt = os.getenv(f"{prefix}_LOG_FORMAT", base.format)
    file = os.getenv(f"{prefix}_LOG_FILE", base.file)
    return LoggingOptions(level=level, format=fmt, file=file)


def _make_formatter(fmt: str, with_time: bool) -> logging.Formatter:
    if _normalize_format(fmt) == "json":
        return JSONFormatter()
    if with_time:
        return logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
    return logging.Formatter("%(levelname)s %(name)s: %(message)s")


def configure_logging(options: LoggingOptions) -> None:
    """Configure logging for mountain.

    Preconditions:
        - options.level is a valid logging level name
        - options.format in {"text", "json"}

    Postconditions:
        - Logger hierarchy under "mountain" is configured
        - Logs emit to stderr (and optional rotating file)
    """
    logger = logging.getLogger("mountain")
    logger.setLevel(getattr(logging, _normalize_level(options.level), logging.WARNING))

    logger.handlers.clear()
    logger.propagate = False

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(_make_formatter(options.format, with_time=False))
    logger.addHandler(handler)

    if options.file:
        file_handler = RotatingFileHandler(
            options.file,
            maxBytes=10 * 1024 * 1024,
            backupCount=3,
        )
        file_handler.setFormatter(_make_formatter(options.format, with_time=True))
        logger.addHandler(file_handler)
