"""JSON structured logging for the workout engine.

Format comes from ENGINE_LOG_FORMAT ("json" default, or "text") and the level
from ENGINE_LOG_LEVEL, both read through Config. Engine modules attach context
with ``extra=engine_extra(day=..., model=...)``; the JSON formatter copies every
``engine_*`` attribute into the emitted object.
"""

from __future__ import annotations

import json
import logging
import sys
import traceback
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .config import Config

EXTRA_PREFIX = "engine_"


def engine_extra(**fields: Any) -> dict[str, Any]:
    """Prefix context fields for ``logger.*(..., extra=...)``; None values are dropped."""
    return {f"{EXTRA_PREFIX}{key}": value for key, value in fields.items() if value is not None}


class JSONFormatter(logging.Formatter):
    """Emit log records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
        }

        if record.exc_info and record.exc_info[1] is not None:
            log_entry["exception"] = "".join(traceback.format_exception(*record.exc_info))

        for key, value in record.__dict__.items():
            if key.startswith(EXTRA_PREFIX):
                log_entry[key] = value

        return json.dumps(log_entry, default=str)


def _resolve_level(level: int | str) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.strip().upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logging(log_format: str, level: int | str = logging.INFO) -> None:
    """Configure the root logger with either JSON or plaintext output on stderr."""
    numeric_level = _resolve_level(level)
    root = logging.getLogger()
    root.setLevel(numeric_level)

    for handler in root.handlers[:]:
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(numeric_level)

    if log_format == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))

    root.addHandler(handler)


def setup_logging_from_config(config: Config) -> None:
    setup_logging(config.log_format, config.log_level)
