"""Structured JSON logging for the conversation flow."""

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any, TextIO

from shared.config import get_settings

# Flow context passed through `extra=` by the engine
EXTRA_FIELDS = (
    "patient_id",
    "business_type",
    "conversation_state",
    "next_state",
)


class JSONFormatter(logging.Formatter):
    """
    One JSON object per log line.

    Keys: timestamp (ISO 8601, UTC), level, logger, message, the flow context
    fields present on the record, and exception when exc_info is set.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log_data.update(
            {name: getattr(record, name) for name in EXTRA_FIELDS if hasattr(record, name)}
        )
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Accents unescaped
        return json.dumps(log_data, ensure_ascii=False, default=str)


def configure_logging(level: str | None = None, stream: TextIO | None = None) -> None:
    """
    Route all logging through a single JSON handler on the root logger.

    Args:
        level: Level name; defaults to settings.LOG_LEVEL. Unknown names fall
            back to INFO.
        stream: Output stream (default: stderr)
    """
    level_name = (level or get_settings().LOG_LEVEL).upper()
    log_level = getattr(logging, level_name, None)
    if not isinstance(log_level, int):
        log_level = logging.INFO

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(log_level)
    handler.setFormatter(JSONFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(log_level)
    root_logger.addHandler(handler)

    root_logger.info(f"Logging configured: level={logging.getLevelName(log_level)}, format=JSON")
