from __future__ import annotations

import json
import logging
import os
from datetime import UTC, datetime
from typing import Any

from vehnt.domain.errors import StakingError
from vehnt.logging_context import get_logging_context


class JsonFormatter(logging.Formatter):
    """One JSON object per record: message, ``extra`` payload, bound context, error details."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        extras = getattr(record, "extra", None)
        if isinstance(extras, dict):
            payload.update(extras)
        payload.update(get_logging_context())

        if record.exc_info:
            _, exc_value, _ = record.exc_info
            if exc_value is not None:
                payload["error_type"] = type(exc_value).__name__
                payload["error_message"] = str(exc_value)
            if isinstance(exc_value, StakingError):
                payload["error_code"] = exc_value.code.value
            payload["traceback"] = self.formatException(record.exc_info)
        elif record.exc_text:
            payload["traceback"] = record.exc_text

        return json.dumps(payload, default=str)


def _parse_level(raw: str | int | None, default: int) -> int:
    if isinstance(raw, int):
        return raw
    if raw is None or not raw.strip():
        return default
    resolved = logging.getLevelName(raw.strip().upper())
    return resolved if isinstance(resolved, int) else default


def setup_logging(level: str | int | None = None) -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    raw_level = level if level is not None else os.getenv("LOG_LEVEL")
    resolved_level = _parse_level(raw_level, logging.INFO)
    root.setLevel(resolved_level)

    # scheduler calls go through httpx; keep its chatter below ours unless debugging
    debugging = resolved_level <= logging.DEBUG
    http_defaults = {
        "httpx": logging.DEBUG if debugging else logging.INFO,
        "httpcore": logging.DEBUG if debugging else logging.WARNING,
    }
    for name, default_level in http_defaults.items():
        env_level = _parse_level(os.getenv(f"{name.upper()}_LOG_LEVEL"), default_level)
        logging.getLogger(name).setLevel(env_level)
