"""Logging configuration helpers."""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

DEFAULT_PREVIEW_CHARS = 2048

TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class JsonFormatter(logging.Formatter):
    """Emit one JSON object per record, merging ``extra`` fields."""

    _standard_attrs = set(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}

    def format(self, record: logging.LogRecord) -> str:  # noqa: A003 - logging interface name
        payload: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack_info"] = record.stack_info

        extras = {key: value for key, value in record.__dict__.items() if key not in self._standard_attrs}
        payload.update(extras)
        return json.dumps(payload, default=str)


def configure_logging(default_level: str = "INFO", fmt: str = "json", stream: Optional[Any] = None) -> None:
    """Configure the root logger; ``LOG_LEVEL`` and ``LOG_FORMAT`` override the arguments."""

    level_name = os.getenv("LOG_LEVEL", default_level)
    level = getattr(logging, level_name.upper(), logging.INFO)
    fmt = os.getenv("LOG_FORMAT", fmt).lower()

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    handler = logging.StreamHandler(stream=stream or sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(JsonFormatter() if fmt == "json" else logging.Formatter(TEXT_FORMAT))
    root.addHandler(handler)


def preview(data: Union[str, bytes, bytearray], limit: int = DEFAULT_PREVIEW_CHARS) -> str:
    """Render frame or payload data for a log line.

    Bytes are shown as text when they are valid UTF-8, otherwise as a bytes
    literal. Output longer than ``limit`` is cut and marked.
    """

    if isinstance(data, (bytes, bytearray)):
        try:
            text = bytes(data).decode("utf-8")
        except UnicodeDecodeError:
            text = repr(bytes(data))
    else:
        text = data
    if len(text) > limit:
        return f"{text[:limit]}... ({len(text) - limit} more)"
    return text


__all__ = ["JsonFormatter", "configure_logging", "preview"]
