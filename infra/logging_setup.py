"""Process-wide logging configuration."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class JSONFormatter(logging.Formatter):
    """One JSON object per line, for log aggregation."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def resolve_level(level: str) -> int:
    normalized = (level or "info").strip().upper()
    if normalized == "WARN":
        normalized = "WARNING"
    value = logging.getLevelName(normalized)
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level {level!r}")
    return value


def configure_logging(level: str = "info", file: Optional[str] = None, json_format: bool = False) -> None:
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if file:
        log_path = Path(file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path))

    formatter = JSONFormatter() if json_format else logging.Formatter(LOG_FORMAT)
    for handler in handlers:
        handler.setFormatter(formatter)

    logging.basicConfig(level=resolve_level(level), handlers=handlers, force=True)
