"""
Logging setup for the music library service.

Modules log through ``logging.getLogger(__name__)``; everything under the
``music_library`` package is routed through the handler installed here.

Usage:
    from music_library.core.logging_config import setup_logging
    setup_logging(settings.service_name)
"""

import json
import logging
import sys
from datetime import datetime, timezone

from music_library.core.config import settings

PACKAGE_LOGGER = "music_library"


class JSONFormatter(logging.Formatter):
    """One JSON object per line, for log collectors."""

    def __init__(self, service_name: str):
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "service": self.service_name,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


class ServiceFormatter(logging.Formatter):
    def __init__(self, service_name: str):
        # [music-library] 2026-01-26 19:45:00 - INFO - music_library.api.auth - Message
        super().__init__(
            fmt=f"[{service_name}] %(asctime)s - %(levelname)s - %(name)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )


def setup_logging(service_name: str, *, use_json: bool | None = None) -> logging.Logger:
    """Install a stdout handler on the package logger and return it."""
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    if use_json is None:
        use_json = settings.log_format.lower() == "json"

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(JSONFormatter(service_name) if use_json else ServiceFormatter(service_name))
    logger.addHandler(handler)
    logger.propagate = False

    silence_noisy_loggers()
    return logger


def silence_noisy_loggers():
    for name in ("httpx", "httpcore", "sqlalchemy.engine", "asyncio"):
        logging.getLogger(name).setLevel(logging.WARNING)
