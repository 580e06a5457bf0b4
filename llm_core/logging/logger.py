"""
Structured JSON logging for processes embedding llm_core.

Each entry carries the service name, so output from several hosts
embedding the manager can be correlated. The level comes from
ManagerConfig.log_level (LOG_LEVEL). Outputs to stdout.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from llm_core.config import ManagerConfig

# Third-party loggers that chatter at INFO on every backend call
_NOISY_LOGGERS = ("httpx", "httpcore", "openai", "urllib3")


class JSONFormatter(logging.Formatter):
    """Formats log records as single-line JSON objects."""

    def __init__(self, service_name: str) -> None:
        super().__init__()
        self._service = service_name

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "service": self._service,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info and record.exc_info[1]:
            entry["exception"] = self.formatException(record.exc_info)

        extra = getattr(record, "_extra", None)
        if extra:
            entry["extra"] = extra

        return json.dumps(entry, default=str)


def setup_logging(
    service_name: str = "llm_core",
    config: ManagerConfig | None = None,
) -> logging.Logger:
    """
    Configure the root logger with JSON output to stdout.

    Call once at process startup, usually with the same ManagerConfig later
    given to build_model_manager(). Returns the service-specific logger.
    """
    config = config or ManagerConfig.from_env()
    level_name = config.log_level.upper()
    resolved = logging.getLevelName(level_name)
    if not isinstance(resolved, int):
        resolved = logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter(service_name))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(resolved)

    for noisy in _NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(max(resolved, logging.WARNING))

    logger = logging.getLogger(service_name)
    logger.info(
        "Logging initialized",
        extra={
            "_extra": {
                "level": logging.getLevelName(resolved),
                "cache": "redis" if config.redis_url else config.cache_dir,
                "retries": config.retry_attempts,
                "default_language": config.default_language,
                "offline": config.offline,
            }
        },
    )
    return logger
