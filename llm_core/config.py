from __future__ import annotations

import os
from dataclasses import dataclass

from llm_core.retry import RetryOptions


def _optional_int(name: str) -> int | None:
    raw = os.environ.get(name, "").strip()
    return int(raw) if raw else None


def _optional_float(name: str) -> float | None:
    raw = os.environ.get(name, "").strip()
    return float(raw) if raw else None


def _flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class ManagerConfig:
    cache_dir: str = ".llm_cache"
    redis_url: str | None = None
    cache_ttl_seconds: float | None = None
    cache_max_entries: int | None = None
    retry_attempts: int = 3
    retry_backoff: bool = True
    retry_initial_delay: float = 1.0
    retry_max_delay: float = 10.0
    default_language: str = "en"
    metrics_window_seconds: float = 3600.0
    request_timeout: float = 120.0
    offline: bool = False
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> ManagerConfig:
        return cls(
            cache_dir=os.environ.get("LLM_CACHE_DIR", ".llm_cache"),
            redis_url=os.environ.get("REDIS_URL") or None,
            cache_ttl_seconds=_optional_float("LLM_CACHE_TTL_SECONDS"),
            cache_max_entries=_optional_int("LLM_CACHE_MAX_ENTRIES"),
            retry_attempts=int(os.environ.get("LLM_MAX_RETRIES", "3")),
            retry_backoff=_flag("LLM_RETRY_BACKOFF", True),
            retry_initial_delay=float(os.environ.get("LLM_RETRY_INITIAL_DELAY", "1.0")),
            retry_max_delay=float(os.environ.get("LLM_RETRY_MAX_DELAY", "10.0")),
            default_language=os.environ.get("LLM_DEFAULT_LANGUAGE", "en"),
            metrics_window_seconds=float(
                os.environ.get("LLM_METRICS_WINDOW_SECONDS", "3600")
            ),
            request_timeout=float(os.environ.get("LLM_REQUEST_TIMEOUT", "120")),
            offline=_flag("LLM_OFFLINE", False),
            log_level=os.environ.get("LOG_LEVEL", "INFO"),
        )

    def retry_options(self) -> RetryOptions:
        return RetryOptions(
            retries=self.retry_attempts,
            backoff=self.retry_backoff,
            initial_delay=self.retry_initial_delay,
            max_delay=self.retry_max_delay,
        )
