"""
Composition root -- builds a fully wired ModelManager.

Reads ManagerConfig (from env by default) and assembles:

  BackendRegistry   ollama, lmstudio, mock
  ResponseCache     RedisCacheStore when REDIS_URL is set,
                    FileCacheStore under LLM_CACHE_DIR otherwise
  MetricsTracker    rolling window of LLM_METRICS_WINDOW_SECONDS,
                    mirrored into prometheus gauges
  LanguageGuard     langdetect, default language LLM_DEFAULT_LANGUAGE
  RetryPolicy       LLM_MAX_RETRIES attempts, capped exponential backoff
  offline mode      LLM_OFFLINE serves cached responses only

Nothing here is cached at module level: every call returns a new,
independent manager. Await manager.initialize() before use to warm the
cache from its durable tier.
"""

from __future__ import annotations

import logging

from llm_core.config import ManagerConfig
from llm_core.language import LanguageDetector, LanguageGuard
from llm_core.llm_adapter.cache import ResponseCache
from llm_core.llm_adapter.registry import BackendRegistry, default_backend_registry
from llm_core.llm_adapter.stores import CacheStore, FileCacheStore, RedisCacheStore
from llm_core.manager import ModelManager
from llm_core.observability.metrics import PrometheusMetricsSink
from llm_core.observability.tracker import MetricsTracker
from llm_core.retry import RetryPolicy

logger = logging.getLogger(__name__)


def build_cache_store(config: ManagerConfig) -> CacheStore:
    if config.redis_url:
        ttl = int(config.cache_ttl_seconds) if config.cache_ttl_seconds else None
        return RedisCacheStore(redis_url=config.redis_url, ttl_seconds=ttl)
    return FileCacheStore(config.cache_dir)


def build_model_manager(
    config: ManagerConfig | None = None,
    registry: BackendRegistry | None = None,
    store: CacheStore | None = None,
    detector: LanguageDetector | None = None,
) -> ModelManager:
    """
    Return a new ModelManager wired from `config`.

    Args:
        config:   Defaults to ManagerConfig.from_env().
        registry: Override the built-in backend kinds.
        store:    Override the durable cache tier.
        detector: Override langdetect.
    """
    config = config or ManagerConfig.from_env()

    cache_store = store or build_cache_store(config)
    cache = ResponseCache(
        cache_store,
        ttl_seconds=config.cache_ttl_seconds,
        max_entries=config.cache_max_entries,
    )

    metrics = MetricsTracker(window_seconds=config.metrics_window_seconds)
    metrics.subscribe(PrometheusMetricsSink())

    manager = ModelManager(
        registry=registry or default_backend_registry(config.request_timeout),
        cache=cache,
        metrics=metrics,
        language_guard=LanguageGuard(detector, config.default_language),
        retry_policy=RetryPolicy(config.retry_options()),
        offline=config.offline,
    )
    logger.info(
        "Model manager built (cache=%s, retries=%d, default_language=%s)",
        type(cache_store).__name__,
        config.retry_attempts,
        config.default_language,
    )
    return manager
