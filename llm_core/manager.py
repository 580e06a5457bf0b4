"""
ModelManager -- single source of truth for which backend is active.

Owns the ModelConfig registry and the active adapter, and composes
RetryPolicy, MetricsTracker, ResponseCache and LanguageGuard into
request_completion():

  cache hit   -> return cached text (no backend call, no metrics)
  cache miss  -> OfflineCacheMissError when offline mode is on
              -> adapter.generate_completion() through RetryPolicy, every
                 attempt timed and recorded in MetricsTracker
              -> one corrective round-trip if the language is wrong
              -> write accepted text to the cache, return it

Requests snapshot the active adapter when they start, so switch_model()
never tears down an in-flight request. A replaced adapter is retired and
closed as soon as its last in-flight request finishes (immediately if it
has none).
"""

from __future__ import annotations

import logging
import threading
import time
from collections import Counter
from dataclasses import dataclass
from typing import Any, Callable, Mapping

from llm_core.contracts.events import ModelListener, model_switched
from llm_core.errors import (
    CacheWriteError,
    CompletionFailedError,
    DuplicateModelError,
    NoActiveModelError,
    OfflineCacheMissError,
    UnknownModelError,
)
from llm_core.language import LanguageGuard
from llm_core.llm_adapter.base import BackendAdapter
from llm_core.llm_adapter.cache import ResponseCache
from llm_core.llm_adapter.models import Completion, CompletionOptions, ModelConfig
from llm_core.llm_adapter.registry import BackendRegistry
from llm_core.observability.metrics import completion_latency, llm_tokens
from llm_core.observability.tracker import MetricsTracker
from llm_core.retry import RetryPolicy

logger = logging.getLogger(__name__)

# Corrective round-trips allowed when a response is in the wrong language.
# The last correction is accepted whatever its language.
MAX_LANGUAGE_CORRECTIONS = 1


@dataclass(frozen=True)
class _ActiveModel:
    config: ModelConfig
    adapter: BackendAdapter

    @property
    def name(self) -> str:
        return self.config.name


class ModelManager:

    def __init__(
        self,
        registry: BackendRegistry,
        cache: ResponseCache,
        metrics: MetricsTracker,
        language_guard: LanguageGuard,
        retry_policy: RetryPolicy,
        offline: bool = False,
    ) -> None:
        self._registry = registry
        self._cache = cache
        self._metrics = metrics
        self._guard = language_guard
        self._retry = retry_policy
        self._offline = offline
        self._lock = threading.Lock()
        self._models: dict[str, ModelConfig] = {}
        self._active: _ActiveModel | None = None
        # Replaced adapters still serving requests
        self._retired: list[BackendAdapter] = []
        self._in_flight: Counter[BackendAdapter] = Counter()
        self._listeners: list[ModelListener] = []

    @property
    def metrics(self) -> MetricsTracker:
        return self._metrics

    @property
    def cache(self) -> ResponseCache:
        return self._cache

    @property
    def offline(self) -> bool:
        return self._offline

    @property
    def retired_count(self) -> int:
        """Replaced adapters still finishing in-flight requests."""
        with self._lock:
            return len(self._retired)

    def set_offline_mode(self, enabled: bool) -> None:
        """Serve from the cache only; misses raise OfflineCacheMissError."""
        self._offline = enabled
        logger.info("Offline mode %s", "enabled" if enabled else "disabled")

    async def initialize(self) -> None:
        """Warm the response cache from its durable tier."""
        await self._cache.initialize()

    def subscribe(self, listener: ModelListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    # ------------------------------------------------------------------
    # Model registry
    # ------------------------------------------------------------------

    def add_model(self, config: ModelConfig) -> None:
        """Register a model. Names are unique; re-adding one is an error."""
        with self._lock:
            if config.name in self._models:
                raise DuplicateModelError(config.name)
            self._models[config.name] = config
        logger.info(
            "Registered model %s (backend=%s)",
            config.name,
            config.backend_kind.value,
        )

    def get_available_models(self) -> list[str]:
        with self._lock:
            return list(self._models)

    def get_model_config(self, name: str) -> ModelConfig:
        with self._lock:
            config = self._models.get(name)
        if config is None:
            raise UnknownModelError(name)
        return config

    async def switch_model(self, name: str) -> None:
        """
        Make `name` the active model.

        Any failure (unknown name, unknown backend kind, BackendInitError)
        leaves the previously active model in place.
        """
        config = self.get_model_config(name)
        adapter = self._registry.create(config.backend_kind)
        await adapter.initialize(config)

        idle: BackendAdapter | None = None
        with self._lock:
            previous = self._active
            self._active = _ActiveModel(config=config, adapter=adapter)
            if previous is not None:
                if self._in_flight[previous.adapter]:
                    self._retired.append(previous.adapter)
                else:
                    idle = previous.adapter

        if idle is not None:
            await idle.close()

        if self._metrics.get_metrics(name) is None:
            self._metrics.initialize_provider(name)

        previous_name = previous.name if previous else None
        logger.info(
            "Switched active model %s -> %s",
            previous_name or "<none>",
            name,
            extra={"_extra": {"backend": config.backend_kind.value}},
        )
        self._notify(model_switched(name, config.backend_kind.value, previous_name))

    def get_active_model(self) -> BackendAdapter:
        return self._require_active().adapter

    def get_active_model_name(self) -> str | None:
        active = self._active
        return active.name if active else None

    # ------------------------------------------------------------------
    # Completions
    # ------------------------------------------------------------------

    async def request_completion(
        self,
        prompt: str,
        expected_language: str | None = None,
        options: CompletionOptions | Mapping[str, Any] | None = None,
    ) -> str:
        opts = _coerce_options(options)
        active = self._acquire()
        try:
            return await self._complete(active, prompt, expected_language, opts)
        finally:
            await self._release(active)

    async def _complete(
        self,
        active: _ActiveModel,
        prompt: str,
        expected_language: str | None,
        opts: CompletionOptions,
    ) -> str:
        cache_key = {
            "model": active.name,
            "prompt": prompt,
            "options": opts.cache_fields(),
            "language": expected_language,
        }

        cached = self._cache.get(cache_key)
        if cached is not None:
            return cached
        if self._offline:
            raise OfflineCacheMissError(active.name)

        outgoing = prompt
        if expected_language and not self._guard.is_default(expected_language):
            outgoing = self._guard.enhance_prompt(prompt, expected_language)

        try:
            completion = await self._generate(active, outgoing, opts)
        except Exception as exc:
            raise CompletionFailedError(active.name, exc) from exc

        text = completion.content
        if expected_language:
            text = await self._enforce_language(
                active, prompt, text, expected_language, opts
            )

        try:
            await self._cache.set(cache_key, text)
        except CacheWriteError:
            logger.warning(
                "Response cached in memory only for model %s",
                active.name,
                exc_info=True,
            )
        return text

    async def _enforce_language(
        self,
        active: _ActiveModel,
        prompt: str,
        text: str,
        expected_language: str,
        options: CompletionOptions,
    ) -> str:
        for _ in range(MAX_LANGUAGE_CORRECTIONS):
            if self._guard.is_expected_language(text, expected_language):
                break
            correction = self._guard.build_correction_prompt(
                prompt, text, expected_language
            )
            try:
                completion = await self._generate(active, correction, options)
            except Exception as exc:
                logger.warning(
                    "Language correction on %s failed, keeping first response: %s",
                    active.name,
                    exc,
                )
                break
            text = completion.content
        return text

    async def _generate(
        self,
        active: _ActiveModel,
        prompt: str,
        options: CompletionOptions,
    ) -> Completion:
        name = active.name

        async def _attempt() -> Completion:
            started = time.monotonic()
            try:
                completion = await active.adapter.generate_completion(prompt, options)
            except Exception as exc:
                self._metrics.record_error(name, exc)
                raise
            elapsed = time.monotonic() - started
            completion_latency.labels(model=name).observe(elapsed)
            llm_tokens.labels(model=name, direction="prompt").inc(
                completion.prompt_tokens
            )
            llm_tokens.labels(model=name, direction="completion").inc(
                completion.completion_tokens
            )
            self._metrics.record_success(
                name, elapsed * 1000.0, completion.total_tokens
            )
            return completion

        return await self._retry.execute(_attempt)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _acquire(self) -> _ActiveModel:
        with self._lock:
            active = self._require_active()
            self._in_flight[active.adapter] += 1
        return active

    async def _release(self, active: _ActiveModel) -> None:
        adapter = active.adapter
        with self._lock:
            self._in_flight[adapter] -= 1
            if self._in_flight[adapter] > 0:
                return
            del self._in_flight[adapter]
            if adapter not in self._retired:
                return
            self._retired.remove(adapter)
        logger.debug("Closing drained adapter for %s", active.name)
        await adapter.close()

    async def aclose(self) -> None:
        with self._lock:
            adapters = list(self._retired)
            if self._active is not None:
                adapters.append(self._active.adapter)
            self._retired.clear()
            self._active = None
        for adapter in adapters:
            await adapter.close()
        await self._cache.close()

    def _require_active(self) -> _ActiveModel:
        active = self._active
        if active is None:
            raise NoActiveModelError()
        return active

    def _notify(self, event) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Model listener failed for %s", event.model_name)


def _coerce_options(
    options: CompletionOptions | Mapping[str, Any] | None,
) -> CompletionOptions:
    if options is None:
        return CompletionOptions()
    if isinstance(options, CompletionOptions):
        return options
    return CompletionOptions.model_validate(dict(options))
