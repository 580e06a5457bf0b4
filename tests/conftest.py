"""Shared fakes for llm_core tests."""

from __future__ import annotations

import asyncio
from typing import Callable, Sequence, Union

import pytest

from llm_core.errors import BackendInitError, BackendRequestError
from llm_core.language import LanguageGuard
from llm_core.llm_adapter.base import BackendAdapter
from llm_core.llm_adapter.cache import ResponseCache
from llm_core.llm_adapter.models import (
    BackendKind,
    Completion,
    CompletionOptions,
    ModelConfig,
)
from llm_core.llm_adapter.registry import BackendRegistry
from llm_core.llm_adapter.stores import CacheStore, MemoryCacheStore
from llm_core.manager import ModelManager
from llm_core.observability.tracker import MetricsTracker
from llm_core.retry import RetryOptions, RetryPolicy

Outcome = Union[str, Exception]


class ScriptedAdapter(BackendAdapter):
    """Plays back a script of responses/errors; the last entry repeats."""

    def __init__(
        self,
        script: Sequence[Outcome] = ("ok",),
        init_error: Exception | None = None,
    ) -> None:
        self._script = list(script)
        self._init_error = init_error
        self.config: ModelConfig | None = None
        self.prompts: list[str] = []
        self.options: list[CompletionOptions] = []
        self.closed = False
        self.release: asyncio.Event | None = None

    async def initialize(self, config: ModelConfig) -> None:
        if self._init_error is not None:
            raise self._init_error
        self.config = config

    async def generate_completion(
        self, prompt: str, options: CompletionOptions
    ) -> Completion:
        self.prompts.append(prompt)
        self.options.append(options)
        if self.release is not None:
            await self.release.wait()
        outcome = self._script.pop(0) if len(self._script) > 1 else self._script[0]
        if isinstance(outcome, Exception):
            raise outcome
        return Completion(
            content=outcome,
            model=self.config.backend_model if self.config else "scripted",
            prompt_tokens=2,
            completion_tokens=3,
            total_tokens=5,
        )

    def is_connected(self) -> bool:
        return self.config is not None and not self.closed

    async def close(self) -> None:
        self.closed = True

    @property
    def call_count(self) -> int:
        return len(self.prompts)


class TaggedDetector:
    """Detects 'xx: ...' prefixes; everything else is English."""

    def detect(self, text: str) -> str | None:
        if not text.strip():
            return None
        head, sep, _ = text.partition(":")
        if sep and len(head) == 2 and head.isalpha():
            return head.lower()
        return "en"


class FailingStore(MemoryCacheStore):
    async def write(self, key: str, value: str) -> None:
        raise OSError("disk full")


class ManualClock:
    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def fake_sleep(sleeps: list[float]) -> Callable[[float], "asyncio.Future[None]"]:
    async def _sleep(delay: float) -> None:
        sleeps.append(delay)

    return _sleep


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(start=1_000.0)


@pytest.fixture
def make_manager(fake_sleep):
    """Build a ModelManager around given adapters (one per backend kind)."""

    def _build(
        adapters: dict[BackendKind, Callable[[], BackendAdapter]] | None = None,
        store: CacheStore | None = None,
        retries: int = 3,
        default_language: str = "en",
    ) -> ModelManager:
        registry = BackendRegistry()
        for kind, factory in (adapters or {}).items():
            registry.register(kind, factory)
        return ModelManager(
            registry=registry,
            cache=ResponseCache(store or MemoryCacheStore()),
            metrics=MetricsTracker(),
            language_guard=LanguageGuard(TaggedDetector(), default_language),
            retry_policy=RetryPolicy(RetryOptions(retries=retries), sleep=fake_sleep),
        )

    return _build


def model(name: str, kind: BackendKind = BackendKind.OLLAMA, **params) -> ModelConfig:
    return ModelConfig(
        name=name,
        backend_kind=kind,
        endpoint="http://backend.test",
        parameters=params,
    )


def transient(message: str = "connection reset") -> BackendRequestError:
    return BackendRequestError(message, status_code=503)


def rejected(message: str = "bad model") -> BackendInitError:
    return BackendInitError(message)
