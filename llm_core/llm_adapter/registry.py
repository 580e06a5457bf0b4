"""
Backend registry -- maps a BackendKind to the factory that builds its adapter.

Supported kinds:

  ollama    Native Ollama API (http://localhost:11434)
  lmstudio  LM Studio OpenAI-compatible server (http://localhost:1234)
  mock      Built-in deterministic mock, no server needed

The registry is an ordinary object built once at startup and handed to
ModelManager, so tests can run with isolated instances and fake adapters.
A fresh adapter is built on every switch_model().
"""

from __future__ import annotations

import threading
from typing import Callable, Dict, Optional

from llm_core.errors import UnknownBackendError
from llm_core.llm_adapter.base import BackendAdapter
from llm_core.llm_adapter.lmstudio_provider import LMStudioProvider
from llm_core.llm_adapter.mock_provider import MockProvider
from llm_core.llm_adapter.models import BackendKind
from llm_core.llm_adapter.ollama_provider import OllamaProvider

AdapterFactory = Callable[[], BackendAdapter]


class BackendRegistry:

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._factories: Dict[str, AdapterFactory] = {}

    def register(self, kind: BackendKind | str, factory: AdapterFactory) -> None:
        """Register or overwrite the factory for a backend kind."""
        with self._lock:
            self._factories[_kind_key(kind)] = factory

    def unregister(self, kind: BackendKind | str) -> None:
        with self._lock:
            self._factories.pop(_kind_key(kind), None)

    def get(self, kind: BackendKind | str) -> Optional[AdapterFactory]:
        with self._lock:
            return self._factories.get(_kind_key(kind))

    def create(self, kind: BackendKind | str) -> BackendAdapter:
        """Build a new adapter for `kind`, or raise UnknownBackendError."""
        factory = self.get(kind)
        if factory is None:
            raise UnknownBackendError(_kind_key(kind))
        return factory()

    def kinds(self) -> list[str]:
        with self._lock:
            return list(self._factories)


def default_backend_registry(request_timeout: float = 120.0) -> BackendRegistry:
    """Registry with every built-in backend kind."""
    registry = BackendRegistry()
    registry.register(
        BackendKind.OLLAMA, lambda: OllamaProvider(timeout=request_timeout)
    )
    registry.register(
        BackendKind.LMSTUDIO, lambda: LMStudioProvider(timeout=request_timeout)
    )
    registry.register(BackendKind.MOCK, MockProvider)
    return registry


def _kind_key(kind: BackendKind | str) -> str:
    return kind.value if isinstance(kind, BackendKind) else str(kind).lower()
