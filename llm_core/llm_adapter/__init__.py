from llm_core.llm_adapter.base import BackendAdapter
from llm_core.llm_adapter.cache import ResponseCache
from llm_core.llm_adapter.lmstudio_provider import LMStudioProvider
from llm_core.llm_adapter.mock_provider import MockProvider
from llm_core.llm_adapter.models import (
    BackendKind,
    Completion,
    CompletionOptions,
    ModelConfig,
)
from llm_core.llm_adapter.ollama_provider import OllamaProvider
from llm_core.llm_adapter.registry import BackendRegistry, default_backend_registry
from llm_core.llm_adapter.stores import (
    CacheStore,
    FileCacheStore,
    MemoryCacheStore,
    RedisCacheStore,
)

__all__ = [
    "BackendAdapter",
    "BackendKind",
    "BackendRegistry",
    "CacheStore",
    "Completion",
    "CompletionOptions",
    "FileCacheStore",
    "LMStudioProvider",
    "MemoryCacheStore",
    "MockProvider",
    "ModelConfig",
    "OllamaProvider",
    "RedisCacheStore",
    "ResponseCache",
    "default_backend_registry",
]
