"""
Resilience layer between a caller and interchangeable local LLM backends.

Typical use:

    manager = build_model_manager()
    await manager.initialize()
    manager.add_model(ModelConfig(name="llama3", backend_kind=BackendKind.OLLAMA))
    await manager.switch_model("llama3")
    text = await manager.request_completion("Explain closures", "fr")
"""

from llm_core.config import ManagerConfig
from llm_core.errors import (
    BackendInitError,
    BackendRequestError,
    CacheWriteError,
    CompletionFailedError,
    ConfigurationError,
    DuplicateModelError,
    LLMCoreError,
    NoActiveModelError,
    OfflineCacheMissError,
    UnknownBackendError,
    UnknownModelError,
)
from llm_core.factory import build_model_manager
from llm_core.language import LanguageGuard
from llm_core.llm_adapter import BackendKind, CompletionOptions, ModelConfig
from llm_core.manager import ModelManager
from llm_core.observability.models import ProviderMetrics
from llm_core.observability.tracker import MetricsTracker
from llm_core.retry import RetryOptions, RetryPolicy

__all__ = [
    "BackendInitError",
    "BackendKind",
    "BackendRequestError",
    "CacheWriteError",
    "CompletionFailedError",
    "CompletionOptions",
    "ConfigurationError",
    "DuplicateModelError",
    "LLMCoreError",
    "LanguageGuard",
    "ManagerConfig",
    "MetricsTracker",
    "ModelConfig",
    "ModelManager",
    "NoActiveModelError",
    "OfflineCacheMissError",
    "ProviderMetrics",
    "RetryOptions",
    "RetryPolicy",
    "UnknownBackendError",
    "UnknownModelError",
    "build_model_manager",
]
