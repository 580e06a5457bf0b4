"""
Error taxonomy for the model management layer.

Configuration errors are surfaced immediately and never retried.
Transient backend errors are retried by RetryPolicy and, once retries are
exhausted, surfaced wrapped in CompletionFailedError.
"""

from __future__ import annotations


class LLMCoreError(Exception):
    """Base class for every error raised by llm_core."""


class ConfigurationError(LLMCoreError):
    """Caller asked for something the registry does not allow."""


class DuplicateModelError(ConfigurationError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Model '{name}' is already registered")
        self.name = name


class UnknownModelError(ConfigurationError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown model '{name}'")
        self.name = name


class UnknownBackendError(ConfigurationError):
    def __init__(self, kind: str) -> None:
        super().__init__(f"No backend adapter registered for kind '{kind}'")
        self.kind = kind


class NoActiveModelError(ConfigurationError):
    def __init__(self) -> None:
        super().__init__("No model is active. Call switch_model() first.")


class BackendInitError(LLMCoreError):
    """Backend rejected its configuration. Non-transient."""


class BackendRequestError(LLMCoreError):
    """
    Failure talking to a backend.

    Transport errors, timeouts, 429 and 5xx are transient and retried. Any
    other HTTP status (404 unknown model, 400 bad options, ...) is permanent
    and surfaces after a single attempt.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    @property
    def transient(self) -> bool:
        code = self.status_code
        return code is None or code == 429 or code >= 500


class CompletionFailedError(LLMCoreError):
    """A completion exhausted its retries or hit a permanent backend error."""

    def __init__(self, model_name: str, last_error: BaseException) -> None:
        super().__init__(
            f"Completion on model '{model_name}' failed: {last_error}"
        )
        self.model_name = model_name
        self.last_error = last_error


class CacheWriteError(LLMCoreError):
    """Durable cache write failed. The in-memory tier already holds the value."""


class OfflineCacheMissError(LLMCoreError):
    """Offline mode is on and the response cache has no entry for the request."""

    def __init__(self, model_name: str) -> None:
        super().__init__(
            f"Offline mode: no cached response for this request on model '{model_name}'"
        )
        self.model_name = model_name
