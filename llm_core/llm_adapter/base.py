"""Abstract base class that all backend adapters must implement."""

from __future__ import annotations

from abc import ABC, abstractmethod

from llm_core.llm_adapter.models import Completion, CompletionOptions, ModelConfig


class BackendAdapter(ABC):
    """
    Contract for LLM backends.

    Every implementation MUST:
    - Raise BackendInitError from initialize() when the backend rejects the config
    - Raise BackendRequestError from generate_completion() for transient failures
    - Return a fully populated Completion including token counts when known
    """

    @abstractmethod
    async def initialize(self, config: ModelConfig) -> None:
        """Bind the adapter to a model config and verify the backend."""

    @abstractmethod
    async def generate_completion(
        self, prompt: str, options: CompletionOptions
    ) -> Completion:
        """Send a prompt and return the model's response."""

    @abstractmethod
    def is_connected(self) -> bool:
        """True once initialize() has succeeded and until close()."""

    async def close(self) -> None:
        """Release network resources. Safe to call more than once."""
