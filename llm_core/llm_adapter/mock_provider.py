"""
Deterministic mock backend for testing and development.

Always returns the same output for the same prompt hash,
making the whole pipeline reproducible without a local LLM server.
"""

from __future__ import annotations

import hashlib

from llm_core.errors import BackendRequestError
from llm_core.llm_adapter.base import BackendAdapter
from llm_core.llm_adapter.models import Completion, CompletionOptions, ModelConfig

_MOCK_PREFIX = "[MOCK] "


class MockProvider(BackendAdapter):

    def __init__(self) -> None:
        self._config: ModelConfig | None = None
        self._call_count = 0

    @property
    def call_count(self) -> int:
        return self._call_count

    async def initialize(self, config: ModelConfig) -> None:
        self._config = config

    async def generate_completion(
        self, prompt: str, options: CompletionOptions
    ) -> Completion:
        if self._config is None:
            raise BackendRequestError("MockProvider used before initialize()")
        self._call_count += 1
        prompt_hash = hashlib.sha256(prompt.encode()).hexdigest()

        content = (
            f"{_MOCK_PREFIX}Deterministic response for prompt hash "
            f"{prompt_hash[:12]}."
        )
        if options.max_tokens:
            content = " ".join(content.split()[: options.max_tokens])

        fake_prompt_tokens = len(prompt.split())
        fake_completion_tokens = len(content.split())

        return Completion(
            content=content,
            model=self._config.backend_model,
            prompt_tokens=fake_prompt_tokens,
            completion_tokens=fake_completion_tokens,
            total_tokens=fake_prompt_tokens + fake_completion_tokens,
        )

    def is_connected(self) -> bool:
        return self._config is not None

    async def close(self) -> None:
        self._config = None
