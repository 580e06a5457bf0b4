"""
LM Studio backend adapter.

LM Studio serves an OpenAI-compatible API under /v1, so this adapter drives
it with the official AsyncOpenAI client:
  models.list()              -- reachability check on initialize()
  chat.completions.create()  -- single-shot completion

Default endpoint: http://localhost:1234
The client's own retries are disabled; RetryPolicy owns retrying.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from openai import APIError, APIStatusError, AsyncOpenAI

from llm_core.errors import BackendInitError, BackendRequestError
from llm_core.llm_adapter.base import BackendAdapter
from llm_core.llm_adapter.models import Completion, CompletionOptions, ModelConfig

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "http://localhost:1234"
# LM Studio ignores the key, but the OpenAI client insists on one.
_PLACEHOLDER_KEY = "lm-studio"


class LMStudioProvider(BackendAdapter):

    def __init__(
        self,
        timeout: float = 120.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._timeout = timeout
        self._http_client = http_client
        self._client: AsyncOpenAI | None = None
        self._config: ModelConfig | None = None

    async def initialize(self, config: ModelConfig) -> None:
        client = AsyncOpenAI(
            api_key=str(config.parameters.get("api_key") or _PLACEHOLDER_KEY),
            base_url=_api_base(config.endpoint or DEFAULT_ENDPOINT),
            timeout=self._timeout,
            max_retries=0,
            http_client=self._http_client,
        )
        try:
            page = await client.models.list()
        except APIError as exc:
            if self._http_client is None:
                await client.close()
            raise BackendInitError(
                f"LM Studio at {client.base_url} rejected the connection: {exc}"
            ) from exc

        loaded = {m.id for m in page.data}
        if loaded and config.backend_model not in loaded:
            logger.warning(
                "Model %s not loaded in LM Studio (loaded: %s)",
                config.backend_model,
                ", ".join(sorted(loaded)),
            )

        await self.close()
        self._client = client
        self._config = config

    async def generate_completion(
        self, prompt: str, options: CompletionOptions
    ) -> Completion:
        if self._client is None or self._config is None:
            raise BackendRequestError("LMStudioProvider used before initialize()")

        opts = options.merged_with(self._config.parameters)
        messages: list[dict[str, str]] = []
        system_prompt = self._config.parameters.get("system_prompt")
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        kwargs: dict[str, Any] = opts.model_dump(exclude_none=True)
        try:
            response = await self._client.chat.completions.create(
                model=self._config.backend_model,
                messages=messages,
                **kwargs,
            )
        except APIStatusError as exc:
            raise BackendRequestError(
                f"LM Studio returned HTTP {exc.status_code}",
                status_code=exc.status_code,
            ) from exc
        except APIError as exc:
            raise BackendRequestError(f"LM Studio request failed: {exc}") from exc

        if not response.choices:
            raise BackendRequestError("LM Studio returned no choices")

        choice = response.choices[0]
        usage = response.usage

        return Completion(
            content=choice.message.content or "",
            model=response.model or self._config.backend_model,
            prompt_tokens=usage.prompt_tokens if usage else 0,
            completion_tokens=usage.completion_tokens if usage else 0,
            total_tokens=usage.total_tokens if usage else 0,
        )

    def is_connected(self) -> bool:
        return self._client is not None

    async def close(self) -> None:
        # An injected http_client belongs to the caller
        if self._client is not None and self._http_client is None:
            await self._client.close()
        self._client = None


def _api_base(endpoint: str) -> str:
    base = endpoint.rstrip("/")
    if not base.endswith("/v1"):
        base = f"{base}/v1"
    return base
