"""
Ollama backend adapter.

Talks to the native Ollama HTTP API:
  GET  /api/tags      -- reachability check on initialize()
  POST /api/generate  -- single-shot completion (stream=false)

Default endpoint: http://localhost:11434
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from llm_core.errors import BackendInitError, BackendRequestError
from llm_core.llm_adapter.base import BackendAdapter
from llm_core.llm_adapter.models import Completion, CompletionOptions, ModelConfig

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "http://localhost:11434"


class OllamaProvider(BackendAdapter):

    def __init__(
        self,
        timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._config: ModelConfig | None = None

    async def initialize(self, config: ModelConfig) -> None:
        client = httpx.AsyncClient(
            base_url=(config.endpoint or DEFAULT_ENDPOINT).rstrip("/"),
            timeout=self._timeout,
            transport=self._transport,
        )
        try:
            response = await client.get("/api/tags")
            response.raise_for_status()
            listed = response.json().get("models", [])
        except (httpx.HTTPError, ValueError) as exc:
            await client.aclose()
            raise BackendInitError(
                f"Ollama at {client.base_url} is not reachable: {exc}"
            ) from exc

        names = {m.get("name") for m in listed}
        if names and config.backend_model not in names:
            logger.warning(
                "Model %s not listed by Ollama (available: %s)",
                config.backend_model,
                ", ".join(sorted(n for n in names if n)),
            )

        await self.close()
        self._client = client
        self._config = config

    async def generate_completion(
        self, prompt: str, options: CompletionOptions
    ) -> Completion:
        if self._client is None or self._config is None:
            raise BackendRequestError("OllamaProvider used before initialize()")

        opts = options.merged_with(self._config.parameters)
        payload: dict[str, Any] = {
            "model": self._config.backend_model,
            "prompt": prompt,
            "stream": False,
            "options": _ollama_options(opts),
        }
        system_prompt = self._config.parameters.get("system_prompt")
        if system_prompt:
            payload["system"] = system_prompt

        try:
            response = await self._client.post("/api/generate", json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise BackendRequestError(
                f"Ollama returned HTTP {exc.response.status_code}",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise BackendRequestError(f"Ollama request failed: {exc}") from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise BackendRequestError("Ollama returned a non-JSON body") from exc
        prompt_tokens = int(data.get("prompt_eval_count") or 0)
        completion_tokens = int(data.get("eval_count") or 0)
        return Completion(
            content=data.get("response", ""),
            model=data.get("model", self._config.backend_model),
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=prompt_tokens + completion_tokens,
        )

    def is_connected(self) -> bool:
        return self._client is not None

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


def _ollama_options(opts: CompletionOptions) -> dict[str, Any]:
    mapped = {
        "temperature": opts.temperature,
        "num_predict": opts.max_tokens,
        "top_p": opts.top_p,
        "frequency_penalty": opts.frequency_penalty,
        "presence_penalty": opts.presence_penalty,
        "stop": opts.stop,
    }
    return {k: v for k, v in mapped.items() if v is not None}
