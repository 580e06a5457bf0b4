"""Data models for the LLM adapter layer."""

from __future__ import annotations

import copy
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator


class BackendKind(str, Enum):
    OLLAMA = "ollama"
    LMSTUDIO = "lmstudio"
    MOCK = "mock"


class ModelConfig(BaseModel):
    """Registered model. Immutable once stored by ModelManager."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    backend_kind: BackendKind
    endpoint: str = ""
    # Deep-copied and read-only, so callers cannot edit a stored config
    parameters: Mapping[str, Any] = Field(default_factory=dict, validate_default=True)

    @field_validator("parameters", mode="after")
    @classmethod
    def freeze_parameters(cls, value: Mapping[str, Any]) -> Mapping[str, Any]:
        return MappingProxyType(copy.deepcopy(dict(value)))

    @field_serializer("parameters")
    def dump_parameters(self, value: Mapping[str, Any]) -> dict[str, Any]:
        return dict(value)

    @property
    def backend_model(self) -> str:
        """Model identifier as the backend knows it."""
        return str(self.parameters.get("model") or self.name)


class CompletionOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    max_tokens: int | None = Field(default=None, ge=1)
    top_p: float | None = Field(default=None, ge=0.0, le=1.0)
    frequency_penalty: float | None = None
    presence_penalty: float | None = None
    stop: list[str] | None = None

    def cache_fields(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)

    def merged_with(self, parameters: Mapping[str, Any]) -> CompletionOptions:
        """Fill unset fields from a model's configured parameters."""
        defaults = {
            k: v for k, v in parameters.items() if k in type(self).model_fields
        }
        return CompletionOptions.model_validate({**defaults, **self.cache_fields()})


class Completion(BaseModel):
    content: str
    model: str
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
