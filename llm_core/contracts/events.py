"""
Event contracts emitted by llm_core components.

Components never share mutable state; they notify listeners with these
immutable events instead. BaseEvent provides the envelope; each event type
carries its own typed fields.
"""

from __future__ import annotations

import time
import uuid
from enum import Enum
from typing import Callable, Literal

from pydantic import BaseModel, ConfigDict, Field

from llm_core.observability.models import ProviderMetrics


class EventType(str, Enum):
    METRICS_UPDATED = "metrics.updated"
    MODEL_SWITCHED = "model.switched"


class BaseEvent(BaseModel):
    """
    Canonical envelope for all events.

    - event_id is a UUID4 generated at creation time
    - timestamp is unix seconds
    """

    model_config = ConfigDict(frozen=True)

    event_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    event_type: EventType
    timestamp: float = Field(default_factory=time.time)
    producer: str


class MetricsUpdated(BaseEvent):
    event_type: Literal[EventType.METRICS_UPDATED] = EventType.METRICS_UPDATED
    producer: str = "metrics_tracker"
    provider_id: str
    # None once the record has been reset
    snapshot: ProviderMetrics | None = None


class ModelSwitched(BaseEvent):
    event_type: Literal[EventType.MODEL_SWITCHED] = EventType.MODEL_SWITCHED
    producer: str = "model_manager"
    model_name: str
    backend_kind: str
    previous_model: str | None = None


MetricsListener = Callable[[MetricsUpdated], None]
ModelListener = Callable[[ModelSwitched], None]


# ---------------------------------------------------------------------------
# Typed event constructors (factory helpers)
# ---------------------------------------------------------------------------


def metrics_updated(
    provider_id: str, snapshot: ProviderMetrics | None
) -> MetricsUpdated:
    return MetricsUpdated(provider_id=provider_id, snapshot=snapshot)


def model_switched(
    model_name: str, backend_kind: str, previous_model: str | None
) -> ModelSwitched:
    return ModelSwitched(
        model_name=model_name,
        backend_kind=backend_kind,
        previous_model=previous_model,
    )
