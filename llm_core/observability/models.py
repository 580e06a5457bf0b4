"""Read-only metric snapshots handed out by MetricsTracker."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class ProviderMetrics(BaseModel):
    """
    Point-in-time copy of one provider's health record.

    request_times holds (unix timestamp, duration in ms) pairs that are still
    inside the tracker's rolling window.
    """

    model_config = ConfigDict(frozen=True)

    provider_id: str
    request_count: int = 0
    success_count: int = 0
    error_count: int = 0
    token_usage: int = 0
    request_times: tuple[tuple[float, float], ...] = ()
    average_response_time: float = 0.0
    last_updated: float = 0.0
    last_error: str | None = None

    @property
    def error_rate(self) -> float:
        if not self.request_count:
            return 0.0
        return self.error_count / self.request_count
