"""
Rolling per-provider health metrics.

Each provider id owns one mutable record. Response-time samples are kept
only for a trailing window (one hour by default), so memory stays bounded
no matter how long the process runs. Callers only ever see frozen
ProviderMetrics snapshots, both from get_metrics() and in the
MetricsUpdated events pushed to listeners.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Deque, Dict, List, Optional, Tuple

from llm_core.contracts.events import MetricsListener, metrics_updated
from llm_core.observability.models import ProviderMetrics

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_SECONDS = 60 * 60


@dataclass
class _ProviderRecord:
    request_count: int = 0
    success_count: int = 0
    error_count: int = 0
    token_usage: int = 0
    request_times: Deque[Tuple[float, float]] = field(default_factory=deque)
    average_response_time: float = 0.0
    last_updated: float = 0.0
    last_error: Optional[str] = None


class MetricsTracker:

    def __init__(
        self,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._window = window_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._records: Dict[str, _ProviderRecord] = {}
        self._listeners: List[MetricsListener] = []

    def subscribe(self, listener: MetricsListener) -> Callable[[], None]:
        """Register a listener; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def initialize_provider(self, provider_id: str) -> None:
        """Create a zeroed record, discarding any existing one."""
        with self._lock:
            record = _ProviderRecord(last_updated=self._clock())
            self._records[provider_id] = record
            snapshot = self._snapshot(provider_id, record)
        self._notify(provider_id, snapshot)

    def record_success(
        self, provider_id: str, duration_ms: float, tokens: int = 0
    ) -> None:
        with self._lock:
            record = self._records.get(provider_id)
            if record is None:
                return
            now = self._clock()
            record.request_times.append((now, duration_ms))
            self._prune(record, now)
            record.average_response_time = sum(
                d for _, d in record.request_times
            ) / len(record.request_times)
            record.request_count += 1
            record.success_count += 1
            record.token_usage += tokens
            record.last_updated = now
            snapshot = self._snapshot(provider_id, record)
        self._notify(provider_id, snapshot)

    def record_error(self, provider_id: str, error: BaseException | str) -> None:
        with self._lock:
            record = self._records.get(provider_id)
            if record is None:
                return
            record.request_count += 1
            record.error_count += 1
            record.last_error = str(error) or type(error).__name__
            record.last_updated = self._clock()
            snapshot = self._snapshot(provider_id, record)
        self._notify(provider_id, snapshot)

    def get_metrics(self, provider_id: str) -> ProviderMetrics | None:
        with self._lock:
            record = self._records.get(provider_id)
            if record is None:
                return None
            return self._snapshot(provider_id, record)

    def reset_metrics(self, provider_id: str) -> None:
        with self._lock:
            removed = self._records.pop(provider_id, None)
        if removed is not None:
            self._notify(provider_id, None)

    def provider_ids(self) -> list[str]:
        with self._lock:
            return list(self._records)

    def _prune(self, record: _ProviderRecord, now: float) -> None:
        cutoff = now - self._window
        times = record.request_times
        while times and times[0][0] < cutoff:
            times.popleft()

    @staticmethod
    def _snapshot(provider_id: str, record: _ProviderRecord) -> ProviderMetrics:
        return ProviderMetrics(
            provider_id=provider_id,
            request_count=record.request_count,
            success_count=record.success_count,
            error_count=record.error_count,
            token_usage=record.token_usage,
            request_times=tuple(record.request_times),
            average_response_time=record.average_response_time,
            last_updated=record.last_updated,
            last_error=record.last_error,
        )

    def _notify(self, provider_id: str, snapshot: ProviderMetrics | None) -> None:
        if not self._listeners:
            return
        event = metrics_updated(provider_id, snapshot)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception(
                    "Metrics listener failed for provider %s", provider_id
                )
