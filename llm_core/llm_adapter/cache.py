"""
Content-addressed response cache.

Logical keys (model name + prompt + options + language, or any JSON value)
are reduced to a sha256 digest, so arbitrarily long prompts map to bounded
identifiers. Two tiers:

- memory: a dict consulted by every get(); updated synchronously by set()
- durable: a CacheStore written on every set() and loaded wholesale into
  memory by initialize()

Visibility is immediate, durability is best effort: when the durable write
fails, set() raises CacheWriteError but the memory tier already holds the
value.

Optional extras (both off by default): ttl_seconds expires entries on read,
max_entries turns the memory tier into an LRU.
"""

from __future__ import annotations

import hashlib
import json
import logging
import threading
import time
from collections import OrderedDict
from typing import Any, Callable

from llm_core.errors import CacheWriteError
from llm_core.llm_adapter.stores import CacheStore
from llm_core.observability.metrics import cache_lookups

logger = logging.getLogger(__name__)


class ResponseCache:

    def __init__(
        self,
        store: CacheStore,
        ttl_seconds: float | None = None,
        max_entries: int | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if max_entries is not None and max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self._store = store
        self._ttl = ttl_seconds
        self._max_entries = max_entries
        self._clock = clock
        self._lock = threading.Lock()
        # hash -> (stored_at, value)
        self._memory: OrderedDict[str, tuple[float, Any]] = OrderedDict()

    def __len__(self) -> int:
        with self._lock:
            return len(self._memory)

    @staticmethod
    def make_key(key: Any) -> str:
        if isinstance(key, str):
            raw = key
        else:
            raw = json.dumps(key, sort_keys=True, default=str)
        return hashlib.sha256(raw.encode()).hexdigest()

    async def initialize(self) -> None:
        """Create the durable location and load every record into memory."""
        await self._store.initialize()
        loaded = 0
        for digest, serialized in await self._store.list():
            try:
                record = json.loads(serialized)
                stored_at = float(record["timestamp"])
                value = record["value"]
            except (ValueError, KeyError, TypeError):
                logger.warning("Skipping unreadable cache record %s", digest[:16])
                continue
            if self._expired(stored_at):
                continue
            with self._lock:
                self._memory[digest] = (stored_at, value)
                self._evict()
            loaded += 1
        logger.info("Response cache loaded %d entries", loaded)

    def get(self, key: Any) -> Any | None:
        digest = self.make_key(key)
        with self._lock:
            entry = self._memory.get(digest)
            if entry is not None and self._expired(entry[0]):
                del self._memory[digest]
                entry = None
            if entry is not None and self._max_entries is not None:
                self._memory.move_to_end(digest)

        if entry is None:
            cache_lookups.labels(result="miss").inc()
            logger.debug("LLM cache MISS for key %s", digest[:16])
            return None
        cache_lookups.labels(result="hit").inc()
        logger.debug("LLM cache HIT for key %s", digest[:16])
        return entry[1]

    async def set(self, key: Any, value: Any) -> None:
        digest = self.make_key(key)
        stored_at = self._clock()
        serialized = json.dumps({"timestamp": stored_at, "value": value})

        with self._lock:
            self._memory[digest] = (stored_at, value)
            self._memory.move_to_end(digest)
            self._evict()

        try:
            await self._store.write(digest, serialized)
        except Exception as exc:
            raise CacheWriteError(
                f"Durable write failed for cache key {digest[:16]}: {exc}"
            ) from exc

    async def clear(self) -> None:
        with self._lock:
            self._memory.clear()
        await self._store.clear()

    async def close(self) -> None:
        await self._store.close()

    def _expired(self, stored_at: float) -> bool:
        return self._ttl is not None and self._clock() - stored_at > self._ttl

    def _evict(self) -> None:
        if self._max_entries is None:
            return
        while len(self._memory) > self._max_entries:
            evicted, _ = self._memory.popitem(last=False)
            logger.debug("Evicted cache key %s", evicted[:16])
