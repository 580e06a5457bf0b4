"""
Durable tiers for ResponseCache.

A store persists opaque serialized records keyed by content hash. Three
backends:
- FileCacheStore: one <hash>.json file per entry (default)
- RedisCacheStore: llm_cache:<hash> keys, survives across hosts
- MemoryCacheStore: dict, for tests and throwaway runs
"""

from __future__ import annotations

import logging
import uuid
from abc import ABC, abstractmethod
from pathlib import Path

import aiofiles
import aiofiles.os
import redis.asyncio as aioredis

logger = logging.getLogger(__name__)

_SUFFIX = ".json"


class CacheStore(ABC):

    @abstractmethod
    async def initialize(self) -> None:
        """Make sure the storage location exists and is reachable."""

    @abstractmethod
    async def list(self) -> list[tuple[str, str]]:
        """Return every (key, serialized value) pair."""

    @abstractmethod
    async def read(self, key: str) -> str | None:
        """Return the serialized value, or None if absent."""

    @abstractmethod
    async def write(self, key: str, value: str) -> None:
        """Persist `value` under `key`, replacing any previous record."""

    @abstractmethod
    async def clear(self) -> None:
        """Delete every record."""

    async def close(self) -> None:
        """Release connections. Safe to call more than once."""


class MemoryCacheStore(CacheStore):

    def __init__(self) -> None:
        self._records: dict[str, str] = {}

    async def initialize(self) -> None:
        return None

    async def list(self) -> list[tuple[str, str]]:
        return list(self._records.items())

    async def read(self, key: str) -> str | None:
        return self._records.get(key)

    async def write(self, key: str, value: str) -> None:
        self._records[key] = value

    async def clear(self) -> None:
        self._records.clear()


class FileCacheStore(CacheStore):
    """One JSON file per record inside `directory`."""

    def __init__(self, directory: str | Path) -> None:
        self._dir = Path(directory)

    @property
    def directory(self) -> Path:
        return self._dir

    async def initialize(self) -> None:
        await aiofiles.os.makedirs(self._dir, exist_ok=True)

    async def list(self) -> list[tuple[str, str]]:
        records: list[tuple[str, str]] = []
        for name in sorted(await aiofiles.os.listdir(self._dir)):
            if not name.endswith(_SUFFIX):
                continue
            key = name[: -len(_SUFFIX)]
            value = await self.read(key)
            if value is not None:
                records.append((key, value))
        return records

    async def read(self, key: str) -> str | None:
        try:
            async with aiofiles.open(self._path(key), "r", encoding="utf-8") as f:
                return await f.read()
        except FileNotFoundError:
            return None

    async def write(self, key: str, value: str) -> None:
        target = self._path(key)
        # Unique per write, so concurrent writers of one key never share a file
        tmp = target.with_name(f"{target.name}.{uuid.uuid4().hex}.tmp")
        async with aiofiles.open(tmp, "w", encoding="utf-8") as f:
            await f.write(value)
        await aiofiles.os.replace(tmp, target)

    async def clear(self) -> None:
        if not await aiofiles.os.path.isdir(self._dir):
            return
        for name in await aiofiles.os.listdir(self._dir):
            if name.endswith(_SUFFIX):
                await aiofiles.os.remove(self._dir / name)

    def _path(self, key: str) -> Path:
        return self._dir / f"{key}{_SUFFIX}"


class RedisCacheStore(CacheStore):
    """Records live under `<prefix><hash>` keys, optionally with a TTL."""

    def __init__(
        self,
        redis_url: str | None = None,
        client: aioredis.Redis | None = None,
        prefix: str = "llm_cache:",
        ttl_seconds: int | None = None,
    ) -> None:
        if client is None:
            if not redis_url:
                raise ValueError("RedisCacheStore needs a redis_url or a client")
            client = aioredis.from_url(redis_url, decode_responses=True)
        self._redis = client
        self._prefix = prefix
        self._ttl = ttl_seconds

    async def initialize(self) -> None:
        await self._redis.ping()
        logger.info("Redis cache store reachable (prefix=%s)", self._prefix)

    async def list(self) -> list[tuple[str, str]]:
        keys = [k async for k in self._redis.scan_iter(match=f"{self._prefix}*")]
        if not keys:
            return []
        values = await self._redis.mget(keys)
        return [
            (k[len(self._prefix):], v)
            for k, v in zip(keys, values)
            if v is not None
        ]

    async def read(self, key: str) -> str | None:
        return await self._redis.get(f"{self._prefix}{key}")

    async def write(self, key: str, value: str) -> None:
        await self._redis.set(f"{self._prefix}{key}", value, ex=self._ttl)

    async def clear(self) -> None:
        keys = [k async for k in self._redis.scan_iter(match=f"{self._prefix}*")]
        if keys:
            await self._redis.delete(*keys)

    async def close(self) -> None:
        await self._redis.aclose()
