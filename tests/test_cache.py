"""Tests for ResponseCache and its durable stores."""

import asyncio
import json

import pytest

from llm_core.errors import CacheWriteError
from llm_core.llm_adapter.cache import ResponseCache
from llm_core.llm_adapter.stores import FileCacheStore, MemoryCacheStore, RedisCacheStore

from .conftest import FailingStore


class FakeRedis:
    """Just enough of redis.asyncio.Redis for RedisCacheStore."""

    def __init__(self):
        self.data: dict[str, str] = {}
        self.expiry: dict[str, int | None] = {}
        self.closed = False

    async def ping(self):
        return True

    async def scan_iter(self, match=None):
        prefix = match.rstrip("*") if match else ""
        for key in list(self.data):
            if key.startswith(prefix):
                yield key

    async def mget(self, keys):
        return [self.data.get(k) for k in keys]

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value, ex=None):
        self.data[key] = value
        self.expiry[key] = ex

    async def delete(self, *keys):
        for key in keys:
            self.data.pop(key, None)

    async def aclose(self):
        self.closed = True


KEY = {"model": "llama3", "prompt": "hello", "options": {}, "language": "en"}


@pytest.mark.asyncio
async def test_set_then_get_round_trip():
    cache = ResponseCache(MemoryCacheStore())

    assert cache.get(KEY) is None
    await cache.set(KEY, "Hi there")

    assert cache.get(KEY) == "Hi there"
    assert len(cache) == 1


def test_make_key_is_order_independent():
    a = {"prompt": "p", "model": "m"}
    b = {"model": "m", "prompt": "p"}

    assert ResponseCache.make_key(a) == ResponseCache.make_key(b)
    assert len(ResponseCache.make_key("x" * 100_000)) == 64
    assert ResponseCache.make_key("a") != ResponseCache.make_key("b")


@pytest.mark.asyncio
async def test_entries_survive_a_restart_through_file_store(tmp_path):
    first = ResponseCache(FileCacheStore(tmp_path / "cache"))
    await first.initialize()
    await first.set(KEY, "persisted")

    files = list((tmp_path / "cache").glob("*.json"))
    assert len(files) == 1
    record = json.loads(files[0].read_text())
    assert record["value"] == "persisted"
    assert "timestamp" in record

    second = ResponseCache(FileCacheStore(tmp_path / "cache"))
    await second.initialize()
    assert second.get(KEY) == "persisted"


@pytest.mark.asyncio
async def test_unreadable_records_are_skipped(tmp_path):
    directory = tmp_path / "cache"
    directory.mkdir()
    (directory / "broken.json").write_text("{not json")
    (directory / "notes.txt").write_text("ignored")

    cache = ResponseCache(FileCacheStore(directory))
    await cache.set("good", "value")
    await cache.initialize()

    reloaded = ResponseCache(FileCacheStore(directory))
    await reloaded.initialize()
    assert len(reloaded) == 1
    assert reloaded.get("good") == "value"


@pytest.mark.asyncio
async def test_durable_failure_raises_but_memory_is_updated():
    cache = ResponseCache(FailingStore())

    with pytest.raises(CacheWriteError) as excinfo:
        await cache.set(KEY, "kept in memory")

    assert isinstance(excinfo.value.__cause__, OSError)
    assert cache.get(KEY) == "kept in memory"


@pytest.mark.asyncio
async def test_ttl_expires_entries(clock):
    cache = ResponseCache(MemoryCacheStore(), ttl_seconds=60, clock=clock)
    await cache.set(KEY, "fresh")

    clock.advance(59)
    assert cache.get(KEY) == "fresh"

    clock.advance(2)
    assert cache.get(KEY) is None
    assert len(cache) == 0


@pytest.mark.asyncio
async def test_expired_records_not_loaded(clock):
    store = MemoryCacheStore()
    writer = ResponseCache(store, clock=clock)
    await writer.set(KEY, "old")

    clock.advance(3600)
    reader = ResponseCache(store, ttl_seconds=60, clock=clock)
    await reader.initialize()
    assert reader.get(KEY) is None


@pytest.mark.asyncio
async def test_max_entries_evicts_least_recently_used():
    cache = ResponseCache(MemoryCacheStore(), max_entries=2)
    await cache.set("a", 1)
    await cache.set("b", 2)
    assert cache.get("a") == 1  # a is now most recent

    await cache.set("c", 3)

    assert cache.get("b") is None
    assert cache.get("a") == 1
    assert cache.get("c") == 3


def test_max_entries_must_be_positive():
    with pytest.raises(ValueError):
        ResponseCache(MemoryCacheStore(), max_entries=0)


@pytest.mark.asyncio
async def test_clear_empties_both_tiers(tmp_path):
    store = FileCacheStore(tmp_path)
    cache = ResponseCache(store)
    await cache.initialize()
    await cache.set("a", "1")
    await cache.set("b", "2")

    await cache.clear()

    assert cache.get("a") is None
    assert list(tmp_path.glob("*.json")) == []


@pytest.mark.asyncio
async def test_concurrent_writes_to_one_key_leave_a_whole_record(tmp_path):
    store = FileCacheStore(tmp_path)
    await store.initialize()
    long_value = json.dumps({"timestamp": 1.0, "value": "x" * 50_000})
    short_value = json.dumps({"timestamp": 2.0, "value": "y"})

    for _ in range(20):
        await asyncio.gather(
            store.write("k", long_value),
            store.write("k", short_value),
        )
        assert await store.read("k") in (long_value, short_value)

    assert [p.name for p in tmp_path.iterdir()] == ["k.json"]


@pytest.mark.asyncio
async def test_clear_on_missing_directory_is_noop(tmp_path):
    store = FileCacheStore(tmp_path / "never-created")
    await store.clear()
    assert await store.read("anything") is None


@pytest.mark.asyncio
async def test_redis_store_round_trip():
    client = FakeRedis()
    store = RedisCacheStore(client=client, ttl_seconds=120)
    cache = ResponseCache(store)
    await cache.initialize()
    await cache.set(KEY, "from redis")

    digest = ResponseCache.make_key(KEY)
    assert f"llm_cache:{digest}" in client.data
    assert client.expiry[f"llm_cache:{digest}"] == 120

    reloaded = ResponseCache(RedisCacheStore(client=client))
    await reloaded.initialize()
    assert reloaded.get(KEY) == "from redis"

    await reloaded.clear()
    assert client.data == {}

    await reloaded.close()
    assert client.closed


def test_redis_store_requires_url_or_client():
    with pytest.raises(ValueError):
        RedisCacheStore()
