"""Tests for the resolution cache backends and the cache-checked resolver"""

import fnmatch
import types

import pytest

from services.cache import (
    InMemoryResolutionCache,
    NullResolutionCache,
    RedisResolutionCache,
    build_resolution_cache,
)
from services.geocoding import (
    AddressResolver,
    Coordinates,
    NotFound,
    NotFoundResult,
    ParsedAddress,
    ProviderUnavailable,
)
from services.geocoding.resolver import normalize_query

PONSONBY = ParsedAddress(suburb="Ponsonby", city="Auckland", country="New Zealand")
POINT = Coordinates(latitude=-36.8569, longitude=174.7457)


class FakeRedis:
    """Dict-backed subset of the redis.asyncio client API"""

    def __init__(self):
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    async def get(self, key):
        return self.store.get(key)

    async def setex(self, key, ttl, value):
        self.store[key] = value
        self.ttls[key] = ttl

    async def delete(self, *keys):
        for key in keys:
            self.store.pop(key, None)

    async def scan(self, cursor, match="*", count=10):
        return 0, [k for k in self.store if fnmatch.fnmatch(k, match)]


class BrokenRedis:
    async def get(self, key):
        raise ConnectionError("redis down")

    async def setex(self, key, ttl, value):
        raise ConnectionError("redis down")


# --- In-memory ---

@pytest.mark.asyncio
async def test_memory_cache_hit():
    cache = InMemoryResolutionCache()
    await cache.set("reverse:a", PONSONBY)
    assert await cache.get("reverse:a") == PONSONBY
    assert await cache.get("reverse:b") is None


@pytest.mark.asyncio
async def test_memory_cache_entries_expire():
    now = [0.0]
    cache = InMemoryResolutionCache(ttl=60, timer=lambda: now[0])

    await cache.set("k", POINT)
    now[0] = 59
    assert await cache.get("k") == POINT

    now[0] = 61
    assert await cache.get("k") is None
    assert len(cache) == 0


@pytest.mark.asyncio
async def test_memory_cache_evicts_least_recently_used():
    cache = InMemoryResolutionCache(max_entries=2)
    await cache.set("a", POINT)
    await cache.set("b", POINT)
    await cache.get("a")
    await cache.set("c", POINT)

    assert await cache.get("a") == POINT
    assert await cache.get("b") is None
    assert await cache.get("c") == POINT
    assert len(cache) == 2


@pytest.mark.asyncio
async def test_memory_cache_delete_and_clear():
    cache = InMemoryResolutionCache()
    await cache.set("a", POINT)
    await cache.set("b", POINT)

    await cache.delete("a")
    await cache.delete("missing")
    assert await cache.get("a") is None

    await cache.clear()
    assert len(cache) == 0


def test_memory_cache_rejects_zero_capacity():
    with pytest.raises(ValueError):
        InMemoryResolutionCache(max_entries=0)


# --- Redis ---

@pytest.mark.asyncio
async def test_redis_cache_stores_models_with_ttl():
    redis = FakeRedis()
    cache = RedisResolutionCache(redis, ttl=3600)

    await cache.set("reverse:a", PONSONBY)
    await cache.set("forward:ponsonby:point", POINT)

    assert redis.ttls["georesolve:reverse:a"] == 3600
    assert await cache.get("reverse:a") == PONSONBY
    assert await cache.get("forward:ponsonby:point") == POINT


@pytest.mark.asyncio
async def test_redis_cache_stores_not_found_markers_briefly():
    redis = FakeRedis()
    cache = RedisResolutionCache(redis, ttl=3600, negative_ttl=60)

    await cache.set("forward:nowhere:point", NotFoundResult(query="Nowhere"))

    assert redis.ttls["georesolve:forward:nowhere:point"] == 60
    assert await cache.get("forward:nowhere:point") == NotFoundResult(query="Nowhere")


@pytest.mark.asyncio
async def test_redis_cache_discards_unreadable_entries():
    redis = FakeRedis()
    redis.store["georesolve:bad"] = "not json"
    redis.store["georesolve:unknown"] = '{"kind": "other", "value": {}}'
    cache = RedisResolutionCache(redis)

    assert await cache.get("bad") is None
    assert await cache.get("unknown") is None


@pytest.mark.asyncio
async def test_redis_cache_clear_only_touches_own_prefix():
    redis = FakeRedis()
    redis.store["other:key"] = "x"
    cache = RedisResolutionCache(redis)
    await cache.set("a", POINT)
    await cache.set("b", POINT)

    await cache.clear()

    assert list(redis.store) == ["other:key"]


@pytest.mark.asyncio
async def test_redis_failures_degrade_to_misses():
    cache = RedisResolutionCache(BrokenRedis())
    await cache.set("a", POINT)
    assert await cache.get("a") is None


# --- Null ---

@pytest.mark.asyncio
async def test_null_cache_stores_nothing():
    cache = NullResolutionCache()
    await cache.set("a", POINT)
    assert await cache.get("a") is None


# --- Factory ---

def _settings(backend):
    return types.SimpleNamespace(CACHE_BACKEND=backend, CACHE_MAX_ENTRIES=10, CACHE_TTL_SECONDS=60, CACHE_NEGATIVE_TTL_SECONDS=10)


def test_build_resolution_cache_backends():
    assert isinstance(build_resolution_cache(_settings("memory")), InMemoryResolutionCache)
    assert isinstance(build_resolution_cache(_settings("none")), NullResolutionCache)
    assert isinstance(build_resolution_cache(_settings("redis"), redis=FakeRedis()), RedisResolutionCache)


def test_build_resolution_cache_errors():
    with pytest.raises(ValueError):
        build_resolution_cache(_settings("redis"))
    with pytest.raises(ValueError):
        build_resolution_cache(_settings("memcached"))


# --- Resolver ---

def test_normalize_query():
    assert normalize_query("  Ponsonby ,  AUCKLAND ") == "ponsonby,auckland"
    assert normalize_query("Mount   Eden,,Auckland") == "mount eden,auckland"


@pytest.mark.asyncio
async def test_forward_is_served_from_cache(provider):
    provider.add_forward("Ponsonby, Auckland", -36.8569, 174.7457, suburb="Ponsonby", city="Auckland")
    resolver = AddressResolver(provider, InMemoryResolutionCache())

    first = await resolver.forward("Ponsonby, Auckland")
    second = await resolver.forward("ponsonby,  auckland")

    assert first == second
    assert first[1].suburb == "Ponsonby"
    assert provider.forward_calls == ["Ponsonby, Auckland"]


@pytest.mark.asyncio
async def test_locate_reuses_forward_point(provider):
    provider.add_forward("Ponsonby, Auckland", -36.8569, 174.7457, suburb="Ponsonby")
    resolver = AddressResolver(provider, InMemoryResolutionCache())

    await resolver.forward("Ponsonby, Auckland")
    point = await resolver.locate("Ponsonby, Auckland")

    assert point == POINT
    assert len(provider.forward_calls) == 1


@pytest.mark.asyncio
async def test_reverse_is_served_from_cache(provider):
    provider.add_reverse(-36.8569, 174.7457, suburb="Ponsonby", city="Auckland")
    resolver = AddressResolver(provider, InMemoryResolutionCache())

    await resolver.reverse(POINT)
    address = await resolver.reverse(POINT)

    assert address.suburb == "Ponsonby"
    assert len(provider.reverse_calls) == 1


@pytest.mark.asyncio
async def test_transient_failures_are_not_cached(provider):
    provider.fail_forward("Ponsonby", ProviderUnavailable("down"))
    resolver = AddressResolver(provider, InMemoryResolutionCache())

    for _ in range(2):
        with pytest.raises(ProviderUnavailable):
            await resolver.forward("Ponsonby")

    assert provider.forward_calls == ["Ponsonby", "Ponsonby"]


@pytest.mark.asyncio
async def test_not_found_is_remembered(provider):
    """A query with no result is answered from the cache until the marker expires"""
    now = [0.0]
    resolver = AddressResolver(provider, InMemoryResolutionCache(ttl=600, negative_ttl=60, timer=lambda: now[0]))

    for _ in range(2):
        with pytest.raises(NotFound):
            await resolver.forward("Nowhere")
        with pytest.raises(NotFound):
            await resolver.locate("nowhere")
    assert provider.forward_calls == ["Nowhere"]

    now[0] = 61
    with pytest.raises(NotFound):
        await resolver.locate("Nowhere")
    assert provider.forward_calls == ["Nowhere", "Nowhere"]


@pytest.mark.asyncio
async def test_reverse_not_found_is_remembered(provider):
    resolver = AddressResolver(provider, InMemoryResolutionCache())

    for _ in range(2):
        with pytest.raises(NotFound):
            await resolver.reverse(POINT)

    assert len(provider.reverse_calls) == 1


@pytest.mark.asyncio
async def test_found_result_replaces_not_found_marker():
    cache = InMemoryResolutionCache()
    await cache.set("k", NotFoundResult(query="k"))
    await cache.set("k", POINT)

    assert await cache.get("k") == POINT
    assert len(cache) == 1


@pytest.mark.asyncio
async def test_resolver_without_cache_always_calls_provider(provider):
    provider.add_reverse(-36.8569, 174.7457, suburb="Ponsonby")
    resolver = AddressResolver(provider, NullResolutionCache())

    await resolver.reverse(POINT)
    await resolver.reverse(POINT)

    assert len(provider.reverse_calls) == 2
