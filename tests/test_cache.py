# tests/test_cache.py
import pytest
from fakeredis import aioredis

from reservation_engine.core.cache import TableListingCache
from reservation_engine.services.engine import build_memory_engine


@pytest.fixture
async def redis_client():
    client = aioredis.FakeRedis(decode_responses=True)
    yield client
    await client.aclose()


def test_key_is_independent_of_feature_order() -> None:
    a = TableListingCache.make_key(4, "indoor", ["quiet", "near_window"])
    b = TableListingCache.make_key(4, "indoor", ["near_window", "quiet"])
    assert a == b == "tables:available:4:indoor:near_window,quiet"
    assert TableListingCache.make_key(None, None, None) == "tables:available:-:-:-"


async def test_set_get_and_ttl(redis_client) -> None:
    cache = TableListingCache(redis_client, ttl=30)
    key = cache.make_key(2, None, None)

    assert await cache.get(key) is None
    await cache.set(key, [{"id": "t1"}])

    assert await cache.get(key) == [{"id": "t1"}]
    assert 0 < await redis_client.ttl(key) <= 30


async def test_table_mutations_invalidate_listing(redis_client) -> None:
    cache = TableListingCache(redis_client)
    engine = build_memory_engine(cache=cache)
    await redis_client.set("unrelated", "keep")
    await cache.set(cache.make_key(None, None, None), [])
    await cache.set(cache.make_key(4, None, None), [])

    table = await engine.registry.create_table(1, 4)

    assert await redis_client.keys("tables:available:*") == []
    assert await redis_client.get("unrelated") == "keep"

    await cache.set(cache.make_key(None, None, None), [])
    await engine.registry.occupy(table.id, 2)
    assert await redis_client.keys("tables:available:*") == []


async def test_cache_without_client_is_pass_through() -> None:
    cache = TableListingCache(None)

    await cache.set("tables:available:-:-:-", [{"id": "t1"}])
    assert await cache.get("tables:available:-:-:-") is None
    assert await cache.invalidate() == 0
