import asyncio

from defi_advisor.cache import ResponseCache


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def test_key_includes_method_and_path():
    assert ResponseCache.key("get", "/api/market") == "GET /api/market"


async def test_get_or_set_caches_until_expiry():
    clock = FakeClock()
    cache = ResponseCache(ttl_seconds=60, timer=clock)
    calls = 0

    async def factory():
        nonlocal calls
        calls += 1
        return {"call": calls}

    assert await cache.get_or_set("GET /api/market", factory) == {"call": 1}
    clock.now = 59
    assert await cache.get_or_set("GET /api/market", factory) == {"call": 1}
    clock.now = 61
    assert await cache.get_or_set("GET /api/market", factory) == {"call": 2}
    assert calls == 2


async def test_concurrent_misses_share_one_computation():
    cache = ResponseCache()
    calls = 0

    async def factory():
        nonlocal calls
        calls += 1
        await asyncio.sleep(0.01)
        return "value"

    results = await asyncio.gather(*(cache.get_or_set("k", factory) for _ in range(5)))

    assert results == ["value"] * 5
    assert calls == 1


async def test_failed_computation_is_not_cached():
    cache = ResponseCache()

    async def boom():
        raise RuntimeError("upstream down")

    async def ok():
        return 1

    try:
        await cache.get_or_set("k", boom)
    except RuntimeError:
        pass
    assert cache.get("k") is None
    assert await cache.get_or_set("k", ok) == 1


def test_clear():
    cache = ResponseCache()
    cache.set("a", 1)
    assert len(cache) == 1
    cache.clear()
    assert len(cache) == 0
