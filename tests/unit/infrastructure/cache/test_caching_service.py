import pytest

from restfetch.domain.interfaces.cache import CACHE_MISS
from restfetch.infrastructure.cache.caching_service import (
    TtlCache, credential_fingerprint, make_cache_key,
)


class Clock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def cache(clock):
    return TtlCache(ttl=60, clock=clock)


@pytest.mark.asyncio
async def test_put_then_get_before_expiry(cache: TtlCache, clock: Clock):
    await cache.put("k", {"stargazers_count": 0})
    clock.now += 59.9
    assert await cache.get("k") == {"stargazers_count": 0}


@pytest.mark.asyncio
async def test_get_after_expiry_is_a_miss(cache: TtlCache, clock: Clock):
    await cache.put("k", "v")
    clock.now += 60
    assert await cache.get("k") is CACHE_MISS
    # Lazy expiry removed the entry.
    assert len(cache) == 0


@pytest.mark.asyncio
async def test_unknown_key_is_a_miss(cache: TtlCache):
    assert await cache.get("absent") is CACHE_MISS


@pytest.mark.asyncio
async def test_cached_none_is_not_a_miss(cache: TtlCache):
    await cache.put("k", None)
    result = await cache.get("k")
    assert result is None
    assert result is not CACHE_MISS


@pytest.mark.asyncio
async def test_put_supersedes_previous_entry(cache: TtlCache, clock: Clock):
    await cache.put("k", {"a": 1})
    clock.now += 50
    await cache.put("k", {"b": 2})
    clock.now += 50
    # The second put restarted the freshness window and replaced the value.
    assert await cache.get("k") == {"b": 2}


@pytest.mark.asyncio
async def test_callers_receive_copies(cache: TtlCache):
    original = {"items": [1, 2]}
    await cache.put("k", original)
    original["items"].append(3)

    first = await cache.get("k")
    first["items"].append(4)

    assert await cache.get("k") == {"items": [1, 2]}


@pytest.mark.asyncio
async def test_per_entry_ttl(cache: TtlCache, clock: Clock):
    await cache.put("short", "v", ttl=5)
    clock.now += 6
    assert await cache.get("short") is CACHE_MISS


@pytest.mark.asyncio
async def test_evict_expired_removes_only_stale_entries(cache: TtlCache, clock: Clock):
    await cache.put("old", 1)
    clock.now += 30
    await cache.put("new", 2)
    removed = await cache.evict_expired(now=clock.now + 40)
    assert removed == 1
    assert await cache.get("new") == 2
    assert len(cache) == 1


@pytest.mark.asyncio
async def test_evict_expired_on_empty_cache(cache: TtlCache):
    assert await cache.evict_expired() == 0


@pytest.mark.asyncio
async def test_delete_and_clear(cache: TtlCache):
    await cache.put("a", 1)
    await cache.put("b", 2)
    await cache.delete("a")
    await cache.delete("missing")
    assert await cache.get("a") is CACHE_MISS
    await cache.clear()
    assert len(cache) == 0


def test_ttl_must_be_positive():
    with pytest.raises(ValueError):
        TtlCache(ttl=0)


def test_cache_key_ignores_param_order():
    a = make_cache_key("/repos/o/r/issues", {"page": 1, "per_page": 30})
    b = make_cache_key("repos/o/r/issues/", {"per_page": 30, "page": 1})
    assert a == b == "/repos/o/r/issues?page=1&per_page=30"


def test_cache_key_separates_credentials_without_leaking_them():
    token = "ghp_supersecret"
    anonymous = make_cache_key("/repos/o/r")
    authenticated = make_cache_key("/repos/o/r", fingerprint=credential_fingerprint(token))
    assert anonymous != authenticated
    assert token not in authenticated


def test_fingerprint_of_missing_credential_is_empty():
    assert credential_fingerprint(None) == ""
    assert credential_fingerprint("") == ""
