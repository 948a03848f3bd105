"""Concrete implementation of the result cache.

Keeps responses in memory under a fixed time-to-live. Expiry is lazy on
read; evict_expired bounds memory when called but is never required for
correctness.
"""

import copy
import hashlib
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from restfetch.domain.interfaces.cache import CACHE_MISS, CacheService
from restfetch.domain.models.common import CacheKey, Credential, QueryParams, describe_params

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 5 * 60  # 5 minutes


@dataclass
class CacheEntry:
    """Internal representation of a cache entry."""
    key: CacheKey
    value: Any
    stored_at: float  # monotonic seconds
    ttl: float

    def is_fresh(self, now: float) -> bool:
        return now - self.stored_at < self.ttl


def credential_fingerprint(credential: Optional[Credential]) -> str:
    """Short hash identifying a credential without revealing it."""
    if not credential:
        return ""
    return hashlib.sha256(credential.encode()).hexdigest()[:12]


def make_cache_key(resource_path: str, params: Optional[QueryParams] = None, fingerprint: str = "") -> CacheKey:
    """Builds the resource identity used as a cache key.

    Args:
        resource_path: Path of the requested resource.
        params: Query parameters; order does not matter.
        fingerprint: Credential fingerprint, so different credentials never
            share entries.
    """
    key = "/" + resource_path.strip("/")
    query = describe_params(params)
    if query:
        key = f"{key}?{query}"
    if fingerprint:
        key = f"{key}#{fingerprint}"
    return CacheKey(key)


class TtlCache(CacheService):
    """In-memory cache with a time-to-live freshness window.

    Values are deep-copied on the way in and on the way out, so callers never
    hold a reference into the cache.
    """

    def __init__(self, ttl: float = DEFAULT_TTL_SECONDS, clock: Callable[[], float] = time.monotonic):
        if ttl <= 0:
            raise ValueError(f"ttl must be positive, got {ttl}")
        self.ttl = ttl
        self._clock = clock
        self._entries: Dict[CacheKey, CacheEntry] = {}
        logger.info(f"TtlCache initialized (ttl={ttl}s)")

    def __len__(self) -> int:
        return len(self._entries)

    async def get(self, key: CacheKey) -> Any:
        entry = self._entries.get(key)
        if entry is None:
            logger.debug(f"Cache miss for key: {key}")
            return CACHE_MISS
        if not entry.is_fresh(self._clock()):
            del self._entries[key]
            logger.debug(f"Cache entry expired for key: {key}")
            return CACHE_MISS
        logger.debug(f"Cache hit for key: {key}")
        return copy.deepcopy(entry.value)

    async def put(self, key: CacheKey, value: Any, ttl: Optional[float] = None) -> None:
        self._entries[key] = CacheEntry(
            key=key,
            value=copy.deepcopy(value),
            stored_at=self._clock(),
            ttl=ttl if ttl is not None else self.ttl,
        )
        logger.debug(f"Stored item in cache: key={key}")

    async def evict_expired(self, now: Optional[float] = None) -> int:
        if now is None:
            now = self._clock()
        expired = [k for k, entry in self._entries.items() if not entry.is_fresh(now)]
        for k in expired:
            del self._entries[k]
        if expired:
            logger.debug(f"Evicted {len(expired)} expired cache entries")
        return len(expired)

    async def delete(self, key: CacheKey) -> None:
        if self._entries.pop(key, None) is not None:
            logger.debug(f"Deleted item from cache: key={key}")

    async def clear(self) -> None:
        self._entries.clear()
        logger.info("Cleared in-memory cache.")
