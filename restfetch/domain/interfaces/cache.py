"""Interface for the result cache.

Defines the contract for storing, retrieving, and expiring cached responses
under a time-to-live policy.
"""

import abc
from typing import Any, Optional

from ..models.common import CacheKey


class _CacheMiss:
    """Sentinel type returned by CacheService.get when nothing fresh is cached."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "CACHE_MISS"


# A miss says nothing about upstream existence; cached None is a real value.
CACHE_MISS = _CacheMiss()


class CacheService(abc.ABC):
    """Abstract Base Class for caching operations."""

    @abc.abstractmethod
    async def get(self, key: CacheKey) -> Any:
        """Retrieves an item from the cache asynchronously.

        Args:
            key: The cache key to retrieve.

        Returns:
            A copy of the cached item if found and fresh, otherwise CACHE_MISS.
        """
        pass

    @abc.abstractmethod
    async def put(self, key: CacheKey, value: Any, ttl: Optional[float] = None) -> None:
        """Stores an item, superseding any existing entry for the key.

        Args:
            key: The cache key to store the item under.
            value: The item to store.
            ttl: Time-to-live in seconds (uses the cache default if None).
        """
        pass

    @abc.abstractmethod
    async def evict_expired(self, now: Optional[float] = None) -> int:
        """Removes all entries whose freshness window has elapsed.

        Returns:
            The number of entries removed.
        """
        pass

    @abc.abstractmethod
    async def delete(self, key: CacheKey) -> None:
        """Deletes an item from the cache."""
        pass

    @abc.abstractmethod
    async def clear(self) -> None:
        """Clears all items from the cache."""
        pass
