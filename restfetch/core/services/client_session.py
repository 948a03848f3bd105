"""Client session: the explicitly constructed owner of client state.

A session owns exactly one transport, one rate-limit tracker and one cache.
Nothing is shared between sessions, so independent sessions can be used
side by side and in isolation under test.
"""

import asyncio
import logging
from typing import Any, AsyncIterator, List, Optional

from restfetch.domain.errors import outcome_to_error
from restfetch.domain.interfaces.cache import CACHE_MISS, CacheService
from restfetch.domain.interfaces.transport import Transport
from restfetch.domain.models.common import Credential, QueryParams
from restfetch.domain.models.pagination import CancellationToken
from restfetch.domain.models.rate_limit import RateLimitState
from restfetch.core.services.paginated_fetcher import PaginatedFetcher
from restfetch.infrastructure.cache.caching_service import TtlCache, make_cache_key
from restfetch.infrastructure.config.settings import ClientSettings
from restfetch.infrastructure.http.transport import HttpTransport
from restfetch.infrastructure.resilience.api_retry import (
    ApiRetryService, EventListener, RetryPolicy, Sleeper,
)
from restfetch.infrastructure.resilience.rate_limiter import RateLimitTracker

logger = logging.getLogger(__name__)


class ClientSession:
    """Resilient client for one remote service and one credential.

    Usage:
        async with create_session(settings, credential=token) as session:
            repo = await session.get_item("/repos/octocat/Hello-World")
            async for issue in session.fetch_all("/repos/octocat/Hello-World/issues"):
                ...
    """

    def __init__(
        self,
        transport: Transport,
        tracker: Optional[RateLimitTracker] = None,
        cache: Optional[CacheService] = None,
        settings: Optional[ClientSettings] = None,
        sleep: Sleeper = asyncio.sleep,
        event_listener: Optional[EventListener] = None,
    ):
        self.settings = settings or ClientSettings()
        self.transport = transport
        self.tracker = tracker or RateLimitTracker()
        self.cache = cache if cache is not None else TtlCache(ttl=self.settings.cache_ttl_seconds)
        self.retry_service = ApiRetryService(
            transport=transport,
            tracker=self.tracker,
            policy=RetryPolicy(
                max_attempts=self.settings.max_attempts,
                max_rate_limit_waits=self.settings.max_rate_limit_waits,
                backoff_seconds=self.settings.backoff_seconds,
            ),
            sleep=sleep,
            event_listener=event_listener,
        )
        self.fetcher = PaginatedFetcher(
            retry_service=self.retry_service,
            cache=self.cache,
            max_page_size=self.settings.max_page_size,
        )

    async def __aenter__(self) -> "ClientSession":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        await self.transport.aclose()

    @property
    def rate_limit(self) -> Optional[RateLimitState]:
        return self.tracker.state

    async def get_item(
        self,
        resource_path: str,
        params: Optional[QueryParams] = None,
        use_cache: bool = True,
        cancel_token: Optional[CancellationToken] = None,
    ) -> Any:
        """Fetches a single resource.

        Raises:
            NotFound: The resource does not exist or is hidden from this credential.
            Unauthorized: The credential is missing, invalid, or lacks access.
            RequestRejected: The service refused the request with another 4xx.
            FetchFailed: Transient failures outlasted the retry budget.
            Cancelled: The token fired while waiting on the rate limit.
        """
        key = make_cache_key(resource_path, params, self.transport.credential_fingerprint)
        if use_cache:
            cached = await self.cache.get(key)
            if cached is not CACHE_MISS:
                return cached

        outcome = await self.retry_service.execute(resource_path, params, cancel_token)
        if not outcome.ok:
            raise outcome_to_error(outcome, resource_path)

        await self.cache.put(key, outcome.payload)
        return outcome.payload

    def fetch_all(
        self,
        resource_path: str,
        page_size: Optional[int] = None,
        max_pages: Optional[int] = None,
        params: Optional[QueryParams] = None,
        cancel_token: Optional[CancellationToken] = None,
        items_key: Optional[str] = None,
    ) -> AsyncIterator[Any]:
        """Lazily yields every item of a collection; see PaginatedFetcher.fetch_all."""
        return self.fetcher.fetch_all(
            resource_path,
            page_size or self.settings.per_page,
            max_pages=max_pages if max_pages is not None else self.settings.max_pages,
            params=params,
            cancel_token=cancel_token,
            items_key=items_key,
        )

    async def collect_all(self, resource_path: str, **kwargs: Any) -> List[Any]:
        """Gathers a whole collection into a list."""
        return [item async for item in self.fetch_all(resource_path, **kwargs)]

    async def clear_cache(self) -> None:
        await self.cache.clear()

    async def evict_expired(self) -> int:
        return await self.cache.evict_expired()


def create_session(
    settings: Optional[ClientSettings] = None,
    credential: Optional[Credential] = None,
    event_listener: Optional[EventListener] = None,
) -> ClientSession:
    """Wires a ClientSession with an httpx transport from settings."""
    settings = settings or ClientSettings()
    transport = HttpTransport(
        base_url=settings.base_url,
        credential=credential,
        timeout=settings.timeout_seconds,
        user_agent=settings.user_agent,
        accept=settings.accept,
    )
    logger.debug(f"Creating client session for {settings.base_url}")
    return ClientSession(transport=transport, settings=settings, event_listener=event_listener)
