"""Paginated fetcher: presents a page-at-a-time collection as one sequence.

Pages are requested strictly one after another. Before each request the
cache is consulted and the rate-limit tracker decides whether to hold back;
the cancellation token is checked at every page boundary.
"""

import logging
from typing import Any, AsyncIterator, List, Optional

from restfetch.domain.errors import Cancelled, outcome_to_error
from restfetch.domain.interfaces.cache import CACHE_MISS, CacheService
from restfetch.domain.models.common import QueryParams, ResourcePage
from restfetch.domain.models.outcome import FetchOutcome, OutcomeKind
from restfetch.domain.models.pagination import DEFAULT_MAX_PAGE_SIZE, CancellationToken, PageCursor
from restfetch.infrastructure.cache.caching_service import make_cache_key
from restfetch.infrastructure.resilience.api_retry import ApiRetryService

logger = logging.getLogger(__name__)

# Client errors that mean "no more pages" once at least one page succeeded.
END_OF_DATA_KINDS = frozenset({OutcomeKind.NOT_FOUND, OutcomeKind.CLIENT_ERROR})


class PaginatedFetcher:
    """Fetches every item of a paged collection, in server order."""

    def __init__(
        self,
        retry_service: ApiRetryService,
        cache: Optional[CacheService] = None,
        max_page_size: int = DEFAULT_MAX_PAGE_SIZE,
    ):
        self.retry_service = retry_service
        self.cache = cache
        self.max_page_size = max_page_size

    def _extract_items(self, payload: Any, items_key: Optional[str]) -> Optional[ResourcePage]:
        if items_key is not None and isinstance(payload, dict):
            payload = payload.get(items_key)
        if isinstance(payload, list):
            return ResourcePage(payload)
        return None

    async def _load_page(
        self,
        resource_path: str,
        params: QueryParams,
        cancel_token: Optional[CancellationToken],
    ) -> FetchOutcome:
        """Returns the page outcome, from cache when fresh."""
        key = make_cache_key(resource_path, params, self.retry_service.transport.credential_fingerprint)
        if self.cache is not None:
            cached = await self.cache.get(key)
            if cached is not CACHE_MISS:
                logger.debug(f"Serving page {params['page']} of {resource_path} from cache")
                return FetchOutcome(OutcomeKind.OK, payload=cached)

        outcome = await self.retry_service.execute(resource_path, params, cancel_token)
        if outcome.ok and self.cache is not None:
            await self.cache.put(key, outcome.payload)
        return outcome

    async def fetch_all(
        self,
        resource_path: str,
        page_size: int,
        max_pages: Optional[int] = None,
        params: Optional[QueryParams] = None,
        cancel_token: Optional[CancellationToken] = None,
        items_key: Optional[str] = None,
    ) -> AsyncIterator[Any]:
        """Yields every item of the collection at `resource_path`.

        Each call starts a fresh cursor at page 1. The sequence ends on a
        short or empty page, after `max_pages` pages, or when a page after
        the first answers 404 or another client error.

        Args:
            resource_path: Collection path, e.g. '/repos/octocat/Hello-World/issues'.
            page_size: Items per page (1..max_page_size).
            max_pages: Optional upper bound on pages requested.
            params: Extra query parameters; 'page' and 'per_page' are managed here.
            cancel_token: Checked at page boundaries and during waits.
            items_key: Key holding the list in wrapped payloads (e.g. 'items').

        Raises:
            NotFound: The first page does not exist.
            Unauthorized: The credential is missing or lacks access.
            RequestRejected: The first page was refused with another 4xx.
            FetchFailed: Retries were exhausted; carries partial items.
            Cancelled: The token fired; carries partial items.
            ValueError: page_size or max_pages out of range.
        """
        if max_pages is not None and max_pages < 1:
            raise ValueError(f"max_pages must be at least 1, got {max_pages}")
        cursor = PageCursor(page_size=page_size, max_page_size=self.max_page_size)
        gathered: List[Any] = []
        base_params = {k: v for k, v in (params or {}).items() if k not in ("page", "per_page")}

        logger.info(f"Fetching collection {resource_path} (per_page={page_size}, max_pages={max_pages or 'unbounded'})")

        while True:
            if cancel_token is not None and cancel_token.cancelled:
                logger.info(f"Fetch of {resource_path} cancelled after page {cursor.last_completed}")
                raise Cancelled(
                    "Fetch cancelled", resource_path=resource_path, page=cursor.page_number,
                    last_page=cursor.last_completed, items=gathered,
                )

            page_params = {**base_params, **cursor.as_params()}
            try:
                outcome = await self._load_page(resource_path, page_params, cancel_token)
            except Cancelled as e:
                raise Cancelled(
                    e.message, resource_path=resource_path, page=cursor.page_number,
                    cause=e.cause, last_page=cursor.last_completed, items=gathered,
                ) from e.__cause__

            if not outcome.ok:
                if cursor.page_number > 1 and outcome.kind in END_OF_DATA_KINDS:
                    logger.info(
                        f"Page {cursor.page_number} of {resource_path} answered "
                        f"{outcome.describe()}; treating as end of data"
                    )
                    return
                raise outcome_to_error(
                    outcome, resource_path, page=cursor.page_number,
                    last_page=cursor.last_completed, items=gathered,
                )

            items = self._extract_items(outcome.payload, items_key)
            if items is None:
                malformed = FetchOutcome(
                    OutcomeKind.MALFORMED, outcome.status_code,
                    error=f"expected a list, got {type(outcome.payload).__name__}",
                )
                raise outcome_to_error(
                    malformed, resource_path, page=cursor.page_number,
                    last_page=cursor.last_completed, items=gathered,
                )

            logger.debug(f"Page {cursor.page_number} of {resource_path}: {len(items)} item(s)")
            gathered.extend(items)
            for item in items:
                yield item

            last_page = cursor.is_last_page(len(items))
            cursor.advance()
            if last_page:
                logger.info(f"Collection {resource_path} exhausted after {cursor.last_completed} page(s), {len(gathered)} item(s)")
                return
            if max_pages is not None and cursor.last_completed >= max_pages:
                logger.info(f"Stopped {resource_path} at max_pages={max_pages}")
                return

    async def collect_all(self, resource_path: str, page_size: int, **kwargs: Any) -> List[Any]:
        """Drains fetch_all into a list."""
        return [item async for item in self.fetch_all(resource_path, page_size, **kwargs)]
