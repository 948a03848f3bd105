"""Pagination cursor and cooperative cancellation signal."""

import asyncio
from dataclasses import dataclass

from restfetch.domain.models.common import PageRequest

DEFAULT_MAX_PAGE_SIZE = 100


@dataclass
class PageCursor:
    """Position marker for one collection fetch.

    Created per fetch call and thrown away when the call returns.
    """
    page_size: int
    page_number: int = 1
    max_page_size: int = DEFAULT_MAX_PAGE_SIZE

    def __post_init__(self):
        if not 1 <= self.page_size <= self.max_page_size:
            raise ValueError(
                f"page_size must be between 1 and {self.max_page_size}, got {self.page_size}"
            )
        if self.page_number < 1:
            raise ValueError(f"page_number starts at 1, got {self.page_number}")

    @property
    def last_completed(self) -> int:
        """Number of the last page fetched successfully (0 before the first)."""
        return self.page_number - 1

    def as_params(self) -> PageRequest:
        return PageRequest(page=self.page_number, per_page=self.page_size)

    def is_last_page(self, item_count: int) -> bool:
        """A short page (including an empty one) ends the collection."""
        return item_count < self.page_size

    def advance(self) -> None:
        self.page_number += 1


class CancellationToken:
    """Cooperative cancellation flag shared between a caller and a fetch.

    The fetch checks it at page boundaries and while paused; a request that
    is already in flight is never interrupted.
    """

    def __init__(self):
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()
