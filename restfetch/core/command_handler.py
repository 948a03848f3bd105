"""Command Handler: Orchestrates CLI command execution.

Receives commands from the main entry point (main.py), runs them against a
ClientSession and reports results and errors through the UserInterface.
"""

import logging
from typing import Any, List, Optional

from restfetch.core.services.client_session import ClientSession
from restfetch.domain.errors import Cancelled, FetchError, PartialResultError
from restfetch.domain.interfaces.user_interface import UserInterface
from restfetch.domain.models.common import QueryParams
from restfetch.domain.models.pagination import CancellationToken

logger = logging.getLogger(__name__)


class CommandHandler:
    """Handles incoming commands and delegates to the client session.

    Every handle_* coroutine returns a process exit code.
    """

    def __init__(self, session: ClientSession, ui: UserInterface):
        self.session = session
        self.ui = ui

    def _report(self, error: FetchError) -> None:
        logger.error(f"{type(error).__name__}: {error}")
        self.ui.display_error(f"{type(error).__name__}: {error}")

    async def handle_get(self, resource_path: str, raw: bool = False, use_cache: bool = True) -> int:
        """Handles the 'get' command for a single resource."""
        logger.info(f"Handling 'get' command for: {resource_path}")
        try:
            payload = await self.session.get_item(resource_path, use_cache=use_cache)
        except FetchError as e:
            self._report(e)
            return 1
        self.ui.display_json(payload, raw=raw)
        return 0

    async def handle_list(
        self,
        resource_path: str,
        page_size: Optional[int] = None,
        max_pages: Optional[int] = None,
        params: Optional[QueryParams] = None,
        items_key: Optional[str] = None,
        as_json: bool = False,
        columns: Optional[List[str]] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> int:
        """Handles the 'list' command: fetches every page of a collection.

        Partial results gathered before a failure or cancellation are still
        displayed, followed by the error.
        """
        logger.info(f"Handling 'list' command for: {resource_path}")
        items: List[Any] = []
        error: Optional[FetchError] = None
        try:
            async for item in self.session.fetch_all(
                resource_path,
                page_size=page_size,
                max_pages=max_pages,
                params=params,
                cancel_token=cancel_token,
                items_key=items_key,
            ):
                items.append(item)
        except ValueError as e:
            self.ui.display_error(f"Invalid request: {e}")
            return 2
        except FetchError as e:
            error = e

        if items or error is None:
            self._show_items(items, as_json, columns)
        if error is not None:
            if isinstance(error, PartialResultError) and error.items:
                self.ui.display_warning(
                    f"Showing {len(error.items)} item(s) gathered through page {error.last_page}."
                )
            self._report(error)
            return 130 if isinstance(error, Cancelled) else 1
        return 0

    def _show_items(self, items: List[Any], as_json: bool, columns: Optional[List[str]]) -> None:
        if as_json:
            self.ui.display_json(items, raw=True)
        else:
            self.ui.display_items(items, columns=columns)

    async def handle_rate_limit(self, probe_path: str = "/rate_limit") -> int:
        """Handles the 'rate-limit' command by probing the service."""
        logger.info(f"Handling 'rate-limit' command via {probe_path}")
        try:
            await self.session.get_item(probe_path, use_cache=False)
        except FetchError as e:
            self._report(e)
            if self.session.rate_limit is None:
                return 1
        self.ui.display_rate_limit(self.session.rate_limit)
        return 0

