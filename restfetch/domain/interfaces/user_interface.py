"""Interface for presenting results to the user.

Allows the command handler to stay independent from the concrete console
library.
"""

import abc
from typing import Any, Iterable, Optional

from restfetch.domain.models.rate_limit import RateLimitState


class UserInterface(abc.ABC):
    """Abstract Base Class for user-facing output."""

    @abc.abstractmethod
    def display_json(self, payload: Any, **kwargs: Any) -> None:
        """Displays a JSON-compatible payload."""
        pass

    @abc.abstractmethod
    def display_items(self, items: Iterable[Any], columns: Optional[Iterable[str]] = None) -> None:
        """Displays a sequence of collection items.

        Args:
            items: The items to display, in order.
            columns: Field names to show; inferred from the items if None.
        """
        pass

    @abc.abstractmethod
    def display_rate_limit(self, state: Optional[RateLimitState]) -> None:
        """Displays the latest known quota snapshot."""
        pass

    @abc.abstractmethod
    def display_error(self, error_message: str, **kwargs: Any) -> None:
        pass

    @abc.abstractmethod
    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        pass

    @abc.abstractmethod
    def display_info(self, info_message: str, **kwargs: Any) -> None:
        pass
