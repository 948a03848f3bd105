"""Interface for the HTTP transport.

A transport turns one GET request into a FetchOutcome. It never raises for
HTTP status codes or network failures; those are outcome kinds.
"""

import abc
from typing import Optional

from restfetch.domain.models.common import QueryParams, ResourcePath
from restfetch.domain.models.outcome import FetchOutcome


class Transport(abc.ABC):
    """Abstract Base Class for issuing requests to the remote service."""

    @abc.abstractmethod
    async def send(self, resource_path: ResourcePath, params: Optional[QueryParams] = None) -> FetchOutcome:
        """Sends a GET request for the resource.

        Args:
            resource_path: Path relative to the service base URL.
            params: Query parameters.

        Returns:
            The classified outcome of the request.
        """
        pass

    @property
    @abc.abstractmethod
    def credential_fingerprint(self) -> str:
        """Stable, non-reversible identifier of the credential in use ('' if none)."""
        pass

    async def aclose(self) -> None:
        """Releases any underlying connections."""
        return None
