"""httpx-backed transport for JSON REST services.

Sends GET requests and classifies every response or network failure into a
FetchOutcome. Nothing here raises for HTTP status codes.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from restfetch import __version__
from restfetch.domain.interfaces.transport import Transport
from restfetch.domain.models.common import Credential, QueryParams, ResourcePath
from restfetch.domain.models.outcome import FetchOutcome, OutcomeKind
from restfetch.infrastructure.cache.caching_service import credential_fingerprint
from restfetch.infrastructure.resilience.rate_limiter import REMAINING_HEADER

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.github.com"
DEFAULT_TIMEOUT_SECONDS = 10.0
DEFAULT_ACCEPT = "application/vnd.github+json"
DEFAULT_USER_AGENT = f"restfetch/{__version__}"


def _parse_retry_after(value: Optional[str]) -> Optional[float]:
    if value is None:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        # HTTP-date form is not used by the services we target.
        return None


def classify_response(response: httpx.Response) -> FetchOutcome:
    """Turns an httpx response into a FetchOutcome."""
    status = response.status_code
    headers: Dict[str, str] = dict(response.headers)
    retry_after = _parse_retry_after(response.headers.get("retry-after"))

    if 200 <= status < 300:
        if not response.content:
            return FetchOutcome(OutcomeKind.OK, status, None, headers)
        try:
            payload: Any = response.json()
        except ValueError as e:
            return FetchOutcome(OutcomeKind.MALFORMED, status, None, headers, error=f"invalid JSON: {e}")
        return FetchOutcome(OutcomeKind.OK, status, payload, headers)

    message = _error_message(response)
    if status == 401:
        kind = OutcomeKind.UNAUTHORIZED
    elif status in (403, 429):
        quota_exhausted = response.headers.get(REMAINING_HEADER, "").strip() == "0"
        if quota_exhausted or retry_after is not None or status == 429:
            kind = OutcomeKind.RATE_LIMITED
        else:
            kind = OutcomeKind.FORBIDDEN
    elif status == 404:
        kind = OutcomeKind.NOT_FOUND
    elif 400 <= status < 500:
        kind = OutcomeKind.CLIENT_ERROR
    else:
        kind = OutcomeKind.TRANSIENT
    return FetchOutcome(kind, status, None, headers, error=message, retry_after=retry_after)


def _error_message(response: httpx.Response) -> Optional[str]:
    """Extracts the service's error message, if the body carries one."""
    try:
        body = response.json()
    except ValueError:
        return response.reason_phrase or None
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return response.reason_phrase or None


class HttpTransport(Transport):
    """Transport implementation over a single httpx.AsyncClient."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        credential: Optional[Credential] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        user_agent: str = DEFAULT_USER_AGENT,
        accept: str = DEFAULT_ACCEPT,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """Initializes the transport.

        Args:
            base_url: Root URL of the service.
            credential: Optional bearer token; sent only when present.
            timeout: Per-request timeout in seconds.
            user_agent: User-Agent header value.
            accept: Accept header value.
            client: Pre-built client (tests); one is created otherwise.
        """
        headers = {"Accept": accept, "User-Agent": user_agent}
        if credential:
            headers["Authorization"] = f"Bearer {credential}"
        self._fingerprint = credential_fingerprint(credential)
        self._owns_client = client is None
        if client is None:
            client = httpx.AsyncClient(base_url=base_url, timeout=httpx.Timeout(timeout))
        self._client = client
        self._headers = headers
        self.base_url = base_url
        logger.info(
            f"HttpTransport initialized: base_url={base_url}, timeout={timeout}s, "
            f"authenticated={bool(credential)}"
        )

    @property
    def credential_fingerprint(self) -> str:
        return self._fingerprint

    async def send(self, resource_path: ResourcePath, params: Optional[QueryParams] = None) -> FetchOutcome:
        path = "/" + resource_path.lstrip("/")
        try:
            response = await self._client.get(path, params=params, headers=self._headers)
        except httpx.TimeoutException as e:
            logger.warning(f"Timeout requesting {path}: {type(e).__name__}")
            return FetchOutcome(OutcomeKind.TRANSIENT, error=f"timeout ({type(e).__name__})")
        except httpx.TransportError as e:
            logger.warning(f"Network error requesting {path}: {type(e).__name__}: {e}")
            return FetchOutcome(OutcomeKind.TRANSIENT, error=f"network error ({type(e).__name__})")
        outcome = classify_response(response)
        logger.debug(f"GET {path} -> {outcome.describe()}")
        return outcome

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
