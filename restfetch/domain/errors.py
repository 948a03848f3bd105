"""Error taxonomy surfaced to callers of the client.

Every error carries the resource path, the page number (when the request
was part of a collection fetch) and the underlying cause, so it can be
logged usefully. Credentials never appear in messages.
"""

from typing import Any, List, Optional

from restfetch.domain.models.outcome import FetchOutcome, OutcomeKind


class FetchError(Exception):
    """Base class for every error raised by the client."""

    def __init__(
        self,
        message: str,
        resource_path: Optional[str] = None,
        page: Optional[int] = None,
        status_code: Optional[int] = None,
        cause: Optional[str] = None,
    ):
        self.message = message
        self.resource_path = resource_path
        self.page = page
        self.status_code = status_code
        self.cause = cause
        super().__init__(self._format())

    def _format(self) -> str:
        details = []
        if self.resource_path:
            details.append(f"path={self.resource_path}")
        if self.page is not None:
            details.append(f"page={self.page}")
        if self.status_code is not None:
            details.append(f"status={self.status_code}")
        if self.cause:
            details.append(f"cause={self.cause}")
        if not details:
            return self.message
        return f"{self.message} ({', '.join(details)})"


class NotFound(FetchError):
    """The resource does not exist (or is hidden from this credential)."""


class Unauthorized(FetchError):
    """The credential is missing, invalid, or lacks access to the resource."""


class RequestRejected(FetchError):
    """The service refused the request with a client error other than 401/403/404."""


class RateLimited(FetchError):
    """Quota exhausted; resolved internally by waiting for the reset."""

    def __init__(self, message: str, reset_at: Optional[float] = None, **kwargs: Any):
        self.reset_at = reset_at
        super().__init__(message, **kwargs)


class PartialResultError(FetchError):
    """An error raised part-way through a collection fetch."""

    def __init__(
        self,
        message: str,
        last_page: int = 0,
        items: Optional[List[Any]] = None,
        **kwargs: Any,
    ):
        self.last_page = last_page
        self.items = list(items or [])
        super().__init__(message, **kwargs)


class FetchFailed(PartialResultError):
    """Retries on a transient condition were exhausted.

    Attributes:
        last_page: The last page fetched successfully (0 if none was).
        items: Items gathered from the pages before the failure.
    """


class Cancelled(PartialResultError):
    """The caller cancelled the fetch; `items` holds what was gathered."""


def outcome_to_error(
    outcome: FetchOutcome,
    resource_path: str,
    page: Optional[int] = None,
    last_page: int = 0,
    items: Optional[List[Any]] = None,
) -> FetchError:
    """Maps a terminal (non-OK) outcome to the error the caller should see."""
    common = dict(resource_path=resource_path, page=page, status_code=outcome.status_code, cause=outcome.error)
    if outcome.kind is OutcomeKind.NOT_FOUND:
        return NotFound("Resource not found", **common)
    if outcome.kind in (OutcomeKind.UNAUTHORIZED, OutcomeKind.FORBIDDEN):
        return Unauthorized("Not authorized to access resource", **common)
    if outcome.kind is OutcomeKind.CLIENT_ERROR:
        return RequestRejected("Request rejected by service", **common)
    if outcome.kind is OutcomeKind.RATE_LIMITED:
        return FetchFailed("Rate limit did not clear after waiting", last_page=last_page, items=items, **common)
    if outcome.kind is OutcomeKind.MALFORMED:
        return FetchFailed("Unexpected response body", last_page=last_page, items=items, **common)
    if outcome.kind is OutcomeKind.TRANSIENT:
        return FetchFailed("Request failed after retries", last_page=last_page, items=items, **common)
    raise ValueError(f"Outcome {outcome.kind.value} is not an error")
