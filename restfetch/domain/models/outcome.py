"""Explicit request outcome type.

Every HTTP exchange is reduced to a FetchOutcome so that retry policy can be
a plain decision over the outcome kind instead of inspecting exceptions.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class OutcomeKind(str, Enum):
    """Classification of a finished request."""
    OK = "ok"
    NOT_FOUND = "not_found"          # 404
    UNAUTHORIZED = "unauthorized"    # 401
    FORBIDDEN = "forbidden"          # 403 without quota exhaustion
    RATE_LIMITED = "rate_limited"    # 403/429 with quota exhausted
    CLIENT_ERROR = "client_error"    # any other 4xx
    TRANSIENT = "transient"          # 5xx, timeout, network error
    MALFORMED = "malformed"          # 2xx with an unusable body


RETRYABLE_KINDS = frozenset({OutcomeKind.TRANSIENT, OutcomeKind.RATE_LIMITED})


@dataclass
class FetchOutcome:
    """Result of a single request against the remote service."""
    kind: OutcomeKind
    status_code: Optional[int] = None
    payload: Any = None
    headers: Dict[str, str] = field(default_factory=dict)
    error: Optional[str] = None
    retry_after: Optional[float] = None  # seconds, from a Retry-After header

    @property
    def ok(self) -> bool:
        return self.kind is OutcomeKind.OK

    @property
    def is_retryable(self) -> bool:
        return self.kind in RETRYABLE_KINDS

    def describe(self) -> str:
        """Short human-readable form used in logs and error messages."""
        parts = [self.kind.value]
        if self.status_code is not None:
            parts.append(f"HTTP {self.status_code}")
        if self.error:
            parts.append(self.error)
        return ", ".join(parts)
