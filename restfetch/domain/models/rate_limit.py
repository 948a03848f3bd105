"""Quota snapshot as last reported by the remote service."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class RateLimitState:
    """Latest known rate-limit snapshot for one endpoint family.

    Attributes:
        limit: Requests allowed per quota window.
        remaining: Requests left in the current window (never above limit).
        reset_at: Absolute epoch seconds at which the window resets.
        used: Requests already spent, when the service reports it.
        resource: Quota bucket name (e.g. 'core', 'search'), when reported.
    """
    limit: int
    remaining: int
    reset_at: float
    used: Optional[int] = None
    resource: Optional[str] = None

    @property
    def exhausted(self) -> bool:
        return self.remaining <= 0

    def seconds_until_reset(self, now: float) -> float:
        return max(0.0, self.reset_at - now)
