"""Rate-limit tracker driven by response headers.

Keeps the latest quota snapshot reported by the service and tells the caller
how long to hold back before the next request. It never sleeps itself.
"""

import time
import logging
from typing import Callable, Mapping, Optional

from restfetch.domain.models.rate_limit import RateLimitState

logger = logging.getLogger(__name__)

LIMIT_HEADER = "x-ratelimit-limit"
REMAINING_HEADER = "x-ratelimit-remaining"
RESET_HEADER = "x-ratelimit-reset"
USED_HEADER = "x-ratelimit-used"
RESOURCE_HEADER = "x-ratelimit-resource"


def _parse_int(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def _parse_float(value: Optional[str]) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(str(value).strip())
    except ValueError:
        return None


class RateLimitTracker:
    """Latest-known quota state for one endpoint family.

    Not thread-safe: one tracker belongs to one client session. Wrap it
    externally if it has to be shared.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        """Initializes the tracker.

        Args:
            clock: Source of epoch seconds, comparable with the reset header.
        """
        self._clock = clock
        self._state: Optional[RateLimitState] = None

    @property
    def state(self) -> Optional[RateLimitState]:
        return self._state

    def observe(self, headers: Mapping[str, str], now: Optional[float] = None) -> Optional[RateLimitState]:
        """Updates the snapshot from response headers.

        Missing or unparsable headers are treated as unknown and leave the
        corresponding prior values untouched. Returns the current snapshot.
        """
        if now is None:
            now = self._clock()
        lowered = {str(k).lower(): v for k, v in headers.items()}
        limit = _parse_int(lowered.get(LIMIT_HEADER))
        remaining = _parse_int(lowered.get(REMAINING_HEADER))
        reset_at = _parse_float(lowered.get(RESET_HEADER))

        if limit is None and remaining is None and reset_at is None:
            return self._state

        prior = self._state
        if prior is None:
            if remaining is None:
                # Not enough to build a first snapshot.
                logger.debug("Ignoring partial rate-limit headers with no prior state.")
                return None
            # Without a limit header, the remaining count is the best known limit.
            new_limit = limit if limit is not None else remaining
            new_remaining = remaining
            new_reset = reset_at if reset_at is not None else now
        else:
            new_limit = limit if limit is not None else prior.limit
            new_remaining = remaining if remaining is not None else prior.remaining
            new_reset = prior.reset_at
            if reset_at is not None:
                window_open = now < prior.reset_at
                # Within a window the reset time only moves forward.
                new_reset = max(prior.reset_at, reset_at) if window_open else reset_at

        if new_remaining > new_limit:
            logger.debug(f"Clamping remaining={new_remaining} to limit={new_limit}")
            new_remaining = new_limit

        self._state = RateLimitState(
            limit=new_limit,
            remaining=max(0, new_remaining),
            reset_at=new_reset,
            used=_parse_int(lowered.get(USED_HEADER)),
            resource=lowered.get(RESOURCE_HEADER) or (prior.resource if prior else None),
        )
        logger.debug(
            f"Rate limit observed: {self._state.remaining}/{self._state.limit} "
            f"remaining, resets at {self._state.reset_at:.0f}"
        )
        return self._state

    def note_retry_after(self, seconds: float, now: Optional[float] = None) -> None:
        """Marks the quota exhausted for `seconds`, as a Retry-After header asks."""
        if now is None:
            now = self._clock()
        reset_at = now + max(0.0, seconds)
        prior = self._state
        if prior is not None:
            reset_at = max(reset_at, prior.reset_at) if now < prior.reset_at else reset_at
        self._state = RateLimitState(
            limit=prior.limit if prior else 0,
            remaining=0,
            reset_at=reset_at,
            used=prior.used if prior else None,
            resource=prior.resource if prior else None,
        )
        logger.info(f"Service asked to retry after {seconds:.1f}s")

    def should_wait(self, now: Optional[float] = None) -> float:
        """Seconds to hold back before the next request (0.0 if none)."""
        if self._state is None or self._state.remaining > 0:
            return 0.0
        if now is None:
            now = self._clock()
        return self._state.seconds_until_reset(now)
