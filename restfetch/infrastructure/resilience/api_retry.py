"""Service for executing requests with rate-limit gating and retries.

Retry policy is a pure decision over the FetchOutcome of each attempt:
transient failures are retried a bounded number of times, quota exhaustion
waits for the reset, and everything else is returned to the caller as-is.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from restfetch.domain.errors import Cancelled, RateLimited
from restfetch.domain.events.api_events import (
    DomainEvent, RequestDeferred, RequestFailed, RequestIssued,
    RequestSucceeded, RetryScheduled,
)
from restfetch.domain.interfaces.transport import Transport
from restfetch.domain.models.common import QueryParams
from restfetch.domain.models.outcome import FetchOutcome, OutcomeKind
from restfetch.domain.models.pagination import CancellationToken
from restfetch.infrastructure.resilience.rate_limiter import RateLimitTracker

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 2  # one retry
DEFAULT_MAX_RATE_LIMIT_WAITS = 3
DEFAULT_BACKOFF_SECONDS = 1.0

Sleeper = Callable[[float], Awaitable[Any]]
EventListener = Callable[[DomainEvent], None]


class RetryDecision(str, Enum):
    RETURN = "return"      # hand the outcome to the caller
    RETRY = "retry"        # transient failure, try again after backoff
    WAIT = "wait"          # quota exhausted, wait for reset then try again
    GIVE_UP = "give_up"    # retryable, but the budget is spent


@dataclass(frozen=True)
class RetryPolicy:
    """Retry budget for a single request.

    Attributes:
        max_attempts: Attempts allowed for transient failures (2 = retry once).
        max_rate_limit_waits: Quota waits allowed before giving up.
        backoff_seconds: Pause before retrying a transient failure.
    """
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    max_rate_limit_waits: int = DEFAULT_MAX_RATE_LIMIT_WAITS
    backoff_seconds: float = DEFAULT_BACKOFF_SECONDS

    def decide(self, outcome: FetchOutcome, failures: int, rate_limit_waits: int) -> RetryDecision:
        """Chooses what to do after an attempt.

        Args:
            outcome: Outcome of the attempt just made.
            failures: Consecutive transient failures, including this one.
            rate_limit_waits: Quota waits already spent on this request.
        """
        if not outcome.is_retryable:
            return RetryDecision.RETURN
        if outcome.kind is OutcomeKind.RATE_LIMITED:
            if rate_limit_waits < self.max_rate_limit_waits:
                return RetryDecision.WAIT
            return RetryDecision.GIVE_UP
        if failures < self.max_attempts:
            return RetryDecision.RETRY
        return RetryDecision.GIVE_UP


def _log_event(event: DomainEvent) -> None:
    logger.debug(f"EVENT: {event}")


class ApiRetryService:
    """Issues requests through a transport, honouring the rate-limit tracker."""

    def __init__(
        self,
        transport: Transport,
        tracker: RateLimitTracker,
        policy: Optional[RetryPolicy] = None,
        sleep: Sleeper = asyncio.sleep,
        event_listener: Optional[EventListener] = None,
    ):
        """Initializes the ApiRetryService.

        Args:
            transport: The transport that performs requests.
            tracker: Rate-limit tracker updated from every response.
            policy: Retry budget; defaults to one retry for transient errors.
            sleep: Awaitable sleep, injectable for tests.
            event_listener: Receives domain events; logs them by default.
        """
        self.transport = transport
        self.tracker = tracker
        self.policy = policy or RetryPolicy()
        self._sleep = sleep
        self._emit = event_listener or _log_event
        logger.info(
            f"ApiRetryService initialized: max_attempts={self.policy.max_attempts}, "
            f"max_rate_limit_waits={self.policy.max_rate_limit_waits}, "
            f"backoff={self.policy.backoff_seconds}s"
        )

    async def pause(self, seconds: float, cancel_token: Optional[CancellationToken] = None) -> bool:
        """Sleeps for `seconds`; returns False if cancelled first."""
        if seconds <= 0:
            return not (cancel_token and cancel_token.cancelled)
        if cancel_token is None:
            await self._sleep(seconds)
            return True
        if cancel_token.cancelled:
            return False
        sleeper = asyncio.ensure_future(self._sleep(seconds))
        waiter = asyncio.ensure_future(cancel_token.wait())
        done, pending = await asyncio.wait({sleeper, waiter}, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        return waiter not in done

    async def _wait_for_quota(self, resource_path: str, cancel_token: Optional[CancellationToken]) -> None:
        wait = self.tracker.should_wait()
        if wait <= 0:
            return
        logger.info(f"Rate limit exhausted, waiting {wait:.1f}s before requesting {resource_path}")
        self._emit(RequestDeferred(resource_path=resource_path, wait_time_seconds=wait))
        if not await self.pause(wait, cancel_token):
            state = self.tracker.state
            raise Cancelled(
                "Cancelled while waiting for rate limit reset",
                resource_path=resource_path,
            ) from RateLimited(
                "Rate limit exhausted",
                reset_at=state.reset_at if state else None,
                resource_path=resource_path,
            )

    async def execute(
        self,
        resource_path: str,
        params: Optional[QueryParams] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> FetchOutcome:
        """Sends a request, retrying per policy.

        Returns:
            The final outcome: OK, a non-retryable failure, or the last
            retryable failure once the budget is spent.

        Raises:
            Cancelled: If the token fires during a rate-limit or backoff wait.
        """
        attempt = 0
        failures = 0
        rate_limit_waits = 0

        while True:
            await self._wait_for_quota(resource_path, cancel_token)

            attempt += 1
            self._emit(RequestIssued(resource_path=resource_path, attempt=attempt))
            start_time = time.perf_counter()
            outcome = await self.transport.send(resource_path, params)
            latency_ms = (time.perf_counter() - start_time) * 1000
            self.tracker.observe(outcome.headers)

            if outcome.ok:
                self._emit(RequestSucceeded(resource_path=resource_path, latency_ms=latency_ms, status_code=outcome.status_code))
                return outcome

            if outcome.kind is OutcomeKind.TRANSIENT:
                failures += 1
            else:
                # Only consecutive transient failures count against the budget.
                failures = 0
            decision = self.policy.decide(outcome, failures, rate_limit_waits)

            if decision is RetryDecision.RETURN:
                logger.debug(f"Non-retryable outcome for {resource_path}: {outcome.describe()}")
                self._emit(RequestFailed(resource_path=resource_path, outcome_kind=outcome.kind.value, error_message=outcome.error, status_code=outcome.status_code))
                return outcome

            if decision is RetryDecision.GIVE_UP:
                logger.error(f"Giving up on {resource_path} after {attempt} attempt(s): {outcome.describe()}")
                self._emit(RequestFailed(resource_path=resource_path, outcome_kind=outcome.kind.value, error_message=outcome.error, status_code=outcome.status_code))
                return outcome

            if decision is RetryDecision.WAIT:
                rate_limit_waits += 1
                if outcome.retry_after is not None:
                    self.tracker.note_retry_after(outcome.retry_after)
                delay = self.tracker.should_wait()
                self._emit(RetryScheduled(resource_path=resource_path, attempt_number=rate_limit_waits, delay_seconds=delay, reason=outcome.kind.value))
                logger.warning(f"Rate limited on {resource_path} ({outcome.describe()}), wait {rate_limit_waits}/{self.policy.max_rate_limit_waits}")
                if delay <= 0:
                    # No reset time reported; back off before asking again.
                    if not await self.pause(self.policy.backoff_seconds, cancel_token):
                        raise Cancelled("Cancelled while waiting to retry", resource_path=resource_path, cause=outcome.describe())
                continue

            delay = self.policy.backoff_seconds
            logger.warning(
                f"Transient error on {resource_path}, attempt {failures}/{self.policy.max_attempts}: "
                f"{outcome.describe()}. Retrying in {delay:.2f}s..."
            )
            self._emit(RetryScheduled(resource_path=resource_path, attempt_number=failures, delay_seconds=delay, reason=outcome.kind.value))
            if not await self.pause(delay, cancel_token):
                raise Cancelled("Cancelled while waiting to retry", resource_path=resource_path, cause=outcome.describe())
