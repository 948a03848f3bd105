"""Domain Events related to requests and resilience.

Emitted by the retry executor when requests are deferred, issued, retried,
fail, or succeed.
"""

from dataclasses import dataclass, field
import time
from typing import Optional


@dataclass
class DomainEvent:
    """Base class for domain events."""
    pass


@dataclass
class RequestIssued(DomainEvent):
    """A request is about to be sent."""
    resource_path: str
    attempt: int
    timestamp: float = field(default_factory=time.time)


@dataclass
class RequestSucceeded(DomainEvent):
    """A request returned a usable response."""
    resource_path: str
    latency_ms: float
    status_code: Optional[int] = None
    timestamp: float = field(default_factory=time.time)


@dataclass
class RequestFailed(DomainEvent):
    """A request failed definitively (after any retries)."""
    resource_path: str
    outcome_kind: str
    error_message: Optional[str] = None
    status_code: Optional[int] = None
    timestamp: float = field(default_factory=time.time)


@dataclass
class RequestDeferred(DomainEvent):
    """A request is held back until the quota window resets."""
    resource_path: str
    wait_time_seconds: float
    timestamp: float = field(default_factory=time.time)


@dataclass
class RetryScheduled(DomainEvent):
    """A retry is scheduled for a failed request."""
    resource_path: str
    attempt_number: int
    delay_seconds: float
    reason: str
    timestamp: float = field(default_factory=time.time)
