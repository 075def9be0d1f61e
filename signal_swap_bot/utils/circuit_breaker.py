"""
Circuit breaker for upstream HTTP services.

Stops hammering a failing aggregator; callers get an immediate typed
failure instead of another slow request.
"""

import logging
import time
from enum import Enum
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class BreakerState(str, Enum):
    CLOSED = "CLOSED"        # requests pass through
    OPEN = "OPEN"            # requests rejected until recovery_timeout elapses
    HALF_OPEN = "HALF_OPEN"  # one trial request in flight


class CircuitBreaker:
    """
    Opens after `failure_threshold` consecutive upstream failures.

    After `recovery_timeout` a single trial request is admitted. Its outcome
    closes the circuit (success) or re-opens it (failure); concurrent callers
    are rejected while the trial is pending. A trial that never reports back
    expires after another `recovery_timeout`.

    Usage:
        breaker = CircuitBreaker(name="Jupiter", failure_threshold=3)

        if not breaker.can_execute():
            raise QuoteUnavailableException("circuit open")
        try:
            resp = await call()
        except aiohttp.ClientError:
            breaker.record_failure()
            raise
        breaker.record_success()
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: float = 30.0,
        name: str = "default",
        clock: Callable[[], float] = time.monotonic
    ):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.name = name
        self._clock = clock

        self.state = BreakerState.CLOSED
        self.consecutive_failures = 0
        self.opened_at = 0.0
        self._trial_started: Optional[float] = None

    def _open(self):
        if self.state != BreakerState.OPEN:
            logger.warning(
                f"Circuit '{self.name}' opened after {self.consecutive_failures} consecutive failures"
            )
        self.state = BreakerState.OPEN
        self.opened_at = self._clock()
        self._trial_started = None

    def record_success(self):
        if self.state != BreakerState.CLOSED:
            logger.info(f"Circuit '{self.name}' closed: upstream recovered")
        self.state = BreakerState.CLOSED
        self.consecutive_failures = 0
        self._trial_started = None

    def record_failure(self):
        self.consecutive_failures += 1
        if self.state == BreakerState.HALF_OPEN or self.consecutive_failures >= self.failure_threshold:
            self._open()

    def can_execute(self) -> bool:
        """True when a request may go upstream now."""
        now = self._clock()

        if self.state == BreakerState.CLOSED:
            return True

        if self.state == BreakerState.OPEN:
            if now - self.opened_at < self.recovery_timeout:
                return False
            self.state = BreakerState.HALF_OPEN
            self._trial_started = now
            logger.info(f"Circuit '{self.name}' half-open: admitting one trial request")
            return True

        # HALF_OPEN
        if self._trial_started is not None and now - self._trial_started < self.recovery_timeout:
            return False
        self._trial_started = now
        return True
