"""Per-provider circuit breaker."""

import asyncio
import logging
import time
from collections.abc import Callable
from enum import Enum

from community_search.errors import CircuitOpenError

logger = logging.getLogger(__name__)


class CircuitState(str, Enum):
    """Circuit breaker states."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """Stops calling a repeatedly failing provider for a cool-down period.

    ``closed`` lets calls through and counts consecutive failures. Reaching
    ``failure_threshold`` opens the circuit, and every call is then rejected
    with ``CircuitOpenError`` without touching the network. Once
    ``reset_timeout`` seconds have passed the next caller is admitted as the
    single ``half_open`` trial; its success closes the circuit, its failure
    reopens it and restarts the cool-down.

    Usage::

        await breaker.before_call()
        try:
            result = await call()
        except ProviderTransientError:
            await breaker.record_failure()
            raise
        await breaker.record_success()
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        reset_timeout: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize circuit breaker.

        Args:
            name: Provider name, used in errors and logs
            failure_threshold: Consecutive failures that open the circuit
            reset_timeout: Seconds to wait before allowing a trial call
            clock: Monotonic time source
        """
        if failure_threshold < 1:
            raise ValueError("failure_threshold must be at least 1")

        self.name = name
        self.failure_threshold = failure_threshold
        self.reset_timeout = reset_timeout
        self._clock = clock

        self._state = CircuitState.CLOSED
        self._failures = 0
        self._opened_at = 0.0
        self._trial_in_flight = False
        self._lock = asyncio.Lock()

    @property
    def state(self) -> CircuitState:
        return self._state

    @property
    def failure_count(self) -> int:
        return self._failures

    async def before_call(self) -> None:
        """Admit or reject a call.

        Raises:
            CircuitOpenError: If the circuit is open or a half-open trial is already running
        """
        async with self._lock:
            if self._state == CircuitState.CLOSED:
                return

            if self._state == CircuitState.OPEN:
                remaining = self.reset_timeout - (self._clock() - self._opened_at)
                if remaining > 0:
                    raise CircuitOpenError(
                        f"Circuit open for {self.name}, retry in {remaining:.1f}s",
                        self.name,
                    )
                self._state = CircuitState.HALF_OPEN
                self._trial_in_flight = False
                logger.info(f"Circuit breaker half-open for {self.name}")

            if self._trial_in_flight:
                raise CircuitOpenError(f"Circuit half-open for {self.name}, trial in progress", self.name)
            self._trial_in_flight = True

    async def record_success(self) -> None:
        async with self._lock:
            if self._state != CircuitState.CLOSED:
                logger.info(f"Circuit breaker closed for {self.name}")
            self._state = CircuitState.CLOSED
            self._failures = 0
            self._trial_in_flight = False

    async def record_failure(self) -> None:
        async with self._lock:
            self._failures += 1
            if self._state == CircuitState.HALF_OPEN:
                self._open()
                logger.warning(f"Circuit breaker trial failed for {self.name}, reopening")
            elif self._state == CircuitState.CLOSED and self._failures >= self.failure_threshold:
                self._open()
                logger.warning(
                    f"Circuit breaker opened for {self.name} after {self._failures} failures"
                )

    def release(self) -> None:
        """Free the half-open trial slot without recording an outcome (cancelled call)."""
        self._trial_in_flight = False

    def _open(self) -> None:
        self._state = CircuitState.OPEN
        self._opened_at = self._clock()
        self._trial_in_flight = False

    def status(self) -> dict[str, object]:
        """Snapshot for monitoring."""
        return {
            "name": self.name,
            "state": self._state.value,
            "failures": self._failures,
        }
