"""
Circuit Breaker - Endpoint Failure Protection
Version: 1.0

Stops hammering a booking source that keeps failing.
After N consecutive failures the endpoint is OPEN for a cool-down period,
then a single trial call decides whether it closes again.

NO business logic - purely infrastructure pattern.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class CircuitState(str, Enum):
    """Circuit breaker states."""
    CLOSED = "closed"        # Normal operation
    OPEN = "open"            # Failures detected - blocking calls
    HALF_OPEN = "half_open"  # Testing if endpoint recovered


@dataclass
class CircuitMetrics:
    """Metrics for single endpoint."""
    failure_count: int = 0
    success_count: int = 0
    last_failure_time: Optional[float] = None
    last_success_time: Optional[float] = None
    state: CircuitState = CircuitState.CLOSED
    opened_at: Optional[float] = None


class CircuitOpenError(Exception):
    """Raised when circuit is open and calls are blocked."""

    def __init__(self, endpoint_key: str, retry_after: float):
        self.endpoint_key = endpoint_key
        self.retry_after = retry_after
        super().__init__(
            f"Endpoint {endpoint_key} is disabled after repeated failures. "
            f"Retry in {retry_after:.0f}s."
        )


class CircuitBreaker:
    """
    Circuit breaker for booking source endpoints.

    Pattern:
    - CLOSED: Normal operation, calls go through
    - OPEN: Too many failures, calls are blocked
    - HALF_OPEN: Trial calls decide between CLOSED and OPEN
    """

    FAILURE_THRESHOLD = 3
    OPEN_DURATION_SECONDS = 60
    SUCCESS_THRESHOLD_TO_RESET = 1

    def __init__(
        self,
        failure_threshold: Optional[int] = None,
        open_duration_seconds: Optional[float] = None,
        clock=time.monotonic
    ):
        self.failure_threshold = failure_threshold or self.FAILURE_THRESHOLD
        self.open_duration = (
            self.OPEN_DURATION_SECONDS if open_duration_seconds is None else open_duration_seconds
        )
        self._clock = clock
        self.circuits: Dict[str, CircuitMetrics] = {}
        self._lock = asyncio.Lock()
        logger.info(
            f"CircuitBreaker initialized (threshold={self.failure_threshold}, "
            f"open={self.open_duration}s)"
        )

    async def call(self, endpoint_key: str, func, *args, **kwargs):
        """
        Execute function through circuit breaker.

        Args:
            endpoint_key: Unique endpoint identifier (e.g., "GET /orders")
            func: Async function to execute
            *args, **kwargs: Function arguments

        Returns:
            Function result

        Raises:
            CircuitOpenError: If circuit is open
            Original exception: If function fails
        """
        async with self._lock:
            circuit = self._get_circuit(endpoint_key)

            if circuit.state == CircuitState.OPEN:
                if self._should_attempt_reset(circuit):
                    circuit.state = CircuitState.HALF_OPEN
                    logger.info(f"Circuit HALF_OPEN: {endpoint_key}")
                else:
                    raise CircuitOpenError(endpoint_key, self._time_until_reset(circuit))

        try:
            result = await func(*args, **kwargs)
        except Exception:
            await self.record_failure(endpoint_key)
            raise

        await self.record_success(endpoint_key)
        return result

    async def record_success(self, endpoint_key: str) -> None:
        """Record successful call."""
        async with self._lock:
            circuit = self._get_circuit(endpoint_key)
            circuit.success_count += 1
            circuit.failure_count = 0
            circuit.last_success_time = self._clock()

            if circuit.state == CircuitState.HALF_OPEN:
                if circuit.success_count >= self.SUCCESS_THRESHOLD_TO_RESET:
                    circuit.state = CircuitState.CLOSED
                    circuit.opened_at = None
                    logger.info(f"Circuit CLOSED: {endpoint_key}")

    async def record_failure(self, endpoint_key: str) -> None:
        """Record failed call."""
        async with self._lock:
            circuit = self._get_circuit(endpoint_key)
            circuit.failure_count += 1
            circuit.success_count = 0
            circuit.last_failure_time = self._clock()

            if circuit.state == CircuitState.HALF_OPEN or circuit.failure_count >= self.failure_threshold:
                circuit.state = CircuitState.OPEN
                circuit.opened_at = self._clock()
                logger.warning(
                    f"Circuit OPEN: {endpoint_key} "
                    f"(failures: {circuit.failure_count})"
                )

    def _get_circuit(self, endpoint_key: str) -> CircuitMetrics:
        """Get or create circuit for endpoint."""
        if endpoint_key not in self.circuits:
            self.circuits[endpoint_key] = CircuitMetrics()
        return self.circuits[endpoint_key]

    def _should_attempt_reset(self, circuit: CircuitMetrics) -> bool:
        if circuit.opened_at is None:
            return False
        return self._clock() - circuit.opened_at >= self.open_duration

    def _time_until_reset(self, circuit: CircuitMetrics) -> float:
        if circuit.opened_at is None:
            return 0.0
        remaining = self.open_duration - (self._clock() - circuit.opened_at)
        return max(0.0, remaining)

    async def get_status(self, endpoint_key: str) -> Dict:
        """Get circuit status for endpoint."""
        async with self._lock:
            if endpoint_key not in self.circuits:
                return {"state": CircuitState.CLOSED.value, "never_used": True}

            circuit = self.circuits[endpoint_key]
            return {
                "state": circuit.state.value,
                "failure_count": circuit.failure_count,
                "success_count": circuit.success_count,
                "time_until_reset": self._time_until_reset(circuit)
            }

    async def reset(self, endpoint_key: str) -> None:
        """Manually reset circuit."""
        async with self._lock:
            if endpoint_key in self.circuits:
                circuit = self.circuits[endpoint_key]
                circuit.state = CircuitState.CLOSED
                circuit.failure_count = 0
                circuit.success_count = 0
                circuit.opened_at = None
                logger.info(f"Circuit manually reset: {endpoint_key}")
