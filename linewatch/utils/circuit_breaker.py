"""
Circuit breaker guarding the partner projections feed.

While the feed keeps failing, refreshes fail fast with CircuitBreakerError
instead of each one waiting out its own timeout.
"""

from __future__ import annotations

import asyncio
import time
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from enum import Enum
from threading import Lock
from typing import Any, Awaitable, Callable, Iterator, Optional

from linewatch.utils.logging import get_logger

logger = get_logger(__name__)


class CircuitState(Enum):
    CLOSED = "closed"
    OPEN = "open"  # rejecting calls until the cool-down has passed
    HALF_OPEN = "half_open"  # letting calls through to probe the upstream


@dataclass
class CircuitBreakerConfig:
    failure_threshold: int = 5  # consecutive failures that open the circuit
    success_threshold: int = 2  # probe successes that close it again
    timeout: float = 60.0  # cool-down in seconds before probing
    expected_exception: type[Exception] = Exception


@dataclass
class CircuitBreakerStats:
    failures: int = 0
    successes: int = 0
    last_failure_time: Optional[float] = None
    state: CircuitState = CircuitState.CLOSED
    total_calls: int = 0
    total_failures: int = 0
    total_successes: int = 0


class CircuitBreakerError(Exception):
    """The circuit is open and the call was not attempted."""


class CircuitBreaker:
    """
    Consecutive-failure circuit breaker usable from sync and async code.

    Only `expected_exception` and cancellation count as failures; anything
    else passes through untouched. A failure while HALF_OPEN reopens the
    circuit at once.
    """

    def __init__(self, name: str, config: Optional[CircuitBreakerConfig] = None):
        self.name = name
        self.config = config or CircuitBreakerConfig()
        self.stats = CircuitBreakerStats()
        self._lock = Lock()

    def _cooled_down(self) -> bool:
        opened_at = self.stats.last_failure_time
        return opened_at is not None and time.time() - opened_at >= self.config.timeout

    def _admit(self) -> None:
        with self._lock:
            if self.stats.state is CircuitState.OPEN:
                if not self._cooled_down():
                    raise CircuitBreakerError(
                        f"Circuit breaker '{self.name}' is OPEN - request rejected"
                    )
                logger.info(f"Circuit breaker '{self.name}' cooled down, probing (HALF_OPEN)")
                self.stats.state = CircuitState.HALF_OPEN
                self.stats.successes = 0
            self.stats.total_calls += 1

    def _on_success(self) -> None:
        with self._lock:
            stats = self.stats
            stats.failures = 0
            stats.successes += 1
            stats.total_successes += 1
            if stats.state is CircuitState.HALF_OPEN and stats.successes >= self.config.success_threshold:
                logger.info(f"Circuit breaker '{self.name}' closed after {stats.successes} good probes")
                stats.state = CircuitState.CLOSED
                stats.successes = 0

    def _on_failure(self) -> None:
        with self._lock:
            stats = self.stats
            stats.successes = 0
            stats.failures += 1
            stats.total_failures += 1
            stats.last_failure_time = time.time()
            tripped = stats.failures >= self.config.failure_threshold
            if stats.state is CircuitState.HALF_OPEN or (tripped and stats.state is CircuitState.CLOSED):
                logger.warning(
                    f"Circuit breaker '{self.name}' opened ({stats.failures} consecutive failures)"
                )
                stats.state = CircuitState.OPEN

    @contextmanager
    def _guard(self) -> Iterator[None]:
        self._admit()
        try:
            yield
        except self.config.expected_exception:
            self._on_failure()
            raise
        except asyncio.CancelledError:
            # A call abandoned by an outer deadline still counts against the upstream
            self._on_failure()
            raise
        self._on_success()

    def call(self, func: Callable[..., Any], *args, **kwargs) -> Any:
        """
        Run `func` through the breaker.

        Raises:
            CircuitBreakerError: If the circuit is open
        """
        with self._guard():
            return func(*args, **kwargs)

    async def call_async(self, func: Callable[..., Awaitable[Any]], *args, **kwargs) -> Any:
        """Await `func(*args, **kwargs)` through the breaker."""
        with self._guard():
            return await func(*args, **kwargs)

    def reset(self) -> None:
        with self._lock:
            self.stats = CircuitBreakerStats()

    def get_stats(self) -> dict:
        with self._lock:
            snapshot = asdict(self.stats)
        snapshot["state"] = snapshot["state"].value
        return {"name": self.name, **snapshot}


_projections_api_breaker = CircuitBreaker("projections_api")


def get_projections_api_breaker() -> CircuitBreaker:
    """Process-wide breaker for the partner projections API."""
    return _projections_api_breaker
