"""
Refresh orchestration: decides when to pull a new projections batch, diffs it
against the snapshot, then swaps the snapshot.

State machine (per orchestrator):
    IDLE --(requested, stale or forced)--> FETCHING
    FETCHING --(fetch ok)--> diff, replace snapshot --> IDLE
    FETCHING --(fetch fails)--> record error, snapshot untouched --> IDLE
    any request while FETCHING is dropped, not queued

Only one fetch is ever in flight. The in-flight flag is claimed under a lock
before the first await, so the guard holds for asyncio tasks and threads.
"""
from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from threading import Lock
from types import MappingProxyType
from typing import Awaitable, Callable, Iterable, Mapping, Optional

from linewatch.config import settings
from linewatch.ingestion.projections import FetchFailure
from linewatch.monitoring.metrics import FETCH_DURATION, LINE_MOVEMENTS, REFRESH_OUTCOMES, SNAPSHOT_SIZE
from linewatch.tracking.models import Direction, LineMovement, Projection
from linewatch.tracking.movement import LineMovementCalculator
from linewatch.tracking.snapshot import SnapshotStore
from linewatch.utils.circuit_breaker import CircuitBreaker
from linewatch.utils.logging import get_logger

logger = get_logger(__name__)

Fetcher = Callable[[], Awaitable[Iterable[Projection]]]
Clock = Callable[[], datetime]

_NO_MOVEMENTS: Mapping[str, LineMovement] = MappingProxyType({})


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class RefreshState(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"


class RefreshOutcome(str, Enum):
    REFRESHED = "refreshed"
    FRESH = "fresh"  # within the staleness window, nothing fetched
    IN_FLIGHT = "in_flight"  # another fetch is running, request dropped


@dataclass(frozen=True)
class RefreshResult:
    outcome: RefreshOutcome
    movements: Mapping[str, LineMovement]
    batch_size: int
    last_updated: Optional[datetime]

    @property
    def fetched(self) -> bool:
        return self.outcome is RefreshOutcome.REFRESHED


class RefreshOrchestrator:
    """
    Owns the refresh policy around one SnapshotStore.

    Usage:
        client = ProjectionsClient()
        orchestrator = RefreshOrchestrator(client.fetch, breaker=client.breaker)

        result = await orchestrator.refresh()            # honours the staleness window
        result = await orchestrator.refresh(force=True)  # manual refresh
    """

    def __init__(
        self,
        fetcher: Fetcher,
        store: Optional[SnapshotStore] = None,
        staleness_threshold: Optional[timedelta] = None,
        fetch_timeout: Optional[float] = None,
        clock: Clock = utc_now,
        breaker: Optional[CircuitBreaker] = None,
    ):
        self._fetcher = fetcher
        # Breaker guarding the fetcher, reported by /health
        self.breaker = breaker
        self.store = store if store is not None else SnapshotStore()
        self.calculator = LineMovementCalculator(self.store)
        self.staleness_threshold = (
            staleness_threshold if staleness_threshold is not None else settings.staleness_threshold
        )
        self.fetch_timeout = fetch_timeout if fetch_timeout is not None else settings.fetch_timeout_seconds
        self._clock = clock

        self._lock = Lock()
        self._state = RefreshState.IDLE
        self._movements = _NO_MOVEMENTS
        self._last_updated: Optional[datetime] = None
        self._last_error: Optional[str] = None
        self._last_error_at: Optional[datetime] = None

    @property
    def state(self) -> RefreshState:
        return self._state

    @property
    def last_updated(self) -> Optional[datetime]:
        return self._last_updated

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    @property
    def last_error_at(self) -> Optional[datetime]:
        return self._last_error_at

    @property
    def movements(self) -> Mapping[str, LineMovement]:
        """Movements from the latest successful diff cycle."""
        return self._movements

    @property
    def projections(self) -> tuple[Projection, ...]:
        """The current batch (which is also the baseline for the next diff)."""
        return self.store.get_snapshot()

    def _is_stale_at(self, now: datetime) -> bool:
        if self._last_updated is None:
            return True
        return now - self._last_updated >= self.staleness_threshold

    @property
    def is_stale(self) -> bool:
        return self._is_stale_at(self._clock())

    def _claim(self, force: bool) -> Optional[RefreshOutcome]:
        """Enter FETCHING, or return why this request is skipped."""
        with self._lock:
            if self._state is RefreshState.FETCHING:
                return RefreshOutcome.IN_FLIGHT
            if not force and not self._is_stale_at(self._clock()):
                return RefreshOutcome.FRESH
            self._state = RefreshState.FETCHING
            return None

    def _skipped(self, outcome: RefreshOutcome) -> RefreshResult:
        REFRESH_OUTCOMES.labels(outcome=outcome.value).inc()
        logger.debug(f"Refresh skipped: {outcome.value}")
        return RefreshResult(outcome, self._movements, len(self.store), self._last_updated)

    async def _fetch(self) -> tuple[Projection, ...]:
        started = time.monotonic()
        try:
            async with asyncio.timeout(self.fetch_timeout):
                batch = await self._fetcher()
        except TimeoutError as e:
            raise FetchFailure(f"Projections fetch timed out after {self.fetch_timeout:g}s") from e
        except FetchFailure:
            raise
        except Exception as e:
            raise FetchFailure(f"Projections fetch failed: {e!r}") from e
        finally:
            FETCH_DURATION.observe(time.monotonic() - started)
        return tuple(batch)

    async def refresh(self, force: bool = False) -> RefreshResult:
        """
        Fetch, diff and swap the snapshot if the policy allows.

        Args:
            force: Bypass the staleness window (still dropped while a fetch is in flight)

        Returns:
            RefreshResult; movements are the latest ones even when nothing was fetched

        Raises:
            FetchFailure: The fetch failed or timed out; the snapshot is unchanged
        """
        skipped = self._claim(force)
        if skipped is not None:
            return self._skipped(skipped)

        try:
            try:
                batch = await self._fetch()
            except FetchFailure as e:
                with self._lock:
                    self._last_error = str(e)
                    self._last_error_at = self._clock()
                REFRESH_OUTCOMES.labels(outcome="failed").inc()
                logger.error(f"Projection refresh failed, keeping previous snapshot: {e}")
                raise

            movements = self.calculator.calculate(batch)
            self.store.replace_snapshot(batch)
            with self._lock:
                self._movements = movements
                self._last_updated = self._clock()
                self._last_error = None
                self._last_error_at = None
        finally:
            # Also reached on cancellation, which leaves the snapshot as it was
            with self._lock:
                self._state = RefreshState.IDLE

        up = sum(1 for m in movements.values() if m.direction is Direction.UP)
        down = sum(1 for m in movements.values() if m.direction is Direction.DOWN)
        LINE_MOVEMENTS.labels(direction="up").inc(up)
        LINE_MOVEMENTS.labels(direction="down").inc(down)
        SNAPSHOT_SIZE.set(len(batch))
        REFRESH_OUTCOMES.labels(outcome=RefreshOutcome.REFRESHED.value).inc()
        logger.info(f"Refreshed {len(batch)} projections ({up} lines up, {down} lines down)")

        return RefreshResult(RefreshOutcome.REFRESHED, movements, len(batch), self._last_updated)

    def clear(self) -> int:
        """Forget the snapshot and movements; the next refresh fetches regardless of age."""
        with self._lock:
            self._movements = _NO_MOVEMENTS
            self._last_updated = None
        dropped = self.store.clear()
        SNAPSHOT_SIZE.set(0)
        return dropped

    async def run_forever(self, interval_seconds: float) -> None:
        """Periodic non-forced refresh until the task is cancelled."""
        logger.info(f"Background projection refresh every {interval_seconds:g}s")
        while True:
            try:
                await self.refresh()
            except FetchFailure:
                # Already recorded and logged; try again next tick
                pass
            await asyncio.sleep(interval_seconds)

    def status(self) -> dict:
        return {
            "state": self._state.value,
            "snapshot_size": len(self.store),
            "last_updated": self._last_updated.isoformat() if self._last_updated else None,
            "stale": self.is_stale,
            "last_error": self._last_error,
            "last_error_at": self._last_error_at.isoformat() if self._last_error_at else None,
            "staleness_threshold_seconds": self.staleness_threshold.total_seconds(),
        }
