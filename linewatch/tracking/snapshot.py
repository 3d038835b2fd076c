"""
In-memory baseline of the last projection batch that was diffed against.
"""
from __future__ import annotations

from threading import Lock
from types import MappingProxyType
from typing import Iterable, Mapping, NamedTuple, Optional

from linewatch.tracking.models import Projection
from linewatch.utils.logging import get_logger

logger = get_logger(__name__)


class _Baseline(NamedTuple):
    batch: tuple[Projection, ...]
    by_id: Mapping[str, Projection]


def _build_baseline(batch: Iterable[Projection]) -> _Baseline:
    items = tuple(batch)
    # Duplicate ids collapse to the last occurrence, matching the calculator's output
    index = {projection.id: projection for projection in items}
    return _Baseline(items, MappingProxyType(index))


_EMPTY = _build_baseline(())


class SnapshotStore:
    """
    Holds exactly one batch of projections as the comparison baseline.

    The batch and its id index are built off to the side and swapped in as a
    single reference, so readers always see either the whole old baseline or
    the whole new one.

    Usage:
        store = SnapshotStore()
        movements = calculate_line_movements(batch, store.as_mapping())
        store.replace_snapshot(batch)
    """

    def __init__(self) -> None:
        self._baseline = _EMPTY
        self._lock = Lock()

    def get_snapshot(self) -> tuple[Projection, ...]:
        return self._baseline.batch

    def as_mapping(self) -> Mapping[str, Projection]:
        """Read-only id -> projection view of the current baseline."""
        return self._baseline.by_id

    def get(self, projection_id: str) -> Optional[Projection]:
        return self._baseline.by_id.get(projection_id)

    def replace_snapshot(self, new_batch: Iterable[Projection]) -> None:
        baseline = _build_baseline(new_batch)
        with self._lock:
            self._baseline = baseline
        logger.debug(f"Snapshot replaced with {len(baseline.batch)} projections")

    def clear(self) -> int:
        """Drop the baseline; returns how many projections it held."""
        with self._lock:
            count = len(self._baseline.batch)
            self._baseline = _EMPTY
        logger.info(f"Snapshot cleared ({count} projections dropped)")
        return count

    def __len__(self) -> int:
        return len(self._baseline.batch)
