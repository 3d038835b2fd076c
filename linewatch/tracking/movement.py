"""
Line movement between a new projection batch and the stored baseline.
"""
from __future__ import annotations

from types import MappingProxyType
from typing import Iterable, Mapping

from linewatch.tracking.models import (
    Direction,
    LineMovement,
    MalformedProjection,
    NO_MOVEMENT,
    Projection,
)
from linewatch.tracking.snapshot import SnapshotStore
from linewatch.utils.logging import get_logger

logger = get_logger(__name__)


def compare_lines(new: Projection, old: Projection) -> LineMovement:
    """
    Movement of `new` relative to `old`.

    Uses exact float equality; partner lines are quantized to one decimal.

    Raises:
        MalformedProjection: if either line score is unusable
    """
    delta = new.numeric_line() - old.numeric_line()
    if delta == 0:
        return NO_MOVEMENT
    if delta > 0:
        return LineMovement(Direction.UP, delta)
    return LineMovement(Direction.DOWN, -delta)


def calculate_line_movements(
    new_batch: Iterable[Projection],
    baseline: Mapping[str, Projection],
) -> Mapping[str, LineMovement]:
    """
    Compute one movement per projection in `new_batch`.

    Ids missing from the baseline have no prior data and report no movement.
    Ids present only in the baseline are not reported. A malformed line score
    degrades that single projection to no movement.

    Args:
        new_batch: Freshly fetched, normalized projections
        baseline: id -> projection view of the previous batch

    Returns:
        Read-only mapping of projection id to LineMovement
    """
    movements: dict[str, LineMovement] = {}
    malformed = 0

    for projection in new_batch:
        previous = baseline.get(projection.id)
        if previous is None:
            movements[projection.id] = NO_MOVEMENT
            continue
        try:
            movements[projection.id] = compare_lines(projection, previous)
        except MalformedProjection as e:
            malformed += 1
            logger.warning(f"Skipping movement for malformed projection: {e}")
            movements[projection.id] = NO_MOVEMENT

    if malformed:
        logger.info(f"Line movement computed with {malformed} malformed projections degraded to none")

    return MappingProxyType(movements)


class LineMovementCalculator:
    """Diffs batches against a SnapshotStore without modifying it."""

    def __init__(self, store: SnapshotStore):
        self.store = store

    def calculate(self, new_batch: Iterable[Projection]) -> Mapping[str, LineMovement]:
        return calculate_line_movements(new_batch, self.store.as_mapping())
