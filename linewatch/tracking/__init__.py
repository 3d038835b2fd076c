"""
Projection line tracking.

Holds the comparison snapshot and computes line movement between
consecutive projection batches. Refresh orchestration lives in
linewatch.tracking.refresh.
"""

from .models import Direction, LineMovement, MalformedProjection, PlayerRef, Projection, StatAverage
from .movement import LineMovementCalculator, calculate_line_movements
from .snapshot import SnapshotStore

__all__ = [
    "Direction",
    "LineMovement",
    "LineMovementCalculator",
    "MalformedProjection",
    "PlayerRef",
    "Projection",
    "SnapshotStore",
    "StatAverage",
    "calculate_line_movements",
]
