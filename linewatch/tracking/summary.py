"""
Presentation-side views over a diff cycle: moved-line details, counts,
stat-type filtering and a tabular export.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

import pandas as pd

from linewatch.tracking.models import Direction, LineMovement, NO_MOVEMENT, Projection

EXPORT_COLUMNS = [
    "projection_id",
    "player",
    "team",
    "stat",
    "line_score",
    "direction",
    "difference",
    "updated_at",
]


@dataclass(frozen=True)
class MovedLine:
    """One projection whose line changed since the previous batch."""

    projection_id: str
    player_name: str
    player_image: Optional[str]
    team_name: Optional[str]
    stat_type: Optional[str]
    old_line: float
    new_line: float
    direction: Direction
    difference: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "projection_id": self.projection_id,
            "player_name": self.player_name,
            "player_image": self.player_image,
            "team_name": self.team_name,
            "stat_type": self.stat_type,
            "old_line": self.old_line,
            "new_line": self.new_line,
            "direction": self.direction.value,
            "difference": self.difference,
        }


@dataclass
class MovementSummary:
    total_moved: int = 0
    up_count: int = 0
    down_count: int = 0
    moved_lines: List[MovedLine] = field(default_factory=list)

    @property
    def headline(self) -> str:
        if not self.total_moved:
            return "No line movements"
        return f"{self.total_moved} lines have moved ({self.up_count} up, {self.down_count} down)"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_moved": self.total_moved,
            "up_count": self.up_count,
            "down_count": self.down_count,
            "headline": self.headline,
            "moved_lines": [line.to_dict() for line in self.moved_lines],
        }


def _player_name(projection: Projection) -> str:
    player = projection.player
    if player and player.display_name:
        return player.display_name
    return "Unknown Player"


def summarize_movements(
    movements: Mapping[str, LineMovement],
    projections: Sequence[Projection],
) -> MovementSummary:
    """
    Collect moved lines in batch order.

    The old line is reconstructed from the new line and the movement, so
    only the current batch is needed.
    """
    summary = MovementSummary()
    for projection in projections:
        movement = movements.get(projection.id)
        if movement is None or movement.direction is Direction.NONE:
            continue

        new_line = projection.numeric_line()
        if movement.direction is Direction.UP:
            old_line = new_line - movement.difference
            summary.up_count += 1
        else:
            old_line = new_line + movement.difference
            summary.down_count += 1

        summary.moved_lines.append(
            MovedLine(
                projection_id=projection.id,
                player_name=_player_name(projection),
                player_image=projection.player.image_url if projection.player else None,
                team_name=projection.player.team_name if projection.player else None,
                stat_type=projection.stat_display_name,
                old_line=old_line,
                new_line=new_line,
                direction=movement.direction,
                difference=movement.difference,
            )
        )

    summary.total_moved = len(summary.moved_lines)
    return summary


def stat_types(projections: Iterable[Projection]) -> List[str]:
    """Sorted unique stat display names present in a batch."""
    return sorted({p.stat_display_name for p in projections if p.stat_display_name})


def filter_by_stat_type(projections: Iterable[Projection], stat_type: Optional[str]) -> List[Projection]:
    if not stat_type or stat_type == "all":
        return list(projections)
    return [p for p in projections if p.stat_display_name == stat_type]


def movements_to_frame(
    movements: Mapping[str, LineMovement],
    projections: Iterable[Projection],
) -> pd.DataFrame:
    """One row per projection with its movement, ready for CSV export."""
    rows = []
    for projection in projections:
        movement = movements.get(projection.id, NO_MOVEMENT)
        rows.append({
            "projection_id": projection.id,
            "player": _player_name(projection),
            "team": projection.player.team_name if projection.player else None,
            "stat": projection.stat_display_name,
            "line_score": projection.line_score,
            "direction": movement.direction.value,
            "difference": movement.difference,
            "updated_at": projection.updated_at,
        })
    return pd.DataFrame(rows, columns=EXPORT_COLUMNS)
