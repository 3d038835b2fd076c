"""
Domain types for projection line tracking.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Dict, Optional


class MalformedProjection(ValueError):
    """Raised when a projection's line score cannot be used for comparison."""

    def __init__(self, projection_id: str, line_score: Any):
        self.projection_id = projection_id
        self.line_score = line_score
        super().__init__(f"Projection {projection_id} has unusable line_score {line_score!r}")


class Direction(str, Enum):
    UP = "up"
    DOWN = "down"
    NONE = "none"


@dataclass(frozen=True)
class PlayerRef:
    """Player (or team/combo) display metadata resolved from the feed's included items."""

    id: str
    name: Optional[str] = None
    display_name: Optional[str] = None
    team: Optional[str] = None
    team_name: Optional[str] = None
    position: Optional[str] = None
    image_url: Optional[str] = None
    league_id: Optional[int] = None
    combo: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class StatAverage:
    id: str
    average: Optional[float] = None
    count: Optional[int] = None
    max_value: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Projection:
    """
    A single betting line as supplied by the partner feed.

    `line_score` is kept exactly as received; it is only validated when a
    movement is computed so that one bad record cannot sink a batch.
    """

    id: str
    line_score: Any
    stat_type: Optional[str] = None
    stat_display_name: Optional[str] = None
    updated_at: Optional[str] = None
    league_id: Optional[int] = None
    player: Optional[PlayerRef] = None
    stat_average: Optional[StatAverage] = None
    description: Optional[str] = None
    odds_type: Optional[str] = None
    status: Optional[str] = None
    start_time: Optional[str] = None
    game_id: Optional[str] = None
    is_live: bool = False

    def numeric_line(self) -> float:
        """
        Return the line score as a float.

        Raises:
            MalformedProjection: missing, boolean, non-numeric or non-finite line score
        """
        value = self.line_score
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise MalformedProjection(self.id, value)
        if not math.isfinite(value):
            raise MalformedProjection(self.id, value)
        return float(value)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "line_score": self.line_score,
            "stat_type": self.stat_type,
            "stat_display_name": self.stat_display_name,
            "updated_at": self.updated_at,
            "league_id": self.league_id,
            "description": self.description,
            "odds_type": self.odds_type,
            "status": self.status,
            "start_time": self.start_time,
            "game_id": self.game_id,
            "is_live": self.is_live,
            "player": self.player.to_dict() if self.player else None,
            "stat_average": self.stat_average.to_dict() if self.stat_average else None,
        }


@dataclass(frozen=True)
class LineMovement:
    direction: Direction
    difference: float

    def to_dict(self) -> Dict[str, Any]:
        return {"direction": self.direction.value, "difference": self.difference}


NO_MOVEMENT = LineMovement(Direction.NONE, 0.0)
