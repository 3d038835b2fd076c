from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Optional

# Anchor paths to the repository root even when scripts are executed elsewhere
PROJECT_ROOT = Path(__file__).resolve().parent.parent

# NOTE: Secrets are resolved via linewatch.utils.secrets
# Priority: Env Vars > Docker Secrets > Local Files

from linewatch.utils.secrets import read_secret_optional

DEFAULT_PROJECTIONS_API_URL = "https://partner-api.prizepicks.com/projections"

# League ids the partner feed uses for NBA boards (full game, halves, quarters, futures)
NBA_LEAGUE_IDS: dict[str, int] = {
    "NBA": 7,
    "NBA_PRESEASON": 18,
    "NBA_SECOND_HALF": 80,
    "NBA_FIRST_HALF": 84,
    "NBA_FOURTH_QUARTER": 149,
    "NBA_GENERAL": 158,
    "NBA_FUTURES": 173,
}


def _env_str(key: str, default: str) -> str:
    """Resolve a string environment variable, treating blank as unset."""
    value = os.getenv(key)
    if value is None or not value.strip():
        return default
    return value.strip()


def _env_optional(key: str) -> Optional[str]:
    """Resolve optional environment variable - returns None if not set."""
    value = os.getenv(key)
    return value.strip() if value and value.strip() else None


def _env_float(key: str, default: float) -> float:
    """Resolve a numeric environment variable - raises if it is not a number."""
    raw = _env_optional(key)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"Environment variable {key} must be a number, got {raw!r}")


def _env_int(key: str, default: int) -> int:
    raw = _env_optional(key)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"Environment variable {key} must be an integer, got {raw!r}")


def _env_league_ids(key: str) -> frozenset[int]:
    """Parse a comma separated league id list, defaulting to every NBA board."""
    raw = _env_optional(key)
    if raw is None:
        return frozenset(NBA_LEAGUE_IDS.values())
    try:
        return frozenset(int(part) for part in raw.split(",") if part.strip())
    except ValueError:
        raise ValueError(f"Environment variable {key} must be a comma separated list of ints, got {raw!r}")


def _env_origins(key: str) -> tuple[str, ...]:
    raw = _env_optional(key) or ""
    return tuple(origin.strip() for origin in raw.split(",") if origin.strip())


@dataclass(frozen=True)
class Settings:
    # Partner projections API
    projections_api_url: str = field(
        default_factory=lambda: _env_str("PROJECTIONS_API_URL", DEFAULT_PROJECTIONS_API_URL)
    )
    projections_per_page: int = field(
        default_factory=lambda: _env_int("PROJECTIONS_PER_PAGE", 1000)
    )
    projections_include: str = field(
        default_factory=lambda: _env_str("PROJECTIONS_INCLUDE", "new_player,stat_average,league")
    )
    nba_league_ids: frozenset[int] = field(
        default_factory=lambda: _env_league_ids("NBA_LEAGUE_IDS")
    )

    # Refresh policy
    refresh_staleness_seconds: float = field(
        default_factory=lambda: _env_float("REFRESH_STALENESS_SECONDS", 300.0)
    )
    fetch_timeout_seconds: float = field(
        default_factory=lambda: _env_float("FETCH_TIMEOUT_SECONDS", 10.0)
    )
    # 0 disables the background refresh loop
    auto_refresh_seconds: float = field(
        default_factory=lambda: _env_float("AUTO_REFRESH_SECONDS", 0.0)
    )

    # Serving
    internal_api_key: Optional[str] = field(
        default_factory=lambda: read_secret_optional("INTERNAL_API_KEY")
    )
    allowed_origins: tuple[str, ...] = field(
        default_factory=lambda: _env_origins("ALLOWED_ORIGINS")
    )
    version: str = field(default_factory=lambda: _env_str("LINEWATCH_VERSION", "1.0.0"))

    @property
    def staleness_threshold(self) -> timedelta:
        return timedelta(seconds=self.refresh_staleness_seconds)


settings = Settings()
