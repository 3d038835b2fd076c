"""Shared pytest fixtures and configuration hooks."""

from __future__ import annotations

import os
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Iterable, List, Optional

import pytest

# Ensure the project root (which contains the `linewatch` package) is importable
PROJECT_ROOT = Path(__file__).resolve().parents[1]
PROJECT_ROOT_STR = str(PROJECT_ROOT)
if PROJECT_ROOT_STR not in sys.path:
    sys.path.insert(0, PROJECT_ROOT_STR)


# =============================================================================
# Environment Variables Setup - MUST run before any linewatch imports
# =============================================================================
TEST_ENV_VARS = {
    "PROJECTIONS_API_URL": "https://partner-api.example.test/projections",
    "REFRESH_STALENESS_SECONDS": "300",
    "FETCH_TIMEOUT_SECONDS": "10",
    "AUTO_REFRESH_SECONDS": "0",
    "INTERNAL_API_KEY": "",
    "ALLOWED_ORIGINS": "http://localhost:3000",

    # Logging
    "LOG_LEVEL": "WARNING",
    "LOG_FORMAT": "text",
}

for key, value in TEST_ENV_VARS.items():
    if key not in os.environ:
        os.environ[key] = value


@pytest.fixture(autouse=True)
def setup_test_environment(monkeypatch):
    """Ensure test environment variables are set for each test."""
    for key, value in TEST_ENV_VARS.items():
        monkeypatch.setenv(key, value)


@pytest.fixture(autouse=True)
def reset_projections_breaker():
    """The partner API breaker is process-wide; start every test closed."""
    from linewatch.utils.circuit_breaker import get_projections_api_breaker

    get_projections_api_breaker().reset()
    yield
    get_projections_api_breaker().reset()


class FakeClock:
    """Deterministic UTC clock for staleness tests."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2025, 1, 15, 19, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


def make_projection(projection_id: str, line_score: Any, **kwargs):
    from linewatch.tracking.models import PlayerRef, Projection

    player = kwargs.pop("player", None)
    if player is None and "player_name" in kwargs:
        player = PlayerRef(
            id=f"player-{projection_id}",
            display_name=kwargs.pop("player_name"),
            team_name=kwargs.pop("team_name", None),
            image_url=kwargs.pop("image_url", None),
            league_id=7,
        )
    kwargs.setdefault("stat_display_name", "Points")
    kwargs.setdefault("league_id", 7)
    return Projection(id=projection_id, line_score=line_score, player=player, **kwargs)


def make_batch(lines: dict) -> List:
    """{id: line_score} -> list of projections, in dict order."""
    return [make_projection(pid, score) for pid, score in lines.items()]


class BatchFetcher:
    """Async fetcher returning queued batches; an Exception in the queue is raised."""

    def __init__(self, batches: Iterable[Any]):
        self.batches = list(batches)
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        item = self.batches.pop(0) if len(self.batches) > 1 else self.batches[0]
        if isinstance(item, BaseException):
            raise item
        return item
