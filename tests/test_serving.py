"""Tests for the FastAPI serving application."""
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from conftest import BatchFetcher, make_projection
from linewatch.config import Settings
from linewatch.ingestion.projections import FetchFailure
from linewatch.serving.app import create_app
from linewatch.serving.dependencies import limiter
from linewatch.tracking.refresh import RefreshOrchestrator
from linewatch.utils.circuit_breaker import CircuitBreaker


def _board(lebron_line=24.5, brunson_line=7.5):
    return [
        make_projection("100", lebron_line, player_name="LeBron James", team_name="Lakers"),
        make_projection("101", brunson_line, player_name="Jalen Brunson", team_name="Knicks",
                        stat_display_name="Assists"),
    ]


@pytest.fixture(autouse=True)
def reset_rate_limits():
    limiter.reset()
    yield


def _client(fetcher, clock):
    orchestrator = RefreshOrchestrator(
        fetcher, staleness_threshold=timedelta(minutes=5), fetch_timeout=10, clock=clock
    )
    return TestClient(create_app(orchestrator)), orchestrator


class TestHealthEndpoint:
    """Tests for /health and /metrics."""

    def test_health(self, clock):
        client, _ = _client(BatchFetcher([_board()]), clock)
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["tracker_loaded"] is True
        assert data["refresh"]["state"] == "idle"
        assert data["refresh"]["stale"] is True
        assert data["circuit_breaker"]["state"] == "closed"
        assert response.headers["X-Request-ID"]

    def test_health_reports_orchestrator_breaker(self, clock):
        breaker = CircuitBreaker("partner_feed")
        orchestrator = RefreshOrchestrator(BatchFetcher([_board()]), clock=clock, breaker=breaker)
        client = TestClient(create_app(orchestrator))

        data = client.get("/health").json()

        assert data["circuit_breaker"]["name"] == "partner_feed"

    def test_health_falls_back_to_shared_breaker(self, clock):
        client, _ = _client(BatchFetcher([_board()]), clock)
        assert client.get("/health").json()["circuit_breaker"]["name"] == "projections_api"

    def test_request_id_is_echoed(self, clock):
        client, _ = _client(BatchFetcher([_board()]), clock)
        response = client.get("/health", headers={"X-Request-ID": "abc-123"})
        assert response.headers["X-Request-ID"] == "abc-123"

    def test_metrics(self, clock):
        client, _ = _client(BatchFetcher([_board()]), clock)
        client.get("/projections")

        response = client.get("/metrics")

        assert response.status_code == 200
        assert "linewatch_refresh_total" in response.text


class TestProjectionsEndpoint:
    """Tests for GET /projections."""

    def test_first_request_fetches_board(self, clock):
        fetcher = BatchFetcher([_board()])
        client, _ = _client(fetcher, clock)

        response = client.get("/projections")

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["count"] == 2
        assert data["stale"] is False
        assert data["retryable"] is False
        assert data["stat_types"] == ["Assists", "Points"]
        assert data["summary"]["headline"] == "No line movements"
        assert data["projections"][0]["movement"] == {"direction": "none", "difference": 0.0}
        assert data["projections"][0]["player"]["display_name"] == "LeBron James"
        assert fetcher.calls == 1

    def test_movements_after_stale_refresh(self, clock):
        fetcher = BatchFetcher([_board(), _board(lebron_line=26.0, brunson_line=6.5)])
        client, _ = _client(fetcher, clock)
        client.get("/projections")

        clock.advance(60)
        client.get("/projections")
        assert fetcher.calls == 1

        clock.advance(300)
        data = client.get("/projections").json()

        assert fetcher.calls == 2
        movements = {p["id"]: p["movement"] for p in data["projections"]}
        assert movements["100"] == {"direction": "up", "difference": 1.5}
        assert movements["101"] == {"direction": "down", "difference": 1.0}
        assert data["summary"]["headline"] == "2 lines have moved (1 up, 1 down)"

    def test_stat_type_filter(self, clock):
        client, _ = _client(BatchFetcher([_board()]), clock)

        data = client.get("/projections", params={"stat_type": "Assists"}).json()

        assert data["count"] == 1
        assert data["projections"][0]["id"] == "101"
        assert data["stat_types"] == ["Assists", "Points"]

    def test_refresh_false_skips_fetch(self, clock):
        fetcher = BatchFetcher([_board()])
        client, _ = _client(fetcher, clock)

        data = client.get("/projections", params={"refresh": "false"}).json()

        assert fetcher.calls == 0
        assert data["count"] == 0
        assert data["stale"] is True

    def test_failed_refresh_serves_last_good_batch(self, clock):
        fetcher = BatchFetcher([_board(), FetchFailure("HTTP 503 from projections API")])
        client, _ = _client(fetcher, clock)
        client.get("/projections")

        clock.advance(600)
        response = client.get("/projections")

        assert response.status_code == 200
        data = response.json()
        assert data["count"] == 2
        assert data["stale"] is True
        assert data["retryable"] is True
        assert data["last_error"] == "HTTP 503 from projections API"

    def test_stat_types_endpoint(self, clock):
        client, _ = _client(BatchFetcher([_board()]), clock)
        assert client.get("/projections/stat-types").json() == {"stat_types": []}

        client.get("/projections")
        assert client.get("/projections/stat-types").json() == {"stat_types": ["Assists", "Points"]}


class TestRefreshEndpoint:
    """Tests for POST /projections/refresh."""

    def test_forced_refresh(self, clock):
        fetcher = BatchFetcher([_board(), _board(lebron_line=23.0)])
        client, _ = _client(fetcher, clock)
        client.get("/projections")

        response = client.post("/projections/refresh")

        assert response.status_code == 200
        data = response.json()
        assert data["outcome"] == "refreshed"
        assert data["batch_size"] == 2
        assert data["summary"]["down_count"] == 1
        assert data["summary"]["moved_lines"][0]["old_line"] == 24.5
        assert fetcher.calls == 2

    def test_failed_refresh_is_502_and_retryable(self, clock):
        client, orchestrator = _client(BatchFetcher([FetchFailure("timed out")]), clock)

        response = client.post("/projections/refresh")

        assert response.status_code == 502
        detail = response.json()["detail"]
        assert detail["retryable"] is True
        assert detail["error"] == "timed out"
        assert detail["last_updated"] is None
        assert orchestrator.projections == ()

    def test_requires_api_key_when_configured(self, clock, monkeypatch):
        monkeypatch.setattr(
            "linewatch.utils.api_auth.settings", Settings(internal_api_key="s3cret")
        )
        client, _ = _client(BatchFetcher([_board()]), clock)

        assert client.post("/projections/refresh").status_code == 401
        assert client.post("/projections/refresh", headers={"X-API-Key": "wrong"}).status_code == 403
        assert client.post("/projections/refresh", headers={"X-API-Key": "s3cret"}).status_code == 200
        assert client.post("/projections/refresh", params={"api_key": "s3cret"}).status_code == 200


class TestCacheEndpoint:
    """Tests for DELETE /projections/cache."""

    def test_clear_cache(self, clock):
        fetcher = BatchFetcher([_board(), _board(lebron_line=30.0)])
        client, orchestrator = _client(fetcher, clock)
        client.get("/projections")

        response = client.delete("/projections/cache")

        assert response.status_code == 200
        assert response.json() == {"success": True, "cleared": 2, "message": "Cache cleared successfully"}
        assert orchestrator.last_updated is None

        # Next batch has no baseline, so nothing has moved
        data = client.get("/projections").json()
        assert data["summary"]["total_moved"] == 0
        assert fetcher.calls == 2


def test_uninitialized_tracker_is_503():
    client = TestClient(create_app())
    assert client.get("/projections").status_code == 503
    assert client.get("/health").json()["tracker_loaded"] is False
