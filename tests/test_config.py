"""Tests for configuration module."""
from dataclasses import FrozenInstanceError
from datetime import timedelta

import pytest

from linewatch.config import NBA_LEAGUE_IDS, Settings


class TestSettings:
    """Tests for Settings dataclass."""

    def test_settings_initialization(self):
        settings = Settings()
        assert settings.projections_api_url == "https://partner-api.example.test/projections"
        assert settings.projections_per_page == 1000
        assert settings.nba_league_ids == frozenset(NBA_LEAGUE_IDS.values())
        assert settings.allowed_origins == ("http://localhost:3000",)

    def test_refresh_policy_defaults(self, monkeypatch):
        monkeypatch.delenv("REFRESH_STALENESS_SECONDS", raising=False)
        monkeypatch.delenv("FETCH_TIMEOUT_SECONDS", raising=False)
        settings = Settings()
        assert settings.staleness_threshold == timedelta(minutes=5)
        assert settings.fetch_timeout_seconds == 10.0
        assert settings.auto_refresh_seconds == 0.0

    def test_staleness_from_env(self, monkeypatch):
        monkeypatch.setenv("REFRESH_STALENESS_SECONDS", "90")
        assert Settings().staleness_threshold == timedelta(seconds=90)

    def test_blank_url_falls_back_to_default(self, monkeypatch):
        monkeypatch.setenv("PROJECTIONS_API_URL", "   ")
        assert Settings().projections_api_url.startswith("https://")

    def test_invalid_number_names_the_variable(self, monkeypatch):
        monkeypatch.setenv("FETCH_TIMEOUT_SECONDS", "ten")
        with pytest.raises(ValueError, match="FETCH_TIMEOUT_SECONDS"):
            Settings()

    def test_league_ids_from_env(self, monkeypatch):
        monkeypatch.setenv("NBA_LEAGUE_IDS", "7, 84")
        assert Settings().nba_league_ids == frozenset({7, 84})

    def test_invalid_league_ids(self, monkeypatch):
        monkeypatch.setenv("NBA_LEAGUE_IDS", "7,nba")
        with pytest.raises(ValueError, match="NBA_LEAGUE_IDS"):
            Settings()

    def test_origins_split_and_trimmed(self, monkeypatch):
        monkeypatch.setenv("ALLOWED_ORIGINS", "https://a.example, https://b.example ,")
        assert Settings().allowed_origins == ("https://a.example", "https://b.example")

    def test_internal_api_key_from_env(self, monkeypatch):
        monkeypatch.setenv("INTERNAL_API_KEY", "  k3y  ")
        assert Settings().internal_api_key == "k3y"

    def test_settings_are_frozen(self):
        settings = Settings()
        with pytest.raises(FrozenInstanceError):
            settings.projections_per_page = 5
