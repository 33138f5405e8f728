"""Test Settings loading and validation."""

import pytest

from trading_journal.core.config import Settings, load_settings, resolve_zone
from trading_journal.core.enums import StorageBackend
from trading_journal.core.errors import ConfigError


class TestSettingsDefaults:
    def test_default_settings(self):
        settings = Settings()
        assert settings.analytics.timezone == "UTC"
        assert settings.analytics.calendar_lookback_months == 3
        assert settings.analytics.default_portfolio_balance == 10_000.0
        assert settings.api.user_header == "X-User-Id"
        assert settings.storage.backend is StorageBackend.MEMORY

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("JOURNAL_ANALYTICS__TIMEZONE", "Europe/London")
        monkeypatch.setenv("JOURNAL_STORAGE__BACKEND", "sql")
        settings = Settings()
        assert settings.analytics.timezone == "Europe/London"
        assert settings.storage.backend is StorageBackend.SQL


class TestLoadSettings:
    def test_toml_file(self, tmp_path):
        path = tmp_path / "journal.toml"
        path.write_text('[analytics]\ntimezone = "Asia/Tokyo"\n\n[api]\ndefault_page_size = 50\n')
        settings = load_settings(path)
        assert settings.analytics.timezone == "Asia/Tokyo"
        assert settings.api.default_page_size == 50

    def test_missing_file_uses_defaults(self, tmp_path):
        settings = load_settings(tmp_path / "nope.toml")
        assert settings.analytics.timezone == "UTC"

    def test_overrides(self):
        settings = load_settings(overrides={"observability": {"log_format": "console"}})
        assert settings.observability.log_format == "console"

    def test_bad_timezone_fails_fast(self):
        with pytest.raises(ConfigError):
            load_settings(overrides={"analytics": {"timezone": "Mars/Olympus"}})


def test_resolve_zone():
    assert resolve_zone("UTC").key == "UTC"
    with pytest.raises(ConfigError):
        resolve_zone("Not/AZone")
