"""Regression tests for typed runtime settings loading."""

from __future__ import annotations

from datetime import date

import pytest

from wallet_ledger.config import SettingsLoadError, config_load_database_url, config_load_settings


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch, tmp_path):
    """Run each test from an empty directory so no dotenv file is read."""

    monkeypatch.chdir(tmp_path)
    for variable_name in ("DATABASE_URL", "LOG_LEVEL", "HISTORICAL_EPOCH", "MARKET_DATA_BACKOFF_MAX_SECONDS"):
        monkeypatch.delenv(variable_name, raising=False)


def test_config_load_settings_reads_environment_overrides(monkeypatch) -> None:
    """Read uppercase environment variables and normalize values."""

    monkeypatch.setenv("DATABASE_URL", "  postgresql+psycopg://ledger@db:5432/wallet  ")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("HISTORICAL_EPOCH", "2010-01-01")

    settings = config_load_settings()

    assert settings.database_url == "postgresql+psycopg://ledger@db:5432/wallet"
    assert settings.log_level == "DEBUG"
    assert settings.historical_epoch == date(2010, 1, 1)
    assert settings.market_data_symbol_suffix == ".SA"


def test_config_load_settings_rejects_invalid_values(monkeypatch) -> None:
    """Raise SettingsLoadError for invalid log level or backoff bounds."""

    monkeypatch.setenv("LOG_LEVEL", "verbose")
    with pytest.raises(SettingsLoadError):
        config_load_settings()

    monkeypatch.setenv("LOG_LEVEL", "INFO")
    monkeypatch.setenv("MARKET_DATA_BACKOFF_MAX_SECONDS", "0.5")
    with pytest.raises(SettingsLoadError):
        config_load_settings()


def test_config_load_database_url_rejects_blank_value(monkeypatch) -> None:
    """Reject a blank database URL for migration tooling."""

    monkeypatch.setenv("DATABASE_URL", "   ")

    with pytest.raises(SettingsLoadError):
        config_load_database_url()
