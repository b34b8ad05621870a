"""Tests for environment-driven settings."""

import pytest
from pydantic import ValidationError

from coinwatch.config import AppSettings, PollingSettings, ProviderSettings, ServerSettings


class TestDefaults:
    def test_provider_defaults(self) -> None:
        settings = ProviderSettings()
        assert settings.exchange_id == "binance"
        assert settings.request_timeout_ms == 5000

    def test_polling_defaults(self) -> None:
        settings = PollingSettings()
        assert settings.ticker_interval_ms == 1000
        assert settings.chart_interval_ms == 30000
        assert (settings.chart_timeframe, settings.chart_limit) == ("1h", 24)


class TestEnvironment:
    def test_prefixed_env_vars(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PROVIDER_SYMBOL", "BTC/USDT")
        monkeypatch.setenv("POLLING_CHART_INTERVAL_MS", "60000")
        assert ProviderSettings().symbol == "BTC/USDT"
        assert PollingSettings().chart_interval_ms == 60000

    def test_fixture_settings(self, mock_settings: AppSettings) -> None:
        assert mock_settings.provider.symbol == "ZEC/USDT"
        assert mock_settings.server.enabled is True


class TestValidation:
    def test_zero_ticker_interval_rejected(self) -> None:
        with pytest.raises(ValidationError):
            PollingSettings(ticker_interval_ms=0)

    def test_negative_timeout_from_env_rejected(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PROVIDER_REQUEST_TIMEOUT_MS", "-1")
        with pytest.raises(ValidationError):
            ProviderSettings()

    def test_port_out_of_range_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ServerSettings(port=70000)
