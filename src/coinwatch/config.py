"""Configuration system using pydantic-settings with environment variable loading."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ProviderSettings(BaseSettings):
    """Market data provider connection settings."""

    model_config = SettingsConfigDict(env_prefix="PROVIDER_")

    exchange_id: str = "binance"  # any ccxt exchange id with public ticker + OHLCV
    symbol: str = "ZEC/USDT"
    request_timeout_ms: int = Field(default=5000, gt=0)
    enable_rate_limit: bool = True


class PollingSettings(BaseSettings):
    """Polling cadences and the default chart window.

    The default chart window is a rolling day of hourly candles, which also
    backs the period change calculation when no period-specific series has
    been fetched.
    """

    model_config = SettingsConfigDict(env_prefix="POLLING_")

    ticker_interval_ms: int = Field(default=1000, gt=0)  # 60 req/min, well within exchange limits
    chart_interval_ms: int = Field(default=30000, gt=0)
    chart_timeframe: str = "1h"
    chart_limit: int = Field(default=24, gt=0)


class ServerSettings(BaseSettings):
    """Presentation bridge (HTTP + WebSocket) configuration."""

    model_config = SettingsConfigDict(env_prefix="SERVER_")

    enabled: bool = True
    host: str = "127.0.0.1"
    port: int = Field(default=8765, ge=1, le=65535)


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    provider: ProviderSettings = ProviderSettings()
    polling: PollingSettings = PollingSettings()
    server: ServerSettings = ServerSettings()
