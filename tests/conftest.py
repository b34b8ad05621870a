"""Shared test fixtures for the coinwatch price service."""

from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from coinwatch.config import AppSettings, PollingSettings, ProviderSettings
from coinwatch.models import Candle, CandleSeries, TickerSnapshot

HOUR_MS = 60 * 60 * 1000
T0 = 1_700_000_000_000  # arbitrary candle epoch, unix ms


def _make_snapshot(
    price: str = "512.34",
    change_24h: str = "2.5",
    observed_at: float = 1_700_000_000.0,
) -> TickerSnapshot:
    """Create a TickerSnapshot from string decimals."""
    return TickerSnapshot(
        price=Decimal(price),
        change_24h=Decimal(change_24h),
        observed_at=observed_at,
    )


def _make_series(
    points: list[tuple[int, str]],
    timeframe: str = "1h",
    fetched_at: float = 1_700_000_000.0,
) -> CandleSeries:
    """Create a CandleSeries from ``(open_time_ms, close)`` pairs, kept in the given order."""
    candles = tuple(Candle(open_time=t, close=Decimal(c)) for t, c in points)
    return CandleSeries(
        candles=candles,
        timeframe=timeframe,
        limit=len(candles),
        fetched_at=fetched_at,
    )


@pytest.fixture
def mock_settings() -> AppSettings:
    """Return AppSettings with test defaults (short intervals, no server)."""
    return AppSettings(
        log_level="DEBUG",
        provider=ProviderSettings(
            exchange_id="binance",
            symbol="ZEC/USDT",
            request_timeout_ms=5000,
        ),
        polling=PollingSettings(
            ticker_interval_ms=1000,
            chart_interval_ms=30000,
        ),
    )


@pytest.fixture
def snapshot() -> TickerSnapshot:
    return _make_snapshot()


@pytest.fixture
def day_series() -> CandleSeries:
    """24 hourly candles ending at T0 + 23h, closes 400..423."""
    return _make_series([(T0 + i * HOUR_MS, str(400 + i)) for i in range(24)])


@pytest.fixture
def mock_provider(snapshot: TickerSnapshot, day_series: CandleSeries) -> AsyncMock:
    """Mock MarketDataProvider returning the sample snapshot and day series."""
    provider = AsyncMock()
    provider.fetch_ticker = AsyncMock(return_value=snapshot)
    provider.fetch_candles = AsyncMock(return_value=day_series)
    return provider
