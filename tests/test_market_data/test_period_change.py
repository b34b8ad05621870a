"""Tests for period-relative percent change and its fallback ladder."""

from decimal import Decimal

import pytest

from coinwatch.market_data.period_change import calculate_period_change, resolve_period_change
from coinwatch.models import Candle, CandleSeries, MarketView, Period, TickerSnapshot

HOUR_MS = 60 * 60 * 1000
T0 = 1_700_000_000_000


def _make_snapshot(
    price: str = "512.34",
    change_24h: str = "2.5",
    observed_at: float = 1_700_000_000.0,
) -> TickerSnapshot:
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
    """Build a series from ``(open_time_ms, close)`` pairs, kept in the given order."""
    candles = tuple(Candle(open_time=t, close=Decimal(c)) for t, c in points)
    return CandleSeries(candles=candles, timeframe=timeframe, limit=len(candles), fetched_at=fetched_at)


DAY_MS = 24 * HOUR_MS
CENT = Decimal("0.01")


def _view(price: str, change_24h: str, series=None, last_good=None) -> MarketView:
    return MarketView(
        snapshot=_make_snapshot(price=price, change_24h=change_24h),
        series=series,
        last_good_series=last_good,
    )


class TestOneDay:
    """1D is always the provider's 24h change."""

    def test_returns_change_24h(self) -> None:
        view = _view("121", "-3.21")
        assert calculate_period_change(view, Period.ONE_DAY, T0) == Decimal("-3.21")

    def test_ignores_series(self) -> None:
        series = _make_series([(T0 - 2 * DAY_MS, "1"), (T0 - DAY_MS, "2")])
        view = _view("121", "4.2", series=series, last_good=series)
        result = resolve_period_change(view, Period.ONE_DAY, T0)
        assert result.value == Decimal("4.2")
        assert result.approximate is False


class TestFromSeries:
    """Past price lookup within a candle series."""

    def test_picks_latest_candle_at_or_before_target(self) -> None:
        series = _make_series([(T0, "100"), (T0 + HOUR_MS, "110")])
        view = _view("121", "0", last_good=series)
        now = T0 + 2 * HOUR_MS + 100_000  # target = T0 + 1h + 100s

        change = calculate_period_change(view, Period.ONE_HOUR, now)

        assert change.quantize(CENT) == Decimal("10.00")

    def test_skips_candles_newer_than_target(self) -> None:
        series = _make_series([(T0, "100"), (T0 + HOUR_MS, "110")])
        view = _view("121", "0", last_good=series)
        now = T0 + HOUR_MS + 100_000  # target = T0 + 100s, only the first candle qualifies

        change = calculate_period_change(view, Period.ONE_HOUR, now)

        assert change.quantize(CENT) == Decimal("21.00")

    def test_negative_change(self) -> None:
        series = _make_series([(T0 + i * 5 * 60_000, str(500 - i)) for i in range(48)])
        view = _view("450", "1", last_good=series)
        now = T0 + 4 * HOUR_MS  # target = T0 -> close 500

        change = calculate_period_change(view, Period.FOUR_HOURS, now)

        assert change.quantize(CENT) == Decimal("-10.00")

    def test_attached_series_preferred_over_last_good(self) -> None:
        default = _make_series([(T0, "100")])
        minute = _make_series([(T0, "200")], timeframe="1m")
        view = _view("220", "0", series=minute, last_good=default)

        change = calculate_period_change(view, Period.ONE_HOUR, T0 + HOUR_MS)

        assert change.quantize(CENT) == Decimal("10.00")

    def test_empty_attached_series_uses_last_good(self) -> None:
        default = _make_series([(T0, "100")])
        view = _view("110", "0", series=_make_series([]), last_good=default)

        change = calculate_period_change(view, Period.ONE_HOUR, T0 + HOUR_MS)

        assert change.quantize(CENT) == Decimal("10.00")

    def test_one_week_from_daily_candles(self) -> None:
        series = _make_series([(T0 + i * DAY_MS, str(100 + 10 * i)) for i in range(7)])
        view = _view("180", "0", last_good=series, series=series)
        now = T0 + 7 * DAY_MS  # target = T0

        result = resolve_period_change(view, Period.ONE_WEEK, now)

        assert result.value.quantize(CENT) == Decimal("80.00")
        assert result.approximate is False


class TestFallback:
    """Situations where the 24h change is substituted."""

    @pytest.mark.parametrize("period", [Period.ONE_HOUR, Period.FOUR_HOURS, Period.ONE_WEEK])
    def test_absent_series(self, period: Period) -> None:
        view = _view("121", "5.55")
        result = resolve_period_change(view, period, T0)
        assert result.value == Decimal("5.55")
        assert result.approximate is True

    @pytest.mark.parametrize("period", [Period.ONE_HOUR, Period.FOUR_HOURS, Period.ONE_WEEK])
    def test_empty_series(self, period: Period) -> None:
        empty = _make_series([])
        view = _view("121", "5.55", series=empty, last_good=empty)
        assert calculate_period_change(view, period, T0) == Decimal("5.55")

    def test_series_too_short_for_one_hour(self) -> None:
        series = _make_series([(T0, "100")])
        view = _view("121", "-1.5", last_good=series)
        # target = T0 - 1h, the only candle is newer
        assert calculate_period_change(view, Period.ONE_HOUR, T0 + 1) == Decimal("-1.5")

    def test_one_week_with_hourly_day_series(self) -> None:
        series = _make_series([(T0 + i * HOUR_MS, str(400 + i)) for i in range(24)])
        view = _view("420", "7.7", last_good=series)

        result = resolve_period_change(view, Period.ONE_WEEK, T0 + DAY_MS)

        assert result.value == Decimal("7.7")
        assert result.approximate is True

    def test_one_week_unsorted_series_finds_old_candle(self) -> None:
        series = _make_series([(T0 + DAY_MS, "150"), (T0, "100"), (T0 + 2 * DAY_MS, "160")])
        view = _view("200", "0", last_good=series)

        change = calculate_period_change(view, Period.ONE_WEEK, T0 + 7 * DAY_MS)

        assert change.quantize(CENT) == Decimal("100.00")

    def test_no_snapshot_returns_zero(self) -> None:
        view = MarketView(last_good_series=_make_series([(T0, "100")]))
        assert calculate_period_change(view, Period.ONE_HOUR, T0 + HOUR_MS) == Decimal("0")


class TestPurity:
    def test_same_inputs_same_output(self) -> None:
        series = _make_series([(T0 + i * 60_000, str(100 + i)) for i in range(60)])
        view = _view("173.21", "1", series=series, last_good=series)
        now = T0 + 75 * 60_000

        first = calculate_period_change(view, Period.ONE_HOUR, now)
        second = calculate_period_change(view, Period.ONE_HOUR, now)

        assert first == second
        assert str(first) == str(second)
