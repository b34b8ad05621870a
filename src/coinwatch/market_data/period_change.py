"""Period-relative percent change from the best available candle data.

The 24h change comes straight from the ticker. Shorter and longer periods
are derived from whatever series is on hand, which may have a coarser or
finer resolution than the period asks for. When the series cannot reach
back far enough the ticker's 24h change is substituted; ``PeriodChange``
flags that substitution so a UI can mark the figure as approximate.

All functions are pure: ``now_ms`` is always passed in.
"""

from decimal import Decimal

from coinwatch.models import Candle, CandleSeries, MarketView, Period, PeriodChange

_HUNDRED = Decimal("100")


def calculate_period_change(view: MarketView, period: Period, now_ms: int) -> Decimal:
    """Return the signed percent change of the current price over ``period``."""
    return resolve_period_change(view, period, now_ms).value


def resolve_period_change(view: MarketView, period: Period, now_ms: int) -> PeriodChange:
    """Compute the period change and whether the 24h fallback was used.

    Fallback ladder for periods other than 1D:
    1. No series on the view (neither attached nor last good) -> change_24h.
    2. Newest candle (scanning from the end) opened at or before
       ``now_ms - lookback`` -> its close is the past price.
    3. 1W only: oldest candle by open time, if it is old enough.
    4. Otherwise -> change_24h.
    """
    snapshot = view.snapshot
    if snapshot is None:
        return PeriodChange(period=period, value=Decimal("0"), approximate=True)

    if period is Period.ONE_DAY:
        return PeriodChange(period=period, value=snapshot.change_24h)

    fallback = PeriodChange(period=period, value=snapshot.change_24h, approximate=True)

    series = _pick_series(view)
    if series is None:
        return fallback

    target_ms = now_ms - period.lookback_ms
    past = _latest_at_or_before(series, target_ms)

    if past is None and period is Period.ONE_WEEK:
        oldest = series.oldest()
        if oldest is not None and oldest.open_time <= target_ms:
            past = oldest

    if past is None or past.close <= 0:
        return fallback

    change = (snapshot.price - past.close) / past.close * _HUNDRED
    return PeriodChange(period=period, value=change)


def _pick_series(view: MarketView) -> CandleSeries | None:
    # An attached period-specific series wins over the rolling default.
    if view.series is not None and len(view.series) > 0:
        return view.series
    if view.last_good_series is not None and len(view.last_good_series) > 0:
        return view.last_good_series
    return None


def _latest_at_or_before(series: CandleSeries, target_ms: int) -> Candle | None:
    for candle in reversed(series.candles):
        if candle.open_time <= target_ms:
            return candle
    return None
