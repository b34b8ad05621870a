"""Shared data models for the coinwatch price service.

CRITICAL: All monetary values use Decimal. Never use float for prices or changes.
Candle open times are unix milliseconds (exchange convention); observation and
fetch times are unix seconds (time.time()).
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

from coinwatch.exceptions import MalformedResponse

_HOUR_MS = 60 * 60 * 1000


class Period(str, Enum):
    """User-selected lookback window for the displayed percent change."""

    ONE_HOUR = "1H"
    FOUR_HOURS = "4H"
    ONE_DAY = "1D"
    ONE_WEEK = "1W"

    @classmethod
    def parse(cls, value: str) -> Period:
        """Return the period for a label such as "4h" or "1W"."""
        try:
            return cls(value.upper())
        except ValueError:
            raise ValueError(f"Unknown period {value!r}") from None

    def next(self) -> Period:
        """Return the following period, wrapping from 1W back to 1H."""
        members = list(Period)
        return members[(members.index(self) + 1) % len(members)]

    @property
    def lookback_ms(self) -> int:
        return _LOOKBACK_MS[self]

    @property
    def candle_request(self) -> tuple[str, int]:
        """(timeframe, limit) of the candle series that covers this period."""
        return _CANDLE_REQUESTS[self]


_LOOKBACK_MS = {
    Period.ONE_HOUR: _HOUR_MS,
    Period.FOUR_HOURS: 4 * _HOUR_MS,
    Period.ONE_DAY: 24 * _HOUR_MS,
    Period.ONE_WEEK: 7 * 24 * _HOUR_MS,
}

_CANDLE_REQUESTS = {
    Period.ONE_HOUR: ("1m", 60),
    Period.FOUR_HOURS: ("5m", 48),
    Period.ONE_DAY: ("1h", 24),
    Period.ONE_WEEK: ("1d", 7),
}


class LevelCrossing(str, Enum):
    """Direction of a move across a whole-hundred price level."""

    UP = "up"
    DOWN = "down"
    NONE = "none"


def to_decimal(value: Any) -> Decimal:
    """Convert an exchange-supplied number or numeric string to Decimal.

    Raises:
        MalformedResponse: If the value is missing or not numeric.
    """
    if value is None or isinstance(value, bool):
        raise MalformedResponse(f"Expected a number, got {value!r}")
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise MalformedResponse(f"Expected a number, got {value!r}") from None
    if not result.is_finite():
        raise MalformedResponse(f"Expected a finite number, got {value!r}")
    return result


def _optional_decimal(value: Any) -> Decimal | None:
    return None if value is None else to_decimal(value)


@dataclass(frozen=True)
class TickerSnapshot:
    """Latest price and 24h change for the watched pair."""

    price: Decimal
    change_24h: Decimal  # percent, signed
    observed_at: float  # unix seconds


@dataclass(frozen=True)
class Candle:
    """One OHLCV bucket. Only open_time and close drive the core logic."""

    open_time: int  # unix milliseconds
    close: Decimal
    open: Decimal | None = None
    high: Decimal | None = None
    low: Decimal | None = None
    volume: Decimal | None = None

    @classmethod
    def from_ohlcv(cls, row: Any) -> Candle:
        """Parse a ``[openTime, open, high, low, close, volume, ...]`` record.

        Raises:
            MalformedResponse: If the row is too short, unparseable, or its
                close is not positive.
        """
        if not isinstance(row, (list, tuple)) or len(row) < 5:
            raise MalformedResponse(f"Malformed candle row: {row!r}")
        try:
            open_time = int(row[0])
        except (TypeError, ValueError):
            raise MalformedResponse(f"Malformed candle open time: {row[0]!r}") from None

        close = to_decimal(row[4])
        if close <= 0:
            raise MalformedResponse(f"Non-positive candle close: {row[4]!r}")

        return cls(
            open_time=open_time,
            close=close,
            open=_optional_decimal(row[1]),
            high=_optional_decimal(row[2]),
            low=_optional_decimal(row[3]),
            volume=_optional_decimal(row[5]) if len(row) > 5 else None,
        )

    def as_row(self) -> list[Any]:
        """Return the candle as an ``[openTime, open, high, low, close, volume]`` row."""
        return [self.open_time, self.open, self.high, self.low, self.close, self.volume]


@dataclass(frozen=True)
class CandleSeries:
    """Candles in ascending open_time order, tagged with the request that produced them."""

    candles: tuple[Candle, ...]
    timeframe: str
    limit: int
    fetched_at: float  # unix seconds

    def __len__(self) -> int:
        return len(self.candles)

    def history(self) -> list[list[Any]]:
        """Return ``[[open_time, close], ...]`` pairs for chart drawing."""
        return [[c.open_time, c.close] for c in self.candles]

    def oldest(self) -> Candle | None:
        """Return the candle with the smallest open_time, regardless of order."""
        if not self.candles:
            return None
        return min(self.candles, key=lambda c: c.open_time)


@dataclass(frozen=True)
class MarketView:
    """Merged snapshot handed to consumers.

    ``series`` is the series attached to this view: the cache's latest, or a
    period-specific one attached with :meth:`with_series`.
    ``last_good_series`` is always the most recent default series from the
    cache, and survives ticks that did not refresh the chart.
    """

    snapshot: TickerSnapshot | None = None
    series: CandleSeries | None = None
    last_good_series: CandleSeries | None = None

    def with_series(self, series: CandleSeries | None) -> MarketView:
        """Return a copy with ``series`` replaced (e.g. by an on-demand fetch)."""
        return dataclasses.replace(self, series=series)


@dataclass(frozen=True)
class RateLimitState:
    """Consecutive rate-limit rejections and whether cached data is being substituted."""

    consecutive_failures: int = 0
    degraded: bool = False


@dataclass(frozen=True)
class PeriodChange:
    """Percent change for a period, flagged when the 24h fallback was substituted."""

    period: Period
    value: Decimal
    approximate: bool = False
