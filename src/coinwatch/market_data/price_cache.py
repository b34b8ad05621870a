"""Single-slot in-memory cache of the last good ticker and candle series.

Ticker polls and chart refreshes complete independently, so the two fields
are written separately and merged on read. A ticker write never clears the
series and a series write never clears the snapshot.
"""

import asyncio

from coinwatch.logging import get_logger
from coinwatch.models import CandleSeries, MarketView, TickerSnapshot

logger = get_logger(__name__)


class PriceCache:
    """Last-known-good snapshot and series with last-write-wins semantics.

    Uses asyncio.Lock so concurrent completions (scheduled tick, background
    chart refresh, on-demand request) never interleave mid-write.
    """

    def __init__(self) -> None:
        self._snapshot: TickerSnapshot | None = None
        self._series: CandleSeries | None = None
        self._lock = asyncio.Lock()

    async def record_ticker(self, snapshot: TickerSnapshot) -> None:
        """Replace the cached snapshot."""
        async with self._lock:
            self._snapshot = snapshot

    async def record_series(self, series: CandleSeries) -> None:
        """Replace the cached default candle series."""
        async with self._lock:
            self._series = series
        logger.debug("series_cached", timeframe=series.timeframe, count=len(series))

    async def latest_snapshot(self) -> TickerSnapshot | None:
        """Return the cached snapshot, or None before the first successful poll."""
        async with self._lock:
            return self._snapshot

    async def current_view(self) -> MarketView:
        """Return the most recent snapshot merged with the most recent series."""
        async with self._lock:
            return MarketView(
                snapshot=self._snapshot,
                series=self._series,
                last_good_series=self._series,
            )
