"""Polling scheduler -- drives ticker polls and chart refreshes.

Ticker polls run on a fixed interval. Each successful tick checks whether
the default chart window is due for a refresh and, if so, starts it as a
separate task: the price update is published straight away and never waits
on candles. Failures never escape a tick. A rate-limited tick falls back to
the cached snapshot; any other failure becomes an error payload, and the
next tick simply tries again.
"""

import asyncio
import time
from collections.abc import Callable
from typing import Any

from coinwatch.config import PollingSettings
from coinwatch.exceptions import MarketDataError, NoCachedData, ProviderError, RateLimited
from coinwatch.logging import bind_log_context, get_logger
from coinwatch.market_data.level_crossing import LevelCrossingDetector
from coinwatch.market_data.price_cache import PriceCache
from coinwatch.market_data.provider import MarketDataProvider
from coinwatch.market_data.publisher import (
    ViewModelPublisher,
    build_chart_error,
    build_chart_update,
    build_error_update,
    build_price_update,
)
from coinwatch.market_data.rate_limit import RateLimitTracker
from coinwatch.models import CandleSeries, LevelCrossing, MarketView, Period

logger = get_logger(__name__)


class PollingScheduler:
    """Owns the polling cadence and reconciles provider results into the cache.

    The cache, tracker and publisher are created once at startup and passed
    in; the scheduler is the only writer of the cache's default series.
    """

    def __init__(
        self,
        provider: MarketDataProvider,
        cache: PriceCache,
        rate_limit: RateLimitTracker,
        publisher: ViewModelPublisher,
        settings: PollingSettings,
        symbol: str,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._provider = provider
        self._cache = cache
        self._rate_limit = rate_limit
        self._publisher = publisher
        self._settings = settings
        self._symbol = symbol
        self._clock = clock

        self._crossings = LevelCrossingDetector()
        self._last_crossing = LevelCrossing.NONE
        self._last_chart_fetch_ms = 0
        self._chart_task: asyncio.Task | None = None  # type: ignore[type-arg]
        self._running = False
        self._task: asyncio.Task | None = None  # type: ignore[type-arg]

    @property
    def symbol(self) -> str:
        return self._symbol

    @property
    def last_chart_fetch_ms(self) -> int:
        return self._last_chart_fetch_ms

    @property
    def last_crossing(self) -> LevelCrossing:
        return self._last_crossing

    @property
    def chart_refresh_in_flight(self) -> bool:
        return self._chart_task is not None and not self._chart_task.done()

    async def start(self) -> None:
        """Begin polling in the background. The first tick runs immediately."""
        if self._running:
            logger.warning("polling_scheduler_already_running")
            return
        self._running = True
        self._task = asyncio.create_task(self._poll_loop())
        logger.info(
            "polling_scheduler_started",
            symbol=self._symbol,
            ticker_interval_ms=self._settings.ticker_interval_ms,
            chart_interval_ms=self._settings.chart_interval_ms,
        )

    async def stop(self) -> None:
        """Stop polling and cancel any in-flight chart refresh."""
        self._running = False
        for task in (self._task, self._chart_task):
            if task is not None and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._task = None
        self._chart_task = None
        logger.info("polling_scheduler_stopped")

    async def _poll_loop(self) -> None:
        """Fixed-interval loop; the interval is measured from tick start."""
        bind_log_context(component="polling_scheduler", exchange_symbol=self._symbol)
        loop = asyncio.get_running_loop()
        interval = self._settings.ticker_interval_ms / 1000
        while self._running:
            started = loop.time()
            try:
                await self.poll_once()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.warning("poll_tick_error", symbol=self._symbol, exc_info=True)
            if self._running:
                await asyncio.sleep(max(0.0, interval - (loop.time() - started)))

    async def poll_once(self) -> dict[str, Any]:
        """Run one tick and return the payload it published."""
        now = self._clock()

        try:
            snapshot = await self._provider.fetch_ticker(self._symbol)
        except RateLimited:
            self._rate_limit.on_rate_limited()
            logger.warning(
                "rate_limited",
                symbol=self._symbol,
                consecutive=self._rate_limit.consecutive_failures,
            )
            return await self._publish_cached(now)
        except ProviderError as exc:
            logger.error(
                "ticker_fetch_failed",
                symbol=self._symbol,
                error=str(exc),
                cause=exc.cause,
                status_code=exc.status_code,
            )
            payload = build_error_update(str(exc), now)
            await self._publisher.publish_price(payload)
            return payload
        except Exception as exc:
            # ccxt parsers can raise plain TypeError/KeyError on odd bodies
            logger.error("ticker_fetch_failed", symbol=self._symbol, error=str(exc), exc_info=True)
            payload = build_error_update(str(exc) or type(exc).__name__, now)
            await self._publisher.publish_price(payload)
            return payload

        self._rate_limit.on_success()
        await self._cache.record_ticker(snapshot)
        self._last_crossing = self._crossings.observe(snapshot.price)
        if self._last_crossing is not LevelCrossing.NONE:
            logger.info(
                "price_level_crossed",
                symbol=self._symbol,
                direction=self._last_crossing.value,
                price=str(snapshot.price),
            )

        now_ms = int(now * 1000)
        if self.is_chart_due(now_ms) and not self.chart_refresh_in_flight:
            self._chart_task = asyncio.create_task(self._refresh_chart(now_ms))

        view = await self._cache.current_view()
        payload = build_price_update(view, now, self._rate_limit.state, self._last_crossing)
        await self._publisher.publish_price(payload)
        return payload

    def now_ms(self) -> int:
        """Current time from the scheduler's clock, in unix milliseconds."""
        return int(self._clock() * 1000)

    def is_chart_due(self, now_ms: int) -> bool:
        """True once chart_interval_ms has passed since the last successful refresh."""
        return now_ms - self._last_chart_fetch_ms >= self._settings.chart_interval_ms

    async def wait_for_chart(self) -> None:
        """Wait for an in-flight chart refresh to finish, if there is one."""
        if self._chart_task is not None:
            await asyncio.gather(self._chart_task, return_exceptions=True)

    async def _refresh_chart(self, started_ms: int) -> None:
        """Fetch the default chart window; on failure keep the stale series and retry next tick."""
        try:
            series = await self._provider.fetch_candles(
                self._symbol,
                self._settings.chart_timeframe,
                self._settings.chart_limit,
            )
        except MarketDataError as exc:
            logger.warning(
                "chart_refresh_failed",
                symbol=self._symbol,
                timeframe=self._settings.chart_timeframe,
                error=str(exc),
            )
            return
        except Exception:
            logger.warning("chart_refresh_error", symbol=self._symbol, exc_info=True)
            return

        await self._cache.record_series(series)
        self._last_chart_fetch_ms = started_ms
        await self._publisher.publish_chart(build_chart_update(series, Period.ONE_DAY))

    async def _publish_cached(self, now: float) -> dict[str, Any]:
        """Republish the cached snapshot, or an error payload when there is none."""
        try:
            view = await self._cached_view()
        except NoCachedData as exc:
            logger.error("no_cached_price", symbol=self._symbol)
            payload = build_error_update(str(exc), now)
        else:
            payload = build_price_update(view, now, self._rate_limit.state)
        await self._publisher.publish_price(payload)
        return payload

    async def _cached_view(self) -> MarketView:
        view = await self._cache.current_view()
        if view.snapshot is None:
            raise NoCachedData("Rate limited and no cached data available")
        return view

    async def current_payload(self) -> dict[str, Any]:
        """Return the cached view as a price-update payload without polling."""
        now = self._clock()
        view = await self._cache.current_view()
        if view.snapshot is None:
            return build_error_update("No price data available yet", now)
        return build_price_update(view, now, self._rate_limit.state, self._last_crossing)

    async def fetch_period_series(self, period: Period) -> CandleSeries:
        """Fetch the candle series that covers ``period``. Never touches the cache."""
        timeframe, limit = period.candle_request
        return await self._provider.fetch_candles(self._symbol, timeframe, limit)

    async def fetch_period_candles(self, period: Period) -> dict[str, Any]:
        """Fetch a period-specific chart and return (and publish) its payload."""
        try:
            series = await self.fetch_period_series(period)
        except MarketDataError as exc:
            logger.warning(
                "period_chart_fetch_failed",
                symbol=self._symbol,
                period=period.value,
                error=str(exc),
            )
            return build_chart_error(str(exc), period)

        payload = build_chart_update(series, period)
        await self._publisher.publish_chart(payload)
        return payload

    def status(self) -> dict[str, Any]:
        """Diagnostic snapshot of scheduler state."""
        state = self._rate_limit.state
        return {
            "symbol": self._symbol,
            "running": self._running,
            "degraded": state.degraded,
            "consecutiveRateLimits": state.consecutive_failures,
            "lastChartFetchMs": self._last_chart_fetch_ms,
            "chartRefreshInFlight": self.chart_refresh_in_flight,
        }
