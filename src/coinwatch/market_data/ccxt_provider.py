"""Market data provider implementation via ccxt async.

Wraps any ccxt.async_support exchange (Binance by default) for the two
public endpoints the service needs: 24h ticker and OHLCV candles. Requests
are bounded by ccxt's own request timeout; nothing is retried here.
"""

import time

import ccxt
import ccxt.async_support as ccxt_async

from coinwatch.config import ProviderSettings
from coinwatch.exceptions import MalformedResponse, ProviderError, RateLimited
from coinwatch.logging import get_logger
from coinwatch.market_data.provider import MarketDataProvider
from coinwatch.models import Candle, CandleSeries, TickerSnapshot, to_decimal

logger = get_logger(__name__)


class CcxtMarketDataProvider(MarketDataProvider):
    """Concrete market data provider using ccxt async."""

    def __init__(self, settings: ProviderSettings) -> None:
        self._settings = settings

        exchange_class = getattr(ccxt_async, settings.exchange_id, None)
        if exchange_class is None:
            raise ValueError(f"Unknown ccxt exchange id: {settings.exchange_id}")

        self._exchange = exchange_class(
            {
                "enableRateLimit": settings.enable_rate_limit,
                "timeout": settings.request_timeout_ms,
            }
        )

    @property
    def exchange(self) -> ccxt_async.Exchange:
        """Access the underlying ccxt exchange instance."""
        return self._exchange

    async def connect(self) -> None:
        """Nothing to load up front: ticker and OHLCV are public endpoints."""
        logger.info(
            "market_data_provider_ready",
            exchange=self._settings.exchange_id,
            timeout_ms=self._settings.request_timeout_ms,
        )

    async def close(self) -> None:
        """Clean up ccxt async resources. Must be called to avoid leaking the HTTP session."""
        await self._exchange.close()
        logger.info("market_data_provider_closed", exchange=self._settings.exchange_id)

    async def fetch_ticker(self, symbol: str) -> TickerSnapshot:
        """Fetch the 24h ticker and convert it to a TickerSnapshot."""
        try:
            ticker = await self._exchange.fetch_ticker(symbol)
        except ccxt.BaseError as exc:
            raise _translate_error(exc) from exc

        if not isinstance(ticker, dict):
            raise MalformedResponse("Ticker response is not an object")

        last = ticker.get("last")
        if last is None:
            raise MalformedResponse("Price data not found in ticker response")
        price = to_decimal(last)
        if price <= 0:
            raise MalformedResponse(f"Non-positive price in ticker response: {last!r}")

        percentage = ticker.get("percentage")
        change_24h = to_decimal(percentage) if percentage is not None else to_decimal(0)

        return TickerSnapshot(price=price, change_24h=change_24h, observed_at=time.time())

    async def fetch_candles(self, symbol: str, timeframe: str, limit: int) -> CandleSeries:
        """Fetch OHLCV rows and convert them to a CandleSeries.

        ccxt returns rows as ``[timestamp_ms, open, high, low, close, volume]``.
        """
        try:
            rows = await self._exchange.fetch_ohlcv(symbol, timeframe, limit=limit)
        except ccxt.BaseError as exc:
            raise _translate_error(exc) from exc

        if not isinstance(rows, list) or not rows:
            raise MalformedResponse(f"Empty or invalid candle response for {symbol} {timeframe}")

        candles = tuple(Candle.from_ohlcv(row) for row in rows)
        logger.debug("candles_fetched", symbol=symbol, timeframe=timeframe, count=len(candles))
        return CandleSeries(
            candles=candles,
            timeframe=timeframe,
            limit=limit,
            fetched_at=time.time(),
        )


def _translate_error(exc: ccxt.BaseError) -> Exception:
    """Map a ccxt exception onto the provider error taxonomy.

    ccxt raises either RateLimitExceeded or DDoSProtection for HTTP 429
    depending on the exchange; the two are siblings under NetworkError.
    """
    if isinstance(exc, (ccxt.RateLimitExceeded, ccxt.DDoSProtection)):
        return RateLimited("Rate limited by market data provider")
    if isinstance(exc, ccxt.RequestTimeout):
        return ProviderError("Request timeout", cause="timeout")
    if isinstance(exc, ccxt.BadResponse):
        return MalformedResponse(str(exc) or type(exc).__name__, cause=type(exc).__name__)
    return ProviderError(str(exc) or type(exc).__name__, cause=type(exc).__name__)
