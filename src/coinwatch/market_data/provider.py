"""Abstract market data provider interface.

Defines the contract the polling scheduler depends on. Exchange-specific
details (endpoints, payload shapes, error codes) stay in the concrete
implementation.
"""

from abc import ABC, abstractmethod

from coinwatch.models import CandleSeries, TickerSnapshot


class MarketDataProvider(ABC):
    """Abstract base class for public market data sources."""

    @abstractmethod
    async def connect(self) -> None:
        """Prepare the provider for requests."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release network resources."""
        ...

    @abstractmethod
    async def fetch_ticker(self, symbol: str) -> TickerSnapshot:
        """Fetch the latest price and 24h percent change.

        Raises:
            RateLimited: The provider rejected the request as rate limited.
            MalformedResponse: The price field is missing or not positive.
            ProviderError: Non-2xx response, network failure, or timeout.
        """
        ...

    @abstractmethod
    async def fetch_candles(self, symbol: str, timeframe: str, limit: int) -> CandleSeries:
        """Fetch the most recent ``limit`` candles of the given timeframe.

        Returns a non-empty series in ascending open-time order.

        Raises:
            RateLimited: The provider rejected the request as rate limited.
            MalformedResponse: The body is empty or not a list of OHLCV rows.
            ProviderError: Non-2xx response, network failure, or timeout.
        """
        ...
