"""Custom exceptions for the coinwatch price service.

Every provider failure is one of these. The polling scheduler converts them
into a cached fallback or an error payload; none of them escape a tick.
"""


class CoinwatchError(Exception):
    """Base exception for all coinwatch errors."""


class MarketDataError(CoinwatchError):
    """Base for failures fetching data from the market data provider."""


class RateLimited(MarketDataError):
    """Raised when the provider rejects a request as rate limited (HTTP 429)."""


class ProviderError(MarketDataError):
    """Raised on a non-2xx response, network failure or timeout.

    Attributes:
        status_code: HTTP status when the provider reported one.
        cause: Short description of the failure ("timeout" for timeouts).
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        cause: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.cause = cause


class MalformedResponse(ProviderError):
    """Raised when a response body does not have the expected shape."""


class NoCachedData(CoinwatchError):
    """Raised when a fallback is needed but nothing has been cached yet."""
