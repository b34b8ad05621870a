"""Market data layer -- provider access, caching, polling, and derived price metrics."""

from coinwatch.market_data.ccxt_provider import CcxtMarketDataProvider
from coinwatch.market_data.level_crossing import LevelCrossingDetector, detect_level_crossing
from coinwatch.market_data.period_change import calculate_period_change, resolve_period_change
from coinwatch.market_data.price_cache import PriceCache
from coinwatch.market_data.provider import MarketDataProvider
from coinwatch.market_data.publisher import ViewModelPublisher
from coinwatch.market_data.rate_limit import RateLimitTracker
from coinwatch.market_data.scheduler import PollingScheduler

__all__ = [
    "CcxtMarketDataProvider",
    "LevelCrossingDetector",
    "MarketDataProvider",
    "PollingScheduler",
    "PriceCache",
    "RateLimitTracker",
    "ViewModelPublisher",
    "calculate_period_change",
    "detect_level_crossing",
    "resolve_period_change",
]
