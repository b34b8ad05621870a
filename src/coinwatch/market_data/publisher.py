"""View model payloads and fan-out to presentation-layer subscribers.

Two events are published:

- ``price-update``: ``{price, change24h, timestamp, history, historicalData,
  degraded, consecutiveRateLimits, crossing}`` or ``{error, timestamp}``
- ``chart-data-update``: ``{history, historicalData, period}`` or
  ``{error, period}``

Decimals are serialized as strings so no precision is lost in JSON.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from coinwatch.logging import get_logger
from coinwatch.models import CandleSeries, LevelCrossing, MarketView, Period, RateLimitState

logger = get_logger(__name__)

PRICE_UPDATE = "price-update"
CHART_DATA_UPDATE = "chart-data-update"

Subscriber = Callable[[str, dict[str, Any]], Awaitable[None]]


def _decimal_to_str(obj: Any) -> Any:
    """Recursively convert Decimal values to strings for JSON serialization."""
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, dict):
        return {k: _decimal_to_str(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_decimal_to_str(item) for item in obj]
    return obj


def iso_timestamp(epoch_seconds: float) -> str:
    """Format unix seconds as an ISO-8601 UTC string with millisecond precision."""
    dt = datetime.fromtimestamp(epoch_seconds, tz=timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _series_fields(series: CandleSeries | None) -> dict[str, Any]:
    if series is None:
        return {"history": [], "historicalData": None}
    return {
        "history": _decimal_to_str(series.history()),
        "historicalData": _decimal_to_str([c.as_row() for c in series.candles]),
    }


def build_price_update(
    view: MarketView,
    timestamp: float,
    rate_limit: RateLimitState | None = None,
    crossing: LevelCrossing = LevelCrossing.NONE,
) -> dict[str, Any]:
    """Shape a price-update payload from a view that has a snapshot."""
    if view.snapshot is None:
        raise ValueError("Cannot build a price update without a snapshot")

    rate_limit = rate_limit or RateLimitState()
    payload: dict[str, Any] = {
        "price": str(view.snapshot.price),
        "change24h": str(view.snapshot.change_24h),
        "timestamp": iso_timestamp(timestamp),
        "degraded": rate_limit.degraded,
        "consecutiveRateLimits": rate_limit.consecutive_failures,
        "crossing": crossing.value,
    }
    payload.update(_series_fields(view.last_good_series))
    return payload


def build_error_update(message: str, timestamp: float) -> dict[str, Any]:
    """Shape a price-update error payload."""
    return {"error": message, "timestamp": iso_timestamp(timestamp)}


def build_chart_update(series: CandleSeries, period: Period) -> dict[str, Any]:
    """Shape a chart-data-update payload."""
    payload = _series_fields(series)
    payload["period"] = period.value
    return payload


def build_chart_error(message: str, period: Period) -> dict[str, Any]:
    """Shape a chart-data-update error payload."""
    return {"error": message, "period": period.value}


def is_error(payload: dict[str, Any]) -> bool:
    return "error" in payload


class ViewModelPublisher:
    """Broadcasts payloads to every registered async subscriber.

    A subscriber that raises is logged and removed; publishing never fails.
    """

    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []

    @property
    def subscribers(self) -> list[Subscriber]:
        return list(self._subscribers)

    def subscribe(self, callback: Subscriber) -> None:
        if callback not in self._subscribers:
            self._subscribers.append(callback)

    def unsubscribe(self, callback: Subscriber) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    async def publish(self, event: str, payload: dict[str, Any]) -> None:
        """Send an event to all subscribers, dropping any that fail."""
        for callback in self._subscribers.copy():
            try:
                await callback(event, payload)
            except Exception:
                self.unsubscribe(callback)
                logger.warning(
                    "subscriber_dropped",
                    event_name=event,
                    remaining=len(self._subscribers),
                    exc_info=True,
                )

    async def publish_price(self, payload: dict[str, Any]) -> None:
        await self.publish(PRICE_UPDATE, payload)

    async def publish_chart(self, payload: dict[str, Any]) -> None:
        await self.publish(CHART_DATA_UPDATE, payload)
