"""Consecutive rate-limit counter.

Only observability: the poll interval stays fixed while degraded. The flag
tells consumers that cached data is being substituted for fresh prices.
"""

from coinwatch.models import RateLimitState


class RateLimitTracker:
    """Counts consecutive rate-limited ticker fetches."""

    def __init__(self) -> None:
        self._consecutive_failures = 0
        self._degraded = False

    def on_rate_limited(self) -> None:
        self._consecutive_failures += 1
        self._degraded = True

    def on_success(self) -> None:
        self._consecutive_failures = 0
        self._degraded = False

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures

    @property
    def degraded(self) -> bool:
        return self._degraded

    @property
    def state(self) -> RateLimitState:
        return RateLimitState(
            consecutive_failures=self._consecutive_failures,
            degraded=self._degraded,
        )
