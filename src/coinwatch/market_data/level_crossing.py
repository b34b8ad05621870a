"""Whole-hundred price level crossing detection.

A level is ``floor(price / 100)``: $450 is level 4, $512 is level 5. Moving
into a higher level is UP, into a lower one DOWN. The first observation only
sets the baseline.
"""

import math
from decimal import Decimal

from coinwatch.models import LevelCrossing

_LEVEL_SIZE = Decimal("100")


def price_level(price: Decimal) -> int:
    """Return the hundred-level a price sits in."""
    return math.floor(price / _LEVEL_SIZE)


def detect_level_crossing(previous: Decimal | None, new: Decimal) -> LevelCrossing:
    """Compare the levels of two consecutive prices."""
    if previous is None or new <= 0:
        return LevelCrossing.NONE

    previous_level = price_level(previous)
    new_level = price_level(new)
    if new_level > previous_level:
        return LevelCrossing.UP
    if new_level < previous_level:
        return LevelCrossing.DOWN
    return LevelCrossing.NONE


class LevelCrossingDetector:
    """Tracks the baseline price between observations."""

    def __init__(self) -> None:
        self._baseline: Decimal | None = None

    @property
    def baseline(self) -> Decimal | None:
        return self._baseline

    def observe(self, price: Decimal) -> LevelCrossing:
        """Return the crossing relative to the previous observation and move the baseline.

        Non-positive prices are ignored and leave the baseline untouched.
        """
        if price <= 0:
            return LevelCrossing.NONE
        crossing = detect_level_crossing(self._baseline, price)
        self._baseline = price
        return crossing
