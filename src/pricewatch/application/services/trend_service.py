# src/pricewatch/application/services/trend_service.py
"""
Trend analysis over a lookback window of the price series.

Both operations are pure functions of the stored series and the injected clock.
An empty window is not an error: analyze_trend returns STABLE with zero
extrema (points == 0) and average_price falls back to the current price.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Callable, List, Optional, Protocol

from pricewatch.domain.entities import PricePoint, TrendAnalysis, TrendDirection, utcnow
from pricewatch.domain.value_objects import MONEY_PLACES, ZERO, round_half_up

log = logging.getLogger(__name__)


class PriceSeriesStore(Protocol):
    def query(self, item_id: int, since: datetime) -> List[PricePoint]: ...


def determine_direction(first_price: Decimal, last_price: Decimal) -> TrendDirection:
    if last_price > first_price:
        return TrendDirection.RISING
    if last_price < first_price:
        return TrendDirection.FALLING
    return TrendDirection.STABLE


class TrendAnalyzer:
    """Computes trend direction, extrema and averages from a PriceSeriesStore."""

    def __init__(self, store: PriceSeriesStore, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.clock = clock

    def _window(self, item_id: int, window_days: int) -> List[PricePoint]:
        if window_days < 1:
            raise ValueError("window_days must be at least 1.")
        since = self.clock() - timedelta(days=window_days)
        return self.store.query(item_id, since)

    def analyze_trend(self, item_id: int, window_days: int) -> TrendAnalysis:
        history = self._window(item_id, window_days)
        if not history:
            log.debug("No price history for item %s in the last %s days", item_id, window_days)
            return TrendAnalysis(TrendDirection.STABLE, ZERO, ZERO, points=0)

        prices = [p.price for p in history]
        return TrendAnalysis(
            direction=determine_direction(prices[0], prices[-1]),
            lowest=min(prices),
            highest=max(prices),
            points=len(prices),
        )

    def average_price(self, item_id: int, window_days: int, current_price: Optional[Decimal]) -> Optional[Decimal]:
        """Mean price over the window, 2 dp half-up; the current price when there is no history."""
        history = self._window(item_id, window_days)
        if not history:
            return current_price
        total = sum((p.price for p in history), ZERO)
        return round_half_up(total / Decimal(len(history)), MONEY_PLACES)
