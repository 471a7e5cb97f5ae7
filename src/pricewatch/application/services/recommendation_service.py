# src/pricewatch/application/services/recommendation_service.py
"""
Buy recommendation engine.

An ordered decision cascade over the 7- and 30-day trends plus the current
and 30-day average price. The first matching rule wins, so the order of the
checks in recommend() is part of the contract.
"""

import logging
from decimal import Decimal

from pricewatch.domain.entities import (
    BuyRecommendation,
    BuySignal,
    TrackedItem,
    TrendDirection,
)
from .trend_service import TrendAnalyzer

log = logging.getLogger(__name__)

SHORT_WINDOW_DAYS = 7
LONG_WINDOW_DAYS = 30
DISCOUNT_FACTOR = Decimal("0.9")


class BuyRecommendationEngine:
    def __init__(self, trend_analyzer: TrendAnalyzer):
        self.trend_analyzer = trend_analyzer

    def recommend(self, item: TrackedItem) -> BuyRecommendation:
        trend30 = self.trend_analyzer.analyze_trend(item.id, LONG_WINDOW_DAYS)
        trend7 = self.trend_analyzer.analyze_trend(item.id, SHORT_WINDOW_DAYS)
        current = item.current_price
        avg_price = self.trend_analyzer.average_price(item.id, LONG_WINDOW_DAYS, current)

        if current is None:
            return BuyRecommendation(BuySignal.HOLD, "no clear buy signal")

        # lowest == 0 with no points is the empty-window sentinel, not a real low.
        if trend30.has_data and current == trend30.lowest:
            return BuyRecommendation(BuySignal.STRONG_BUY, "current price matches 30-day low")

        if trend7.direction == TrendDirection.FALLING and trend30.direction == TrendDirection.RISING:
            return BuyRecommendation(BuySignal.BUY, "short-term dip in long-term upward trend")

        if avg_price is not None and current <= avg_price * DISCOUNT_FACTOR:
            return BuyRecommendation(BuySignal.BUY, "price is 10% below 30-day average")

        if trend7.direction == TrendDirection.RISING and trend30.direction == TrendDirection.RISING:
            return BuyRecommendation(BuySignal.WAIT, "price trending upward - consider waiting")

        return BuyRecommendation(BuySignal.HOLD, "no clear buy signal")
