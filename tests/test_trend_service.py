import pytest
from datetime import timedelta
from decimal import Decimal
from unittest.mock import MagicMock

from pricewatch.application.services.recommendation_service import BuyRecommendationEngine
from pricewatch.application.services.trend_service import TrendAnalyzer, determine_direction
from pricewatch.domain.entities import BuySignal, PricePoint, TrackedItem, TrendDirection
from pricewatch.infrastructure.db.repository import PriceHistoryRepository

from conftest import NOW

def _points(*prices, item_id=1):
    start = NOW - timedelta(days=len(prices))
    return [
        PricePoint(item_id=item_id, price=Decimal(p), recorded_at=start + timedelta(days=i))
        for i, p in enumerate(prices)
    ]

@pytest.fixture
def store() -> MagicMock:
    return MagicMock()

@pytest.fixture
def analyzer(store, clock) -> TrendAnalyzer:
    return TrendAnalyzer(store, clock=clock)

@pytest.mark.parametrize("first, last, expected", [
    ("10", "11", TrendDirection.RISING),
    ("11", "10", TrendDirection.FALLING),
    ("10", "10", TrendDirection.STABLE),
])
def test_determine_direction(first, last, expected):
    assert determine_direction(Decimal(first), Decimal(last)) == expected

def test_analyze_trend_queries_the_window(analyzer, store, clock):
    store.query.return_value = []
    analyzer.analyze_trend(5, 7)
    store.query.assert_called_once_with(5, clock.now - timedelta(days=7))

def test_empty_window_is_stable_with_zero_sentinel(analyzer, store):
    store.query.return_value = []
    trend = analyzer.analyze_trend(1, 30)
    assert trend.direction == TrendDirection.STABLE
    assert trend.lowest == Decimal("0")
    assert trend.highest == Decimal("0")
    assert not trend.has_data

def test_single_point_is_stable(analyzer, store):
    store.query.return_value = _points("42.50")
    trend = analyzer.analyze_trend(1, 30)
    assert trend.direction == TrendDirection.STABLE
    assert trend.lowest == trend.highest == Decimal("42.50")

def test_direction_compares_first_and_last_only(analyzer, store):
    store.query.return_value = _points("100", "95", "90", "92")
    trend = analyzer.analyze_trend(1, 30)
    assert trend.direction == TrendDirection.FALLING
    assert trend.lowest == Decimal("90")
    assert trend.highest == Decimal("100")
    assert trend.points == 4

def test_window_must_be_positive(analyzer):
    with pytest.raises(ValueError):
        analyzer.analyze_trend(1, 0)

def test_average_price_rounds_half_up(analyzer, store):
    store.query.return_value = _points("10.00", "10.01", "10.00", "10.01")
    assert analyzer.average_price(1, 30, Decimal("1")) == Decimal("10.01")

def test_average_price_falls_back_to_current(analyzer, store):
    store.query.return_value = []
    assert analyzer.average_price(1, 30, Decimal("77.70")) == Decimal("77.70")

def test_analyze_trend_is_idempotent(analyzer, store):
    store.query.return_value = _points("5", "6", "7")
    assert analyzer.analyze_trend(1, 7) == analyzer.analyze_trend(1, 7)

# --- Against the real series store ---

def test_window_filter_against_repository(db_session, item, clock):
    history = PriceHistoryRepository(db_session)
    history.append(item.id, Decimal("200"), NOW - timedelta(days=40))
    history.append(item.id, Decimal("120"), NOW - timedelta(days=10))
    history.append(item.id, Decimal("110"), NOW - timedelta(days=3))

    analyzer = TrendAnalyzer(history, clock=clock)
    trend30 = analyzer.analyze_trend(item.id, 30)
    trend7 = analyzer.analyze_trend(item.id, 7)

    assert trend30.points == 2
    assert trend30.direction == TrendDirection.FALLING
    assert trend30.highest == Decimal("120")
    assert trend7.points == 1
    assert trend7.direction == TrendDirection.STABLE

def test_history_end_to_end_strong_buy(db_session, item, clock):
    history = PriceHistoryRepository(db_session)
    for days_ago, price in ((4, "100"), (3, "95"), (2, "90"), (1, "92")):
        history.append(item.id, Decimal(price), NOW - timedelta(days=days_ago))

    analyzer = TrendAnalyzer(history, clock=clock)
    trend = analyzer.analyze_trend(item.id, 30)
    assert trend.direction == TrendDirection.FALLING
    assert trend.lowest == Decimal("90")
    assert trend.highest == Decimal("100")

    current = TrackedItem(id=item.id, name=item.name, url=item.url, current_price=Decimal("90"))
    rec = BuyRecommendationEngine(analyzer).recommend(current)
    assert rec.signal == BuySignal.STRONG_BUY
