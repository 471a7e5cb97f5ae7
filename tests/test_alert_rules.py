import pytest
from decimal import Decimal

from pricewatch.application.strategy.alert_rules import RULES, AlertRuleEvaluator
from pricewatch.domain.entities import AlertStatus, AlertType, Subscription

def _sub(alert_type: AlertType, target=None, is_active=True) -> Subscription:
    return Subscription(
        id=7, item_id=1, user_id=1, alert_type=alert_type,
        target_value=Decimal(target) if target is not None else None,
        is_active=is_active,
    )

@pytest.fixture
def evaluator(clock) -> AlertRuleEvaluator:
    return AlertRuleEvaluator(clock=clock)

def test_every_alert_type_has_a_rule():
    assert set(RULES) == set(AlertType)

@pytest.mark.parametrize("old, new, fires", [
    ("100", "99.99", True),
    ("100", "100", False),
    ("100", "101", False),
])
def test_price_drop(evaluator, old, new, fires):
    assert (evaluator.evaluate(_sub(AlertType.PRICE_DROP), Decimal(old), Decimal(new)) is not None) is fires

@pytest.mark.parametrize("new, fires", [("80", True), ("79.99", True), ("80.01", False)])
def test_target_reached_is_inclusive(evaluator, new, fires):
    alert = evaluator.evaluate(_sub(AlertType.TARGET_REACHED, "80"), Decimal("100"), Decimal(new))
    assert (alert is not None) is fires

def test_target_reached_without_target_never_fires(evaluator):
    assert evaluator.evaluate(_sub(AlertType.TARGET_REACHED), Decimal("100"), Decimal("1")) is None

@pytest.mark.parametrize("new, fires", [("88", True), ("90", True), ("90.01", False), ("120", False)])
def test_percentage_drop(evaluator, new, fires):
    alert = evaluator.evaluate(_sub(AlertType.PERCENTAGE_DROP, "10"), Decimal("100"), Decimal(new))
    assert (alert is not None) is fires

def test_percentage_drop_from_zero_never_fires(evaluator):
    assert evaluator.evaluate(_sub(AlertType.PERCENTAGE_DROP, "0.5"), Decimal("0"), Decimal("0")) is None

@pytest.mark.parametrize("old, new, fires", [
    ("0", "50", True),
    ("0", "0", False),
    ("10", "50", False),
    ("50", "0", False),
])
def test_back_in_stock(evaluator, old, new, fires):
    assert (evaluator.evaluate(_sub(AlertType.BACK_IN_STOCK), Decimal(old), Decimal(new)) is not None) is fires

def test_fired_alert_carries_observation(evaluator, clock):
    alert = evaluator.evaluate(_sub(AlertType.PERCENTAGE_DROP, "10"), Decimal("100"), Decimal("88"))
    assert alert.subscription_id == 7
    assert alert.old_price == Decimal("100")
    assert alert.new_price == Decimal("88")
    assert alert.alert_type == AlertType.PERCENTAGE_DROP
    assert alert.status == AlertStatus.PENDING
    assert alert.triggered_at == clock.now
    assert alert.sent_at is None

def test_inactive_subscription_never_fires(evaluator):
    assert evaluator.evaluate(_sub(AlertType.PRICE_DROP, is_active=False), Decimal("100"), Decimal("1")) is None

def test_evaluator_accepts_string_and_float_prices(evaluator):
    alert = evaluator.evaluate(_sub(AlertType.PRICE_DROP), "19.99", 19.98)
    assert alert.new_price == Decimal("19.98")

def test_evaluate_all_is_stateless(evaluator):
    subs = [_sub(AlertType.PRICE_DROP), _sub(AlertType.TARGET_REACHED, "95"), _sub(AlertType.BACK_IN_STOCK)]
    first = evaluator.evaluate_all(subs, Decimal("100"), Decimal("90"))
    second = evaluator.evaluate_all(subs, Decimal("100"), Decimal("90"))
    assert [a.alert_type for a in first] == [AlertType.PRICE_DROP, AlertType.TARGET_REACHED]
    assert len(second) == 2
