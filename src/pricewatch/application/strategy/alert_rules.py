# src/pricewatch/application/strategy/alert_rules.py
"""
Alert rule evaluator.

- Four pure rule functions, one per AlertType, behind a single dispatch table.
- The evaluator only produces PENDING Alert objects; it holds no state and
  persists nothing. Calling it twice for the same observation yields two
  alerts; collapsing those is the AlertFilter's job.
- All comparisons are Decimal.
"""
from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Optional

from pricewatch.domain.entities import Alert, AlertStatus, AlertType, Subscription, utcnow
from pricewatch.domain.value_objects import ZERO, percent_change, to_decimal
from pricewatch.infrastructure.monitoring.metrics import ALERTS_FIRED

logger = logging.getLogger(__name__)

RuleFn = Callable[[Subscription, Decimal, Decimal], bool]


# --- Rule functions ---

def price_drop(subscription: Subscription, old_price: Decimal, new_price: Decimal) -> bool:
    """Any decrease, however small."""
    return new_price < old_price


def target_reached(subscription: Subscription, old_price: Decimal, new_price: Decimal) -> bool:
    """target_value is an absolute price; reaching it exactly counts."""
    if subscription.target_value is None:
        return False
    return new_price <= subscription.target_value


def percentage_drop(subscription: Subscription, old_price: Decimal, new_price: Decimal) -> bool:
    """target_value is a percent threshold (10 means 10%). Increases never fire."""
    if subscription.target_value is None:
        return False
    return percent_change(old_price, new_price) >= subscription.target_value


def back_in_stock(subscription: Subscription, old_price: Decimal, new_price: Decimal) -> bool:
    """A stored price of exactly zero means out of stock."""
    return old_price == ZERO and new_price > ZERO


RULES: Dict[AlertType, RuleFn] = {
    AlertType.PRICE_DROP: price_drop,
    AlertType.TARGET_REACHED: target_reached,
    AlertType.PERCENTAGE_DROP: percentage_drop,
    AlertType.BACK_IN_STOCK: back_in_stock,
}


class AlertRuleEvaluator:
    """Pure evaluator: maps (subscription, old, new) to an optional PENDING Alert."""

    def __init__(self, clock: Callable[[], datetime] = utcnow):
        self.clock = clock

    def evaluate(self, subscription: Subscription, old_price, new_price) -> Optional[Alert]:
        if not subscription.is_active:
            return None

        old_dec = to_decimal(old_price)
        new_dec = to_decimal(new_price)

        rule = RULES.get(subscription.alert_type)
        if rule is None:
            # Unreachable for a valid AlertType; kept for rows carrying legacy values.
            logger.warning("No rule registered for alert type %s (subscription %s)",
                           subscription.alert_type, subscription.id)
            return None

        if not rule(subscription, old_dec, new_dec):
            return None

        ALERTS_FIRED.labels(alert_type=subscription.alert_type.value).inc()
        logger.debug("Rule %s fired for subscription %s: %s -> %s",
                     subscription.alert_type.value, subscription.id, old_dec, new_dec)
        return Alert(
            subscription_id=subscription.id,
            old_price=old_dec,
            new_price=new_dec,
            alert_type=subscription.alert_type,
            triggered_at=self.clock(),
            status=AlertStatus.PENDING,
        )

    def evaluate_all(self, subscriptions: Iterable[Subscription], old_price, new_price) -> List[Alert]:
        """Evaluates every subscription of one item against the same observation."""
        alerts: List[Alert] = []
        for subscription in subscriptions:
            alert = self.evaluate(subscription, old_price, new_price)
            if alert is not None:
                alerts.append(alert)
        return alerts
