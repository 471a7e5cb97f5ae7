# src/pricewatch/application/services/alert_filter.py
"""
AlertFilter: decides whether a fired alert should actually be delivered.

Three independent checks, all of which must pass:
  1. recency dedup on (subscription_id, alert_type),
  2. minor-change suppression (small absolute AND small percentage move),
  3. per-user daily rate limit.

The filter reads alert history but never mutates the alert; the dispatch step
owns status transitions.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Callable, Optional, Protocol

from pricewatch.config import settings
from pricewatch.domain.entities import Alert, AlertType, Subscription, SuppressionReason, utcnow
from pricewatch.domain.value_objects import ZERO, percent_change

log = logging.getLogger(__name__)


class AlertHistory(Protocol):
    def has_sent_since(self, subscription_id: int, alert_type: AlertType, since: datetime) -> bool: ...
    def count_sent_for_user_since(self, user_id: int, since: datetime) -> int: ...


class SubscriptionLookup(Protocol):
    def get(self, subscription_id: int) -> Optional[Subscription]: ...


@dataclass(frozen=True)
class AlertPolicy:
    """Anti-spam thresholds. Injected so tests and deployments can tune them."""
    dedup_window: timedelta = timedelta(hours=24)
    minor_change_absolute: Decimal = Decimal("1.00")
    minor_change_percent: Decimal = Decimal("1.0")
    max_alerts_per_day: int = 10

    @classmethod
    def from_settings(cls) -> "AlertPolicy":
        return cls(
            dedup_window=timedelta(hours=settings.ALERT_DEDUP_WINDOW_HOURS),
            minor_change_absolute=settings.MINOR_CHANGE_ABSOLUTE,
            minor_change_percent=settings.MINOR_CHANGE_PERCENT,
            max_alerts_per_day=settings.MAX_ALERTS_PER_DAY,
        )


def is_minor_price_change(alert: Alert, policy: AlertPolicy) -> bool:
    """
    True when the move is below BOTH the absolute and the percentage threshold.
    The percentage is taken as a magnitude so increases and decreases are judged alike.
    A move away from a zero (out of stock) price has no percentage and is never minor.
    """
    if alert.old_price == ZERO:
        return False
    price_diff = abs(alert.old_price - alert.new_price)
    pct = abs(percent_change(alert.old_price, alert.new_price))
    return price_diff < policy.minor_change_absolute and pct < policy.minor_change_percent


def start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


class AlertFilter:
    def __init__(
        self,
        history: AlertHistory,
        subscriptions: SubscriptionLookup,
        policy: Optional[AlertPolicy] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.history = history
        self.subscriptions = subscriptions
        self.policy = policy or AlertPolicy.from_settings()
        self.clock = clock

    def has_sent_similar_recently(self, alert: Alert) -> bool:
        cutoff = self.clock() - self.policy.dedup_window
        return self.history.has_sent_since(alert.subscription_id, alert.alert_type, cutoff)

    def exceeds_user_alert_limit(self, alert: Alert) -> bool:
        subscription = self.subscriptions.get(alert.subscription_id)
        if subscription is None:
            log.warning("Alert %s references missing subscription %s", alert.id, alert.subscription_id)
            return False
        sent_today = self.history.count_sent_for_user_since(subscription.user_id, start_of_day(self.clock()))
        return sent_today > self.policy.max_alerts_per_day

    def suppression_reason(self, alert: Alert) -> Optional[str]:
        """Returns why the alert must be suppressed, or None if it may be sent."""
        if self.has_sent_similar_recently(alert):
            return SuppressionReason.DUPLICATE.value
        if is_minor_price_change(alert, self.policy):
            return SuppressionReason.MINOR_CHANGE.value
        if self.exceeds_user_alert_limit(alert):
            return SuppressionReason.RATE_LIMITED.value
        return None

    def should_send(self, alert: Alert) -> bool:
        return self.suppression_reason(alert) is None
