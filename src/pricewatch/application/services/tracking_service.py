# src/pricewatch/application/services/tracking_service.py
"""
TrackingService - configuration-time operations on items, users and subscriptions.

Subscription rules are validated here, before anything is stored, so a
malformed rule never reaches the alert evaluator.
"""

import logging
from contextlib import AbstractContextManager
from decimal import Decimal
from typing import Any, Callable, Optional, Tuple
from urllib.parse import urlparse

from pricewatch.domain.entities import AlertType, Subscription, TrackedItem, User
from pricewatch.domain.errors import ItemNotFoundError, SubscriptionNotFoundError, ValidationError
from pricewatch.domain.value_objects import HUNDRED, ZERO, to_decimal
from pricewatch.infrastructure.db.repository import (
    ItemRepository,
    SubscriptionRepository,
    UserRepository,
)
from pricewatch.infrastructure.db.uow import session_scope

log = logging.getLogger(__name__)


def validate_subscription_rule(alert_type: Any, target_value: Any) -> Tuple[AlertType, Optional[Decimal]]:
    """Normalizes and validates a (alert_type, target_value) pair; raises ValidationError."""
    try:
        kind = alert_type if isinstance(alert_type, AlertType) else AlertType(str(alert_type).strip().upper())
    except ValueError:
        raise ValidationError(f"Unknown alert type: {alert_type!r}")

    target: Optional[Decimal] = None
    if target_value is not None:
        try:
            target = to_decimal(target_value)
        except ValueError:
            raise ValidationError(f"Invalid target value: {target_value!r}")
        if target < ZERO:
            raise ValidationError("Target value must be non-negative.")

    if kind in (AlertType.TARGET_REACHED, AlertType.PERCENTAGE_DROP) and target is None:
        raise ValidationError(f"{kind.value} requires a target value.")
    if kind == AlertType.PERCENTAGE_DROP and not (ZERO < target <= HUNDRED):
        raise ValidationError("Percentage threshold must be in (0, 100].")
    if kind in (AlertType.PRICE_DROP, AlertType.BACK_IN_STOCK):
        # unused by these rules
        target = None
    return kind, target


def _validate_url(url: str) -> str:
    url = (url or "").strip()
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValidationError(f"Invalid listing URL: {url!r}")
    return url


class TrackingService:
    def __init__(self, session_factory: Callable[[], AbstractContextManager] = session_scope):
        self.session_factory = session_factory

    # --- Users ---

    def add_user(self, name: str, email: Optional[str] = None, telegram_chat_id: Optional[str] = None) -> User:
        if not name or not name.strip():
            raise ValidationError("User name must not be empty.")
        with self.session_factory() as session:
            return UserRepository(session).add(User(name=name.strip(), email=email, telegram_chat_id=telegram_chat_id))

    # --- Items ---

    def add_item(self, name: str, url: str, category: Optional[str] = None, retailer: Optional[str] = None) -> TrackedItem:
        if not name or not name.strip():
            raise ValidationError("Item name must not be empty.")
        url = _validate_url(url)
        with self.session_factory() as session:
            items = ItemRepository(session)
            existing = items.find_by_url(url)
            if existing is not None:
                log.info("Item for %s already tracked as %s", url, existing.id)
                return existing
            item = items.add(TrackedItem(name=name.strip(), url=url, category=category, retailer=retailer))
        log.info("Tracking new item %s (%s)", item.id, item.name)
        return item

    def get_item(self, item_id: int) -> TrackedItem:
        with self.session_factory() as session:
            item = ItemRepository(session).get(item_id)
        if item is None or not item.is_active:
            raise ItemNotFoundError(f"Item {item_id} not found.")
        return item

    def deactivate_item(self, item_id: int) -> None:
        with self.session_factory() as session:
            found = ItemRepository(session).deactivate(item_id)
        if not found:
            raise ItemNotFoundError(f"Item {item_id} not found.")
        log.info("Item %s deactivated", item_id)

    # --- Subscriptions ---

    def subscribe(self, item_id: int, user_id: int, alert_type: Any, target_value: Any = None) -> Subscription:
        kind, target = validate_subscription_rule(alert_type, target_value)
        with self.session_factory() as session:
            item = ItemRepository(session).get(item_id)
            user = UserRepository(session).get(user_id)
            if item is not None and item.is_active and user is not None:
                subscription = SubscriptionRepository(session).add(
                    Subscription(item_id=item_id, user_id=user_id, alert_type=kind, target_value=target)
                )
            else:
                subscription = None
        if subscription is None:
            raise ValidationError(f"Cannot subscribe user {user_id} to item {item_id}: unknown user or inactive item.")
        log.info("Subscription %s: user %s, item %s, %s", subscription.id, user_id, item_id, kind.value)
        return subscription

    def unsubscribe(self, subscription_id: int) -> None:
        with self.session_factory() as session:
            found = SubscriptionRepository(session).deactivate(subscription_id)
        if not found:
            raise SubscriptionNotFoundError(f"Subscription {subscription_id} not found.")
