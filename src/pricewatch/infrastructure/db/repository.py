# src/pricewatch/infrastructure/db/repository.py
"""
Repositories: explicit, session-scoped query interfaces.

Every repository takes a Session owned by the caller (Unit of Work) and maps ORM
rows to domain dataclasses. No repository commits; they only add and flush.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from pricewatch.domain.entities import (
    Alert as AlertEntity,
    AlertStatus,
    AlertType,
    PricePoint as PricePointEntity,
    Subscription as SubscriptionEntity,
    TrackedItem as TrackedItemEntity,
    User as UserEntity,
    as_utc,
)
from .models import User, TrackedItem, PriceHistory, Subscription, PriceAlert

logger = logging.getLogger(__name__)


def _money(value) -> Optional[Decimal]:
    return Decimal(value) if value is not None else None


# ==========================================================
# USER REPOSITORY
# ==========================================================
class UserRepository:
    """Repository for notification destinations."""
    def __init__(self, session: Session):
        self.session = session

    @staticmethod
    def _to_entity(row: User) -> UserEntity:
        return UserEntity(id=row.id, name=row.name, email=row.email, telegram_chat_id=row.telegram_chat_id)

    def add(self, user: UserEntity) -> UserEntity:
        row = User(name=user.name, email=user.email, telegram_chat_id=user.telegram_chat_id)
        self.session.add(row)
        self.session.flush()
        user.id = row.id
        return user

    def get(self, user_id: int) -> Optional[UserEntity]:
        row = self.session.get(User, user_id)
        return self._to_entity(row) if row else None


# ==========================================================
# TRACKED ITEM REPOSITORY
# ==========================================================
class ItemRepository:
    """Repository for TrackedItem rows. Deletion is always a soft delete."""
    def __init__(self, session: Session):
        self.session = session

    @staticmethod
    def _to_entity(row: TrackedItem) -> TrackedItemEntity:
        return TrackedItemEntity(
            id=row.id,
            name=row.name,
            url=row.url,
            category=row.category,
            retailer=row.retailer,
            current_price=_money(row.current_price),
            is_active=bool(row.is_active),
            created_at=as_utc(row.created_at),
        )

    def add(self, item: TrackedItemEntity) -> TrackedItemEntity:
        row = TrackedItem(
            name=item.name,
            url=item.url,
            category=item.category,
            retailer=item.retailer,
            current_price=item.current_price,
            is_active=item.is_active,
        )
        self.session.add(row)
        self.session.flush()
        item.id = row.id
        return item

    def get(self, item_id: int) -> Optional[TrackedItemEntity]:
        row = self.session.get(TrackedItem, item_id)
        return self._to_entity(row) if row else None

    def find_by_url(self, url: str) -> Optional[TrackedItemEntity]:
        row = self.session.execute(select(TrackedItem).where(TrackedItem.url == url)).scalar_one_or_none()
        return self._to_entity(row) if row else None

    def list_active(self) -> List[TrackedItemEntity]:
        stmt = select(TrackedItem).where(TrackedItem.is_active.is_(True)).order_by(TrackedItem.id)
        return [self._to_entity(r) for r in self.session.execute(stmt).scalars().all()]

    def update_current_price(self, item_id: int, price: Decimal) -> None:
        row = self.session.get(TrackedItem, item_id)
        if row is None:
            logger.warning("Attempted to update price of non-existent item %s", item_id)
            return
        row.current_price = price
        self.session.flush()

    def deactivate(self, item_id: int) -> bool:
        row = self.session.get(TrackedItem, item_id)
        if row is None:
            return False
        row.is_active = False
        self.session.flush()
        return True


# ==========================================================
# PRICE SERIES STORE
# ==========================================================
class PriceHistoryRepository:
    """Append-only price series, ordered by recorded_at."""
    def __init__(self, session: Session):
        self.session = session

    @staticmethod
    def _to_entity(row: PriceHistory) -> PricePointEntity:
        return PricePointEntity(
            id=row.id,
            item_id=row.item_id,
            price=Decimal(row.price),
            recorded_at=as_utc(row.recorded_at),
        )

    def append(self, item_id: int, price: Decimal, recorded_at: datetime) -> PricePointEntity:
        row = PriceHistory(item_id=item_id, price=price, recorded_at=as_utc(recorded_at))
        self.session.add(row)
        self.session.flush()
        return self._to_entity(row)

    def query(self, item_id: int, since: datetime) -> List[PricePointEntity]:
        """All points for the item with recorded_at >= since, ascending."""
        stmt = (
            select(PriceHistory)
            .where(PriceHistory.item_id == item_id, PriceHistory.recorded_at >= as_utc(since))
            .order_by(PriceHistory.recorded_at.asc(), PriceHistory.id.asc())
        )
        return [self._to_entity(r) for r in self.session.execute(stmt).scalars().all()]

    def latest(self, item_id: int) -> Optional[PricePointEntity]:
        stmt = (
            select(PriceHistory)
            .where(PriceHistory.item_id == item_id)
            .order_by(PriceHistory.recorded_at.desc(), PriceHistory.id.desc())
            .limit(1)
        )
        row = self.session.execute(stmt).scalar_one_or_none()
        return self._to_entity(row) if row else None


# ==========================================================
# SUBSCRIPTION REPOSITORY
# ==========================================================
class SubscriptionRepository:
    def __init__(self, session: Session):
        self.session = session

    @staticmethod
    def _to_entity(row: Subscription) -> SubscriptionEntity:
        return SubscriptionEntity(
            id=row.id,
            item_id=row.item_id,
            user_id=row.user_id,
            alert_type=AlertType(row.alert_type.value if hasattr(row.alert_type, "value") else row.alert_type),
            target_value=_money(row.target_value),
            is_active=bool(row.is_active),
            created_at=as_utc(row.created_at),
        )

    def add(self, subscription: SubscriptionEntity) -> SubscriptionEntity:
        row = Subscription(
            item_id=subscription.item_id,
            user_id=subscription.user_id,
            alert_type=subscription.alert_type,
            target_value=subscription.target_value,
            is_active=subscription.is_active,
        )
        self.session.add(row)
        self.session.flush()
        subscription.id = row.id
        return subscription

    def get(self, subscription_id: int) -> Optional[SubscriptionEntity]:
        row = self.session.get(Subscription, subscription_id)
        return self._to_entity(row) if row else None

    def list_active_for_item(self, item_id: int) -> List[SubscriptionEntity]:
        stmt = (
            select(Subscription)
            .where(Subscription.item_id == item_id, Subscription.is_active.is_(True))
            .order_by(Subscription.id)
        )
        return [self._to_entity(r) for r in self.session.execute(stmt).scalars().all()]

    def deactivate(self, subscription_id: int) -> bool:
        row = self.session.get(Subscription, subscription_id)
        if row is None:
            return False
        row.is_active = False
        self.session.flush()
        return True


# ==========================================================
# ALERT REPOSITORY
# ==========================================================
class AlertRepository:
    """Alert records plus the history queries the alert filter needs."""
    def __init__(self, session: Session):
        self.session = session

    @staticmethod
    def _to_entity(row: PriceAlert) -> AlertEntity:
        return AlertEntity(
            id=row.id,
            subscription_id=row.subscription_id,
            old_price=Decimal(row.old_price),
            new_price=Decimal(row.new_price),
            alert_type=AlertType(row.alert_type.value if hasattr(row.alert_type, "value") else row.alert_type),
            triggered_at=as_utc(row.triggered_at),
            status=AlertStatus(row.status.value if hasattr(row.status, "value") else row.status),
            sent_at=as_utc(row.sent_at),
            delivery_attempts=row.delivery_attempts or 0,
            suppression_reason=row.suppression_reason,
        )

    def add(self, alert: AlertEntity) -> AlertEntity:
        row = PriceAlert(
            subscription_id=alert.subscription_id,
            old_price=alert.old_price,
            new_price=alert.new_price,
            alert_type=alert.alert_type,
            triggered_at=as_utc(alert.triggered_at),
            status=alert.status,
            sent_at=as_utc(alert.sent_at),
            delivery_attempts=alert.delivery_attempts,
            suppression_reason=alert.suppression_reason,
        )
        self.session.add(row)
        self.session.flush()
        alert.id = row.id
        return alert

    def get(self, alert_id: int) -> Optional[AlertEntity]:
        row = self.session.get(PriceAlert, alert_id)
        return self._to_entity(row) if row else None

    def save_status(self, alert: AlertEntity) -> None:
        """Persists the mutable delivery fields of an alert."""
        row = self.session.get(PriceAlert, alert.id)
        if row is None:
            logger.warning("Attempted to update non-existent alert %s", alert.id)
            return
        row.status = alert.status
        row.sent_at = as_utc(alert.sent_at)
        row.delivery_attempts = alert.delivery_attempts
        row.suppression_reason = alert.suppression_reason
        self.session.flush()

    def list_pending(self, limit: Optional[int] = None) -> List[AlertEntity]:
        stmt = (
            select(PriceAlert)
            .where(PriceAlert.status == AlertStatus.PENDING)
            .order_by(PriceAlert.triggered_at.asc(), PriceAlert.id.asc())
        )
        if limit:
            stmt = stmt.limit(limit)
        return [self._to_entity(r) for r in self.session.execute(stmt).scalars().all()]

    def has_sent_since(self, subscription_id: int, alert_type: AlertType, since: datetime) -> bool:
        """True if an alert of this kind was already SENT for the subscription since `since`."""
        stmt = (
            select(func.count(PriceAlert.id))
            .where(
                PriceAlert.subscription_id == subscription_id,
                PriceAlert.alert_type == alert_type,
                PriceAlert.status == AlertStatus.SENT,
                PriceAlert.sent_at >= as_utc(since),
            )
        )
        return (self.session.execute(stmt).scalar() or 0) > 0

    def count_sent_for_user_since(self, user_id: int, since: datetime) -> int:
        stmt = (
            select(func.count(PriceAlert.id))
            .join(Subscription, Subscription.id == PriceAlert.subscription_id)
            .where(
                Subscription.user_id == user_id,
                PriceAlert.status == AlertStatus.SENT,
                PriceAlert.sent_at >= as_utc(since),
            )
        )
        return self.session.execute(stmt).scalar() or 0
