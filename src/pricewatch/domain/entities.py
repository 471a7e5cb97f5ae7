# src/pricewatch/domain/entities.py
"""
Defines the core business entities of the system. This is the heart of the domain layer.

Entities reference each other only by id (item_id, subscription_id, user_id);
related rows are always fetched explicitly through a repository.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Naive datetimes are taken to be UTC already."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# --- ENUMERATIONS ---

class AlertType(Enum):
    """The four subscription rule kinds. No other value is valid for an alert."""
    PRICE_DROP = "PRICE_DROP"
    TARGET_REACHED = "TARGET_REACHED"
    PERCENTAGE_DROP = "PERCENTAGE_DROP"
    BACK_IN_STOCK = "BACK_IN_STOCK"

class AlertStatus(Enum):
    """Delivery state of an alert."""
    PENDING = "PENDING"
    SENT = "SENT"
    SUPPRESSED = "SUPPRESSED"

class TrendDirection(Enum):
    RISING = "RISING"
    FALLING = "FALLING"
    STABLE = "STABLE"

class BuySignal(Enum):
    """
    Buy recommendation signals.
    AVOID is kept representable for future rules; the current cascade never emits it.
    """
    STRONG_BUY = "STRONG_BUY"
    BUY = "BUY"
    HOLD = "HOLD"
    WAIT = "WAIT"
    AVOID = "AVOID"

class SuppressionReason(Enum):
    DUPLICATE = "duplicate"
    MINOR_CHANGE = "minor_change"
    RATE_LIMITED = "rate_limited"
    DELIVERY_FAILED = "delivery_failed"


# --- ENTITIES ---

@dataclass
class TrackedItem:
    """A marketplace listing whose price is being watched."""
    name: str
    url: str
    id: Optional[int] = None
    category: Optional[str] = None
    retailer: Optional[str] = None
    # None until the first successful fetch
    current_price: Optional[Decimal] = None
    is_active: bool = True
    created_at: datetime = field(default_factory=utcnow)

    def deactivate(self) -> None:
        """Soft delete. The row and its history are kept."""
        self.is_active = False


@dataclass(frozen=True)
class PricePoint:
    """One immutable observed price at a timestamp."""
    item_id: int
    price: Decimal
    recorded_at: datetime
    id: Optional[int] = None


@dataclass
class User:
    """Notification destination for subscriptions."""
    name: str
    id: Optional[int] = None
    email: Optional[str] = None
    telegram_chat_id: Optional[str] = None


@dataclass
class Subscription:
    """A user's standing rule for when to be alerted about one item."""
    item_id: int
    user_id: int
    alert_type: AlertType
    # Absolute price for TARGET_REACHED, percent threshold for PERCENTAGE_DROP.
    target_value: Optional[Decimal] = None
    id: Optional[int] = None
    is_active: bool = True
    created_at: datetime = field(default_factory=utcnow)

    def deactivate(self) -> None:
        self.is_active = False


@dataclass
class Alert:
    """
    A fired rule. Created PENDING by the rule evaluator; moved to SENT or
    SUPPRESSED by the dispatch step.
    """
    subscription_id: int
    old_price: Decimal
    new_price: Decimal
    alert_type: AlertType
    triggered_at: datetime = field(default_factory=utcnow)
    status: AlertStatus = AlertStatus.PENDING
    sent_at: Optional[datetime] = None
    id: Optional[int] = None
    delivery_attempts: int = 0
    suppression_reason: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.alert_type, AlertType):
            raise ValueError(f"Invalid alert type: {self.alert_type!r}")
        if self.old_price < 0 or self.new_price < 0:
            raise ValueError("Alert prices must be non-negative.")

    def mark_sent(self, when: Optional[datetime] = None) -> None:
        self.status = AlertStatus.SENT
        self.sent_at = when or utcnow()
        self.suppression_reason = None

    def mark_suppressed(self, reason: str) -> None:
        self.status = AlertStatus.SUPPRESSED
        self.suppression_reason = reason

    def record_failed_delivery(self) -> None:
        """A failed send leaves the alert PENDING for a later retry."""
        self.status = AlertStatus.PENDING
        self.delivery_attempts += 1


# --- RESULT OBJECTS ---

@dataclass(frozen=True)
class TrendAnalysis:
    """
    Direction and extrema over a lookback window.
    lowest/highest are 0 when the window is empty; check `has_data` first.
    """
    direction: TrendDirection
    lowest: Decimal
    highest: Decimal
    points: int = 0

    @property
    def has_data(self) -> bool:
        return self.points > 0


@dataclass(frozen=True)
class BuyRecommendation:
    signal: BuySignal
    reason: str
