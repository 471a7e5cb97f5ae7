# src/pricewatch/infrastructure/db/models/tracking.py
"""
SQLAlchemy ORM models for tracked items, their price history, subscriptions and alerts.

Relationships are plain foreign-key columns. There are no ORM relationship()
attributes: every related row is loaded through an explicit repository query.
"""

from sqlalchemy import (
    Column, Integer, String, DateTime, Boolean,
    ForeignKey, Enum, Numeric, Text, Index, func
)
from .base import Base

from pricewatch.domain.entities import (
    AlertType as AlertTypeEnum,
    AlertStatus as AlertStatusEnum,
)


class User(Base):
    __tablename__ = 'users'

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=True)
    telegram_chat_id = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<User(id={self.id}, name='{self.name}')>"


class TrackedItem(Base):
    __tablename__ = 'tracked_items'

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    url = Column(Text, nullable=False, unique=True)
    category = Column(String, nullable=True)
    retailer = Column(String, nullable=True)
    current_price = Column(Numeric(12, 2), nullable=True)
    is_active = Column(Boolean, default=True, server_default='true', nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<TrackedItem(id={self.id}, name='{self.name}', price={self.current_price}, active={self.is_active})>"


class PriceHistory(Base):
    """Append-only price log. Rows are never updated or deleted."""
    __tablename__ = 'price_history'
    __table_args__ = (
        Index('ix_price_history_item_recorded', 'item_id', 'recorded_at'),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    item_id = Column(Integer, ForeignKey('tracked_items.id', ondelete="CASCADE"), nullable=False)
    price = Column(Numeric(12, 2), nullable=False)
    recorded_at = Column(DateTime(timezone=True), nullable=False)


class Subscription(Base):
    __tablename__ = 'subscriptions'

    id = Column(Integer, primary_key=True, autoincrement=True)
    item_id = Column(Integer, ForeignKey('tracked_items.id', ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey('users.id', ondelete="CASCADE"), nullable=False, index=True)
    alert_type = Column(Enum(AlertTypeEnum, name="alerttypeenum"), nullable=False)
    target_value = Column(Numeric(12, 4), nullable=True)
    is_active = Column(Boolean, default=True, server_default='true', nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class PriceAlert(Base):
    __tablename__ = 'price_alerts'
    __table_args__ = (
        Index('ix_price_alerts_sub_type_sent', 'subscription_id', 'alert_type', 'sent_at'),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    subscription_id = Column(Integer, ForeignKey('subscriptions.id', ondelete="CASCADE"), nullable=False, index=True)
    old_price = Column(Numeric(12, 2), nullable=False)
    new_price = Column(Numeric(12, 2), nullable=False)
    alert_type = Column(Enum(AlertTypeEnum, name="alerttypeenum"), nullable=False)
    triggered_at = Column(DateTime(timezone=True), nullable=False)
    status = Column(Enum(AlertStatusEnum, name="alertstatusenum"), nullable=False, default=AlertStatusEnum.PENDING, index=True)
    sent_at = Column(DateTime(timezone=True), nullable=True)
    delivery_attempts = Column(Integer, nullable=False, default=0, server_default='0')
    suppression_reason = Column(String, nullable=True)
