# src/pricewatch/infrastructure/db/models/__init__.py
"""
This file makes the 'models' directory a package and ensures all SQLAlchemy ORM
models are discoverable by Alembic and the application.
"""

from .base import Base
from .tracking import (
    AlertTypeEnum,
    AlertStatusEnum,
    User,
    TrackedItem,
    PriceHistory,
    Subscription,
    PriceAlert,
)

__all__ = [
    "Base",
    "User",
    "TrackedItem",
    "PriceHistory",
    "Subscription",
    "PriceAlert",
    "AlertTypeEnum",
    "AlertStatusEnum",
]
