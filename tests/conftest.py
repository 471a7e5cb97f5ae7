# tests/conftest.py
"""
Fixtures and test setup for the Pytest suite.
"""

import os
from contextlib import contextmanager
from datetime import datetime, timezone
from decimal import Decimal

import pytest

# Set test environment variables BEFORE any application code is imported.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENV"] = "test"
os.environ.pop("TELEGRAM_BOT_TOKEN", None)
os.environ.pop("API_KEY", None)

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from pricewatch.domain.entities import AlertType, Subscription, TrackedItem, User
from pricewatch.infrastructure.db.models.base import Base
from pricewatch.infrastructure.db.repository import (
    ItemRepository,
    SubscriptionRepository,
    UserRepository,
)

NOW = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)


class FrozenClock:
    """Callable clock the tests can move forward."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture(scope="session")
def db_engine():
    """In-memory SQLite shared across threads, schema created once."""
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(db_engine):
    """Provides a clean, transactional database session for each test function."""
    connection = db_engine.connect()
    transaction = connection.begin()
    Session = sessionmaker(bind=connection, autoflush=False, expire_on_commit=False)
    session = Session()

    yield session

    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture
def session_factory(db_session):
    """A session_scope() stand-in that reuses the test session and never commits."""
    @contextmanager
    def _scope():
        yield db_session
        db_session.flush()
    return _scope


@pytest.fixture
def user(db_session) -> User:
    return UserRepository(db_session).add(User(name="alice", email="alice@example.com", telegram_chat_id="1001"))


@pytest.fixture
def item(db_session) -> TrackedItem:
    return ItemRepository(db_session).add(
        TrackedItem(name="Noise cancelling headphones", url="https://shop.example.com/p/42", retailer="example")
    )


@pytest.fixture
def make_subscription(db_session, item, user):
    def _make(alert_type: AlertType, target=None, item_id=None) -> Subscription:
        return SubscriptionRepository(db_session).add(
            Subscription(
                item_id=item_id or item.id,
                user_id=user.id,
                alert_type=alert_type,
                target_value=Decimal(target) if target is not None else None,
            )
        )
    return _make
