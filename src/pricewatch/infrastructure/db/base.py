# src/pricewatch/infrastructure/db/base.py
"""
Database engine setup and session management.
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from pricewatch.config import settings
from .models.base import Base


def _normalize_url(url: str) -> str:
    url = (url or "").strip()
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql+psycopg://", 1)
    return url


DATABASE_URL = _normalize_url(settings.DATABASE_URL)

# --- Database Engine Creation ---
engine = create_engine(
    DATABASE_URL,
    pool_pre_ping=True,
    # SQLite connections are shared between the API threads and the sweep task.
    connect_args={"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {},
)

# --- Session Management ---
# expire_on_commit=False so entities mapped inside a unit of work stay readable after it.
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


# --- Dependency for FastAPI ---
def get_session():
    """
    A dependency function for FastAPI to provide a DB session to endpoints.
    A new session is created for each request and closed afterward.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


__all__ = ["Base", "engine", "SessionLocal", "get_session"]
