"""
Database Engine & Sessions for the payments store.
"""
import os
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from temple_donations.config import get_settings

settings = get_settings()

if settings.DATABASE_URL.startswith("sqlite:///"):
    # Ensure data directory exists
    os.makedirs(os.path.dirname(settings.DATABASE_URL.replace("sqlite:///", "")) or ".", exist_ok=True)
    connect_args = {"check_same_thread": False}  # Required for SQLite
else:
    connect_args = {}

engine = create_engine(
    settings.DATABASE_URL,
    connect_args=connect_args,
    echo=settings.DEBUG,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """Request-scoped session; closed once the response is sent."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def init_db(bind=None):
    """Create missing tables on `bind` (the app engine by default)."""
    from temple_donations.models import payment as _payment_model   # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
