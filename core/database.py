import os
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

from core.config import DATABASE_URL as CONFIGURED_URL

# Path: project_root/data/clinic.db
BASE_DIR = os.path.dirname(os.path.dirname(__file__))
DB_PATH = os.path.join(BASE_DIR, "data", "clinic.db")

DATABASE_URL = CONFIGURED_URL or f"sqlite:///{DB_PATH}"


def build_engine(url: str):
    """Create an engine; in-memory SQLite shares one connection across sessions."""
    kwargs = {}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
    return create_engine(url, **kwargs)


# Create engine
engine = build_engine(DATABASE_URL)

# Session factory
SessionLocal = sessionmaker(autoflush=False, bind=engine)

# Base class for all models
Base = declarative_base()


@contextmanager
def get_db_context(session_factory=None):
    """
    Context manager for database sessions.
    Automatically closes session when done.

    Usage:
        with get_db_context() as db:
            entry = db.get(StorageEntry, "clinic_data")
    """
    db = (session_factory or SessionLocal)()
    try:
        yield db
    finally:
        db.close()


def init_db(bind=None):
    """Create all tables on the given engine (defaults to the app engine)."""
    # Register models on Base.metadata
    import models  # noqa: F401

    bind = bind or engine
    if bind is engine and DATABASE_URL == f"sqlite:///{DB_PATH}":
        os.makedirs(os.path.dirname(DB_PATH), exist_ok=True)
    Base.metadata.create_all(bind=bind)
