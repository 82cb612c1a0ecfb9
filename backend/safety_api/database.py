"""
Safety Compliance API - Database Configuration
SQLAlchemy engine, session factory and declarative base

SQLite is the default backend. Two dialect details differ from a server
database and are handled here:
- connections are shared across FastAPI's threadpool (check_same_thread)
- foreign keys are off per connection unless enabled (PRAGMA foreign_keys)
"""
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base

from .config import DATABASE_URL


def is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def enable_sqlite_foreign_keys(engine: Engine) -> None:
    """Turn on FK enforcement (ondelete=CASCADE) for every new SQLite connection."""

    @event.listens_for(engine, "connect")
    def _set_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def create_db_engine(url: str, **kwargs) -> Engine:
    """Create an engine with the dialect settings this app relies on."""
    if is_sqlite(url):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    engine = create_engine(url, echo=False, **kwargs)
    if is_sqlite(url):
        enable_sqlite_foreign_keys(engine)
    return engine


engine = create_db_engine(DATABASE_URL)

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for ORM models
Base = declarative_base()


def get_db():
    """Dependency for FastAPI - yields database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """Initialize database - create all tables."""
    from .models import db_models  # noqa: F401 - registers tables on Base

    Base.metadata.create_all(bind=engine)
