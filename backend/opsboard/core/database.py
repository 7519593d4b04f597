"""
Database connection and session management.

Provides SQLAlchemy engine, session factory, and dependency injection
for database sessions in FastAPI endpoints.
"""

from typing import Any, Dict, Generator

from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker, declarative_base
from sqlalchemy.pool import QueuePool, StaticPool

from .config import settings


# =============================================================================
# SQLAlchemy Base
# =============================================================================

Base = declarative_base()


# =============================================================================
# Engine Configuration
# =============================================================================

def get_engine_kwargs() -> Dict[str, Any]:
    """
    Build engine options for the configured backend.

    SQLite (tests, local demos) shares one connection across threads;
    PostgreSQL gets a pooled engine with health checks.
    """
    if settings.is_sqlite:
        return {
            "connect_args": {"check_same_thread": False},
            "poolclass": StaticPool,
            "echo": settings.debug,
        }
    return {
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "poolclass": QueuePool,
        "pool_pre_ping": True,
        "pool_recycle": settings.db_pool_recycle,
        "pool_timeout": settings.db_pool_timeout,
        "echo": settings.debug,
    }


engine = create_engine(settings.database_url, **get_engine_kwargs())


# =============================================================================
# Session Factory
# =============================================================================

SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
)


# =============================================================================
# Event Listeners for Connection Management
# =============================================================================

@event.listens_for(engine, "connect")
def set_connection_settings(dbapi_connection, connection_record):
    """
    Configure connection settings when a new connection is created.

    Timestamps are stored and compared in UTC.
    """
    if settings.is_sqlite:
        return
    cursor = dbapi_connection.cursor()
    cursor.execute("SET timezone='UTC'")
    cursor.execute("SET statement_timeout = '30s'")
    cursor.close()


# =============================================================================
# Dependency Injection
# =============================================================================

def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency for database session injection.

    Creates a new session for each request and ensures proper cleanup.

    Yields:
        SQLAlchemy Session instance
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# =============================================================================
# Database Utilities
# =============================================================================

def init_db() -> None:
    """
    Create all tables defined in models.

    Used for development and tests; production schemas are managed by the row store.
    """
    from .. import models  # noqa: F401  registers tables on Base.metadata

    Base.metadata.create_all(bind=engine)

