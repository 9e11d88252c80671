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

def get_engine_url() -> str:
    """
    Get database URL from settings.

    Returns:
        Database connection URL string
    """
    return settings.database_url


def get_engine_options(url: str) -> Dict[str, Any]:
    """
    Build create_engine keyword arguments for the given URL.

    SQLite (local tooling and tests) gets a single shared connection;
    everything else gets a pre-pinged QueuePool.
    """
    if url.startswith("sqlite"):
        return {
            "connect_args": {"check_same_thread": False},
            "poolclass": StaticPool,
            "echo": settings.debug,
        }
    return {
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "poolclass": QueuePool,
        "pool_pre_ping": True,  # Enable connection health checks
        "pool_recycle": settings.db_pool_recycle,
        "pool_timeout": settings.db_pool_timeout,
        "echo": settings.debug,  # Log SQL queries in debug mode
    }


engine = create_engine(get_engine_url(), **get_engine_options(get_engine_url()))


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

    PostgreSQL: UTC timezone and a statement timeout.
    SQLite: enforce foreign keys so widget deletes cascade.
    """
    cursor = dbapi_connection.cursor()
    if engine.dialect.name == "sqlite":
        cursor.execute("PRAGMA foreign_keys=ON")
    else:
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

    Example:
        @router.get("/api/widgets")
        def list_widgets(db: Session = Depends(get_db)):
            return db.query(Widget).all()
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
    Initialize database tables.

    Creates all tables defined in models. Should only be used
    in development or for initial setup. Production should use migrations.
    """
    from .. import models  # noqa: F401  (registers tables on Base.metadata)

    Base.metadata.create_all(bind=engine)

