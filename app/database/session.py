"""
============================================================================
Dynamic Frame Pricing v1.0.0
Database Session - SQLAlchemy Engine & Session Management
============================================================================

Reliability Level: L5 Critical
Input Constraints: DATABASE_URL environment variable (SQLite by default)
Side Effects: Database connections

MANDATE:
- All timestamps are stored as UTC
- Connection pooling for non-SQLite backends
- Sessions do not expire objects on commit

============================================================================
"""

import os

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import QueuePool
from dotenv import load_dotenv

from services.pricing_config import DEFAULT_DATABASE_URL

# Load environment variables
load_dotenv()


# ============================================================================
# DATABASE CONFIGURATION
# ============================================================================

def get_database_url() -> str:
    """
    Database URL from the environment.

    Environment Variables:
        DATABASE_URL: SQLAlchemy URL (default: sqlite:///./temp_products.db)
    """
    return os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)


def create_db_engine(url: str) -> Engine:
    """
    Create an engine tuned for the backend behind url.

    SQLite connections are shared across threads (the cleanup worker sweeps
    from a worker thread); other backends get a QueuePool.
    """
    if url.startswith("sqlite"):
        db_engine = create_engine(
            url,
            connect_args={"check_same_thread": False},
            echo=os.getenv("DB_ECHO", "false").lower() == "true",
        )
        return db_engine

    db_engine = create_engine(
        url,
        poolclass=QueuePool,
        pool_size=5,
        max_overflow=10,
        pool_timeout=30,
        pool_recycle=1800,
        pool_pre_ping=True,
        echo=os.getenv("DB_ECHO", "false").lower() == "true",
    )

    if db_engine.dialect.name == "postgresql":
        @event.listens_for(db_engine, "connect")
        def _set_timezone(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("SET timezone TO 'UTC'")
            cursor.close()

    return db_engine


# ============================================================================
# SQLALCHEMY ENGINE
# ============================================================================

DATABASE_URL = get_database_url()

engine = create_db_engine(DATABASE_URL)


# ============================================================================
# SESSION FACTORY
# ============================================================================

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
    bind=engine
)


# ============================================================================
# HEALTH CHECK
# ============================================================================

def check_database_connection(db_engine: Engine = None) -> bool:
    """
    Verify database connectivity.

    Returns:
        bool: True if database is reachable

    Raises:
        ConnectionError: If database connection fails
    """
    target = db_engine if db_engine is not None else engine
    try:
        with target.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        raise ConnectionError(f"Database connection failed: {e}") from e
