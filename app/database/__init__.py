# ============================================================================
# Dynamic Frame Pricing v1.0.0
# Database Module - SQLAlchemy Session Management
# ============================================================================

from app.database.session import engine, SessionLocal, create_db_engine, check_database_connection
from app.database.models import Base, TempProduct, init_schema

__all__ = [
    "check_database_connection",
    "engine",
    "SessionLocal",
    "create_db_engine",
    "Base",
    "TempProduct",
    "init_schema",
]
