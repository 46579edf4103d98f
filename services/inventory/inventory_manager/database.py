"""
Database configuration and session management for the Inventory service.

This module sets up the database connection using SQLAlchemy, provides
a session factory for database operations and the one-time schema
bootstrap run at process start.
"""
import logging
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from .config import DATABASE_URL, SQL_ECHO

logger = logging.getLogger(__name__)

# Create SQLAlchemy engine
# Create SessionLocal class for database sessions
# Base class for declarative models
engine       = create_engine(DATABASE_URL, echo=SQL_ECHO, pool_pre_ping=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base         = declarative_base()

def get_db():
    """
    Dependency function that provides a database session.

    The session is closed on every exit path, success or failure.

    Yields:
        Session: SQLAlchemy database session

    Usage:
        Use as a FastAPI dependency to inject database sessions into route handlers.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def init_db(bind: Engine = engine) -> None:
    """
    Create the inventory table and its indexes if they do not exist.

    Safe to call more than once; existing tables are left untouched.

    Args:
        bind: Engine to create the schema on (defaults to the service engine)
    """
    # Register models on Base.metadata
    from . import models  # noqa: F401

    logger.info("Checking/Creating database tables...")
    Base.metadata.create_all(bind=bind)
    logger.info("Database tables check complete.")
