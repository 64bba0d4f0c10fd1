"""
Database connection management for SolarOps.
Handles SQLAlchemy engine creation and connection verification.
Sessions and transactions live in database.store.
"""

import logging

from sqlalchemy import create_engine, event, text
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import QueuePool, StaticPool

logger = logging.getLogger(__name__)

# SQLAlchemy Base for model declarations
Base = declarative_base()


def normalize_database_url(url: str) -> str:
    """Handle the legacy postgres:// vs postgresql:// URL format."""
    if url and url.startswith('postgres://'):
        return url.replace('postgres://', 'postgresql://', 1)
    return url


def is_memory_sqlite(url: str) -> bool:
    return url in ('sqlite://', 'sqlite:///:memory:')


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ignores REFERENCES clauses unless enabled per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys = ON")
    cursor.close()


def create_db_engine(url: str, echo: bool = False, pool_size: int = 5,
                     max_overflow: int = 10, pool_recycle: int = 300):
    """
    Create the SQLAlchemy engine for a database URL.

    In-memory SQLite shares one connection across threads so every session
    sees the same database. File SQLite uses the dialect's default pool.
    Server databases get a QueuePool with pre-ping.
    """
    if not url:
        raise RuntimeError(
            "DATABASE_URL not configured. Cannot create the SolarOps store."
        )
    url = normalize_database_url(url)

    if url.startswith('sqlite'):
        kwargs = {
            'echo': echo,
            'connect_args': {'check_same_thread': False},
        }
        if is_memory_sqlite(url):
            kwargs['poolclass'] = StaticPool
        engine = create_engine(url, **kwargs)
        event.listen(engine, 'connect', _enable_sqlite_foreign_keys)
    else:
        engine = create_engine(
            url,
            poolclass=QueuePool,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=True,  # Verify connections before using
            pool_recycle=pool_recycle,
            echo=echo
        )

    logger.info(f"Database engine created for {engine.url.get_backend_name()}")
    return engine


def check_db_connection(engine) -> bool:
    """
    Verify that the database connection is working.
    Returns True if the connection succeeds; driver errors propagate.
    """
    with engine.connect() as conn:
        conn.execute(text("SELECT 1")).fetchone()
    logger.info("Database connection verified successfully")
    return True


def init_db(engine):
    """
    Initialize the database by creating all tables.
    Safe to call repeatedly; existing tables are left alone.
    """
    # Import models to ensure they're registered with Base
    from database import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created/verified")
