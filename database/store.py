"""
Transactional store for SolarOps.

A Store owns one SQLAlchemy engine and its session factory. Writes are
serialized through a per-store lock and applied entirely or not at all;
reads only see committed rows. An in-memory store has a single shared
connection, so its reads take the write lock as well.
"""

import logging
import threading
from contextlib import contextmanager

from sqlalchemy import func
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database.connection import check_db_connection, create_db_engine, init_db
from exceptions import ConstraintViolationError, StoreUnavailableError

logger = logging.getLogger(__name__)


class Store:
    """Handle on one persistent store (engine + session factory + write lock)."""

    def __init__(self, engine):
        self.engine = engine
        self._session_factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
        self._write_lock = threading.RLock()
        # One connection for every session: a read must not see or end an open write
        self._shared_connection = isinstance(engine.pool, StaticPool)

    @classmethod
    def from_url(cls, url: str, echo: bool = False, **engine_options) -> 'Store':
        return cls(create_db_engine(url, echo=echo, **engine_options))

    @classmethod
    def from_config(cls, config) -> 'Store':
        """Build a store from a configuration class (see config.py)."""
        return cls(create_db_engine(
            config.DATABASE_URL,
            echo=config.SQL_ECHO,
            pool_size=config.DB_POOL_SIZE,
            max_overflow=config.DB_MAX_OVERFLOW,
            pool_recycle=config.DB_POOL_RECYCLE,
        ))

    def create_all(self):
        """Create any missing tables."""
        with self._translate_errors('create tables'):
            init_db(self.engine)

    def check_connection(self) -> bool:
        with self._translate_errors('check connection'):
            return check_db_connection(self.engine)

    def dispose(self):
        self.engine.dispose()
        logger.info("Store disposed")

    @contextmanager
    def transaction(self):
        """
        Context manager for one atomic write.

        Holds the write lock, commits on success and rolls back on any
        exception (cancellation included) before re-raising it.

        Usage:
            with store.transaction() as session:
                session.add(record)
        """
        with self._write_lock:
            with self._translate_errors('transaction'):
                session = self._session_factory()
                try:
                    yield session
                    session.commit()
                except BaseException:
                    session.rollback()
                    raise
                finally:
                    session.close()

    @contextmanager
    def read_session(self):
        """Session for reads; nothing is committed."""
        if self._shared_connection:
            with self._write_lock:
                with self._read() as session:
                    yield session
        else:
            with self._read() as session:
                yield session

    @contextmanager
    def _read(self):
        with self._translate_errors('read'):
            session = self._session_factory()
            try:
                yield session
            finally:
                session.close()

    def next_sequence(self, session, model) -> int:
        """Next insertion counter value for model (call inside transaction())."""
        current = session.query(func.max(model.created_seq)).scalar()
        return (current or 0) + 1

    @contextmanager
    def _translate_errors(self, operation: str):
        try:
            yield
        except IntegrityError as e:
            logger.error(f"Store constraint violation during {operation}: {e.orig}")
            raise ConstraintViolationError(f"Store rejected the write: {e.orig}") from e
        except (OperationalError, DBAPIError) as e:
            logger.error(f"Store unavailable during {operation}: {e}")
            raise StoreUnavailableError(f"Store unavailable: {e.orig}") from e

    def __repr__(self):
        return f"Store({self.engine.url.render_as_string(hide_password=True)})"
