"""
Database Module for the Catalog Cleaner

Engine and session handling for the SQL catalog and the cleanup run history.
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Generator, Optional

from sqlalchemy import create_engine, event, text
from sqlalchemy.orm import sessionmaker, scoped_session, Session
from sqlalchemy.pool import StaticPool

from models import Base

# Configure logging
logger = logging.getLogger(__name__)


def _safe_url(database_url: str) -> str:
    """Strip credentials from a database URL before it is logged."""
    if '@' not in database_url:
        return database_url
    return database_url.split('://')[0] + '://***@' + database_url.split('@')[-1]


class DatabaseManager:
    """Owns the engine and hands out transactional sessions."""

    def __init__(self, database_url: str, echo: bool = False, pool_options: Optional[Dict[str, Any]] = None):
        self.database_url = database_url
        self.echo = echo
        self.pool_options = pool_options or {}
        self.engine = None
        self._sessions = None

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "DatabaseManager":
        return cls(
            config['DATABASE_URL'],
            echo=config.get('DATABASE_ECHO', False),
            pool_options={
                'pool_size': config.get('DATABASE_POOL_SIZE', 10),
                'max_overflow': config.get('DATABASE_MAX_OVERFLOW', 20),
                'pool_recycle': config.get('DATABASE_POOL_RECYCLE', 3600),
            }
        )

    @property
    def is_initialized(self) -> bool:
        return self._sessions is not None

    def _create_engine(self):
        if not self.database_url.startswith('sqlite'):
            return create_engine(self.database_url, echo=self.echo, pool_pre_ping=True, **self.pool_options)

        # A single shared connection, so in-memory databases survive across sessions
        engine = create_engine(
            self.database_url,
            echo=self.echo,
            poolclass=StaticPool,
            connect_args={'check_same_thread': False},
        )

        @event.listens_for(engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine

    def initialize(self, create_tables: bool = False) -> None:
        """Create the engine and session factory, optionally the tables."""
        if not self.database_url:
            raise RuntimeError("DATABASE_URL is not set")

        try:
            self.engine = self._create_engine()
            self._sessions = scoped_session(sessionmaker(
                bind=self.engine,
                autoflush=False,
                expire_on_commit=False
            ))

            if create_tables:
                Base.metadata.create_all(self.engine)
                logger.info("Database tables created")

            logger.info(f"Database initialized: {_safe_url(self.database_url)}")
        except Exception as e:
            logger.error(f"Failed to initialize database {_safe_url(self.database_url)}: {e}")
            raise

    def get_session(self) -> Session:
        if not self._sessions:
            raise RuntimeError("Database not initialized. Call initialize() first.")
        return self._sessions()

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """Commit on success, roll back and re-raise on error."""
        session = self.get_session()
        try:
            yield session
            session.commit()
        except Exception as e:
            session.rollback()
            logger.error(f"Database session error: {e}")
            raise
        finally:
            session.close()

    def close(self) -> None:
        if self._sessions:
            self._sessions.remove()
            self._sessions = None

        if self.engine:
            self.engine.dispose()
            self.engine = None

    def health_check(self) -> Dict[str, Any]:
        try:
            with self.session_scope() as session:
                session.execute(text("SELECT 1")).scalar()
            return {'status': 'healthy'}
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return {'status': 'unhealthy', 'error': str(e)}
