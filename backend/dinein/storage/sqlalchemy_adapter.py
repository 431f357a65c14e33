"""
SQLAlchemy storage for the DineIn domain models.

Owns the engine and session factory. Every request gets its own session;
flows that write several rows commit them together and roll back on error.
"""

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session

from dinein import config
from dinein.db import init_db
from dinein.db.models import Base

logger = logging.getLogger(__name__)


class SQLAlchemyStorage:
    """SQLAlchemy-backed storage using the canonical models in dinein.db.models."""

    def __init__(self, database_url: str = config.DATABASE_URL, use_alembic: bool = config.USE_ALEMBIC):
        """
        Initialize storage and make sure the schema exists.

        Args:
            database_url: SQLAlchemy database URL
            use_alembic: run Alembic migrations instead of create_all
        """
        self.database_url = database_url
        is_sqlite = database_url.startswith("sqlite")

        # future=True: SQLAlchemy 2.0 style execution
        # pool_pre_ping=True: verify connections before use
        self.engine = create_engine(
            self.database_url,
            connect_args={"check_same_thread": False, "timeout": 15} if is_sqlite else {},
            echo=False,
            future=True,
            pool_pre_ping=True,
        )
        # expire_on_commit=False: routers serialize rows after committing
        self.SessionLocal = sessionmaker(bind=self.engine, expire_on_commit=False)

        init_db(self.engine, use_alembic=use_alembic, base=Base)
        logger.info("Database initialized at %s", self.database_url)

    def _get_session(self) -> Session:
        """Get a new database session (caller must close)."""
        return self.SessionLocal()

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """Session that commits on success and rolls back on any exception."""
        session = self._get_session()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def close(self) -> None:
        """Close database connections."""
        self.engine.dispose()
