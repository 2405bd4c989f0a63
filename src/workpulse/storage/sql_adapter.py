from contextlib import contextmanager
from typing import Generator, Optional
import logging

from pydantic_settings import BaseSettings
from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker, Session

from workpulse.platform.config import settings
from .base import StorageAdapter
from .models import Base

logger = logging.getLogger(__name__)


class SqlConfig(BaseSettings):
    """Configuration for the SQL storage backend."""
    DATABASE_URL: str = settings.DATABASE_URL
    DATABASE_POOL_SIZE: int = settings.DATABASE_POOL_SIZE
    DATABASE_MAX_OVERFLOW: int = settings.DATABASE_MAX_OVERFLOW

    model_config = {"env_file": ".env", "extra": "ignore"}

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")


class SqlAdapter(StorageAdapter):
    """
    SQLAlchemy-based adapter. Postgres in production, SQLite for local runs and tests.
    """

    def __init__(self, config: Optional[SqlConfig] = None):
        self.config = config or SqlConfig()
        self._engine = None
        self._session_factory = None

    def connect(self) -> None:
        if self._engine:
            return

        try:
            logger.info("Connecting to database")

            if self.config.is_sqlite:
                self._engine = create_engine(self.config.DATABASE_URL)
            else:
                self._engine = create_engine(
                    self.config.DATABASE_URL,
                    pool_size=self.config.DATABASE_POOL_SIZE,
                    max_overflow=self.config.DATABASE_MAX_OVERFLOW,
                    pool_pre_ping=True
                )

            self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)
            logger.info("Database connection pool established.")

        except Exception as e:
            logger.error(f"Failed to connect to database: {e}")
            raise

    def create_schema(self) -> None:
        """Create all tables (local dev and tests; production uses migrations)."""
        if not self._engine:
            raise ConnectionError("Database is not connected. Call connect() first.")
        Base.metadata.create_all(self._engine)

    def close(self) -> None:
        if self._engine:
            self._engine.dispose()
            self._engine = None
            self._session_factory = None
            logger.info("Database connection pool closed.")

    def health_check(self) -> bool:
        if not self._engine:
            return False
        try:
            with self._engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except Exception:
            logger.exception("database unhealthy")
            return False

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """
        Provide a transactional scope around a series of operations.
        """
        if not self._session_factory:
            raise ConnectionError("Database is not connected. Call connect() first.")

        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
