"""
Database configuration and session management

Settings come from the environment:
- PBLAB_DATABASE_URL: SQLAlchemy URL (default: sqlite:///./pblab.db)
- PBLAB_DATABASE_ECHO: "true" to log SQL statements

The configuration object is created once at application startup
(init_database) and sessions are handed to repositories explicitly.
"""
from contextlib import contextmanager
from typing import Generator, Optional
import logging
import os

from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .base import Base

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite:///./pblab.db"


class DatabaseConfig:
    """Engine + session factory for one database URL"""

    def __init__(self, database_url: Optional[str] = None, echo: Optional[bool] = None):
        self.database_url = database_url or os.getenv("PBLAB_DATABASE_URL", DEFAULT_DATABASE_URL)
        if echo is None:
            echo = os.getenv("PBLAB_DATABASE_ECHO", "false").lower() == "true"
        self.echo = echo

        engine_kwargs = {"echo": self.echo}
        if self.is_sqlite:
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if self.is_in_memory:
                # A single shared connection keeps the in-memory database alive
                engine_kwargs["poolclass"] = StaticPool
        else:
            engine_kwargs["pool_pre_ping"] = True

        self.engine = create_engine(self.database_url, **engine_kwargs)
        if self.is_sqlite:
            event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)

        self.SessionLocal = sessionmaker(bind=self.engine, autocommit=False, autoflush=False)

        logger.info(
            "Database configured",
            extra={"dialect": self.engine.dialect.name, "echo": self.echo},
        )

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    @property
    def is_in_memory(self) -> bool:
        return self.is_sqlite and (":memory:" in self.database_url or self.database_url == "sqlite://")

    def create_all(self) -> None:
        # Import models so every table is registered on Base.metadata
        from . import models  # noqa: F401

        Base.metadata.create_all(bind=self.engine)

    def drop_all(self) -> None:
        Base.metadata.drop_all(bind=self.engine)

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """Session that rolls back on error and is always closed"""
        session = self.SessionLocal()
        try:
            yield session
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


_db_config: Optional[DatabaseConfig] = None


def init_database(
    database_url: Optional[str] = None,
    echo: Optional[bool] = None,
    create_tables: bool = True,
) -> DatabaseConfig:
    """Create the application database configuration (and tables)"""
    global _db_config
    _db_config = DatabaseConfig(database_url=database_url, echo=echo)
    if create_tables:
        _db_config.create_all()
    return _db_config


def get_db_config() -> DatabaseConfig:
    """Return the application configuration, initialising it from the environment if needed"""
    if _db_config is None:
        return init_database()
    return _db_config


@contextmanager
def get_db_session() -> Generator[Session, None, None]:
    with get_db_config().session_scope() as session:
        yield session


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency yielding a request-scoped session"""
    with get_db_session() as session:
        yield session
