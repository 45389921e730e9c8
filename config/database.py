"""Database configuration and session factory for SiteChat.

SQLite is the default backend; any SQLAlchemy URL may be supplied
through DATABASE_URL.
"""

import os
import logging
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from indexer.models import Base

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite:///data/sitechat.db"


class DatabaseConfig(BaseModel):
    """Database configuration."""
    url: str = Field(default=DEFAULT_DATABASE_URL, description="SQLAlchemy database URL")
    echo: bool = Field(default=False, description="Log emitted SQL")
    pool_size: int = Field(default=5, description="Connection pool size (non-SQLite)")
    max_overflow: int = Field(default=10, description="Maximum pool overflow (non-SQLite)")

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")

    @classmethod
    def from_env(cls) -> 'DatabaseConfig':
        """Create configuration from environment variables."""
        return cls(
            url=os.getenv('DATABASE_URL', DEFAULT_DATABASE_URL),
            echo=os.getenv('DATABASE_ECHO', 'false').lower() == 'true',
            pool_size=int(os.getenv('DB_POOL_SIZE', '5')),
            max_overflow=int(os.getenv('DB_MAX_OVERFLOW', '10')),
        )


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_db_engine(config: Optional[DatabaseConfig] = None) -> Engine:
    """Create the SQLAlchemy engine, creating the SQLite directory if needed."""
    config = config or DatabaseConfig.from_env()

    if config.is_sqlite:
        database_path = config.url.split("///", 1)[1] if "///" in config.url else ""
        if database_path and database_path != ":memory:":
            Path(database_path).parent.mkdir(parents=True, exist_ok=True)
        # Ingestion jobs write from worker threads
        engine = create_engine(config.url, echo=config.echo,
                               connect_args={"check_same_thread": False})
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    else:
        engine = create_engine(config.url, echo=config.echo,
                               pool_size=config.pool_size, max_overflow=config.max_overflow,
                               pool_pre_ping=True)

    logger.info(f"Database engine created for {engine.url.render_as_string(hide_password=True)}")
    return engine


def create_all(engine: Engine) -> None:
    """Create any missing tables."""
    Base.metadata.create_all(engine)


def create_session_factory(config: Optional[DatabaseConfig] = None, create_tables: bool = True) -> sessionmaker:
    """Build a session factory bound to a new engine."""
    engine = create_db_engine(config)
    if create_tables:
        create_all(engine)
    return sessionmaker(bind=engine, expire_on_commit=False)
