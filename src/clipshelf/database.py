"""
clipshelf.database

Shared SQLAlchemy declarative base and engine/session management for the store.

Overview:
- Provides a single `declarative_base()` instance (`Base`) inherited by all
    ORM entity classes.
- Builds SQLite engines for the two store lifecycles:
    - durable: a file under StoreSettings.data_dir, WAL journal.
    - ephemeral: a named shared-cache memory database. Every connection of the
        engine sees the same data and nothing is written to disk.
- DatabaseSessionGenerator owns one engine and hands out sessions bound to it.

Contents:
- Base:
    Singleton `declarative_base` instance.
- UTCDateTime:
    DateTime column type normalizing values to UTC.
- durable_url(path) / ephemeral_url() -> str
- create_store_engine(url, in_memory, busy_timeout, echo) -> Engine
- DatabaseSessionGenerator:
    - __init__(settings: StoreSettings)
    - get_session() -> Session
    - init_db()
    - dispose()

Design Notes:
- Memory databases vanish when their last connection closes. Ephemeral engines
    use SingletonThreadPool, which keeps one open connection per thread until
    the engine is disposed.
- SQLite has no timezone-aware column type. UTCDateTime stores datetimes as
    naive UTC and reads them back with tzinfo=UTC, so stored values compare
    and sort correctly whatever offset they were created with.
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Optional
from uuid import uuid4

from sqlalchemy import DateTime, event
from sqlalchemy.engine import Engine, create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import SingletonThreadPool
from sqlalchemy.types import TypeDecorator

from clipshelf.config import StoreSettings


Base = declarative_base()
"""Singleton `declarative_base` instance for ORM models."""


class UTCDateTime(TypeDecorator):
    """Timezone-aware datetime stored as naive UTC. Naive input is taken as UTC."""

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value: Optional[datetime], dialect):
        if value is None:
            return None
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.replace(tzinfo=None)

    def process_result_value(self, value: Optional[datetime], dialect):
        if value is None:
            return None
        return value.replace(tzinfo=timezone.utc)


def durable_url(path: Path) -> str:
    return f"sqlite:///{Path(path).as_posix()}"


def ephemeral_url() -> str:
    return f"sqlite:///file:clipshelf-{uuid4().hex}?mode=memory&cache=shared&uri=true"


def create_store_engine(
    url: str, in_memory: bool, busy_timeout: float = 15.0, echo: bool = False
) -> Engine:
    """
    Create an engine for a store URL.

    Args:
        url (str): SQLAlchemy URL from durable_url() or ephemeral_url().
        in_memory (bool): Whether the URL names a memory database.
        busy_timeout (float): Seconds to wait on a locked database.
        echo (bool): Log emitted SQL.

    Returns:
        sqlalchemy.engine.Engine: The configured engine.
    """
    pool_options = {"poolclass": SingletonThreadPool} if in_memory else {}
    engine = create_engine(
        url,
        echo=echo,
        connect_args={"check_same_thread": False, "timeout": busy_timeout},
        **pool_options,
    )

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragmas(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        if not in_memory:
            cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    return engine


class DatabaseSessionGenerator:
    """
    Utility class to generate SQLAlchemy sessions bound to one store engine.

    Attributes:
        in_memory (bool): True for an ephemeral store.
        location (str): File path of a durable store, or ":memory:".
        engine (sqlalchemy.engine.Engine): The engine sessions are bound to.
    """

    def __init__(self, settings: StoreSettings):
        self.in_memory = settings.in_memory
        if self.in_memory:
            self.location = ":memory:"
            url = ephemeral_url()
        else:
            self.location = settings.database_path.as_posix()
            url = durable_url(settings.database_path)
        self.engine = create_store_engine(
            url,
            in_memory=self.in_memory,
            busy_timeout=settings.busy_timeout,
            echo=settings.echo_sql,
        )
        self._session_factory = sessionmaker(
            bind=self.engine, autoflush=True, expire_on_commit=False
        )

    def get_session(self, **kwargs) -> Session:
        """
        Creates a new SQLAlchemy session bound to the configured engine.

        Keyword arguments override the sessionmaker configuration
        (e.g. autoflush=False).

        Returns:
            sqlalchemy.orm.Session: A new session instance.
        """
        return self._session_factory(**kwargs)

    def init_db(self):
        """
        Initializes the database by creating all tables defined in the ORM models.
        """
        # Register entity tables on Base.metadata before create_all.
        import clipshelf.models  # noqa: F401

        Base.metadata.create_all(self.engine)

    def dispose(self):
        self.engine.dispose()
