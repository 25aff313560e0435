"""
Database engine, session factory, and metadata shared across the application.
"""

from __future__ import annotations

import logging
from typing import Any, Generator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from ..core.config import settings

logger = logging.getLogger(__name__)

Base = declarative_base()

SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False)

_engine: Optional[Engine] = None


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def _is_sqlite_memory(url: str) -> bool:
    return url in {"sqlite://", "sqlite:///:memory:"} or "mode=memory" in url


def _install_sqlite_listeners(engine: Engine) -> None:
    """
    Make SQLite writers queue instead of racing.

    pysqlite starts transactions lazily, so a read followed by a write can
    deadlock two connections. Disabling the driver's own BEGIN and issuing
    BEGIN IMMEDIATE takes the write lock up front; other writers then wait
    on the busy timeout.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection: Any, _record: Any) -> None:
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute(f"PRAGMA busy_timeout={int(settings.sqlite_busy_timeout_seconds * 1000)}")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_db_engine(url: Optional[str] = None, *, echo: Optional[bool] = None) -> Engine:
    """Build an engine for ``url`` (defaults to ``settings.database_url``)."""
    database_url = url or settings.database_url
    echo_sql = settings.database_echo if echo is None else echo

    if _is_sqlite(database_url):
        kwargs: dict[str, Any] = {
            "connect_args": {
                "check_same_thread": False,
                "timeout": settings.sqlite_busy_timeout_seconds,
            },
        }
        if _is_sqlite_memory(database_url):
            kwargs["poolclass"] = StaticPool
        engine = create_engine(database_url, echo=echo_sql, **kwargs)
        _install_sqlite_listeners(engine)
    else:
        engine = create_engine(
            database_url,
            echo=echo_sql,
            pool_pre_ping=True,
            pool_size=5,
            max_overflow=10,
        )

    logger.info("Database engine created for dialect %s", engine.dialect.name)
    return engine


def configure_database(url: Optional[str] = None, *, echo: Optional[bool] = None) -> Engine:
    """Create the process engine and bind ``SessionLocal`` to it."""
    global _engine
    if _engine is not None:
        _engine.dispose()
    _engine = create_db_engine(url, echo=echo)
    SessionLocal.configure(bind=_engine)
    return _engine


def get_engine() -> Engine:
    """Return the process engine, configuring it from settings on first use."""
    if _engine is None:
        return configure_database()
    return _engine


def init_db(engine: Optional[Engine] = None) -> None:
    """Create all tables known to the ORM metadata."""
    from .. import models  # noqa: F401  registers mappers

    target = engine or get_engine()
    Base.metadata.create_all(bind=target)
    logger.info("Database schema ensured (%d tables)", len(Base.metadata.tables))


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency - one session per request."""
    get_engine()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


__all__ = [
    "Base",
    "SessionLocal",
    "configure_database",
    "create_db_engine",
    "get_db",
    "get_engine",
    "init_db",
]
