"""Database engine, session factory, and schema bootstrap."""

import logging
from typing import Union

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from rolesync.core.exceptions import StoreConnectionError
from rolesync.db.base import Base

logger = logging.getLogger(__name__)


def create_db_engine(url: Union[str, URL], echo: bool = False) -> Engine:
    """Create the engine for the reconciliation store.

    SQLite connections get foreign keys switched on so the role hierarchy
    constraints and cascades behave as they do on PostgreSQL.
    """
    url = make_url(url)
    engine_kwargs = {"echo": echo, "pool_pre_ping": True}

    if url.get_backend_name() == "sqlite":
        engine_kwargs["connect_args"] = {"check_same_thread": False}
        if url.database in (None, "", ":memory:"):
            engine_kwargs["poolclass"] = StaticPool
    else:
        engine_kwargs["pool_size"] = 1
        engine_kwargs["max_overflow"] = 0

    engine = create_engine(url, **engine_kwargs)

    if url.get_backend_name() == "sqlite":

        @event.listens_for(engine, "connect")
        def _set_sqlite_pragma(dbapi_connection, _connection_record) -> None:
            cursor = dbapi_connection.cursor()
            try:
                cursor.execute("PRAGMA foreign_keys=ON")
            finally:
                cursor.close()

    return engine


def create_session_factory(engine: Engine) -> sessionmaker:
    """Session factory; every synchronizer runs in its own session."""
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def ping_database(engine: Engine) -> None:
    """Fail fast when the store cannot be reached."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        raise StoreConnectionError(f"Database connection failed: {e}") from e
    logger.info("Database connection OK (%s)", engine.url.get_backend_name())


def init_schema(engine: Engine) -> None:
    """Create all reconciliation tables if they don't exist."""
    # Registers the models on Base.metadata
    import rolesync.models  # noqa: F401

    logger.info("Checking and creating database tables...")
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
    except SQLAlchemyError as e:
        raise StoreConnectionError(f"Creating tables failed: {e}") from e
    logger.info("Database tables created or already present")
