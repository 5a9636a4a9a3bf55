"""Database session configuration"""

import logging
import os
from typing import Dict, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, Session

from timer_cli.config import DB_PATH
from timer_cli.db.base import Base
from timer_cli.db import models  # noqa: F401  registers the tables on Base
from timer_cli.exceptions import StoreUnavailable

logger = logging.getLogger(__name__)

# Seconds a writer waits on a locked database before giving up
BUSY_TIMEOUT = int(os.getenv("TIMER_CLI_BUSY_TIMEOUT", "30"))

_engines: Dict[str, Engine] = {}


def _on_connect(dbapi_conn, connection_record):
    """Enable WAL so the active view can read while a timer writes."""
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute(f"PRAGMA busy_timeout={BUSY_TIMEOUT * 1000}")
    cursor.close()
    # Transactions are started explicitly in _on_begin
    dbapi_conn.isolation_level = None


def _on_begin(conn):
    """Take the write lock up front so read-then-write transactions serialize."""
    conn.exec_driver_sql("BEGIN IMMEDIATE")


def get_engine(db_path: Optional[str] = None) -> Engine:
    """
    Get (or create) the engine for a database file.

    The schema is created on first use so every process, whichever
    starts first, finds the tables in place.

    Raises:
        StoreUnavailable: If the file cannot be opened or initialised
    """
    path = db_path or DB_PATH
    engine = _engines.get(path)
    if engine is not None:
        return engine

    try:
        directory = os.path.dirname(os.path.abspath(path))
        os.makedirs(directory, exist_ok=True)
        engine = create_engine(
            f"sqlite:///{path}",
            connect_args={"timeout": BUSY_TIMEOUT},
            echo=False,  # Set to True to see SQL queries in logs
        )
        event.listen(engine, "connect", _on_connect)
        event.listen(engine, "begin", _on_begin)
        Base.metadata.create_all(engine)
    except (SQLAlchemyError, OSError) as e:
        logger.error(f"Cannot open timer database {path}: {e}")
        raise StoreUnavailable(f"Cannot open timer database {path}: {e}") from e

    _engines[path] = engine
    logger.debug(f"Timer database ready at {path}")
    return engine


def get_session_factory(db_path: Optional[str] = None) -> sessionmaker:
    """Session factory bound to the engine for ``db_path``."""
    return sessionmaker(
        bind=get_engine(db_path),
        class_=Session,
        autoflush=False,
        expire_on_commit=False,
    )


def dispose_engine(db_path: Optional[str] = None) -> None:
    """Close pooled connections, e.g. before deleting the database file."""
    engine = _engines.pop(db_path or DB_PATH, None)
    if engine is not None:
        engine.dispose()
