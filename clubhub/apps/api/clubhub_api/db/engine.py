"""Database engine builder (SSOT).

- PostgreSQL: NullPool by default (external pooler), QueuePool on request
- SQLite (tests/local tooling): single shared connection via StaticPool
- ENV: CLUBHUB_DB_POOL=nullpool|queuepool (default: nullpool)
"""

import logging
import os
import re

from sqlalchemy import Engine, NullPool, StaticPool, create_engine, event
from sqlalchemy.orm import Session, sessionmaker

logger = logging.getLogger(__name__)


def _mask_password(url: str) -> str:
    """Mask password in database URL for safe logging."""
    return re.sub(r"://([^:]+):([^@]+)@", r"://\1:***@", url)


def _enable_sqlite_savepoints(engine: Engine) -> None:
    """Let SQLAlchemy own BEGIN so SAVEPOINT works on pysqlite."""

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


def build_engine(database_url: str) -> Engine:
    """
    Build SQLAlchemy engine with the pooling policy for the given URL.

    Args:
        database_url: SQLAlchemy database URL.

    Returns:
        SQLAlchemy Engine instance.

    Raises:
        ValueError: If database_url is empty or CLUBHUB_DB_POOL is invalid.
    """
    if not database_url:
        raise ValueError("database_url is required to build an engine.")

    if database_url.startswith("sqlite"):
        engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        _enable_sqlite_savepoints(engine)
    else:
        connect_args = {"application_name": os.getenv("CLUBHUB_DB_APPLICATION_NAME", "clubhub-api")}
        pool_mode = os.getenv("CLUBHUB_DB_POOL", "nullpool").lower()

        if pool_mode == "nullpool":
            engine = create_engine(
                database_url,
                poolclass=NullPool,
                pool_pre_ping=True,
                connect_args=connect_args,
            )
        elif pool_mode == "queuepool":
            engine = create_engine(
                database_url,
                pool_pre_ping=True,
                pool_size=int(os.getenv("CLUBHUB_DB_POOL_SIZE", "5")),
                max_overflow=int(os.getenv("CLUBHUB_DB_MAX_OVERFLOW", "10")),
                connect_args=connect_args,
            )
        else:
            raise ValueError(
                f"Invalid CLUBHUB_DB_POOL value: {pool_mode}. "
                "Must be 'nullpool' or 'queuepool'."
            )

    logger.debug(
        "Database engine created: pool=%s, url=%s",
        engine.pool.__class__.__name__,
        _mask_password(database_url),
    )
    return engine


def build_sessionmaker(engine: Engine) -> sessionmaker[Session]:
    """
    Build SQLAlchemy sessionmaker.

    Args:
        engine: SQLAlchemy Engine instance.

    Returns:
        sessionmaker instance configured with autocommit=False, autoflush=False.
    """
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)
