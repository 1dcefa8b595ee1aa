"""Database session management.

The engine is built lazily on first use so that importing the application
(tests, tooling) never opens a connection or loads a DB driver.
"""

from functools import lru_cache
from typing import Generator

from sqlalchemy.orm import Session, sessionmaker

from clubhub_api.config.env import get_database_url
from clubhub_api.db.engine import build_engine, build_sessionmaker


@lru_cache(maxsize=1)
def get_sessionmaker() -> sessionmaker[Session]:
    """Return the process-wide session factory."""
    return build_sessionmaker(build_engine(get_database_url()))


def get_db() -> Generator[Session, None, None]:
    """
    Get database session.

    Yields:
        Session: SQLAlchemy session
    """
    db = get_sessionmaker()()
    try:
        yield db
    finally:
        db.close()
