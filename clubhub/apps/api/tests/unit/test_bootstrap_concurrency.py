"""Concurrent first registrations against a real PostgreSQL database.

The in-memory SQLite engine shares one connection between sessions, so
two transactions cannot run side by side there. Set
CLUBHUB_TEST_DATABASE_URL=postgresql://... to run these tests.

Each thread registers its own user through its own session; a barrier
releases them together so the bootstrap checks overlap.
"""

import threading
import uuid

import pytest

from clubhub_api.db.engine import build_engine, build_sessionmaker
from clubhub_api.db.models import Base, SuperAdminBootstrap, User
from clubhub_api.services.bootstrap import FIRST_USER_SLOT
from clubhub_api.services.users import register_user
from conftest import TEST_DATABASE_URL

pytestmark = pytest.mark.skipif(
    not TEST_DATABASE_URL.startswith("postgresql"),
    reason="needs CLUBHUB_TEST_DATABASE_URL pointing at PostgreSQL",
)

REGISTRATIONS = 8
ROUNDS = 5


@pytest.fixture
def session_factory():
    engine = build_engine(TEST_DATABASE_URL)
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    try:
        yield build_sessionmaker(engine)
    finally:
        Base.metadata.drop_all(engine)
        engine.dispose()


def _register_concurrently(session_factory, count: int) -> list[BaseException]:
    barrier = threading.Barrier(count)
    errors: list[BaseException] = []
    lock = threading.Lock()

    def worker() -> None:
        session = session_factory()
        try:
            barrier.wait(timeout=10)
            register_user(session, email=f"founder-{uuid.uuid4().hex[:8]}@example.org")
        except BaseException as e:
            with lock:
                errors.append(e)
        finally:
            session.close()

    threads = [threading.Thread(target=worker) for _ in range(count)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)
    return errors


@pytest.mark.parametrize("round_number", range(ROUNDS))
def test_concurrent_first_registrations_promote_exactly_one(
    session_factory, round_number
) -> None:
    errors = _register_concurrently(session_factory, REGISTRATIONS)
    assert errors == []

    session = session_factory()
    try:
        assert session.query(User).count() == REGISTRATIONS
        winners = session.query(User).filter(User.is_super_admin.is_(True)).all()
        assert len(winners) == 1

        claim = session.get(SuperAdminBootstrap, FIRST_USER_SLOT)
        assert claim is not None
        assert claim.user_id == winners[0].id
    finally:
        session.close()
