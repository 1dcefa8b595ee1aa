"""Pytest configuration and fixtures."""

import sys
from pathlib import Path
# Inject sys.path for reliable pytest imports
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))  # => .../apps/api

import os

os.environ.setdefault("CLUBHUB_JSON_LOGS", "false")
os.environ.setdefault("AUTH_JWT_SECRET", "test-secret-not-for-production")
os.environ.setdefault("AUTH_JWT_ISSUER", "clubhub-test")

import uuid
from typing import Callable, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from clubhub_api.auth.identity import create_access_token
from clubhub_api.db.engine import build_engine, build_sessionmaker
from clubhub_api.db.models import Base, Club, ClubUser, ClubUserStatus, Tier, User
from clubhub_api.db.session import get_db
from clubhub_api.main import app

# In-memory SQLite by default; point at PostgreSQL to exercise row locks
TEST_DATABASE_URL = os.getenv("CLUBHUB_TEST_DATABASE_URL") or "sqlite://"


@pytest.fixture(autouse=True)
def no_designated_super_admin(monkeypatch):
    """Tests opt in to SUPER_ADMIN_EMAIL explicitly."""
    monkeypatch.delenv("SUPER_ADMIN_EMAIL", raising=False)


@pytest.fixture(scope="function")
def db_session() -> Session:
    """
    Create a fresh database session for each test.

    Tables are created before and dropped after every test.
    """
    engine = build_engine(TEST_DATABASE_URL)
    Base.metadata.create_all(engine)

    session = build_sessionmaker(engine)()

    try:
        yield session
        session.rollback()
    finally:
        session.close()
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture
def test_client(db_session: Session):
    """TestClient with db_session dependency override."""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass  # Don't close - db_session fixture will handle it

    app.dependency_overrides[get_db] = override_get_db
    client = TestClient(app, raise_server_exceptions=False)
    yield client
    app.dependency_overrides.clear()


# ============================================================================
# Factories
# ============================================================================


@pytest.fixture
def make_user(db_session: Session) -> Callable[..., User]:
    def _make(
        email: Optional[str] = None,
        name: Optional[str] = None,
        is_super_admin: bool = False,
    ) -> User:
        user = User(
            email=(email or f"user_{uuid.uuid4().hex[:8]}@example.org").lower(),
            name=name,
            is_super_admin=is_super_admin,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make


@pytest.fixture
def make_tier(db_session: Session) -> Callable[..., Tier]:
    def _make(name: str = "Basic", **flags: bool) -> Tier:
        tier = Tier(name=name, **flags)
        db_session.add(tier)
        db_session.commit()
        db_session.refresh(tier)
        return tier

    return _make


@pytest.fixture
def make_club(db_session: Session) -> Callable[..., Club]:
    def _make(
        name: str = "Acme Sports Club",
        slug: Optional[str] = None,
        tier: Optional[Tier] = None,
    ) -> Club:
        club = Club(
            name=name,
            slug=slug or f"club-{uuid.uuid4().hex[:8]}",
            tier_id=tier.id if tier else None,
        )
        db_session.add(club)
        db_session.commit()
        db_session.refresh(club)
        return club

    return _make


@pytest.fixture
def add_membership(db_session: Session) -> Callable[..., ClubUser]:
    def _add(
        user: User,
        club: Club,
        roles: list[str],
        status: ClubUserStatus = ClubUserStatus.ACTIVE,
    ) -> ClubUser:
        club_user = ClubUser(
            user_id=user.id,
            club_id=club.id,
            roles=list(roles),
            status=status.value,
        )
        db_session.add(club_user)
        db_session.commit()
        db_session.refresh(club_user)
        return club_user

    return _add


def auth_headers(user: User) -> dict[str, str]:
    """Bearer headers for an identity token issued to `user`."""
    token = create_access_token(user.id, user.email)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers_for() -> Callable[[User], dict[str, str]]:
    return auth_headers
