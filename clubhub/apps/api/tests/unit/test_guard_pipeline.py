"""Tests for the ordered guard pipeline.

Covers stage order, the super-admin bypass boundaries, and fail-closed
behaviour when the store is unreachable.
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from clubhub_api.auth.identity import AuthenticatedUser
from clubhub_api.authz.permissions import ClubRole, Permission
from clubhub_api.authz.pipeline import GuardPipeline
from clubhub_api.authz.requirements import (
    AUTHENTICATED,
    club_endpoint,
    platform_admin_endpoint,
)
from clubhub_api.authz.tier import TierFeature
from clubhub_api.errors import (
    AuthorizationUnavailable,
    ClubDeactivated,
    ClubNotFound,
    FeatureNotAvailable,
    PermissionDenied,
    SuperAdminRequired,
    Unauthenticated,
)


def identity(user) -> AuthenticatedUser:
    return AuthenticatedUser(user_id=user.id, email=user.email)


@pytest.fixture
def acme(db_session, make_club, make_tier):
    tier = make_tier(name="Starter", sepa_enabled=False)
    return make_club(name="Acme", slug="acme", tier=tier)


def test_missing_identity_is_unauthenticated(db_session) -> None:
    with pytest.raises(Unauthenticated):
        GuardPipeline(db_session).authorize(None, AUTHENTICATED, None, "GET")


def test_identity_without_user_record_is_unauthenticated(db_session) -> None:
    ghost = AuthenticatedUser(user_id="no-such-user", email="ghost@example.org")
    with pytest.raises(Unauthenticated):
        GuardPipeline(db_session).authorize(ghost, AUTHENTICATED, None, "GET")


def test_authenticated_endpoint_returns_context(db_session, make_user) -> None:
    user = make_user()

    context = GuardPipeline(db_session).authorize(identity(user), AUTHENTICATED, None, "GET")

    assert context.user_id == user.id
    assert context.club_id is None
    assert context.is_super_admin is False


def test_platform_admin_endpoint_requires_fresh_flag(db_session, make_user) -> None:
    user = make_user()
    pipeline = GuardPipeline(db_session)

    with pytest.raises(SuperAdminRequired):
        pipeline.authorize(identity(user), platform_admin_endpoint(), None, "GET")

    user.is_super_admin = True
    db_session.commit()

    context = pipeline.authorize(identity(user), platform_admin_endpoint(), None, "GET")
    assert context.is_super_admin is True


def test_membership_stage_runs_before_permission_stage(db_session, make_user, acme) -> None:
    outsider = make_user()
    requirements = club_endpoint(permissions=[Permission.FINANCE_READ])

    with pytest.raises(ClubNotFound):
        GuardPipeline(db_session).authorize(identity(outsider), requirements, "acme", "GET")


def test_missing_slug_is_not_found(db_session, make_user) -> None:
    user = make_user()
    with pytest.raises(ClubNotFound):
        GuardPipeline(db_session).authorize(identity(user), club_endpoint(), None, "GET")


def test_permission_any_of(db_session, make_user, add_membership, acme) -> None:
    treasurer = make_user()
    add_membership(treasurer, acme, ["TREASURER"])
    pipeline = GuardPipeline(db_session)

    context = pipeline.authorize(
        identity(treasurer),
        club_endpoint(permissions=[Permission.USERS_READ, Permission.FINANCE_READ]),
        "acme",
        "GET",
    )
    assert context.roles == frozenset({ClubRole.TREASURER})

    with pytest.raises(PermissionDenied):
        pipeline.authorize(
            identity(treasurer),
            club_endpoint(permissions=[Permission.USERS_READ]),
            "acme",
            "GET",
        )


def test_role_requirement(db_session, make_user, add_membership, acme) -> None:
    secretary = make_user()
    add_membership(secretary, acme, ["SECRETARY"])

    with pytest.raises(PermissionDenied):
        GuardPipeline(db_session).authorize(
            identity(secretary), club_endpoint(roles=[ClubRole.OWNER]), "acme", "POST"
        )


def test_feature_gate_runs_after_permissions(db_session, make_user, add_membership, acme) -> None:
    treasurer = make_user()
    member = make_user()
    add_membership(treasurer, acme, ["TREASURER"])
    add_membership(member, acme, ["MEMBER"])
    requirements = club_endpoint(permissions=[Permission.FINANCE_READ], features=[TierFeature.SEPA])
    pipeline = GuardPipeline(db_session)

    with pytest.raises(FeatureNotAvailable):
        pipeline.authorize(identity(treasurer), requirements, "acme", "GET")
    with pytest.raises(PermissionDenied):
        pipeline.authorize(identity(member), requirements, "acme", "GET")


def test_deactivation_is_the_last_stage(db_session, make_user, add_membership, acme) -> None:
    owner = make_user()
    member = make_user()
    add_membership(owner, acme, ["OWNER"])
    add_membership(member, acme, ["MEMBER"])
    acme.deactivated_at = datetime.now(timezone.utc)
    db_session.commit()
    settings = club_endpoint(permissions=[Permission.CLUB_SETTINGS])
    pipeline = GuardPipeline(db_session)

    # Reads pass
    assert pipeline.authorize(identity(owner), settings, "acme", "GET").deactivated is True
    # Writes are blocked
    with pytest.raises(ClubDeactivated):
        pipeline.authorize(identity(owner), settings, "acme", "PATCH")
    # An earlier stage wins
    with pytest.raises(PermissionDenied):
        pipeline.authorize(identity(member), settings, "acme", "PATCH")
    # Exempt writes pass
    exempt = club_endpoint(roles=[ClubRole.OWNER], deactivation_exempt=True)
    assert pipeline.authorize(identity(owner), exempt, "acme", "POST").club_id == acme.id


def test_super_admin_bypasses_roles_and_features_only(
    db_session, make_user, add_membership, acme
) -> None:
    admin = make_user(is_super_admin=True)
    requirements = club_endpoint(permissions=[Permission.FINANCE_DELETE], features=[TierFeature.SEPA])
    pipeline = GuardPipeline(db_session)

    # No membership: still not found
    with pytest.raises(ClubNotFound):
        pipeline.authorize(identity(admin), requirements, "acme", "GET")

    add_membership(admin, acme, ["MEMBER"])
    context = pipeline.authorize(identity(admin), requirements, "acme", "GET")
    assert context.is_super_admin is True

    acme.deactivated_at = datetime.now(timezone.utc)
    db_session.commit()
    with pytest.raises(ClubDeactivated):
        pipeline.authorize(identity(admin), requirements, "acme", "DELETE")


def test_super_admin_flag_is_not_cached(db_session, make_user, add_membership, acme) -> None:
    admin = make_user(is_super_admin=True)
    add_membership(admin, acme, ["MEMBER"])
    requirements = club_endpoint(permissions=[Permission.FINANCE_READ])
    pipeline = GuardPipeline(db_session)

    pipeline.authorize(identity(admin), requirements, "acme", "GET")

    admin.is_super_admin = False
    db_session.commit()

    with pytest.raises(PermissionDenied):
        pipeline.authorize(identity(admin), requirements, "acme", "GET")


def test_store_failure_fails_closed() -> None:
    db = MagicMock()
    db.query.side_effect = OperationalError("SELECT 1", {}, Exception("connection refused"))
    user = AuthenticatedUser(user_id="u_1", email="u1@example.org")

    with pytest.raises(AuthorizationUnavailable) as exc_info:
        GuardPipeline(db).authorize(user, club_endpoint(), "acme", "GET")

    assert exc_info.value.status_code == 503
    assert exc_info.value.code == "AUTHZ_UNAVAILABLE"


def test_store_failure_in_later_stage_fails_closed(db_session, make_user, add_membership, acme) -> None:
    user = make_user()
    add_membership(user, acme, ["TREASURER"])
    pipeline = GuardPipeline(db_session)
    pipeline.tiers = MagicMock()
    pipeline.tiers.is_feature_enabled.side_effect = OperationalError("SELECT", {}, Exception("timeout"))

    with pytest.raises(AuthorizationUnavailable):
        pipeline.authorize(
            identity(user),
            club_endpoint(permissions=[Permission.FINANCE_READ], features=[TierFeature.REPORTS]),
            "acme",
            "GET",
        )
