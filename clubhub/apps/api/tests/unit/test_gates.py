"""Tests for membership resolution, tier features and the deactivation gate."""

from datetime import datetime, timezone

import pytest

from clubhub_api.authz.deactivation import DeactivationGate, is_write_method
from clubhub_api.authz.membership import MembershipContextResolver
from clubhub_api.authz.permissions import ClubRole
from clubhub_api.authz.tier import TierFeature, TierFeatureGate, UnknownFeatureError
from clubhub_api.db.models import ClubUserStatus


# ============================================================================
# Membership
# ============================================================================


def test_resolve_active_membership(db_session, make_user, make_club, add_membership) -> None:
    user = make_user()
    club = make_club(slug="acme")
    club_user = add_membership(user, club, ["TREASURER", "MEMBER"])

    membership = MembershipContextResolver(db_session).resolve(user.id, "acme")

    assert membership.club_id == club.id
    assert membership.club_user_id == club_user.id
    assert membership.roles == frozenset({ClubRole.TREASURER, ClubRole.MEMBER})
    assert membership.deactivated is False


def test_resolve_is_ambiguous_for_missing_deleted_and_non_member(
    db_session, make_user, make_club, add_membership
) -> None:
    user = make_user()
    other = make_user()
    deleted = make_club(slug="gone")
    add_membership(user, deleted, ["OWNER"])
    deleted.deleted_at = datetime.now(timezone.utc)
    make_club(slug="foreign")
    add_membership(other, make_club(slug="theirs"), ["OWNER"])
    db_session.commit()

    resolver = MembershipContextResolver(db_session)

    assert resolver.resolve(user.id, "does-not-exist") is None
    assert resolver.resolve(user.id, "gone") is None
    assert resolver.resolve(user.id, "foreign") is None
    assert resolver.resolve(user.id, "theirs") is None
    assert resolver.resolve("", "theirs") is None


@pytest.mark.parametrize("status", [ClubUserStatus.PENDING, ClubUserStatus.REMOVED])
def test_resolve_ignores_inactive_membership(
    db_session, make_user, make_club, add_membership, status
) -> None:
    user = make_user()
    make_club(slug="acme")
    club = make_club(slug="acme-2")
    add_membership(user, club, ["OWNER"], status=status)

    assert MembershipContextResolver(db_session).resolve(user.id, "acme-2") is None


def test_resolve_reports_deactivation(db_session, make_user, make_club, add_membership) -> None:
    user = make_user()
    club = make_club(slug="acme")
    add_membership(user, club, ["MEMBER"])
    club.deactivated_at = datetime.now(timezone.utc)
    db_session.commit()

    assert MembershipContextResolver(db_session).resolve(user.id, "acme").deactivated is True


# ============================================================================
# Tier features
# ============================================================================


def test_club_without_tier_has_every_feature(db_session, make_club) -> None:
    club = make_club()
    gate = TierFeatureGate(db_session)

    assert gate.is_feature_enabled(club.id, TierFeature.SEPA)
    assert gate.features_for(club.id) == {feature: True for feature in TierFeature}


def test_tier_flags_are_honoured(db_session, make_club, make_tier) -> None:
    tier = make_tier(name="Starter", sepa_enabled=False, reports_enabled=True)
    club = make_club(tier=tier)
    gate = TierFeatureGate(db_session)

    assert gate.is_feature_enabled(club.id, "sepa") is False
    assert gate.is_feature_enabled(club.id, "reports") is True
    assert gate.are_features_enabled(club.id, ["reports", "bank_import"]) is True
    assert gate.are_features_enabled(club.id, ["reports", "sepa"]) is False


def test_unknown_club_has_no_features(db_session) -> None:
    gate = TierFeatureGate(db_session)

    assert gate.is_feature_enabled("no-such-club", TierFeature.REPORTS) is False
    assert not any(gate.features_for("no-such-club").values())


def test_unknown_feature_is_a_programming_error(db_session, make_club) -> None:
    club = make_club()
    with pytest.raises(UnknownFeatureError):
        TierFeatureGate(db_session).is_feature_enabled(club.id, "teleport")


# ============================================================================
# Deactivation
# ============================================================================


@pytest.mark.parametrize(
    "method,expected",
    [("GET", False), ("head", False), ("OPTIONS", False), ("POST", True), ("PATCH", True), ("DELETE", True)],
)
def test_is_write_method(method: str, expected: bool) -> None:
    assert is_write_method(method) is expected


def test_deactivated_club_blocks_non_exempt_writes(db_session, make_club) -> None:
    club = make_club()
    club.deactivated_at = datetime.now(timezone.utc)
    db_session.commit()
    gate = DeactivationGate(db_session)

    assert gate.is_deactivated(club.id)
    assert gate.may_mutate(club.id, is_write=True, is_exempt=False) is False
    assert gate.may_mutate(club.id, is_write=True, is_exempt=True) is True
    assert gate.may_mutate(club.id, is_write=False, is_exempt=False) is True


def test_active_club_allows_writes(db_session, make_club) -> None:
    club = make_club()
    assert DeactivationGate(db_session).may_mutate(club.id, is_write=True, is_exempt=False)


def test_platform_request_without_club_passes(db_session) -> None:
    assert DeactivationGate(db_session).may_mutate(None, is_write=True, is_exempt=False)
