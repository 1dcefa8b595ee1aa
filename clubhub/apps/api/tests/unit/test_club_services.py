"""Tests for club user management and club lifecycle services."""

from datetime import datetime, timedelta, timezone

import pytest

from clubhub_api.authz.permissions import ClubRole
from clubhub_api.authz.pipeline import RequestContext
from clubhub_api.db.models import ClubUserStatus
from clubhub_api.errors import (
    ClubAlreadyDeactivated,
    ClubNotDeactivated,
    ConfirmationMismatch,
    InvalidGracePeriod,
    InvalidRole,
    LastOwner,
    OwnerRoleProtected,
    PermissionDenied,
    ResourceNotFound,
    RoleNotAssignable,
    SelfModificationForbidden,
)
from clubhub_api.services.club_users import ClubUserService
from clubhub_api.services.clubs import ClubService

OWNER = frozenset({ClubRole.OWNER})
ADMIN = frozenset({ClubRole.ADMIN})


@pytest.fixture
def club(make_club):
    return make_club(name="Acme Sports Club", slug="acme")


@pytest.fixture
def owner(make_user, add_membership, club):
    user = make_user(email="owner@acme.example")
    return user, add_membership(user, club, ["OWNER"])


@pytest.fixture
def member(make_user, add_membership, club):
    user = make_user(email="member@acme.example")
    return user, add_membership(user, club, ["MEMBER"])


def context_for(user, club, roles, is_super_admin=False) -> RequestContext:
    return RequestContext(
        user_id=user.id,
        email=user.email,
        is_super_admin=is_super_admin,
        club_id=club.id,
        club_slug=club.slug,
        roles=frozenset(roles),
    )


# ============================================================================
# Role updates
# ============================================================================


def test_owner_assigns_admin(db_session, club, owner, member) -> None:
    owner_user, _ = owner
    _, member_cu = member

    updated = ClubUserService(db_session).update_roles(
        club.id, member_cu.id, owner_user.id, OWNER, ["ADMIN", "MEMBER"]
    )

    assert updated.roles == ["ADMIN", "MEMBER"]


def test_admin_cannot_assign_admin(db_session, make_user, add_membership, club, member) -> None:
    admin = make_user()
    add_membership(admin, club, ["ADMIN"])
    _, member_cu = member

    with pytest.raises(RoleNotAssignable):
        ClubUserService(db_session).update_roles(club.id, member_cu.id, admin.id, ADMIN, ["ADMIN"])


def test_owner_role_is_protected(db_session, club, owner, member) -> None:
    owner_user, _ = owner
    _, member_cu = member

    with pytest.raises(OwnerRoleProtected):
        ClubUserService(db_session).update_roles(club.id, member_cu.id, owner_user.id, OWNER, ["OWNER"])


def test_unknown_and_empty_roles_are_rejected(db_session, club, owner, member) -> None:
    owner_user, _ = owner
    _, member_cu = member
    service = ClubUserService(db_session)

    with pytest.raises(InvalidRole):
        service.update_roles(club.id, member_cu.id, owner_user.id, OWNER, ["WIZARD"])
    with pytest.raises(InvalidRole):
        service.update_roles(club.id, member_cu.id, owner_user.id, OWNER, [])


def test_self_role_change_is_forbidden(db_session, club, owner) -> None:
    owner_user, owner_cu = owner

    with pytest.raises(SelfModificationForbidden):
        ClubUserService(db_session).update_roles(club.id, owner_cu.id, owner_user.id, OWNER, ["ADMIN"])


def test_existing_owner_role_is_preserved(db_session, make_user, add_membership, club, owner) -> None:
    owner_user, _ = owner
    co_owner = make_user()
    co_owner_cu = add_membership(co_owner, club, ["OWNER"])

    updated = ClubUserService(db_session).update_roles(
        club.id, co_owner_cu.id, owner_user.id, OWNER, ["TREASURER"]
    )

    assert updated.roles == ["OWNER", "TREASURER"]


def test_update_roles_in_other_club_is_not_found(
    db_session, make_club, make_user, add_membership, club, owner
) -> None:
    owner_user, _ = owner
    other_club = make_club(slug="other")
    stranger_cu = add_membership(make_user(), other_club, ["MEMBER"])

    with pytest.raises(ResourceNotFound):
        ClubUserService(db_session).update_roles(
            club.id, stranger_cu.id, owner_user.id, OWNER, ["TREASURER"]
        )


# ============================================================================
# Ownership transfer and removal
# ============================================================================


def test_transfer_ownership(db_session, club, owner, member) -> None:
    owner_user, owner_cu = owner
    _, member_cu = member

    target = ClubUserService(db_session).transfer_ownership(club.id, owner_user.id, OWNER, member_cu.id)

    db_session.refresh(owner_cu)
    assert target.roles == ["OWNER", "MEMBER"]
    assert owner_cu.roles == ["ADMIN"]


def test_transfer_requires_owner(db_session, club, member, owner) -> None:
    member_user, _ = member
    _, owner_cu = owner

    with pytest.raises(PermissionDenied):
        ClubUserService(db_session).transfer_ownership(
            club.id, member_user.id, frozenset({ClubRole.MEMBER}), owner_cu.id
        )


def test_remove_club_user_soft_removes(db_session, club, owner, member) -> None:
    owner_user, _ = owner
    _, member_cu = member

    removed = ClubUserService(db_session).remove_club_user(club.id, member_cu.id, owner_user.id)

    assert removed.status == ClubUserStatus.REMOVED.value
    assert len(ClubUserService(db_session).list_club_users(club.id)) == 1


def test_last_owner_cannot_be_removed(db_session, make_user, add_membership, club, owner) -> None:
    _, owner_cu = owner
    admin = make_user()
    add_membership(admin, club, ["ADMIN"])

    with pytest.raises(LastOwner):
        ClubUserService(db_session).remove_club_user(club.id, owner_cu.id, admin.id)


def test_self_removal_is_forbidden(db_session, club, member) -> None:
    member_user, member_cu = member
    with pytest.raises(SelfModificationForbidden):
        ClubUserService(db_session).remove_club_user(club.id, member_cu.id, member_user.id)


# ============================================================================
# Club lifecycle
# ============================================================================


def test_deactivate_schedules_deletion(db_session, club, owner) -> None:
    owner_user, _ = owner
    now = datetime(2026, 3, 1, tzinfo=timezone.utc)

    result = ClubService(db_session).deactivate(
        context_for(owner_user, club, OWNER), 30, "Acme Sports Club", now=now
    )

    assert result.grace_period_days == 30
    assert result.deactivated_by == owner_user.id
    assert result.scheduled_deletion_at.replace(tzinfo=None) == (now + timedelta(days=30)).replace(tzinfo=None)
    assert [c.id for c in ClubService(db_session).list_pending_deletions()] == [club.id]


@pytest.mark.parametrize("days", [6, 91])
def test_deactivate_rejects_grace_period_out_of_range(db_session, club, owner, days) -> None:
    owner_user, _ = owner
    with pytest.raises(InvalidGracePeriod):
        ClubService(db_session).deactivate(context_for(owner_user, club, OWNER), days, "Acme Sports Club")


def test_deactivate_requires_exact_name(db_session, club, owner) -> None:
    owner_user, _ = owner
    with pytest.raises(ConfirmationMismatch):
        ClubService(db_session).deactivate(context_for(owner_user, club, OWNER), 30, "acme sports club")


def test_deactivate_requires_owner_or_super_admin(db_session, make_user, club) -> None:
    admin = make_user()
    service = ClubService(db_session)

    with pytest.raises(PermissionDenied):
        service.deactivate(context_for(admin, club, ADMIN), 30, "Acme Sports Club")

    result = service.deactivate(
        context_for(admin, club, ADMIN, is_super_admin=True), 30, "Acme Sports Club"
    )
    assert result.deactivated_at is not None


def test_deactivate_twice_and_reactivate(db_session, club, owner) -> None:
    owner_user, _ = owner
    context = context_for(owner_user, club, OWNER)
    service = ClubService(db_session)

    with pytest.raises(ClubNotDeactivated):
        service.reactivate(context)

    service.deactivate(context, 14, "Acme Sports Club")
    with pytest.raises(ClubAlreadyDeactivated):
        service.deactivate(context, 14, "Acme Sports Club")

    reactivated = service.reactivate(context)
    assert reactivated.deactivated_at is None
    assert reactivated.scheduled_deletion_at is None
    assert service.list_pending_deletions() == []


def test_my_permissions(db_session, make_tier, make_club, make_user) -> None:
    tier = make_tier(name="Starter", sepa_enabled=False)
    club = make_club(slug="starter", tier=tier)
    user = make_user()

    result = ClubService(db_session).my_permissions(
        context_for(user, club, frozenset({ClubRole.SECRETARY}))
    )

    assert result["roles"] == ["SECRETARY"]
    assert "finance:read" in result["permissions"]
    assert "finance:create" not in result["permissions"]
    assert result["features"] == {"sepa": False, "reports": True, "bank_import": True}
    assert result["is_super_admin"] is False
