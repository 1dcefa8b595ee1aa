"""Club user management: listing, role updates, ownership transfer, removal,
activation of new or returning members, and leaving.

Role rules:
- OWNER is never granted or revoked here except by transfer_ownership
- an actor can only hand out roles in assignable_roles(actor_roles)
- actors never change or remove their own membership
- a club always keeps at least one OWNER
"""

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterable, Optional

from sqlalchemy.orm import Session

from clubhub_api.authz.permissions import (
    ClubRole,
    assignable_roles,
    is_owner,
    parse_roles,
)
from clubhub_api.db.models import ClubUser, ClubUserStatus, User
from clubhub_api.errors import (
    InvalidRole,
    LastOwner,
    OwnerRoleProtected,
    PermissionDenied,
    ResourceNotFound,
    RoleNotAssignable,
    SelfModificationForbidden,
)
from clubhub_api.observability.authz_events import log_membership_change

logger = logging.getLogger(__name__)

# Stable display order
_ROLE_ORDER = [role.value for role in ClubRole]


def _sorted_roles(roles: Iterable[ClubRole]) -> list[str]:
    values = {ClubRole(r).value for r in roles}
    return [r for r in _ROLE_ORDER if r in values]


def parse_requested_roles(values: Iterable[str]) -> set[ClubRole]:
    """Roles requested for a member; never OWNER, never empty.

    Raises:
        InvalidRole: unknown value or empty list
        OwnerRoleProtected: OWNER requested
    """
    requested: set[ClubRole] = set()
    for value in values:
        try:
            requested.add(ClubRole(value))
        except ValueError:
            raise InvalidRole(f"Unknown role: {value}") from None

    if not requested:
        raise InvalidRole("At least one role is required.")
    if ClubRole.OWNER in requested:
        raise OwnerRoleProtected()
    return requested


def check_assignable(requested: Iterable[ClubRole], assigner_roles: Iterable[ClubRole]) -> None:
    """Raises RoleNotAssignable for roles outside the assigner's grant."""
    forbidden = set(requested) - assignable_roles(assigner_roles)
    if forbidden:
        raise RoleNotAssignable(
            f"You cannot assign: {', '.join(_sorted_roles(forbidden))}."
        )


class MembershipOutcome(str, Enum):
    JOINED = "joined"
    REACTIVATED = "reactivated"
    ALREADY_MEMBER = "already_member"


class ClubUserService:
    def __init__(self, db: Session):
        self.db = db

    def _get_active(self, club_id: str, club_user_id: str) -> ClubUser:
        club_user = (
            self.db.query(ClubUser)
            .filter(
                ClubUser.id == club_user_id,
                ClubUser.club_id == club_id,
                ClubUser.status == ClubUserStatus.ACTIVE.value,
            )
            .first()
        )
        if club_user is None:
            raise ResourceNotFound("Club user not found.")
        return club_user

    def _count_owners(self, club_id: str) -> int:
        memberships = (
            self.db.query(ClubUser.roles)
            .filter(
                ClubUser.club_id == club_id,
                ClubUser.status == ClubUserStatus.ACTIVE.value,
            )
            .all()
        )
        return sum(1 for (roles,) in memberships if ClubRole.OWNER.value in (roles or []))

    def to_response(self, club_user: ClubUser, user: User | None = None) -> dict[str, Any]:
        user = user or self.db.get(User, club_user.user_id)
        return {
            "id": club_user.id,
            "user_id": club_user.user_id,
            "email": user.email,
            "name": user.name,
            "roles": list(club_user.roles or []),
            "status": club_user.status,
            "joined_at": club_user.joined_at,
        }

    def list_club_users(self, club_id: str) -> list[tuple[ClubUser, User]]:
        """ACTIVE memberships with their users, oldest first."""
        return (
            self.db.query(ClubUser, User)
            .join(User, User.id == ClubUser.user_id)
            .filter(
                ClubUser.club_id == club_id,
                ClubUser.status == ClubUserStatus.ACTIVE.value,
            )
            .order_by(ClubUser.joined_at.asc(), ClubUser.id.asc())
            .all()
        )

    def update_roles(
        self,
        club_id: str,
        club_user_id: str,
        actor_user_id: str,
        actor_roles: Iterable[ClubRole],
        roles: Iterable[str],
    ) -> ClubUser:
        """Replace a member's non-OWNER roles.

        An existing OWNER role on the target is preserved as-is.

        Raises:
            InvalidRole: unknown role value
            OwnerRoleProtected: OWNER requested
            ResourceNotFound: target is not an ACTIVE member of the club
            SelfModificationForbidden: actor targets their own membership
            RoleNotAssignable: a requested role is outside the actor's grant
        """
        requested = parse_requested_roles(roles)

        target = self._get_active(club_id, club_user_id)
        if target.user_id == actor_user_id:
            raise SelfModificationForbidden("You cannot change your own roles.")

        check_assignable(requested, actor_roles)

        current = parse_roles(target.roles)
        if ClubRole.OWNER in current:
            requested.add(ClubRole.OWNER)

        target.roles = _sorted_roles(requested)
        self.db.commit()
        self.db.refresh(target)

        logger.info(
            "Club user roles updated",
            extra={
                "event": "club_user.roles_updated",
                "club_id": club_id,
                "club_user_id": club_user_id,
                "actor_user_id": actor_user_id,
                "roles": target.roles,
            },
        )
        return target

    def transfer_ownership(
        self,
        club_id: str,
        actor_user_id: str,
        actor_roles: Iterable[ClubRole],
        target_club_user_id: str,
    ) -> ClubUser:
        """Move OWNER from the actor to another active member.

        The actor keeps (or gains) ADMIN so they retain club administration.

        Raises:
            PermissionDenied: actor is not OWNER
            ResourceNotFound: target is not an ACTIVE member of the club
            SelfModificationForbidden: target is the actor
        """
        if not is_owner(actor_roles):
            raise PermissionDenied("Only the club owner can transfer ownership.")

        target = self._get_active(club_id, target_club_user_id)
        if target.user_id == actor_user_id:
            raise SelfModificationForbidden("You already own this club.")

        actor = (
            self.db.query(ClubUser)
            .filter(
                ClubUser.club_id == club_id,
                ClubUser.user_id == actor_user_id,
                ClubUser.status == ClubUserStatus.ACTIVE.value,
            )
            .first()
        )
        if actor is None:
            raise ResourceNotFound("Club user not found.")

        target.roles = _sorted_roles(parse_roles(target.roles) | {ClubRole.OWNER})
        actor.roles = _sorted_roles(
            (parse_roles(actor.roles) - {ClubRole.OWNER}) | {ClubRole.ADMIN}
        )
        self.db.commit()
        self.db.refresh(target)

        logger.info(
            "Club ownership transferred",
            extra={
                "event": "club.ownership_transferred",
                "club_id": club_id,
                "from_user_id": actor_user_id,
                "to_user_id": target.user_id,
            },
        )
        return target

    def remove_club_user(self, club_id: str, club_user_id: str, actor_user_id: str) -> ClubUser:
        """Soft-remove a membership (status REMOVED).

        Raises:
            ResourceNotFound: target is not an ACTIVE member of the club
            SelfModificationForbidden: actor targets their own membership
            LastOwner: target is the club's only OWNER
        """
        target = self._get_active(club_id, club_user_id)
        if target.user_id == actor_user_id:
            raise SelfModificationForbidden("You cannot remove yourself from the club.")

        if ClubRole.OWNER.value in (target.roles or []) and self._count_owners(club_id) <= 1:
            raise LastOwner()

        target.status = ClubUserStatus.REMOVED.value
        self.db.commit()
        self.db.refresh(target)

        logger.info(
            "Club user removed",
            extra={
                "event": "club_user.removed",
                "club_id": club_id,
                "club_user_id": club_user_id,
                "actor_user_id": actor_user_id,
            },
        )
        return target

    def activate_membership(
        self,
        club_id: str,
        user_id: str,
        roles: Iterable[ClubRole],
        invited_by_id: Optional[str] = None,
    ) -> tuple[ClubUser, MembershipOutcome]:
        """Give a user an ACTIVE membership in the club. Does not commit.

        An ACTIVE membership is returned untouched. A REMOVED or PENDING
        one is brought back with the given roles, so a (user, club) pair
        never accumulates a second row.
        """
        memberships = (
            self.db.query(ClubUser)
            .filter(ClubUser.club_id == club_id, ClubUser.user_id == user_id)
            .order_by(ClubUser.updated_at.desc())
            .all()
        )
        for membership in memberships:
            if membership.status == ClubUserStatus.ACTIVE.value:
                return membership, MembershipOutcome.ALREADY_MEMBER

        now = datetime.now(timezone.utc)
        if memberships:
            membership = memberships[0]
            membership.status = ClubUserStatus.ACTIVE.value
            membership.roles = _sorted_roles(roles)
            membership.invited_by_id = invited_by_id
            membership.joined_at = now
            return membership, MembershipOutcome.REACTIVATED

        membership = ClubUser(
            club_id=club_id,
            user_id=user_id,
            roles=_sorted_roles(roles),
            status=ClubUserStatus.ACTIVE.value,
            invited_by_id=invited_by_id,
            joined_at=now,
        )
        self.db.add(membership)
        return membership, MembershipOutcome.JOINED

    def leave_club(self, club_id: str, user_id: str) -> ClubUser:
        """Give up the caller's own membership (status REMOVED).

        Raises:
            ResourceNotFound: caller has no ACTIVE membership in the club
            LastOwner: caller is the club's only OWNER
        """
        membership = (
            self.db.query(ClubUser)
            .filter(
                ClubUser.club_id == club_id,
                ClubUser.user_id == user_id,
                ClubUser.status == ClubUserStatus.ACTIVE.value,
            )
            .first()
        )
        if membership is None:
            raise ResourceNotFound("You are not a member of this club.")

        if ClubRole.OWNER.value in (membership.roles or []) and self._count_owners(club_id) <= 1:
            raise LastOwner("Transfer ownership before leaving the club.")

        membership.status = ClubUserStatus.REMOVED.value
        self.db.commit()
        self.db.refresh(membership)

        log_membership_change("left", club_id, user_id, actor_user_id=user_id)
        return membership
