"""Joining clubs: invite codes for PRIVATE clubs, access requests for PUBLIC ones.

FLOW (access request):
1. A signed-in non-member asks to join a PUBLIC club (expires after 30 days)
2. An OWNER or ADMIN (users:create) approves with roles they may assign,
   or rejects with a reason
3. Approval creates the membership, or reactivates a REMOVED one, in the
   same transaction that closes the request

Private clubs are invisible to access requests: a private slug answers
exactly like a missing one.
"""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Iterable, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from clubhub_api.authz.deactivation import DeactivationGate
from clubhub_api.authz.permissions import ClubRole
from clubhub_api.db.models import (
    AccessRequest,
    AccessRequestStatus,
    Club,
    ClubUser,
    ClubUserStatus,
    ClubVisibility,
    User,
)
from clubhub_api.errors import (
    AccessRequestClosed,
    AccessRequestExists,
    AlreadyMember,
    ClubDeactivated,
    ClubNotFound,
    InvalidInviteCode,
    PendingRequestLimit,
    RejectionNoteRequired,
    ResourceNotFound,
)
from clubhub_api.observability.authz_events import log_membership_change
from clubhub_api.services.club_codes import is_invite_code_valid, normalize_invite_code
from clubhub_api.services.club_users import (
    ClubUserService,
    MembershipOutcome,
    check_assignable,
    parse_requested_roles,
)

REQUEST_TTL_DAYS = 30
MAX_PENDING_REQUESTS = 5
MY_REQUESTS_LIMIT = 20


class RejectionReason(str, Enum):
    BOARD_ONLY = "BOARD_ONLY"
    UNIDENTIFIED = "UNIDENTIFIED"
    WRONG_CLUB = "WRONG_CLUB"
    CONTACT_DIRECTLY = "CONTACT_DIRECTLY"
    OTHER = "OTHER"


# Shown to the requester
REJECTION_MESSAGES = {
    RejectionReason.BOARD_ONLY: "Only board members have access.",
    RejectionReason.UNIDENTIFIED: "We could not identify you.",
    RejectionReason.WRONG_CLUB: "This does not seem to be the right club.",
    RejectionReason.CONTACT_DIRECTLY: "Please contact us directly.",
    RejectionReason.OTHER: "Other reason.",
}


def _now(now: Optional[datetime]) -> datetime:
    return now or datetime.now(timezone.utc)


def _as_aware(value: datetime) -> datetime:
    # SQLite hands timestamps back without tzinfo
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class AccessRequestService:
    def __init__(self, db: Session):
        self.db = db
        self.club_users = ClubUserService(db)

    def _has_active_membership(self, club_id: str, user_id: str) -> bool:
        return (
            self.db.query(ClubUser.id)
            .filter(
                ClubUser.club_id == club_id,
                ClubUser.user_id == user_id,
                ClubUser.status == ClubUserStatus.ACTIVE.value,
            )
            .first()
            is not None
        )

    def _open_requests(self, now: datetime):
        return self.db.query(AccessRequest).filter(
            AccessRequest.status == AccessRequestStatus.PENDING.value,
            AccessRequest.expires_at > now,
        )

    def _commit_membership(self) -> None:
        try:
            self.db.commit()
        except IntegrityError:
            # A concurrent join won the one-ACTIVE-membership index
            self.db.rollback()
            raise AlreadyMember()

    # ------------------------------------------------------------------
    # Invite codes
    # ------------------------------------------------------------------

    def join_with_code(self, user_id: str, code: str) -> tuple[Club, ClubUser, MembershipOutcome]:
        """Join the club whose invite code matches, as MEMBER.

        Raises:
            InvalidInviteCode: code has the wrong shape
            ResourceNotFound: no club uses this code
            ClubDeactivated: the club is deactivated
        """
        normalized = normalize_invite_code(code)
        if not is_invite_code_valid(normalized):
            raise InvalidInviteCode()

        club = (
            self.db.query(Club)
            .filter(Club.invite_code == normalized, Club.deleted_at.is_(None))
            .first()
        )
        if club is None:
            raise ResourceNotFound("Invite code not found or no longer valid.")
        if DeactivationGate(self.db).is_deactivated(club.id):
            raise ClubDeactivated()

        membership, outcome = self.club_users.activate_membership(
            club.id, user_id, [ClubRole.MEMBER]
        )
        if outcome is not MembershipOutcome.ALREADY_MEMBER:
            self._commit_membership()
            self.db.refresh(membership)
            log_membership_change(outcome.value, club.id, user_id, via="invite_code")
        return club, membership, outcome

    # ------------------------------------------------------------------
    # Requester side
    # ------------------------------------------------------------------

    def request_access(
        self,
        user_id: str,
        slug: str,
        message: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> AccessRequest:
        """Ask to join a PUBLIC club.

        Raises:
            ClubNotFound: club missing, deleted, or PRIVATE
            ClubDeactivated: the club is deactivated
            AlreadyMember: caller already holds an ACTIVE membership
            PendingRequestLimit: caller has MAX_PENDING_REQUESTS open requests
            AccessRequestExists: caller already has an open request for this club
        """
        now = _now(now)
        club = (
            self.db.query(Club)
            .filter(
                Club.slug == slug,
                Club.deleted_at.is_(None),
                Club.visibility == ClubVisibility.PUBLIC.value,
            )
            .first()
        )
        if club is None:
            raise ClubNotFound()
        if club.deactivated_at is not None:
            raise ClubDeactivated()
        if self._has_active_membership(club.id, user_id):
            raise AlreadyMember()

        mine = self._open_requests(now).filter(AccessRequest.user_id == user_id)
        if mine.count() >= MAX_PENDING_REQUESTS:
            raise PendingRequestLimit()
        if mine.filter(AccessRequest.club_id == club.id).first() is not None:
            raise AccessRequestExists()

        request = AccessRequest(
            user_id=user_id,
            club_id=club.id,
            message=message,
            expires_at=now + timedelta(days=REQUEST_TTL_DAYS),
        )
        self.db.add(request)
        self.db.commit()
        self.db.refresh(request)
        return request

    def list_my_requests(self, user_id: str) -> list[tuple[AccessRequest, Club]]:
        """The caller's most recent requests, newest first."""
        return (
            self.db.query(AccessRequest, Club)
            .join(Club, Club.id == AccessRequest.club_id)
            .filter(AccessRequest.user_id == user_id)
            .order_by(AccessRequest.created_at.desc())
            .limit(MY_REQUESTS_LIMIT)
            .all()
        )

    def cancel_request(self, user_id: str, request_id: str) -> None:
        """Withdraw one of the caller's own PENDING requests.

        Someone else's request answers like a missing one.
        """
        request = self.db.get(AccessRequest, request_id)
        if request is None or request.user_id != user_id:
            raise ResourceNotFound("Access request not found.")
        if request.status != AccessRequestStatus.PENDING.value:
            raise AccessRequestClosed()

        self.db.delete(request)
        self.db.commit()

    # ------------------------------------------------------------------
    # Club administrator side
    # ------------------------------------------------------------------

    def list_club_requests(
        self, club_id: str, now: Optional[datetime] = None
    ) -> list[tuple[AccessRequest, User]]:
        """Open requests for the club, oldest first."""
        return (
            self._open_requests(_now(now))
            .join(User, User.id == AccessRequest.user_id)
            .add_entity(User)
            .filter(AccessRequest.club_id == club_id)
            .order_by(AccessRequest.created_at.asc(), AccessRequest.id.asc())
            .all()
        )

    def _get_open_request(self, club_id: str, request_id: str, now: datetime) -> AccessRequest:
        request = self.db.get(AccessRequest, request_id)
        if request is None or request.club_id != club_id:
            raise ResourceNotFound("Access request not found.")
        if request.status != AccessRequestStatus.PENDING.value:
            raise AccessRequestClosed("This access request was already decided.")
        if _as_aware(request.expires_at) <= now:
            raise AccessRequestClosed("This access request has expired.")
        return request

    def approve(
        self,
        club_id: str,
        request_id: str,
        actor_user_id: str,
        actor_roles: Iterable[ClubRole],
        is_super_admin: bool = False,
        roles: Iterable[str] = (ClubRole.MEMBER.value,),
        now: Optional[datetime] = None,
    ) -> ClubUser:
        """Grant the requester a membership with `roles`.

        Raises:
            InvalidRole / OwnerRoleProtected: bad role list
            RoleNotAssignable: a role is outside the actor's grant
            ResourceNotFound: no such request in this club
            AccessRequestClosed: request already decided or expired
        """
        now = _now(now)
        requested = parse_requested_roles(roles)
        # A super-admin assigns like an OWNER
        check_assignable(requested, {ClubRole.OWNER} if is_super_admin else actor_roles)

        request = self._get_open_request(club_id, request_id, now)
        membership, outcome = self.club_users.activate_membership(
            club_id, request.user_id, requested, invited_by_id=actor_user_id
        )

        request.status = AccessRequestStatus.APPROVED.value
        request.processed_by_id = actor_user_id
        request.processed_at = now
        self._commit_membership()
        self.db.refresh(membership)

        log_membership_change(
            outcome.value, club_id, request.user_id, actor_user_id, via="access_request"
        )
        return membership

    def reject(
        self,
        club_id: str,
        request_id: str,
        actor_user_id: str,
        reason: RejectionReason,
        note: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> tuple[AccessRequest, str]:
        """Close the request without a membership.

        Returns the request and the message shown to the requester.

        Raises:
            RejectionNoteRequired: reason OTHER without a note
            ResourceNotFound: no such request in this club
            AccessRequestClosed: request already decided or expired
        """
        now = _now(now)
        reason = RejectionReason(reason)
        if reason is RejectionReason.OTHER and not (note or "").strip():
            raise RejectionNoteRequired()

        request = self._get_open_request(club_id, request_id, now)
        request.status = AccessRequestStatus.REJECTED.value
        request.rejection_reason = reason.value
        request.rejection_note = note
        request.processed_by_id = actor_user_id
        request.processed_at = now
        self.db.commit()
        self.db.refresh(request)

        return request, REJECTION_MESSAGES[reason]
