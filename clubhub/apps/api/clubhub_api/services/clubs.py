"""Club creation, settings and lifecycle (deactivation, reactivation, pending deletion)."""

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from clubhub_api.authz.permissions import ClubRole, is_owner, permissions_for
from clubhub_api.authz.pipeline import RequestContext
from clubhub_api.authz.tier import TierFeatureGate
from clubhub_api.db.models import Club, ClubUser, ClubUserStatus, ClubVisibility, Tier
from clubhub_api.errors import (
    ClubAlreadyDeactivated,
    ClubCreationDisabled,
    ClubNotDeactivated,
    ConfirmationMismatch,
    InvalidGracePeriod,
    InvalidSlug,
    PermissionDenied,
    ResourceNotFound,
    SlugTaken,
)
from clubhub_api.observability.authz_events import log_club_lifecycle, log_membership_change
from clubhub_api.services.club_codes import (
    format_invite_code,
    generate_invite_code,
    generate_slug,
    slug_candidates,
    slug_error,
)

MIN_GRACE_PERIOD_DAYS = 7
MAX_GRACE_PERIOD_DAYS = 90

_SETTINGS_FIELDS = ("name", "description", "contact_email", "visibility")
# Cannot be cleared
_REQUIRED_SETTINGS = ("name", "visibility")


class ClubService:
    def __init__(self, db: Session):
        self.db = db

    def _free_slug(self, base: str) -> str:
        # Soft-deleted clubs keep their slug
        taken = {
            slug
            for (slug,) in self.db.query(Club.slug).filter(
                (Club.slug == base) | Club.slug.like(f"{base}-%")
            )
        }
        for candidate in slug_candidates(base):
            if candidate not in taken:
                return candidate
        raise SlugTaken()

    def create_club(
        self,
        actor_user_id: str,
        is_super_admin: bool,
        name: str,
        slug: Optional[str] = None,
        description: Optional[str] = None,
        visibility: Optional[str] = None,
        tier_id: Optional[str] = None,
        self_service_enabled: bool = True,
        default_tier_id: Optional[str] = None,
    ) -> Club:
        """Create a club with the actor as its ACTIVE OWNER.

        A taken slug gets a numeric suffix (-1 .. -99). PRIVATE clubs get an
        invite code.

        Raises:
            ClubCreationDisabled: self-service is off and actor is not super-admin
            PermissionDenied: a non-super-admin picked a tier
            InvalidSlug: slug (given or derived from the name) is malformed or reserved
            SlugTaken: no free suffix left
            ResourceNotFound: tier does not exist
        """
        if not (is_super_admin or self_service_enabled):
            raise ClubCreationDisabled()
        if tier_id and not is_super_admin:
            raise PermissionDenied("Only platform administrators can choose a tier.")

        base = slug or generate_slug(name)
        error = slug_error(base)
        if error:
            raise InvalidSlug(error)

        tier_id = tier_id or default_tier_id
        if tier_id and self.db.get(Tier, tier_id) is None:
            raise ResourceNotFound("Tier not found.")

        visibility = visibility or ClubVisibility.PRIVATE.value
        club = Club(
            name=name,
            slug=self._free_slug(base),
            description=description,
            visibility=visibility,
            invite_code=(
                generate_invite_code() if visibility == ClubVisibility.PRIVATE.value else None
            ),
            tier_id=tier_id,
        )
        self.db.add(club)
        try:
            self.db.flush()
            self.db.add(
                ClubUser(
                    club_id=club.id,
                    user_id=actor_user_id,
                    roles=[ClubRole.OWNER.value],
                    status=ClubUserStatus.ACTIVE.value,
                )
            )
            self.db.commit()
        except IntegrityError:
            # Another request took the slug between the check and the insert
            self.db.rollback()
            raise SlugTaken("This slug was just taken. Please try again.")
        self.db.refresh(club)

        log_club_lifecycle("created", club.id, actor_user_id)
        log_membership_change("joined", club.id, actor_user_id, actor_user_id, via="club_created")
        return club

    def list_my_clubs(self, user_id: str) -> list[tuple[Club, ClubUser]]:
        """Clubs with an ACTIVE membership for the user, by name."""
        return (
            self.db.query(Club, ClubUser)
            .join(ClubUser, ClubUser.club_id == Club.id)
            .filter(
                ClubUser.user_id == user_id,
                ClubUser.status == ClubUserStatus.ACTIVE.value,
                Club.deleted_at.is_(None),
            )
            .order_by(Club.name.asc(), Club.id.asc())
            .all()
        )

    def regenerate_invite_code(self, club_id: str) -> str:
        """Replace the invite code; the old one stops working at once."""
        club = self.get_club(club_id)
        club.invite_code = generate_invite_code()
        self.db.commit()
        return format_invite_code(club.invite_code)

    def get_club(self, club_id: str) -> Club:
        club = self.db.get(Club, club_id)
        if club is None or club.deleted_at is not None:
            raise ResourceNotFound("Club not found.")
        return club

    def get_settings(self, club_id: str) -> Club:
        return self.get_club(club_id)

    def update_settings(self, club_id: str, changes: dict[str, Any]) -> Club:
        """Apply settings changes. Slug and tier are not editable here.

        A club switched to PRIVATE without an invite code gets one.
        """
        club = self.get_club(club_id)
        for key, value in changes.items():
            if key in _REQUIRED_SETTINGS and value is None:
                continue
            if key in _SETTINGS_FIELDS:
                setattr(club, key, value)
        if club.visibility == ClubVisibility.PRIVATE.value and not club.invite_code:
            club.invite_code = generate_invite_code()
        self.db.commit()
        self.db.refresh(club)
        return club

    def my_permissions(self, context: RequestContext) -> dict[str, Any]:
        """Roles, derived permissions and tier features for the caller."""
        features = TierFeatureGate(self.db).features_for(context.club_id)
        return {
            "roles": sorted(role.value for role in context.roles),
            "permissions": sorted(p.value for p in permissions_for(context.roles)),
            "features": {feature.value: enabled for feature, enabled in features.items()},
            "is_super_admin": context.is_super_admin,
        }

    def _require_owner_or_super_admin(self, context: RequestContext) -> None:
        if not (context.is_super_admin or is_owner(context.roles)):
            raise PermissionDenied("Only the club owner can change the club's status.")

    def deactivate(
        self,
        context: RequestContext,
        grace_period_days: int,
        confirmation_name: str,
        now: Optional[datetime] = None,
    ) -> Club:
        """Soft-deactivate a club and schedule its deletion.

        Raises:
            PermissionDenied: caller is neither OWNER nor super-admin
            InvalidGracePeriod: grace period outside 7..90 days
            ConfirmationMismatch: confirmation_name differs from the club name
            ClubAlreadyDeactivated: club is already deactivated
        """
        self._require_owner_or_super_admin(context)
        if not MIN_GRACE_PERIOD_DAYS <= grace_period_days <= MAX_GRACE_PERIOD_DAYS:
            raise InvalidGracePeriod(
                f"The grace period must be between {MIN_GRACE_PERIOD_DAYS} "
                f"and {MAX_GRACE_PERIOD_DAYS} days."
            )

        club = self.get_club(context.club_id)
        if confirmation_name != club.name:
            raise ConfirmationMismatch()
        if club.deactivated_at is not None:
            raise ClubAlreadyDeactivated()

        now = now or datetime.now(timezone.utc)
        club.deactivated_at = now
        club.deactivated_by = context.user_id
        club.grace_period_days = grace_period_days
        club.scheduled_deletion_at = now + timedelta(days=grace_period_days)
        self.db.commit()
        self.db.refresh(club)

        log_club_lifecycle("deactivated", club.id, context.user_id, grace_period_days)
        return club

    def reactivate(self, context: RequestContext) -> Club:
        """Clear deactivation and the scheduled deletion.

        Raises:
            PermissionDenied: caller is neither OWNER nor super-admin
            ClubNotDeactivated: club is active
        """
        self._require_owner_or_super_admin(context)
        club = self.get_club(context.club_id)
        if club.deactivated_at is None:
            raise ClubNotDeactivated()

        club.deactivated_at = None
        club.deactivated_by = None
        club.grace_period_days = None
        club.scheduled_deletion_at = None
        self.db.commit()
        self.db.refresh(club)

        log_club_lifecycle("reactivated", club.id, context.user_id)
        return club

    def list_clubs(self) -> list[Club]:
        return (
            self.db.query(Club)
            .filter(Club.deleted_at.is_(None))
            .order_by(Club.name.asc())
            .all()
        )

    def list_pending_deletions(self) -> list[Club]:
        """Deactivated clubs ordered by scheduled deletion date."""
        return (
            self.db.query(Club)
            .filter(
                Club.deleted_at.is_(None),
                Club.deactivated_at.is_not(None),
                Club.scheduled_deletion_at.is_not(None),
            )
            .order_by(Club.scheduled_deletion_at.asc())
            .all()
        )
