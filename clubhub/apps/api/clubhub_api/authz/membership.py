"""Membership context resolution.

Runs on every club-scoped request, so the lookup is a single joined query.
"""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from clubhub_api.authz.permissions import ClubRole, parse_roles
from clubhub_api.db.models import Club, ClubUser, ClubUserStatus


@dataclass(frozen=True)
class ClubMembership:
    """A user's ACTIVE membership in one club."""

    club_id: str
    club_slug: str
    club_user_id: str
    roles: frozenset[ClubRole]
    deactivated: bool


class MembershipContextResolver:
    def __init__(self, db: Session):
        self.db = db

    def resolve(self, user_id: str, club_slug: str) -> Optional[ClubMembership]:
        """Resolve the caller's membership in the club identified by slug.

        Returns None when the club does not exist, is soft-deleted, or the
        user has no ACTIVE membership in it. The caller cannot tell these
        cases apart.
        """
        if not user_id or not club_slug:
            return None

        row = (
            self.db.query(
                Club.id,
                Club.slug,
                Club.deactivated_at,
                ClubUser.id,
                ClubUser.roles,
            )
            .join(ClubUser, ClubUser.club_id == Club.id)
            .filter(
                Club.slug == club_slug,
                Club.deleted_at.is_(None),
                ClubUser.user_id == user_id,
                ClubUser.status == ClubUserStatus.ACTIVE.value,
            )
            .first()
        )
        if row is None:
            return None

        club_id, slug, deactivated_at, club_user_id, roles = row
        return ClubMembership(
            club_id=club_id,
            club_slug=slug,
            club_user_id=club_user_id,
            roles=parse_roles(roles),
            deactivated=deactivated_at is not None,
        )
