"""Club creation, membership, settings, permissions and lifecycle endpoints.

AUTHORIZATION:
- list my clubs / create / join with code: any signed-in user
  (creation also needs self-service enabled, or the super-admin flag)
- leave: any active member; the last OWNER cannot leave
- invite-code: club:settings (OWNER, ADMIN)
- settings: club:settings (OWNER, ADMIN)
- my-permissions: any active member
- deactivate / reactivate: OWNER or super-admin
- reactivate is exempt from the deactivation gate
- transfer-ownership: club:transfer (OWNER)
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from clubhub_api.authz.permissions import ClubRole, Permission
from clubhub_api.authz.pipeline import ClubAccess, RequestContext, club_access, guard
from clubhub_api.authz.requirements import AUTHENTICATED, club_endpoint
from clubhub_api.config.env import get_default_tier_id, get_self_service_clubs_enabled
from clubhub_api.db.session import get_db
from clubhub_api.schemas import (
    ClubLifecycleResponse,
    ClubSettingsResponse,
    ClubSummary,
    ClubUserResponse,
    CreateClubRequest,
    DeactivateClubRequest,
    InviteCodeResponse,
    JoinClubRequest,
    JoinClubResponse,
    MyClubResponse,
    MyClubsMeta,
    MyClubsResponse,
    MyPermissionsResponse,
    TransferOwnershipRequest,
    UpdateClubSettingsRequest,
)
from clubhub_api.services.access_requests import AccessRequestService
from clubhub_api.services.club_users import ClubUserService
from clubhub_api.services.clubs import ClubService

collection_router = APIRouter(prefix="/v1/clubs", tags=["clubs"])
router = APIRouter(prefix="/v1/clubs/{slug}", tags=["clubs"])

SETTINGS = club_endpoint(permissions=[Permission.CLUB_SETTINGS])
ANY_MEMBER = club_endpoint()
OWNER_ONLY = club_endpoint(roles=[ClubRole.OWNER])
OWNER_ONLY_EXEMPT = club_endpoint(roles=[ClubRole.OWNER], deactivation_exempt=True)
TRANSFER = club_endpoint(permissions=[Permission.CLUB_TRANSFER])


@router.get("/settings", response_model=ClubSettingsResponse)
async def get_settings(access: ClubAccess = Depends(club_access(SETTINGS))):
    """Get club settings. Readable while the club is deactivated."""
    return ClubService(access.db).get_settings(access.context.club_id)


@router.patch("/settings", response_model=ClubSettingsResponse)
async def update_settings(
    body: UpdateClubSettingsRequest,
    access: ClubAccess = Depends(club_access(SETTINGS)),
):
    return ClubService(access.db).update_settings(
        access.context.club_id, body.model_dump(exclude_unset=True)
    )


@router.get("/my-permissions", response_model=MyPermissionsResponse)
async def my_permissions(access: ClubAccess = Depends(club_access(ANY_MEMBER))):
    """Roles, derived permissions and tier features of the caller."""
    return ClubService(access.db).my_permissions(access.context)


@router.post("/deactivate", response_model=ClubLifecycleResponse)
async def deactivate_club(
    body: DeactivateClubRequest,
    access: ClubAccess = Depends(club_access(OWNER_ONLY)),
):
    """Deactivate the club and schedule deletion after the grace period.

    Requires the exact club name as confirmation.
    """
    return ClubService(access.db).deactivate(
        access.context,
        grace_period_days=body.grace_period_days,
        confirmation_name=body.confirmation_name,
    )


@router.post("/reactivate", response_model=ClubLifecycleResponse)
async def reactivate_club(access: ClubAccess = Depends(club_access(OWNER_ONLY_EXEMPT))):
    return ClubService(access.db).reactivate(access.context)


@router.post("/transfer-ownership", response_model=ClubUserResponse)
async def transfer_ownership(
    body: TransferOwnershipRequest,
    access: ClubAccess = Depends(club_access(TRANSFER)),
):
    """Make another active member the OWNER. The caller keeps ADMIN."""
    context: RequestContext = access.context
    service = ClubUserService(access.db)
    target = service.transfer_ownership(
        context.club_id,
        actor_user_id=context.user_id,
        actor_roles=context.roles,
        target_club_user_id=body.target_club_user_id,
    )
    return service.to_response(target)


@router.post("/leave", status_code=status.HTTP_204_NO_CONTENT)
async def leave_club(access: ClubAccess = Depends(club_access(ANY_MEMBER))) -> None:
    """Give up your own membership. The last OWNER must transfer ownership first."""
    ClubUserService(access.db).leave_club(access.context.club_id, access.context.user_id)


@router.post("/invite-code", response_model=InviteCodeResponse)
async def regenerate_invite_code(access: ClubAccess = Depends(club_access(SETTINGS))):
    """Issue a new invite code; the previous one stops working."""
    code = ClubService(access.db).regenerate_invite_code(access.context.club_id)
    return InviteCodeResponse(invite_code=code)


# ============================================================================
# Club collection (no club context)
# ============================================================================


@collection_router.get("", response_model=MyClubsResponse)
async def list_my_clubs(
    context: RequestContext = Depends(guard(AUTHENTICATED)),
    db: Session = Depends(get_db),
):
    """Clubs the caller is an active member of, by name."""
    rows = ClubService(db).list_my_clubs(context.user_id)
    return MyClubsResponse(
        clubs=[
            MyClubResponse(
                id=club.id,
                name=club.name,
                slug=club.slug,
                description=club.description,
                visibility=club.visibility,
                roles=list(membership.roles or []),
                joined_at=membership.joined_at,
                deactivated_at=club.deactivated_at,
            )
            for club, membership in rows
        ],
        meta=MyClubsMeta(
            can_create_club=context.is_super_admin or get_self_service_clubs_enabled()
        ),
    )


@collection_router.post("", status_code=status.HTTP_201_CREATED, response_model=ClubSettingsResponse)
async def create_club(
    body: CreateClubRequest,
    context: RequestContext = Depends(guard(AUTHENTICATED)),
    db: Session = Depends(get_db),
):
    """Create a club; the caller becomes its OWNER.

    A taken slug gets a numeric suffix, so check the returned slug.
    """
    return ClubService(db).create_club(
        actor_user_id=context.user_id,
        is_super_admin=context.is_super_admin,
        name=body.name,
        slug=body.slug,
        description=body.description,
        visibility=body.visibility,
        tier_id=body.tier_id,
        self_service_enabled=get_self_service_clubs_enabled(),
        default_tier_id=get_default_tier_id(),
    )


@collection_router.post("/join", response_model=JoinClubResponse)
async def join_with_code(
    body: JoinClubRequest,
    context: RequestContext = Depends(guard(AUTHENTICATED)),
    db: Session = Depends(get_db),
):
    """Join a private club with its invite code, as MEMBER."""
    club, membership, outcome = AccessRequestService(db).join_with_code(
        context.user_id, body.code
    )
    return JoinClubResponse(
        club=ClubSummary.model_validate(club),
        outcome=outcome.value,
        roles=list(membership.roles or []),
    )
