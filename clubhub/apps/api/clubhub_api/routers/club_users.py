"""Club user management endpoints (users:* permissions)."""

from fastapi import APIRouter, Depends, status

from clubhub_api.authz.permissions import Permission
from clubhub_api.authz.pipeline import ClubAccess, club_access
from clubhub_api.authz.requirements import club_endpoint
from clubhub_api.schemas import ClubUserResponse, UpdateRolesRequest
from clubhub_api.services.club_users import ClubUserService

router = APIRouter(prefix="/v1/clubs/{slug}/users", tags=["club-users"])


@router.get("", response_model=list[ClubUserResponse])
async def list_club_users(
    access: ClubAccess = Depends(club_access(club_endpoint(permissions=[Permission.USERS_READ]))),
):
    service = ClubUserService(access.db)
    return [
        service.to_response(club_user, user)
        for club_user, user in service.list_club_users(access.context.club_id)
    ]


@router.patch("/{club_user_id}/roles", response_model=ClubUserResponse)
async def update_roles(
    club_user_id: str,
    body: UpdateRolesRequest,
    access: ClubAccess = Depends(club_access(club_endpoint(permissions=[Permission.USERS_UPDATE]))),
):
    """Replace a member's roles.

    OWNER may assign ADMIN, TREASURER, SECRETARY, MEMBER.
    ADMIN may assign TREASURER, SECRETARY, MEMBER.
    OWNER itself only moves through transfer-ownership.
    """
    context = access.context
    service = ClubUserService(access.db)
    club_user = service.update_roles(
        context.club_id,
        club_user_id,
        actor_user_id=context.user_id,
        actor_roles=context.roles,
        roles=body.roles,
    )
    return service.to_response(club_user)


@router.delete("/{club_user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_club_user(
    club_user_id: str,
    access: ClubAccess = Depends(club_access(club_endpoint(permissions=[Permission.USERS_DELETE]))),
) -> None:
    ClubUserService(access.db).remove_club_user(
        access.context.club_id, club_user_id, actor_user_id=access.context.user_id
    )
