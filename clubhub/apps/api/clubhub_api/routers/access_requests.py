"""Access requests for PUBLIC clubs.

AUTHORIZATION:
- request access, list/cancel my requests: any signed-in user
- list/approve/reject a club's requests: users:create (OWNER, ADMIN)
- approve and reject are writes, so a deactivated club refuses them
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from clubhub_api.authz.permissions import Permission
from clubhub_api.authz.pipeline import ClubAccess, RequestContext, club_access, guard
from clubhub_api.authz.requirements import AUTHENTICATED, club_endpoint
from clubhub_api.db.session import get_db
from clubhub_api.schemas import (
    AccessRequestResponse,
    ApproveAccessRequest,
    ClubAccessRequestResponse,
    ClubSummary,
    ClubUserResponse,
    CreateAccessRequest,
    MyAccessRequestResponse,
    RejectAccessRequest,
    RejectAccessResponse,
)
from clubhub_api.services.access_requests import AccessRequestService, RejectionReason
from clubhub_api.services.club_users import ClubUserService

router = APIRouter(prefix="/v1", tags=["access-requests"])

DECIDE = club_endpoint(permissions=[Permission.USERS_CREATE])


@router.post(
    "/clubs/{slug}/access-requests",
    status_code=status.HTTP_201_CREATED,
    response_model=AccessRequestResponse,
)
async def request_access(
    slug: str,
    body: CreateAccessRequest,
    context: RequestContext = Depends(guard(AUTHENTICATED)),
    db: Session = Depends(get_db),
):
    """Ask to join a public club. Private clubs answer 404."""
    return AccessRequestService(db).request_access(context.user_id, slug, body.message)


@router.get("/clubs/{slug}/access-requests", response_model=list[ClubAccessRequestResponse])
async def list_club_requests(access: ClubAccess = Depends(club_access(DECIDE))):
    """Open requests, oldest first. Expired requests are left out."""
    rows = AccessRequestService(access.db).list_club_requests(access.context.club_id)
    return [
        ClubAccessRequestResponse(
            **AccessRequestResponse.model_validate(request).model_dump(),
            user_id=user.id,
            user_email=user.email,
            user_name=user.name,
        )
        for request, user in rows
    ]


@router.post(
    "/clubs/{slug}/access-requests/{request_id}/approve",
    response_model=ClubUserResponse,
)
async def approve_request(
    request_id: str,
    body: ApproveAccessRequest,
    access: ClubAccess = Depends(club_access(DECIDE)),
):
    """Grant membership. Roles default to MEMBER and must be assignable by the caller."""
    context = access.context
    membership = AccessRequestService(access.db).approve(
        context.club_id,
        request_id,
        actor_user_id=context.user_id,
        actor_roles=context.roles,
        is_super_admin=context.is_super_admin,
        roles=body.roles,
    )
    return ClubUserService(access.db).to_response(membership)


@router.post(
    "/clubs/{slug}/access-requests/{request_id}/reject",
    response_model=RejectAccessResponse,
)
async def reject_request(
    request_id: str,
    body: RejectAccessRequest,
    access: ClubAccess = Depends(club_access(DECIDE)),
):
    request, display_reason = AccessRequestService(access.db).reject(
        access.context.club_id,
        request_id,
        actor_user_id=access.context.user_id,
        reason=RejectionReason(body.reason),
        note=body.note,
    )
    return RejectAccessResponse(
        id=request.id, status=request.status, display_reason=display_reason
    )


@router.get("/me/access-requests", response_model=list[MyAccessRequestResponse])
async def list_my_requests(
    context: RequestContext = Depends(guard(AUTHENTICATED)),
    db: Session = Depends(get_db),
):
    rows = AccessRequestService(db).list_my_requests(context.user_id)
    return [
        MyAccessRequestResponse(
            **AccessRequestResponse.model_validate(request).model_dump(),
            club=ClubSummary.model_validate(club),
        )
        for request, club in rows
    ]


@router.delete("/me/access-requests/{request_id}", status_code=status.HTTP_204_NO_CONTENT)
async def cancel_request(
    request_id: str,
    context: RequestContext = Depends(guard(AUTHENTICATED)),
    db: Session = Depends(get_db),
) -> None:
    AccessRequestService(db).cancel_request(context.user_id, request_id)
