"""Platform administration endpoints.

AUTHENTICATION:
- Super-admin only (flag read fresh from the store on every request)
- POST /v1/admin/bootstrap/check only needs a valid identity. It always
  checks the caller's own account and is idempotent.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from clubhub_api.authz.pipeline import RequestContext, guard
from clubhub_api.authz.requirements import AUTHENTICATED, platform_admin_endpoint
from clubhub_api.config.env import get_super_admin_email
from clubhub_api.db.models import User
from clubhub_api.db.session import get_db
from clubhub_api.schemas import (
    AdminClubResponse,
    BootstrapCheckResponse,
    SuperAdminResponse,
    UserResponse,
)
from clubhub_api.services.bootstrap import BootstrapService
from clubhub_api.services.clubs import ClubService

router = APIRouter(prefix="/v1/admin", tags=["admin"])

SUPER_ADMIN = platform_admin_endpoint()


def get_bootstrap_service(db: Session = Depends(get_db)) -> BootstrapService:
    """BootstrapService with the configured designated e-mail."""
    return BootstrapService(db, super_admin_email=get_super_admin_email())


@router.get("/clubs", response_model=list[AdminClubResponse])
async def list_clubs(
    context: RequestContext = Depends(guard(SUPER_ADMIN)),
    db: Session = Depends(get_db),
):
    return ClubService(db).list_clubs()


@router.get("/clubs/pending-deletion", response_model=list[AdminClubResponse])
async def list_pending_deletions(
    context: RequestContext = Depends(guard(SUPER_ADMIN)),
    db: Session = Depends(get_db),
):
    """Deactivated clubs ordered by scheduled deletion date."""
    return ClubService(db).list_pending_deletions()


@router.get("/super-admins", response_model=list[SuperAdminResponse])
async def list_super_admins(
    context: RequestContext = Depends(guard(SUPER_ADMIN)),
    db: Session = Depends(get_db),
):
    return (
        db.query(User)
        .filter(User.is_super_admin.is_(True))
        .order_by(User.created_at.asc())
        .all()
    )


@router.post("/users/{user_id}/super-admin", response_model=UserResponse)
async def promote_super_admin(
    user_id: str,
    context: RequestContext = Depends(guard(SUPER_ADMIN)),
    service: BootstrapService = Depends(get_bootstrap_service),
):
    return service.promote(user_id, actor_user_id=context.user_id)


@router.delete("/users/{user_id}/super-admin", response_model=UserResponse)
async def demote_super_admin(
    user_id: str,
    context: RequestContext = Depends(guard(SUPER_ADMIN)),
    service: BootstrapService = Depends(get_bootstrap_service),
):
    """Demote a super-admin. Fails with LAST_SUPER_ADMIN for the last one."""
    return service.demote(user_id, actor_user_id=context.user_id)


@router.post("/bootstrap/check", response_model=BootstrapCheckResponse)
async def bootstrap_check(
    context: RequestContext = Depends(guard(AUTHENTICATED)),
    db: Session = Depends(get_db),
    service: BootstrapService = Depends(get_bootstrap_service),
) -> BootstrapCheckResponse:
    """Run the super-admin bootstrap check for the caller.

    The e-mail comes from the stored user, never from the token or body.
    """
    user = db.get(User, context.user_id)
    return BootstrapCheckResponse(promoted=service.check_and_promote(user.id, user.email))
