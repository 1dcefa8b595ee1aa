"""Registration and current-user endpoints."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from clubhub_api.authz.pipeline import RequestContext, guard
from clubhub_api.authz.requirements import AUTHENTICATED
from clubhub_api.config.env import get_super_admin_email
from clubhub_api.db.models import User
from clubhub_api.db.session import get_db
from clubhub_api.schemas import RegisterUserRequest, UserResponse
from clubhub_api.services.users import register_user

router = APIRouter(prefix="/v1", tags=["users"])


@router.post("/users", status_code=status.HTTP_201_CREATED, response_model=UserResponse)
async def register(body: RegisterUserRequest, db: Session = Depends(get_db)):
    """Create a user and run the super-admin bootstrap check.

    A failing bootstrap check never fails registration.
    """
    return register_user(
        db,
        email=body.email,
        name=body.name,
        super_admin_email=get_super_admin_email(),
    )


@router.get("/me", response_model=UserResponse)
async def me(
    context: RequestContext = Depends(guard(AUTHENTICATED)),
    db: Session = Depends(get_db),
):
    return db.get(User, context.user_id)
