"""User registration."""

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from clubhub_api.db.models import User
from clubhub_api.errors import EmailAlreadyRegistered
from clubhub_api.observability.authz_events import log_bootstrap_failed
from clubhub_api.services.bootstrap import BootstrapService

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def register_user(
    db: Session,
    email: str,
    name: Optional[str] = None,
    super_admin_email: Optional[str] = None,
) -> User:
    """Create a user, then run the super-admin bootstrap check.

    The user row is committed before the check runs. A failing check is
    logged and never fails registration; the user can be promoted manually.

    Raises:
        EmailAlreadyRegistered: e-mail exists (case-insensitive)
    """
    normalized = normalize_email(email)
    if db.query(User.id).filter(User.email == normalized).first() is not None:
        raise EmailAlreadyRegistered()

    user = User(email=normalized, name=name)
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise EmailAlreadyRegistered()

    logger.info(
        "User registered",
        extra={"event": "user.registered", "user_id": user.id},
    )

    try:
        BootstrapService(db, super_admin_email).check_and_promote(user.id, user.email)
    except Exception as e:
        db.rollback()
        log_bootstrap_failed(user.id, e)

    db.refresh(user)
    return user
