"""Super-admin bootstrap and manual promotion/demotion.

Bootstrap rules:
1. A designated e-mail is configured: the user with that e-mail is promoted
   whenever the check runs for them, regardless of existing super-admins.
   Nobody else is auto-promoted.
2. No designated e-mail: the very first user is promoted, once. The claim
   is a single row in super_admin_bootstrap, so two concurrent first
   registrations cannot both win.

Manual promotion can add super-admins at any time. Demotion never leaves
the platform with zero super-admins.
"""

from typing import Optional

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, aliased

from clubhub_api.db.models import SuperAdminBootstrap, User
from clubhub_api.errors import LastSuperAdmin, ResourceNotFound
from clubhub_api.observability.authz_events import (
    log_bootstrap_outcome,
    log_super_admin_change,
)

FIRST_USER_SLOT = "first-user"


class BootstrapService:
    def __init__(self, db: Session, super_admin_email: Optional[str] = None):
        self.db = db
        self.super_admin_email = (super_admin_email or "").strip().lower() or None

    def count_super_admins(self) -> int:
        return (
            self.db.query(func.count(User.id)).filter(User.is_super_admin.is_(True)).scalar()
            or 0
        )

    def has_super_admin(self) -> bool:
        return self.count_super_admins() > 0

    def _is_first_user(self, user: User) -> bool:
        earlier = (
            self.db.query(User.id)
            .filter(
                User.id != user.id,
                or_(
                    User.created_at < user.created_at,
                    and_(User.created_at == user.created_at, User.id < user.id),
                ),
            )
            .first()
        )
        return earlier is None

    def _claim_first_user_slot(self, user_id: str) -> bool:
        """Insert the single bootstrap claim row; False if already taken."""
        try:
            with self.db.begin_nested():
                self.db.add(SuperAdminBootstrap(slot=FIRST_USER_SLOT, user_id=user_id))
        except IntegrityError:
            return False
        return True

    def check_and_promote(self, user_id: str, email: str) -> bool:
        """Run the bootstrap rules for a newly created user.

        Idempotent: running it again for the same user changes nothing
        beyond re-setting an already-true flag.

        Args:
            user_id: ID of the newly created user
            email: E-mail of the newly created user

        Returns:
            True if the user is a super-admin as a result of this check
        """
        if self.super_admin_email:
            if (email or "").strip().lower() == self.super_admin_email:
                self._set_flag(user_id, True)
                self.db.commit()
                log_bootstrap_outcome("promoted", user_id, "designated_email")
                return True
            log_bootstrap_outcome("skipped", user_id, "not_designated_email")
            return False

        if self.has_super_admin():
            log_bootstrap_outcome("skipped", user_id, "super_admin_exists")
            return False

        user = self.db.get(User, user_id)
        if user is None:
            log_bootstrap_outcome("skipped", user_id, "unknown_user")
            return False

        if not self._is_first_user(user):
            log_bootstrap_outcome("skipped", user_id, "not_first_user")
            return False

        if not self._claim_first_user_slot(user_id):
            log_bootstrap_outcome("skipped", user_id, "already_claimed")
            return False

        user.is_super_admin = True
        self.db.commit()
        log_bootstrap_outcome("promoted", user_id, "first_user")
        return True

    def _set_flag(self, user_id: str, value: bool) -> User:
        user = self.db.get(User, user_id)
        if user is None:
            raise ResourceNotFound("User not found.")
        user.is_super_admin = value
        return user

    def promote(self, user_id: str, actor_user_id: Optional[str] = None) -> User:
        """Manual promotion. Not capped."""
        user = self._set_flag(user_id, True)
        self.db.commit()
        log_super_admin_change("promoted", user_id, actor_user_id)
        return user

    def demote(self, user_id: str, actor_user_id: Optional[str] = None) -> User:
        """Demote a super-admin.

        Raises:
            ResourceNotFound: user does not exist
            LastSuperAdmin: user is the only remaining super-admin
        """
        user = self.db.get(User, user_id)
        if user is None:
            raise ResourceNotFound("User not found.")
        if not user.is_super_admin:
            return user

        # Serialise concurrent demotions on PostgreSQL; no-op on SQLite
        self.db.execute(
            select(User.id).where(User.is_super_admin.is_(True)).with_for_update()
        ).all()

        admins = aliased(User)
        remaining = (
            select(func.count(admins.id))
            .where(admins.is_super_admin.is_(True))
            .scalar_subquery()
        )
        result = self.db.execute(
            update(User)
            .where(User.id == user_id, User.is_super_admin.is_(True), remaining > 1)
            .values(is_super_admin=False)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            self.db.rollback()
            raise LastSuperAdmin()

        self.db.commit()
        self.db.refresh(user)
        log_super_admin_change("demoted", user_id, actor_user_id)
        return user
