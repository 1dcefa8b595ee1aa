"""Guard pipeline: one ordered authorization decision per request.

Stages, each either passing or terminating the request:
1. authentication   -> UNAUTHENTICATED (401)
2. super-admin      -> SUPER_ADMIN_REQUIRED (403); flag read fresh from the store
3. membership       -> NOT_FOUND (404, ambiguous)
4. role/permission  -> PERMISSION_DENIED (403)
5. tier features    -> FEATURE_NOT_AVAILABLE (403)
6. deactivation     -> CLUB_DEACTIVATED (403), write methods only

A fresh super-admin passes stages 4 and 5 but never skips 3 or 6.
Any store error inside a stage denies with AUTHZ_UNAVAILABLE (503);
nothing is ever treated as an implicit pass.

Usage in a router:
    @router.get("/v1/clubs/{slug}/members")
    def list_members(access: ClubAccess = Depends(club_access(club_endpoint(["member:read"])))):
        return access.store.find_many(Member)
"""

from dataclasses import dataclass
from typing import Any, Callable, NoReturn, Optional

from fastapi import Depends, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clubhub_api.auth.identity import AuthenticatedUser, get_optional_identity
from clubhub_api.authz.deactivation import DeactivationGate, is_write_method
from clubhub_api.authz.membership import MembershipContextResolver
from clubhub_api.authz.permissions import ClubRole, has_any_permission, has_any_role
from clubhub_api.authz.requirements import EndpointRequirements
from clubhub_api.authz.tier import TierFeatureGate
from clubhub_api.context import tenant_id_var
from clubhub_api.db.models import User
from clubhub_api.db.session import get_db
from clubhub_api.db.tenant_scope import TenantScopedStore
from clubhub_api.errors import (
    AuthorizationUnavailable,
    ClubDeactivated,
    ClubHubError,
    ClubNotFound,
    FeatureNotAvailable,
    PermissionDenied,
    SuperAdminRequired,
    Unauthenticated,
)
from clubhub_api.observability.authz_events import log_access_denied, log_store_unavailable

CLUB_SLUG_HEADER = "X-Club-Slug"


@dataclass(frozen=True)
class RequestContext:
    """Authorization outcome handed to the handler. Lives for one request."""

    user_id: str
    email: str
    is_super_admin: bool
    club_id: Optional[str] = None
    club_slug: Optional[str] = None
    club_user_id: Optional[str] = None
    roles: frozenset[ClubRole] = frozenset()
    deactivated: bool = False


class GuardPipeline:
    def __init__(self, db: Session):
        self.db = db
        self.membership = MembershipContextResolver(db)
        self.tiers = TierFeatureGate(db)
        self.deactivation = DeactivationGate(db)

    def _run(self, stage: str, fn: Callable[..., Any], *args: Any) -> Any:
        try:
            return fn(*args)
        except SQLAlchemyError as e:
            log_store_unavailable(stage, e)
            raise AuthorizationUnavailable() from e

    def _deny(
        self,
        error: ClubHubError,
        stage: str,
        user_id: Optional[str],
        club_slug: Optional[str],
        method: str,
    ) -> NoReturn:
        log_access_denied(
            code=error.code,
            stage=stage,
            user_id=user_id,
            club_slug=club_slug,
            method=method,
        )
        raise error

    def _load_super_admin_flag(self, user_id: str) -> Optional[bool]:
        """Fresh read; None when the identity has no user record."""
        return self.db.query(User.is_super_admin).filter(User.id == user_id).scalar()

    def authorize(
        self,
        identity: Optional[AuthenticatedUser],
        requirements: EndpointRequirements,
        club_slug: Optional[str],
        method: str,
    ) -> RequestContext:
        """Run every stage in order and return the request context.

        Raises:
            ClubHubError subclass for the first stage that denies
        """
        # 1. Authentication
        if identity is None:
            self._deny(Unauthenticated(), "authentication", None, club_slug, method)

        user_id = identity.user_id

        # 2. Super-admin flag, never taken from the token
        flag = self._run("super_admin", self._load_super_admin_flag, user_id)
        if flag is None:
            self._deny(
                Unauthenticated("Unknown user."), "authentication", user_id, club_slug, method
            )
        is_super_admin = bool(flag)

        if requirements.super_admin_only and not is_super_admin:
            self._deny(SuperAdminRequired(), "super_admin", user_id, club_slug, method)

        if not requirements.requires_club:
            return RequestContext(
                user_id=user_id,
                email=identity.email,
                is_super_admin=is_super_admin,
            )

        # 3. Membership
        membership = None
        if club_slug:
            membership = self._run("membership", self.membership.resolve, user_id, club_slug)
        if membership is None:
            self._deny(ClubNotFound(), "membership", user_id, club_slug, method)

        # 4. Roles / permissions
        if not is_super_admin:
            if requirements.roles and not has_any_role(membership.roles, requirements.roles):
                self._deny(PermissionDenied(), "role", user_id, club_slug, method)
            if requirements.permissions and not has_any_permission(
                membership.roles, requirements.permissions
            ):
                self._deny(PermissionDenied(), "permission", user_id, club_slug, method)

        # 5. Tier features (AND)
        if requirements.features and not is_super_admin:
            for feature in requirements.features:
                enabled = self._run(
                    "tier", self.tiers.is_feature_enabled, membership.club_id, feature
                )
                if not enabled:
                    self._deny(
                        FeatureNotAvailable(
                            f"The '{feature.value}' feature is not available on this club's tier."
                        ),
                        "tier",
                        user_id,
                        club_slug,
                        method,
                    )

        # 6. Deactivation
        allowed = self._run(
            "deactivation",
            self.deactivation.may_mutate,
            membership.club_id,
            is_write_method(method),
            requirements.deactivation_exempt,
        )
        if not allowed:
            self._deny(ClubDeactivated(), "deactivation", user_id, club_slug, method)

        return RequestContext(
            user_id=user_id,
            email=identity.email,
            is_super_admin=is_super_admin,
            club_id=membership.club_id,
            club_slug=membership.club_slug,
            club_user_id=membership.club_user_id,
            roles=membership.roles,
            deactivated=membership.deactivated,
        )


def _club_slug_from_request(request: Request) -> Optional[str]:
    return request.path_params.get("slug") or request.headers.get(CLUB_SLUG_HEADER)


def guard(requirements: EndpointRequirements) -> Callable[..., RequestContext]:
    """FastAPI dependency factory running the pipeline for one endpoint."""

    async def dependency(
        request: Request,
        identity: Optional[AuthenticatedUser] = Depends(get_optional_identity),
        db: Session = Depends(get_db),
    ) -> RequestContext:
        context = GuardPipeline(db).authorize(
            identity,
            requirements,
            _club_slug_from_request(request),
            request.method,
        )
        request.state.authz = context
        if context.club_id:
            tenant_id_var.set(context.club_id)
        return context

    return dependency


@dataclass(frozen=True)
class ClubAccess:
    """Context plus a data-access handle bound to context.club_id."""

    context: RequestContext
    store: TenantScopedStore
    db: Session


def club_access(requirements: EndpointRequirements) -> Callable[..., ClubAccess]:
    """Like guard(), but also yields the tenant-scoped store."""
    if not requirements.requires_club:
        raise ValueError("club_access() requires a club-scoped endpoint")

    guard_dependency = guard(requirements)

    async def dependency(
        context: RequestContext = Depends(guard_dependency),
        db: Session = Depends(get_db),
    ) -> ClubAccess:
        return ClubAccess(
            context=context,
            store=TenantScopedStore(db, context.club_id),
            db=db,
        )

    return dependency
