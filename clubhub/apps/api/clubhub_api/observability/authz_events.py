"""Authorization audit events.

Usage:
    from clubhub_api.observability.authz_events import log_access_denied

    log_access_denied(code="PERMISSION_DENIED", stage="permission", user_id="u_1")
    log_super_admin_change(action="promoted", target_user_id="u_2", actor_user_id="u_1")

Every helper emits one log line with a stable `event` field so denials,
privilege changes and bootstrap outcomes can be counted from log
aggregation without a separate metrics backend.

E-mail addresses are never passed here; user ids only.
"""

import logging
from typing import Optional

logger = logging.getLogger(__name__)


def log_access_denied(
    code: str,
    stage: str,
    user_id: Optional[str] = None,
    club_slug: Optional[str] = None,
    method: Optional[str] = None,
) -> None:
    """Log a guard pipeline denial.

    Args:
        code: Machine-readable denial code (e.g. "CLUB_DEACTIVATED")
        stage: Pipeline stage that denied ("authentication", "membership", ...)
        user_id: Caller, when authenticated
        club_slug: Requested club slug, when the endpoint is club-scoped
        method: HTTP method
    """
    logger.warning(
        f"Access denied at {stage}: {code}",
        extra={
            "event": "authz.denied",
            "code": code,
            "stage": stage,
            "user_id": user_id or "anonymous",
            "club_slug": club_slug,
            "method": method,
        },
    )


def log_store_unavailable(stage: str, error: Exception) -> None:
    """Log a store failure that made a gate fail closed."""
    logger.error(
        f"Authorization store unavailable at {stage}: {type(error).__name__}",
        extra={
            "event": "authz.store_unavailable",
            "stage": stage,
            "error_type": type(error).__name__,
        },
        exc_info=error,
    )


def log_super_admin_change(
    action: str,
    target_user_id: str,
    actor_user_id: Optional[str] = None,
) -> None:
    """Log a manual super-admin promotion or demotion.

    Args:
        action: "promoted" or "demoted"
        target_user_id: User whose flag changed
        actor_user_id: Super-admin who performed the change
    """
    logger.info(
        f"Super-admin {action}: {target_user_id}",
        extra={
            "event": f"super_admin.{action}",
            "target_user_id": target_user_id,
            "actor_user_id": actor_user_id,
        },
    )


def log_bootstrap_outcome(
    outcome: str,
    user_id: str,
    reason: str,
) -> None:
    """Log the result of a bootstrap check.

    Args:
        outcome: "promoted" or "skipped"
        user_id: Newly registered user
        reason: "designated_email", "first_user", "already_claimed", ...
    """
    logger.info(
        f"Super-admin bootstrap {outcome} ({reason})",
        extra={
            "event": f"bootstrap.{outcome}",
            "user_id": user_id,
            "reason": reason,
        },
    )


def log_bootstrap_failed(user_id: str, error: Exception) -> None:
    """Log a bootstrap check that raised; registration continues."""
    logger.error(
        f"Super-admin bootstrap check failed: {type(error).__name__}",
        extra={
            "event": "bootstrap.failed",
            "user_id": user_id,
            "error_type": type(error).__name__,
        },
        exc_info=error,
    )


def log_club_lifecycle(
    action: str,
    club_id: str,
    actor_user_id: str,
    grace_period_days: Optional[int] = None,
) -> None:
    """Log a club creation, deactivation or reactivation."""
    logger.info(
        f"Club {action}: {club_id}",
        extra={
            "event": f"club.{action}",
            "club_id": club_id,
            "actor_user_id": actor_user_id,
            "grace_period_days": grace_period_days,
        },
    )


def log_membership_change(
    action: str,
    club_id: str,
    user_id: str,
    actor_user_id: Optional[str] = None,
    via: Optional[str] = None,
) -> None:
    """Log a membership being granted, reactivated or given up.

    via: how the membership came about (invite_code, access_request, ...).
    """
    logger.info(
        f"Membership {action}",
        extra={
            "event": f"membership.{action}",
            "club_id": club_id,
            "user_id": user_id,
            "actor_user_id": actor_user_id,
            "via": via,
        },
    )
