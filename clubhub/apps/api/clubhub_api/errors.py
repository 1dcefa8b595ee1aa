"""Typed errors surfaced as RFC 9457 problem details.

Each subclass fixes its HTTP status, machine-readable code and title;
main.py renders any ClubHubError as application/problem+json.
"""

from typing import Optional

PROBLEM_BASE_URL = "https://api.clubhub.app/problems"


class ClubHubError(Exception):
    """Base class for errors with a fixed problem-details mapping."""

    status_code: int = 400
    code: str = "BAD_REQUEST"
    title: str = "Bad Request"
    default_detail: str = "The request could not be processed."

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)

    @property
    def problem_type(self) -> str:
        return f"{PROBLEM_BASE_URL}/{self.code.lower().replace('_', '-')}"


# ============================================================================
# Guard pipeline denials
# ============================================================================


class Unauthenticated(ClubHubError):
    status_code = 401
    code = "UNAUTHENTICATED"
    title = "Unauthorized"
    default_detail = "Authentication required."


class ClubNotFound(ClubHubError):
    """Club missing, soft-deleted, or caller has no ACTIVE membership.

    The three cases share one response so club existence cannot be inferred.
    """

    status_code = 404
    code = "NOT_FOUND"
    title = "Not Found"
    default_detail = "Club not found."


class PermissionDenied(ClubHubError):
    status_code = 403
    code = "PERMISSION_DENIED"
    title = "Forbidden"
    default_detail = "You do not have permission to perform this action."


class SuperAdminRequired(ClubHubError):
    status_code = 403
    code = "SUPER_ADMIN_REQUIRED"
    title = "Forbidden"
    default_detail = "Platform super-admin privileges required."


class FeatureNotAvailable(ClubHubError):
    status_code = 403
    code = "FEATURE_NOT_AVAILABLE"
    title = "Forbidden"
    default_detail = "This feature is not available on the club's subscription tier."


class ClubDeactivated(ClubHubError):
    status_code = 403
    code = "CLUB_DEACTIVATED"
    title = "Forbidden"
    default_detail = "This club is deactivated. Reactivate it to make changes."


class AuthorizationUnavailable(ClubHubError):
    """A gate could not read the store; the request is denied."""

    status_code = 503
    code = "AUTHZ_UNAVAILABLE"
    title = "Service Unavailable"
    default_detail = "Authorization could not be evaluated. Please retry."


# ============================================================================
# Domain rule violations
# ============================================================================


class LastSuperAdmin(ClubHubError):
    status_code = 409
    code = "LAST_SUPER_ADMIN"
    title = "Conflict"
    default_detail = "Cannot demote the last remaining super-admin."


class ResourceNotFound(ClubHubError):
    status_code = 404
    code = "NOT_FOUND"
    title = "Not Found"
    default_detail = "Resource not found."


class SelfModificationForbidden(ClubHubError):
    status_code = 403
    code = "SELF_MODIFICATION"
    title = "Forbidden"
    default_detail = "You cannot change your own membership."


class RoleNotAssignable(ClubHubError):
    status_code = 403
    code = "ROLE_NOT_ASSIGNABLE"
    title = "Forbidden"
    default_detail = "You are not allowed to assign one or more of the requested roles."


class InvalidRole(ClubHubError):
    status_code = 400
    code = "INVALID_ROLE"
    title = "Bad Request"
    default_detail = "Unknown role."


class OwnerRoleProtected(ClubHubError):
    status_code = 400
    code = "OWNER_ROLE_PROTECTED"
    title = "Bad Request"
    default_detail = "The OWNER role can only change through ownership transfer."


class LastOwner(ClubHubError):
    status_code = 409
    code = "LAST_OWNER"
    title = "Conflict"
    default_detail = "A club must keep at least one owner."


class ConfirmationMismatch(ClubHubError):
    status_code = 400
    code = "CONFIRMATION_MISMATCH"
    title = "Bad Request"
    default_detail = "The confirmation name does not match the club name."


class ClubAlreadyDeactivated(ClubHubError):
    status_code = 409
    code = "CLUB_ALREADY_DEACTIVATED"
    title = "Conflict"
    default_detail = "The club is already deactivated."


class ClubNotDeactivated(ClubHubError):
    status_code = 409
    code = "CLUB_NOT_DEACTIVATED"
    title = "Conflict"
    default_detail = "The club is not deactivated."


class EmailAlreadyRegistered(ClubHubError):
    status_code = 409
    code = "EMAIL_TAKEN"
    title = "Conflict"
    default_detail = "A user with this e-mail address already exists."


class DuplicateResource(ClubHubError):
    status_code = 409
    code = "DUPLICATE"
    title = "Conflict"
    default_detail = "A resource with the same key already exists."


class InvalidGracePeriod(ClubHubError):
    status_code = 400
    code = "INVALID_GRACE_PERIOD"
    title = "Bad Request"
    default_detail = "The grace period must be between 7 and 90 days."


# ============================================================================
# Club creation and joining
# ============================================================================


class ClubCreationDisabled(ClubHubError):
    status_code = 403
    code = "CLUB_CREATION_DISABLED"
    title = "Forbidden"
    default_detail = "Club creation is limited to platform administrators."


class InvalidSlug(ClubHubError):
    status_code = 400
    code = "INVALID_SLUG"
    title = "Bad Request"
    default_detail = "Slug must be 3-50 lowercase letters, numbers and hyphens."


class SlugTaken(ClubHubError):
    status_code = 409
    code = "SLUG_TAKEN"
    title = "Conflict"
    default_detail = "No free URL slug could be derived for this club."


class InvalidInviteCode(ClubHubError):
    status_code = 400
    code = "INVALID_INVITE_CODE"
    title = "Bad Request"
    default_detail = "Invite codes are 8 characters long."


class AlreadyMember(ClubHubError):
    status_code = 409
    code = "ALREADY_MEMBER"
    title = "Conflict"
    default_detail = "You are already a member of this club."


class PendingRequestLimit(ClubHubError):
    status_code = 409
    code = "PENDING_REQUEST_LIMIT"
    title = "Conflict"
    default_detail = "You already have 5 pending access requests."


class AccessRequestExists(ClubHubError):
    status_code = 409
    code = "ACCESS_REQUEST_PENDING"
    title = "Conflict"
    default_detail = "You already requested access to this club."


class AccessRequestClosed(ClubHubError):
    """The request was already approved, rejected, or has expired."""

    status_code = 409
    code = "ACCESS_REQUEST_CLOSED"
    title = "Conflict"
    default_detail = "This access request can no longer be changed."


class RejectionNoteRequired(ClubHubError):
    status_code = 400
    code = "REJECTION_NOTE_REQUIRED"
    title = "Bad Request"
    default_detail = "A note is required when the reason is OTHER."
