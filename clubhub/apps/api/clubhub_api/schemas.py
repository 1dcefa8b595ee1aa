"""Pydantic schemas for API requests/responses."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


# ============================================================================
# RFC 9457 Problem Details
# ============================================================================


class ProblemDetail(BaseModel):
    """RFC 9457 Problem Details for HTTP API errors.

    `code` is an extension member carrying the machine-readable error code
    (e.g. "CLUB_DEACTIVATED") so clients can branch without parsing `type`.
    """

    type: str = Field(..., description="URI reference identifying the problem type")
    title: str = Field(..., description="Short, human-readable summary")
    status: int = Field(..., description="HTTP status code")
    detail: str | dict[str, Any] = Field(..., description="Human-readable explanation")
    instance: Optional[str] = Field(None, description="Opaque occurrence identifier")
    code: Optional[str] = Field(None, description="Machine-readable error code")


# ============================================================================
# Users / registration
# ============================================================================


class RegisterUserRequest(BaseModel):
    """Request body for POST /v1/users."""

    email: EmailStr
    name: Optional[str] = Field(None, max_length=200)


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    name: Optional[str] = None
    is_super_admin: bool
    created_at: datetime


class BootstrapCheckResponse(BaseModel):
    promoted: bool


# ============================================================================
# Club users
# ============================================================================


class ClubUserResponse(BaseModel):
    id: str
    user_id: str
    email: str
    name: Optional[str] = None
    roles: list[str]
    status: str
    joined_at: datetime


class UpdateRolesRequest(BaseModel):
    """Request body for PATCH /v1/clubs/{slug}/users/{club_user_id}/roles."""

    roles: list[str] = Field(..., min_length=1)


class TransferOwnershipRequest(BaseModel):
    """Request body for POST /v1/clubs/{slug}/transfer-ownership."""

    target_club_user_id: str


# ============================================================================
# Clubs
# ============================================================================

_VISIBILITY_PATTERN = r"^(PUBLIC|PRIVATE)$"


class CreateClubRequest(BaseModel):
    """Request body for POST /v1/clubs. The slug is derived from the name when omitted."""

    name: str = Field(..., min_length=1, max_length=200)
    slug: Optional[str] = Field(None, max_length=50)
    description: Optional[str] = Field(None, max_length=2000)
    visibility: Optional[str] = Field(None, pattern=_VISIBILITY_PATTERN)
    tier_id: Optional[str] = None


class ClubSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    slug: str


class MyClubResponse(BaseModel):
    id: str
    name: str
    slug: str
    description: Optional[str] = None
    visibility: str
    roles: list[str]
    joined_at: datetime
    deactivated_at: Optional[datetime] = None


class MyClubsMeta(BaseModel):
    can_create_club: bool


class MyClubsResponse(BaseModel):
    """Response for GET /v1/clubs."""

    clubs: list[MyClubResponse]
    meta: MyClubsMeta


class InviteCodeResponse(BaseModel):
    invite_code: str


class ClubSettingsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    slug: str
    description: Optional[str] = None
    contact_email: Optional[str] = None
    visibility: str
    invite_code: Optional[str] = None
    tier_id: Optional[str] = None
    deactivated_at: Optional[datetime] = None
    scheduled_deletion_at: Optional[datetime] = None


class UpdateClubSettingsRequest(BaseModel):
    """Request body for PATCH /v1/clubs/{slug}/settings. Slug is immutable."""

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    contact_email: Optional[EmailStr] = None
    visibility: Optional[str] = Field(None, pattern=_VISIBILITY_PATTERN)


class DeactivateClubRequest(BaseModel):
    """Request body for POST /v1/clubs/{slug}/deactivate."""

    grace_period_days: int = Field(..., ge=7, le=90)
    confirmation_name: str = Field(..., min_length=1)


class ClubLifecycleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    slug: str
    deactivated_at: Optional[datetime] = None
    deactivated_by: Optional[str] = None
    grace_period_days: Optional[int] = None
    scheduled_deletion_at: Optional[datetime] = None


class FeatureMap(BaseModel):
    sepa: bool
    reports: bool
    bank_import: bool


class MyPermissionsResponse(BaseModel):
    """Response for GET /v1/clubs/{slug}/my-permissions."""

    roles: list[str]
    permissions: list[str]
    features: FeatureMap
    is_super_admin: bool


# ============================================================================
# Joining: invite codes and access requests
# ============================================================================


class JoinClubRequest(BaseModel):
    """Request body for POST /v1/clubs/join. Spaces and hyphens are ignored."""

    code: str = Field(..., min_length=1, max_length=32)


class JoinClubResponse(BaseModel):
    club: ClubSummary
    outcome: str = Field(..., description="joined, reactivated or already_member")
    roles: list[str]


class CreateAccessRequest(BaseModel):
    message: Optional[str] = Field(None, max_length=1000)


class AccessRequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    club_id: str
    status: str
    message: Optional[str] = None
    rejection_reason: Optional[str] = None
    expires_at: datetime
    created_at: datetime
    processed_at: Optional[datetime] = None


class MyAccessRequestResponse(AccessRequestResponse):
    club: ClubSummary


class ClubAccessRequestResponse(AccessRequestResponse):
    user_id: str
    user_email: str
    user_name: Optional[str] = None


class ApproveAccessRequest(BaseModel):
    roles: list[str] = Field(default_factory=lambda: ["MEMBER"], min_length=1)


class RejectAccessRequest(BaseModel):
    reason: str = Field(
        ..., pattern=r"^(BOARD_ONLY|UNIDENTIFIED|WRONG_CLUB|CONTACT_DIRECTLY|OTHER)$"
    )
    note: Optional[str] = Field(None, max_length=1000)


class RejectAccessResponse(BaseModel):
    id: str
    status: str
    display_reason: str


# ============================================================================
# Members (tenant-scoped)
# ============================================================================


class MemberCreateRequest(BaseModel):
    member_number: Optional[str] = None
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    email: Optional[EmailStr] = None
    status: str = Field("ACTIVE", pattern=r"^(ACTIVE|INACTIVE|PENDING|LEFT)$")
    sepa_mandate_reference: Optional[str] = None


class MemberUpdateRequest(BaseModel):
    member_number: Optional[str] = None
    first_name: Optional[str] = Field(None, min_length=1)
    last_name: Optional[str] = Field(None, min_length=1)
    email: Optional[EmailStr] = None
    status: Optional[str] = Field(None, pattern=r"^(ACTIVE|INACTIVE|PENDING|LEFT)$")
    sepa_mandate_reference: Optional[str] = None


class MemberResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    club_id: str
    member_number: Optional[str] = None
    first_name: str
    last_name: str
    email: Optional[str] = None
    status: str
    anonymized_at: Optional[datetime] = None


class SepaMandateResponse(BaseModel):
    member_id: str
    member_name: str
    mandate_reference: str


# ============================================================================
# Ledger accounts (tenant-scoped)
# ============================================================================


class LedgerAccountCreateRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=20)
    name: str = Field(..., min_length=1)
    account_type: str = Field(..., pattern=r"^(ASSET|LIABILITY|INCOME|EXPENSE)$")
    balance_cents: int = 0


class LedgerAccountUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    is_active: Optional[bool] = None
    balance_cents: Optional[int] = None


class LedgerAccountResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    club_id: str
    code: str
    name: str
    account_type: str
    balance_cents: int
    is_active: bool


class LedgerReportSummary(BaseModel):
    """Totals per account type, in cents."""

    totals_cents: dict[str, int]
    account_count: int


# ============================================================================
# Platform administration
# ============================================================================


class AdminClubResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    slug: str
    tier_id: Optional[str] = None
    deactivated_at: Optional[datetime] = None
    scheduled_deletion_at: Optional[datetime] = None


class SuperAdminResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    name: Optional[str] = None
