"""SQLAlchemy ORM Models for ClubHub."""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import (
    BIGINT,
    BOOLEAN,
    INTEGER,
    JSON,
    TEXT,
    TIMESTAMP,
    ForeignKey,
    Index,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class ClubUserStatus(str, Enum):
    """Lifecycle of a user's membership in a club."""

    ACTIVE = "ACTIVE"
    PENDING = "PENDING"
    REMOVED = "REMOVED"


class ClubVisibility(str, Enum):
    """PUBLIC clubs accept access requests; PRIVATE clubs are joined by invite code."""

    PUBLIC = "PUBLIC"
    PRIVATE = "PRIVATE"


class AccessRequestStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class Tier(Base):
    """Subscription tier with boolean feature flags.

    Read-only from the authorization core's perspective.
    """

    __tablename__ = "tiers"

    id: Mapped[str] = mapped_column(TEXT, primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(TEXT, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)

    # Limits (NULL = unlimited)
    users_limit: Mapped[Optional[int]] = mapped_column(INTEGER, nullable=True)
    members_limit: Mapped[Optional[int]] = mapped_column(INTEGER, nullable=True)

    # Feature flags
    sepa_enabled: Mapped[bool] = mapped_column(BOOLEAN, nullable=False, default=True)
    reports_enabled: Mapped[bool] = mapped_column(BOOLEAN, nullable=False, default=True)
    bank_import_enabled: Mapped[bool] = mapped_column(BOOLEAN, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )


class Club(Base):
    """Club model - the tenant isolation boundary.

    A club with non-null deactivated_at is "deactivated": writes are blocked
    except for allow-listed operations until it is reactivated or deleted.
    """

    __tablename__ = "clubs"

    id: Mapped[str] = mapped_column(TEXT, primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(TEXT, nullable=False)
    # URL-safe, immutable after creation
    slug: Mapped[str] = mapped_column(TEXT, nullable=False, unique=True)
    description: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    contact_email: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)

    visibility: Mapped[str] = mapped_column(
        TEXT, nullable=False, default=ClubVisibility.PRIVATE.value
    )
    # 8 characters, stored normalised (upper-case, no separators)
    invite_code: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)

    tier_id: Mapped[Optional[str]] = mapped_column(
        TEXT, ForeignKey("tiers.id"), nullable=True
    )

    # Deactivation (soft, reversible) + scheduled deletion
    deactivated_at: Mapped[Optional[datetime]] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )
    deactivated_by: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    grace_period_days: Mapped[Optional[int]] = mapped_column(INTEGER, nullable=True)
    scheduled_deletion_at: Mapped[Optional[datetime]] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )

    # Soft delete
    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    __table_args__ = (
        Index("idx_clubs_deactivated", "deactivated_at"),
        Index("uq_clubs_invite_code", "invite_code", unique=True),
    )


class User(Base):
    """Platform-wide identity.

    email is stored lower-cased so uniqueness is case-insensitive.
    is_super_admin is only mutated by bootstrap or explicit promotion/demotion.
    """

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(TEXT, primary_key=True, default=_new_id)
    email: Mapped[str] = mapped_column(TEXT, nullable=False, unique=True)
    name: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    is_super_admin: Mapped[bool] = mapped_column(BOOLEAN, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    __table_args__ = (Index("idx_users_super_admin", "is_super_admin"),)


class ClubUser(Base):
    """Membership - binds a User to a Club with a non-empty set of roles.

    At most one ACTIVE membership per (user, club), enforced by a partial
    unique index.
    """

    __tablename__ = "club_users"

    id: Mapped[str] = mapped_column(TEXT, primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(TEXT, ForeignKey("users.id"), nullable=False)
    club_id: Mapped[str] = mapped_column(TEXT, ForeignKey("clubs.id"), nullable=False)

    # List of ClubRole values, e.g. ["TREASURER", "MEMBER"]
    roles: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    status: Mapped[str] = mapped_column(
        TEXT, nullable=False, default=ClubUserStatus.ACTIVE.value
    )

    invited_by_id: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    joined_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=_utcnow
    )
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    __table_args__ = (
        Index("idx_club_users_club_status", "club_id", "status"),
        Index(
            "uq_club_users_active_membership",
            "user_id",
            "club_id",
            unique=True,
            postgresql_where=text("status = 'ACTIVE'"),
            sqlite_where=text("status = 'ACTIVE'"),
        ),
    )


class Member(Base):
    """Member registry record (tenant-scoped)."""

    __tablename__ = "members"

    id: Mapped[str] = mapped_column(TEXT, primary_key=True, default=_new_id)
    club_id: Mapped[str] = mapped_column(TEXT, ForeignKey("clubs.id"), nullable=False)

    member_number: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    first_name: Mapped[str] = mapped_column(TEXT, nullable=False)
    last_name: Mapped[str] = mapped_column(TEXT, nullable=False)
    email: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    status: Mapped[str] = mapped_column(TEXT, nullable=False, default="ACTIVE")
    # ACTIVE | INACTIVE | PENDING | LEFT

    sepa_mandate_reference: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)

    anonymized_at: Mapped[Optional[datetime]] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )
    anonymized_by: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    __table_args__ = (Index("idx_members_club", "club_id", "last_name"),)


class LedgerAccount(Base):
    """Ledger account (tenant-scoped)."""

    __tablename__ = "ledger_accounts"

    id: Mapped[str] = mapped_column(TEXT, primary_key=True, default=_new_id)
    club_id: Mapped[str] = mapped_column(TEXT, ForeignKey("clubs.id"), nullable=False)

    code: Mapped[str] = mapped_column(TEXT, nullable=False)
    name: Mapped[str] = mapped_column(TEXT, nullable=False)
    account_type: Mapped[str] = mapped_column(TEXT, nullable=False)
    # ASSET | LIABILITY | INCOME | EXPENSE

    # Money in cents (BIGINT)
    balance_cents: Mapped[int] = mapped_column(BIGINT, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(BOOLEAN, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    __table_args__ = (Index("uq_ledger_accounts_club_code", "club_id", "code", unique=True),)


class AccessRequest(Base):
    """A user's request to join a PUBLIC club, decided by a club administrator."""

    __tablename__ = "access_requests"

    id: Mapped[str] = mapped_column(TEXT, primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(TEXT, ForeignKey("users.id"), nullable=False)
    club_id: Mapped[str] = mapped_column(TEXT, ForeignKey("clubs.id"), nullable=False)

    message: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    status: Mapped[str] = mapped_column(
        TEXT, nullable=False, default=AccessRequestStatus.PENDING.value
    )

    # BOARD_ONLY | UNIDENTIFIED | WRONG_CLUB | CONTACT_DIRECTLY | OTHER
    rejection_reason: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    rejection_note: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    processed_by_id: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    processed_at: Mapped[Optional[datetime]] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )

    expires_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    __table_args__ = (
        Index("idx_access_requests_club_status", "club_id", "status"),
        Index("idx_access_requests_user_status", "user_id", "status"),
    )


class SuperAdminBootstrap(Base):
    """Single-row claim for automatic first-user super-admin promotion.

    The primary key makes the claim at-most-once across concurrent
    registrations.
    """

    __tablename__ = "super_admin_bootstrap"

    slot: Mapped[str] = mapped_column(TEXT, primary_key=True)
    user_id: Mapped[str] = mapped_column(TEXT, nullable=False)
    claimed_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=_utcnow
    )
