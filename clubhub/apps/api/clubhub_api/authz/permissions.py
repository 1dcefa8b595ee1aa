"""Club roles, the closed permission taxonomy, and the static role table.

Everything here is pure: no I/O, no request state. The platform
super-admin flag is deliberately absent; it is evaluated by the guard
pipeline as a separate bypass, never folded into a role's permissions.
"""

from enum import Enum
from typing import Iterable


class ClubRole(str, Enum):
    OWNER = "OWNER"
    ADMIN = "ADMIN"
    TREASURER = "TREASURER"
    SECRETARY = "SECRETARY"
    MEMBER = "MEMBER"


class Permission(str, Enum):
    """`entity:action` permission strings.

    Adding a permission means adding it here and to ROLE_PERMISSIONS;
    nothing is inferred at runtime.
    """

    # Member registry
    MEMBER_CREATE = "member:create"
    MEMBER_READ = "member:read"
    MEMBER_UPDATE = "member:update"
    MEMBER_DELETE = "member:delete"
    MEMBER_EXPORT = "member:export"

    # Club user management
    USERS_CREATE = "users:create"
    USERS_READ = "users:read"
    USERS_UPDATE = "users:update"
    USERS_DELETE = "users:delete"

    # Finance
    FINANCE_CREATE = "finance:create"
    FINANCE_READ = "finance:read"
    FINANCE_UPDATE = "finance:update"
    FINANCE_DELETE = "finance:delete"

    # Club
    CLUB_SETTINGS = "club:settings"
    CLUB_DELETE = "club:delete"
    CLUB_TRANSFER = "club:transfer"

    ROLE_ASSIGN_OWNER = "role:assign-owner"

    PROFILE_READ = "profile:read"
    PROFILE_UPDATE = "profile:update"

    DASHBOARD_READ = "dashboard:read"

    # Meeting minutes; no enforcing endpoints yet
    PROTOCOL_CREATE = "protocol:create"
    PROTOCOL_READ = "protocol:read"
    PROTOCOL_UPDATE = "protocol:update"
    PROTOCOL_DELETE = "protocol:delete"


_MEMBER_ALL = frozenset({
    Permission.MEMBER_CREATE,
    Permission.MEMBER_READ,
    Permission.MEMBER_UPDATE,
    Permission.MEMBER_DELETE,
    Permission.MEMBER_EXPORT,
})
_USERS_ALL = frozenset({
    Permission.USERS_CREATE,
    Permission.USERS_READ,
    Permission.USERS_UPDATE,
    Permission.USERS_DELETE,
})
_FINANCE_ALL = frozenset({
    Permission.FINANCE_CREATE,
    Permission.FINANCE_READ,
    Permission.FINANCE_UPDATE,
    Permission.FINANCE_DELETE,
})
_PROTOCOL_ALL = frozenset({
    Permission.PROTOCOL_CREATE,
    Permission.PROTOCOL_READ,
    Permission.PROTOCOL_UPDATE,
    Permission.PROTOCOL_DELETE,
})
_PROFILE_AND_DASHBOARD = frozenset({
    Permission.PROFILE_READ,
    Permission.PROFILE_UPDATE,
    Permission.DASHBOARD_READ,
})

ROLE_PERMISSIONS: dict[ClubRole, frozenset[Permission]] = {
    # OWNER is maximal within the club
    ClubRole.OWNER: frozenset(Permission),
    # Technical administration: no member or finance data
    ClubRole.ADMIN: frozenset({Permission.CLUB_SETTINGS}) | _USERS_ALL | _PROFILE_AND_DASHBOARD,
    # Member erasure stays with OWNER and SECRETARY
    ClubRole.TREASURER: (
        _FINANCE_ALL
        | (_MEMBER_ALL - {Permission.MEMBER_DELETE})
        | _PROFILE_AND_DASHBOARD
    ),
    ClubRole.SECRETARY: (
        _MEMBER_ALL
        | _PROTOCOL_ALL
        | frozenset({Permission.FINANCE_READ})
        | _PROFILE_AND_DASHBOARD
    ),
    ClubRole.MEMBER: _PROFILE_AND_DASHBOARD,
}

# Role groups
BOARD = frozenset({ClubRole.OWNER, ClubRole.TREASURER, ClubRole.SECRETARY})
USER_MANAGERS = frozenset({ClubRole.OWNER, ClubRole.ADMIN})
FINANCE_MANAGERS = frozenset({ClubRole.OWNER, ClubRole.TREASURER})
SETTINGS_MANAGERS = frozenset({ClubRole.OWNER, ClubRole.ADMIN})
PROTOCOL_MANAGERS = frozenset({ClubRole.OWNER, ClubRole.SECRETARY})
CLUB_MEMBERS = frozenset({
    ClubRole.OWNER,
    ClubRole.TREASURER,
    ClubRole.SECRETARY,
    ClubRole.MEMBER,
})

# OWNER is never assignable through role update; see transfer_ownership
_ASSIGNABLE_BY: dict[ClubRole, frozenset[ClubRole]] = {
    ClubRole.OWNER: frozenset({
        ClubRole.ADMIN,
        ClubRole.TREASURER,
        ClubRole.SECRETARY,
        ClubRole.MEMBER,
    }),
    ClubRole.ADMIN: frozenset({ClubRole.TREASURER, ClubRole.SECRETARY, ClubRole.MEMBER}),
}


def parse_roles(values: Iterable[str]) -> frozenset[ClubRole]:
    """Convert stored role strings to ClubRole, dropping unknown values.

    Unknown values grant nothing, so ignoring them can only narrow access.
    """
    roles = set()
    for value in values or ():
        try:
            roles.add(ClubRole(value))
        except ValueError:
            continue
    return frozenset(roles)


def permissions_for(roles: Iterable[ClubRole]) -> frozenset[Permission]:
    """Union of the static permissions of every role in `roles`."""
    granted: set[Permission] = set()
    for role in roles:
        granted |= ROLE_PERMISSIONS.get(role, frozenset())
    return frozenset(granted)


def has_permission(roles: Iterable[ClubRole], permission: Permission) -> bool:
    return permission in permissions_for(roles)


def has_any_permission(roles: Iterable[ClubRole], permissions: Iterable[Permission]) -> bool:
    """OR semantics. An empty requirement list is satisfied."""
    required = list(permissions)
    if not required:
        return True
    granted = permissions_for(roles)
    return any(p in granted for p in required)


def has_all_permissions(roles: Iterable[ClubRole], permissions: Iterable[Permission]) -> bool:
    """AND semantics."""
    granted = permissions_for(roles)
    return all(p in granted for p in permissions)


def has_any_role(roles: Iterable[ClubRole], required: Iterable[ClubRole]) -> bool:
    """Non-empty intersection between held and required roles."""
    return bool(set(roles) & set(required))


def is_owner(roles: Iterable[ClubRole]) -> bool:
    return ClubRole.OWNER in set(roles)


def is_board_member(roles: Iterable[ClubRole]) -> bool:
    return has_any_role(roles, BOARD)


def is_admin_only(roles: Iterable[ClubRole]) -> bool:
    """ADMIN without any role that grants member or finance data."""
    held = set(roles)
    return ClubRole.ADMIN in held and not (held & CLUB_MEMBERS)


def assignable_roles(assigner_roles: Iterable[ClubRole]) -> frozenset[ClubRole]:
    """Roles the assigner may hand out through a role update."""
    result: set[ClubRole] = set()
    for role in assigner_roles:
        result |= _ASSIGNABLE_BY.get(role, frozenset())
    return frozenset(result)
