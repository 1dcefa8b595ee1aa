"""Declarative per-endpoint authorization requirements."""

from dataclasses import dataclass, field
from typing import Iterable, Union

from clubhub_api.authz.permissions import ClubRole, Permission
from clubhub_api.authz.tier import TierFeature, parse_feature


@dataclass(frozen=True)
class EndpointRequirements:
    """What an endpoint needs before its handler may run.

    permissions: ANY-of. roles: ANY-of. features: ALL-of.
    Values are normalised to their enums on construction, so a typo in a
    route declaration fails at import time.
    """

    requires_club: bool = False
    super_admin_only: bool = False
    roles: frozenset[ClubRole] = field(default_factory=frozenset)
    permissions: frozenset[Permission] = field(default_factory=frozenset)
    features: tuple[TierFeature, ...] = ()
    deactivation_exempt: bool = False

    def __post_init__(self):
        object.__setattr__(self, "roles", frozenset(ClubRole(r) for r in self.roles))
        object.__setattr__(
            self, "permissions", frozenset(Permission(p) for p in self.permissions)
        )
        object.__setattr__(self, "features", tuple(parse_feature(f) for f in self.features))


def club_endpoint(
    permissions: Iterable[Union[str, Permission]] = (),
    roles: Iterable[Union[str, ClubRole]] = (),
    features: Iterable[Union[str, TierFeature]] = (),
    deactivation_exempt: bool = False,
) -> EndpointRequirements:
    """Requirements for an endpoint under /clubs/{slug}."""
    return EndpointRequirements(
        requires_club=True,
        roles=frozenset(roles),
        permissions=frozenset(permissions),
        features=tuple(features),
        deactivation_exempt=deactivation_exempt,
    )


def platform_admin_endpoint() -> EndpointRequirements:
    """Requirements for a super-admin-only endpoint with no club context."""
    return EndpointRequirements(super_admin_only=True)


AUTHENTICATED = EndpointRequirements()
