"""Bearer identity for user-authenticated requests.

FLOW:
1. The identity provider issues an HS256 JWT with `sub` (user id) and `email`
2. Client calls the API with Authorization: Bearer <jwt>
3. get_optional_identity() verifies signature, expiry and issuer
4. Returns AuthenticatedUser(user_id, email), or None for the guard pipeline
   to reject

SECURITY:
- The token never carries authorization state. Club roles and the
  super-admin flag are always read from the store by the guard pipeline.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from clubhub_api.config.env import get_jwt_issuer, get_jwt_secret
from clubhub_api.context import user_id_var
from clubhub_api.errors import Unauthenticated

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"
JWT_EXPIRATION_HOURS = 8

bearer_security = HTTPBearer(auto_error=False, description="Identity provider JWT")


@dataclass(frozen=True)
class AuthenticatedUser:
    """Identity attached by the upstream authentication layer."""

    user_id: str
    email: str


def create_access_token(
    user_id: str,
    email: str,
    expires_in: timedelta = timedelta(hours=JWT_EXPIRATION_HOURS),
) -> str:
    """Issue an identity token (local development and tests)."""
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "sub": user_id,
        "email": email,
        "iat": int(now.timestamp()),
        "exp": int((now + expires_in).timestamp()),
        "iss": get_jwt_issuer(),
    }
    return jwt.encode(payload, get_jwt_secret(), algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> AuthenticatedUser:
    """Verify a bearer token and extract the identity.

    Raises:
        Unauthenticated: bad signature, expired, wrong issuer, or missing claims
    """
    try:
        payload = jwt.decode(
            token,
            get_jwt_secret(),
            algorithms=[JWT_ALGORITHM],
            issuer=get_jwt_issuer(),
        )
    except JWTError as e:
        logger.info(
            "Identity token rejected",
            extra={"event": "auth.token_rejected", "error_type": type(e).__name__},
        )
        raise Unauthenticated("Invalid or expired token.")

    user_id = payload.get("sub")
    email = payload.get("email")
    if not user_id or not email:
        raise Unauthenticated("Token is missing required claims.")

    return AuthenticatedUser(user_id=str(user_id), email=str(email).lower())


async def get_optional_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_security),
) -> Optional[AuthenticatedUser]:
    """Resolve the identity if a valid bearer token is present.

    Missing and invalid tokens both yield None; the guard pipeline turns
    that into UNAUTHENTICATED at its first stage.
    """
    if not credentials:
        return None
    try:
        identity = decode_access_token(credentials.credentials)
    except Unauthenticated:
        return None
    user_id_var.set(identity.user_id)
    return identity

