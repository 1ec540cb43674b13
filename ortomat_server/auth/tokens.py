"""
Bearer tokens for the admin API.

Tokens are HMAC-signed JWTs carrying:
    sub:  account id of the caller
    role: account role (ADMIN, DOCTOR, COURIER)
    exp:  expiry

Only callers whose role matches AuthConfig.admin_role may use the
backup endpoints.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from ..config import AuthConfig
from ..errors import AuthError, ForbiddenError


@dataclass(frozen=True)
class Principal:
    """Authenticated caller.

    Attributes:
        subject: Account id from the "sub" claim
        role: Role claim
    """

    subject: str
    role: str


def create_access_token(
    config: AuthConfig,
    subject: str,
    role: str,
    expires_delta: timedelta | None = None,
) -> str:
    """Issue a signed token for a subject/role pair."""
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=config.expire_minutes)
    )
    claims: dict[str, Any] = {"sub": subject, "role": role, "exp": expire}
    return jwt.encode(claims, config.jwt_secret, algorithm=config.jwt_algorithm)


def decode_token(config: AuthConfig, token: str) -> Principal:
    """Verify a token and return its principal.

    Raises:
        AuthError: If the signature, expiry or claims are invalid
    """
    try:
        payload = jwt.decode(token, config.jwt_secret, algorithms=[config.jwt_algorithm])
    except JWTError as e:
        raise AuthError(f"Invalid token: {e}") from e

    subject = payload.get("sub")
    role = payload.get("role")
    if not subject or not role:
        raise AuthError("Token is missing sub or role claim")

    return Principal(subject=str(subject), role=str(role).upper())


def require_admin(config: AuthConfig, authorization: str | None) -> Principal:
    """Validate an Authorization header value for admin access.

    Raises:
        AuthError: If the header is missing or the token invalid
        ForbiddenError: If the caller is not an admin
    """
    if not authorization:
        raise AuthError("Authorization header is required")

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthError("Authorization header must be 'Bearer <token>'")

    principal = decode_token(config, token.strip())
    if principal.role != config.admin_role.upper():
        raise ForbiddenError(role=principal.role)
    return principal
