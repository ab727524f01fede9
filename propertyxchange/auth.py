"""Verification of access tokens issued by the external auth flow."""

import logging
from dataclasses import dataclass

from fastapi import Depends, Request
from jose import JWTError, jwt

from propertyxchange.config import get_settings
from propertyxchange.constants import ROLE_ADMIN, ROLE_USER, STAFF_ROLES
from propertyxchange.errors import AuthenticationError, PermissionDeniedError

logger = logging.getLogger(__name__)

TOKEN_COOKIE = "token"


@dataclass(frozen=True, slots=True)
class Identity:
    """Caller identity carried by a verified token."""

    id: str
    role: str = ROLE_USER

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES


def decode_token(token: str) -> Identity:
    """Verify a token and return the identity it carries."""

    settings = get_settings()
    try:
        payload = jwt.decode(
            token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm]
        )
    except JWTError as exc:
        raise AuthenticationError("Invalid or expired token") from exc

    user_id = payload.get("id") or payload.get("sub")
    if not user_id:
        raise AuthenticationError("Invalid or expired token")

    role = str(payload.get("role") or ROLE_USER).upper()
    return Identity(id=str(user_id), role=role)


def extract_bearer(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() != "bearer" or not credentials.strip():
        return None
    return credentials.strip()


def extract_token(request: Request) -> str | None:
    return extract_bearer(request.headers.get("authorization")) or request.cookies.get(
        TOKEN_COOKIE
    )


async def get_optional_identity(request: Request) -> Identity | None:
    token = extract_token(request)
    if not token:
        return None

    try:
        return decode_token(token)
    except AuthenticationError:
        logger.debug("Ignoring invalid token on optional-auth route")
        return None


async def get_current_identity(request: Request) -> Identity:
    token = extract_token(request)
    if not token:
        raise AuthenticationError("Authentication required")
    return decode_token(token)


async def require_staff_or_admin(
    identity: Identity = Depends(get_current_identity),
) -> Identity:
    if not identity.is_staff:
        raise PermissionDeniedError("Staff or admin access required")
    return identity


async def require_admin(
    identity: Identity = Depends(get_current_identity),
) -> Identity:
    if identity.role != ROLE_ADMIN:
        raise PermissionDeniedError("Admin access required")
    return identity
