"""Tests for token verification and role guards."""

from datetime import UTC, datetime, timedelta

import pytest
from jose import jwt

from propertyxchange.auth import (
    Identity,
    decode_token,
    extract_bearer,
    require_admin,
    require_staff_or_admin,
)
from propertyxchange.config import get_settings
from propertyxchange.errors import AuthenticationError, PermissionDeniedError


def _encode(claims: dict[str, object], secret: str | None = None) -> str:
    settings = get_settings()
    return jwt.encode(
        claims, secret or settings.jwt_secret_key, algorithm=settings.jwt_algorithm
    )


def test_decode_token_reads_id_and_normalizes_role() -> None:
    identity = decode_token(_encode({"id": "user-1", "role": "staff"}))

    assert identity == Identity(id="user-1", role="STAFF")
    assert identity.is_staff


def test_decode_token_accepts_sub_claim_and_defaults_role() -> None:
    identity = decode_token(_encode({"sub": "user-2"}))

    assert identity == Identity(id="user-2", role="USER")
    assert not identity.is_staff


@pytest.mark.parametrize(
    "token",
    [
        "garbage",
        _encode({"id": "user-1"}, secret="some-other-secret"),
        _encode({"id": "user-1", "exp": datetime.now(UTC) - timedelta(minutes=5)}),
        _encode({"role": "ADMIN"}),
    ],
)
def test_decode_token_rejects_invalid_tokens(token: str) -> None:
    with pytest.raises(AuthenticationError, match="Invalid or expired token"):
        decode_token(token)


def test_extract_bearer() -> None:
    assert extract_bearer("Bearer abc.def") == "abc.def"
    assert extract_bearer("bearer   abc ") == "abc"
    assert extract_bearer("Basic abc") is None
    assert extract_bearer("Bearer ") is None
    assert extract_bearer(None) is None


@pytest.mark.anyio
async def test_role_guards() -> None:
    admin = Identity(id="a", role="ADMIN")
    staff = Identity(id="s", role="STAFF")
    user = Identity(id="u")

    assert await require_staff_or_admin(staff) is staff
    assert await require_admin(admin) is admin
    with pytest.raises(PermissionDeniedError, match="Staff or admin access required"):
        await require_staff_or_admin(user)
    with pytest.raises(PermissionDeniedError, match="Admin access required"):
        await require_admin(staff)
