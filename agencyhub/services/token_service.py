"""JWT access tokens (ES256).

Issued by ``/api/auth/register`` and ``/api/auth/login``, validated by
``agencyhub.api.dependencies.require_user``.  The token carries identity
and platform roles only; organization membership and org role are read
from the user store on every request so a role change or removal takes
effect immediately.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta

import jwt
from cryptography.hazmat.primitives.asymmetric import ec

# Ephemeral key pair per process.  Tokens do not survive a restart.
_private_key = ec.generate_private_key(ec.SECP256R1())
_public_key = _private_key.public_key()

ALGORITHM = "ES256"
ISSUER = "agencyhub"
AUDIENCE = "agencyhub-api"
ACCESS_TOKEN_TTL_MIN = 60


def create_access_token(
    *,
    sub: str,
    roles: list[str] | None = None,
    ttl_minutes: int = ACCESS_TOKEN_TTL_MIN,
) -> str:
    now = datetime.now(UTC)
    payload = {
        "sub": sub,
        "iss": ISSUER,
        "aud": AUDIENCE,
        "exp": now + timedelta(minutes=ttl_minutes),
        "iat": now,
        "jti": str(uuid.uuid4()),
        "roles": roles or [],
    }
    return jwt.encode(payload, _private_key, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Verify signature, expiry, issuer and audience; return the claims.

    The algorithm is pinned so a token signed with ``none`` or HS256 is
    rejected.  Raises ``jwt.InvalidTokenError`` (or a subclass) on failure.
    """
    return jwt.decode(
        token,
        _public_key,
        algorithms=[ALGORITHM],
        issuer=ISSUER,
        audience=AUDIENCE,
        options={"require": ["sub", "exp", "iat", "jti"]},
    )
