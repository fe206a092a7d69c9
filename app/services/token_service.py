"""JWT bearer token validation (ES256).

This service never issues tokens in production: an external identity
provider does, and we only verify them.  Set JWT_PUBLIC_KEY to that
provider's PEM-encoded EC public key.

Without JWT_PUBLIC_KEY (dev, tests) an ephemeral key pair is generated
at import time and ``create_access_token`` can mint tokens against it.
Such tokens stop validating when the process restarts.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta

import jwt
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from app.core.config import SETTINGS

ALGORITHM = "ES256"
ISSUER = "course-platform"
AUDIENCE = "course-progress-service"
ACCESS_TOKEN_TTL_MIN = 15

if SETTINGS.jwt_public_key:
    _private_key: ec.EllipticCurvePrivateKey | None = None
    _public_key = serialization.load_pem_public_key(SETTINGS.jwt_public_key.encode())
else:
    _private_key = ec.generate_private_key(ec.SECP256R1())
    _public_key = _private_key.public_key()


def create_access_token(
    *,
    sub: str,
    roles: list[str] | None = None,
    name: str = "",
    ttl_minutes: int = ACCESS_TOKEN_TTL_MIN,
) -> str:
    """Mint a token with the ephemeral dev key.

    Raises RuntimeError when a real public key is configured, since the
    matching private key lives with the identity provider.
    """
    if _private_key is None:
        raise RuntimeError("JWT_PUBLIC_KEY is set; tokens must come from the identity provider")
    now = datetime.now(UTC)
    payload = {
        "sub": sub,
        "iss": ISSUER,
        "aud": AUDIENCE,
        "exp": now + timedelta(minutes=ttl_minutes),
        "iat": now,
        "jti": str(uuid.uuid4()),
        "roles": roles or ["user"],
        "name": name,
    }
    return jwt.encode(payload, _private_key, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Verify signature and claims, return the payload.

    The algorithm is pinned so a token cannot downgrade itself to
    ``alg: none`` or switch to an HMAC secret.  exp, iss and aud are
    checked by PyJWT.

    Raises jwt.ExpiredSignatureError, jwt.InvalidTokenError on failure.
    """
    return jwt.decode(
        token,
        _public_key,
        algorithms=[ALGORITHM],
        issuer=ISSUER,
        audience=AUDIENCE,
        options={"require": ["sub", "exp", "iat"]},
    )
