"""Identity provider session token verification."""

from __future__ import annotations

from functools import lru_cache
from typing import Any

import jwt

from .config import settings


@lru_cache
def _get_jwks_client(jwks_url: str) -> jwt.PyJWKClient:
    return jwt.PyJWKClient(jwks_url)


def _resolve_signing_key(token: str) -> Any:
    if settings.identity_jwks_url:
        return _get_jwks_client(settings.identity_jwks_url).get_signing_key_from_jwt(token).key
    if settings.identity_jwt_secret:
        return settings.identity_jwt_secret
    raise ValueError("Identity provider verification key is not configured")


def decode_identity_token(token: str) -> dict[str, Any]:
    """Verify an identity provider session token and return its claims.

    Raises ``ValueError`` for expired, malformed or untrusted tokens and for
    tokens without a subject claim.
    """
    try:
        payload = jwt.decode(
            token,
            _resolve_signing_key(token),
            algorithms=settings.identity_jwt_algorithms,
            audience=settings.identity_audience,
            issuer=settings.identity_issuer,
            options={
                "require": ["exp", "sub"],
                "verify_aud": settings.identity_audience is not None,
                "verify_iss": settings.identity_issuer is not None,
            },
        )
    except jwt.PyJWTError as exc:
        raise ValueError("Invalid identity token") from exc

    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject.strip():
        raise ValueError("Identity token missing subject")
    return payload
