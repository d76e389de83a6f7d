"""
Identity-provider token verification.

Access tokens are issued by Supabase and signed with the project's shared
HS256 secret. The local user is keyed by the token's ``sub`` claim. When
``STORRA_SUPABASE_URL`` is set, the ``iss`` claim must name that project's
auth endpoint.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from storra.config import Settings, get_settings


def expected_issuer(settings: Settings) -> str | None:
    """Supabase issues tokens as ``<project url>/auth/v1``."""
    if not settings.supabase_url:
        return None
    return f"{settings.supabase_url.rstrip('/')}/auth/v1"


def create_access_token(
    external_id: str,
    email: str | None = None,
    expires_in: timedelta = timedelta(hours=1),
) -> str:
    """
    Issue a token shaped like the identity provider's.

    Used by tests and local tooling; production tokens come from Supabase.
    """
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "sub": external_id,
        "aud": settings.supabase_jwt_audience,
        "role": "authenticated",
        "iat": now,
        "exp": now + expires_in,
    }
    issuer = expected_issuer(settings)
    if issuer:
        payload["iss"] = issuer
    if email:
        payload["email"] = email
    return jwt.encode(payload, settings.supabase_jwt_secret, algorithm=settings.jwt_algorithm)


def verify_token(token: str) -> dict[str, Any]:
    """
    Verify and decode an identity-provider access token.

    Raises:
        jwt.InvalidTokenError: If the token is invalid, expired, from another
            issuer, or has no subject.
    """
    settings = get_settings()
    issuer = expected_issuer(settings)
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            settings.supabase_jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.supabase_jwt_audience,
            issuer=issuer,
            options={"require": ["exp", "iss"] if issuer else ["exp"]},
        )
    except jwt.ExpiredSignatureError:
        msg = "Token has expired"
        raise jwt.InvalidTokenError(msg) from None

    if not payload.get("sub"):
        msg = "Token has no subject"
        raise jwt.InvalidTokenError(msg)

    return payload
