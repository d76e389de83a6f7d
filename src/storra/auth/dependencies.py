"""FastAPI authentication dependencies."""

from __future__ import annotations

import jwt
from fastapi import Depends, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from storra.auth.identity import verify_token
from storra.auth.service import get_or_create_user
from storra.database import get_session
from storra.db.models import User
from storra.exceptions import AuthenticationRequired

_bearer = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
    db: AsyncSession = Depends(get_session),
) -> User:
    """
    Verify the bearer token and return the local User, creating it on first login.

    Raises AuthenticationRequired (401) when the token is missing or invalid.
    """
    if credentials is None:
        raise AuthenticationRequired()
    try:
        payload = verify_token(credentials.credentials)
    except jwt.InvalidTokenError as e:
        raise AuthenticationRequired(str(e)) from e

    return await get_or_create_user(db, payload["sub"], email=payload.get("email"))
