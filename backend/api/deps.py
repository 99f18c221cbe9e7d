"""FastAPI dependencies for database sessions and the signed-in user."""

from __future__ import annotations

from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from core import decode_identity_token
from db.session import AsyncSessionMaker
from models import User
from services import get_user_by_external_id

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class ExternalIdentity:
    """Subject of an active identity provider session."""

    external_id: str
    claims: dict[str, Any] = field(default_factory=dict)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_db() -> AsyncIterator[AsyncSession]:
    async with AsyncSessionMaker() as session:
        yield session


async def get_current_identity(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> ExternalIdentity:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise _unauthorized("Not authenticated")
    try:
        claims = decode_identity_token(credentials.credentials)
    except ValueError as exc:
        raise _unauthorized("Invalid session token") from exc
    return ExternalIdentity(external_id=claims["sub"], claims=claims)


async def get_current_user(
    identity: ExternalIdentity = Depends(get_current_identity),
    session: AsyncSession = Depends(get_db),
) -> User:
    user = await get_user_by_external_id(session, identity.external_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user
