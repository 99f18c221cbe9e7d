"""User profile persistence."""

from __future__ import annotations

import logging
import re
from typing import Any, cast

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from db import is_unique_violation, transaction
from models import User
from .errors import UserNotFoundError, UsernameTakenError

logger = logging.getLogger(__name__)

USERNAME_PATTERN = re.compile(r"^[a-z0-9]+$")
MAX_USERNAME_LENGTH = 64
FALLBACK_USERNAME = "user"
_UNSET: Any = object()


def _eq(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column == value)


def derive_username(email: str) -> str:
    """Build a lowercase alphanumeric username from an email local part."""
    local_part = email.strip().split("@", 1)[0].lower()
    username = re.sub(r"[^a-z0-9]", "", local_part)[:MAX_USERNAME_LENGTH]
    return username or FALLBACK_USERNAME


async def get_user_by_id(session: AsyncSession, user_id: str) -> User | None:
    result = await session.execute(select(User).where(_eq(User.id, user_id)).limit(1))
    return result.scalar_one_or_none()


async def get_user_by_external_id(session: AsyncSession, external_id: str) -> User | None:
    result = await session.execute(
        select(User).where(_eq(User.external_id, external_id)).limit(1)
    )
    return result.scalar_one_or_none()


async def _username_owner_id(session: AsyncSession, username: str) -> str | None:
    user_id_column = cast(ColumnElement[str], User.id)
    result = await session.execute(
        select(user_id_column).where(_eq(User.username, username)).limit(1)
    )
    return result.scalar_one_or_none()


async def get_or_create_user(
    session: AsyncSession,
    *,
    external_id: str,
    email: str,
    name: str,
    username: str | None = None,
    avatar_url: str | None = None,
) -> User:
    """Return the user for ``external_id``, creating it on first sign-in.

    First write wins: an existing record is returned as-is even when the
    supplied profile fields differ.
    """
    existing_user = await get_user_by_external_id(session, external_id)
    if existing_user is not None:
        return existing_user

    resolved_username = username or derive_username(email)
    if await _username_owner_id(session, resolved_username) is not None:
        raise UsernameTakenError()

    user = User(
        external_id=external_id,
        email=email,
        name=name,
        username=resolved_username,
        avatar_url=avatar_url,
    )
    try:
        async with transaction(session):
            session.add(user)
    except IntegrityError as exc:
        if not is_unique_violation(exc):
            raise
        # Another request may have created the same identity concurrently.
        winner = await get_user_by_external_id(session, external_id)
        if winner is not None:
            return winner
        raise UsernameTakenError() from exc

    await session.refresh(user)
    logger.info(
        "Created user profile",
        extra={"user_id": user.id, "external_id": external_id},
    )
    return user


async def update_user_profile(
    session: AsyncSession,
    user_id: str,
    *,
    name: str | None = _UNSET,
    username: str | None = _UNSET,
    bio: str | None = _UNSET,
    avatar_url: str | None = _UNSET,
) -> User:
    """Apply a partial profile update; omitted fields keep their value.

    Posts keep the author snapshot taken when they were created.
    """
    user = await get_user_by_id(session, user_id)
    if user is None:
        raise UserNotFoundError()

    updated = False
    if name is not _UNSET and name is not None:
        user.name = name
        updated = True
    if username is not _UNSET and username is not None and username != user.username:
        owner_id = await _username_owner_id(session, username)
        if owner_id is not None and owner_id != user.id:
            raise UsernameTakenError()
        user.username = username
        updated = True
    if bio is not _UNSET:
        user.bio = bio or None
        updated = True
    if avatar_url is not _UNSET:
        user.avatar_url = avatar_url or None
        updated = True

    if not updated:
        return user

    try:
        async with transaction(session):
            session.add(user)
    except IntegrityError as exc:
        if is_unique_violation(exc):
            raise UsernameTakenError() from exc
        raise
    await session.refresh(user)
    return user
