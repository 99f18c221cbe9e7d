"""User profile endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import ExternalIdentity, get_current_identity, get_current_user, get_db
from models import User
from services import (
    ServiceError,
    get_or_create_user,
    get_posts_by_user,
    get_user_by_external_id,
    get_user_by_id,
    update_user_profile,
)
from services.users import MAX_USERNAME_LENGTH, USERNAME_PATTERN
from .errors import to_http_exception
from .pagination import MAX_PAGE_SIZE, set_next_offset_header, trim_page
from .post_views import PostResponse

router = APIRouter(prefix="/users", tags=["users"])
MAX_PROFILE_NAME_LENGTH = 80
MAX_PROFILE_BIO_LENGTH = 500


def _user_not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")


def _validate_username(value: str | None) -> str | None:
    if value is None:
        return None
    normalized = value.strip()
    if not USERNAME_PATTERN.fullmatch(normalized):
        raise ValueError("Username must contain only lowercase letters and digits")
    return normalized


def _validate_name(value: str | None) -> str | None:
    if value is None:
        return None
    normalized = value.strip()
    if not normalized:
        raise ValueError("Name must not be empty")
    return normalized


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    external_id: str
    email: str
    name: str
    username: str
    avatar_url: str | None = None
    bio: str | None = None
    created_at: datetime


class UserSyncRequest(BaseModel):
    email: EmailStr
    name: str = Field(min_length=1, max_length=MAX_PROFILE_NAME_LENGTH)
    username: str | None = Field(default=None, min_length=1, max_length=MAX_USERNAME_LENGTH)
    avatar_url: str | None = None

    @field_validator("username")
    @classmethod
    def _check_username(cls, value: str | None) -> str | None:
        return _validate_username(value)

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str | None) -> str | None:
        return _validate_name(value)


class UserProfileUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=MAX_PROFILE_NAME_LENGTH)
    username: str | None = Field(default=None, min_length=1, max_length=MAX_USERNAME_LENGTH)
    bio: str | None = Field(default=None, max_length=MAX_PROFILE_BIO_LENGTH)
    avatar_url: str | None = None

    @field_validator("username")
    @classmethod
    def _check_username(cls, value: str | None) -> str | None:
        return _validate_username(value)

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str | None) -> str | None:
        return _validate_name(value)


@router.post("/sync", response_model=UserResponse)
async def sync_current_user(
    payload: UserSyncRequest,
    session: AsyncSession = Depends(get_db),
    identity: ExternalIdentity = Depends(get_current_identity),
) -> UserResponse:
    """Create the profile for the signed-in identity on first sign-up.

    Later calls return the stored profile unchanged.
    """
    try:
        user = await get_or_create_user(
            session,
            external_id=identity.external_id,
            email=str(payload.email),
            name=payload.name,
            username=payload.username,
            avatar_url=payload.avatar_url,
        )
    except ServiceError as exc:
        raise to_http_exception(exc) from exc
    return UserResponse.model_validate(user)


@router.get("/me", response_model=UserResponse)
async def get_me(
    session: AsyncSession = Depends(get_db),
    identity: ExternalIdentity = Depends(get_current_identity),
) -> UserResponse:
    user = await get_user_by_external_id(session, identity.external_id)
    if user is None:
        raise _user_not_found()
    return UserResponse.model_validate(user)


@router.patch("/me", response_model=UserResponse)
async def update_me(
    payload: UserProfileUpdateRequest,
    session: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> UserResponse:
    updates = payload.model_dump(exclude_unset=True)
    try:
        user = await update_user_profile(session, current_user.id, **updates)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc
    return UserResponse.model_validate(user)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    session: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> UserResponse:
    user = await get_user_by_id(session, user_id)
    if user is None:
        raise _user_not_found()
    return UserResponse.model_validate(user)


@router.get("/{user_id}/posts", response_model=list[PostResponse])
async def list_user_posts(
    user_id: str,
    response: Response,
    limit: Annotated[int | None, Query(ge=1, le=MAX_PAGE_SIZE)] = None,
    offset: Annotated[int, Query(ge=0)] = 0,
    session: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> list[PostResponse]:
    """Return the profile grid of ``user_id``, newest first."""
    author = await get_user_by_id(session, user_id)
    if author is None:
        raise _user_not_found()

    views = await get_posts_by_user(
        session,
        user_id,
        limit=limit + 1 if limit is not None else None,
        offset=offset,
    )
    views, has_more = trim_page(views, limit)
    if limit is not None:
        set_next_offset_header(response, offset=offset, limit=limit, has_more=has_more)
    return [PostResponse.from_view(view, viewer_id=current_user.id) for view in views]
