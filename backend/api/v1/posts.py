"""Post creation, feed and like endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_current_user, get_db
from models import MAX_POST_CAPTION_LENGTH, User
from services import (
    PostView,
    ServiceError,
    create_post,
    delete_post,
    get_all_posts,
    get_post_by_id,
    has_user_liked,
    post_exists,
    resolve_post_image_url,
    toggle_like,
)
from .errors import to_http_exception
from .pagination import MAX_PAGE_SIZE, set_next_offset_header, trim_page
from .post_views import PostResponse

router = APIRouter(prefix="/posts", tags=["posts"])
MAX_STORAGE_ID_LENGTH = 255


def _normalize_caption(caption: str | None) -> str:
    if caption is None:
        return ""

    normalized_caption = caption.strip()
    if len(normalized_caption) > MAX_POST_CAPTION_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
            detail=f"Caption must be at most {MAX_POST_CAPTION_LENGTH} characters",
        )
    return normalized_caption


def _normalize_storage_id(storage_id: str | None) -> str | None:
    if storage_id is None:
        return None
    normalized_storage_id = storage_id.strip()
    return normalized_storage_id or None


def _post_not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")


class PostCreateRequest(BaseModel):
    caption: str | None = None
    storage_id: str | None = Field(default=None, max_length=MAX_STORAGE_ID_LENGTH)


class DeletePostResponse(BaseModel):
    success: bool = True


class LikeToggleResponse(BaseModel):
    liked: bool
    likes: int


class LikeStatusResponse(BaseModel):
    liked: bool


@router.post("", status_code=status.HTTP_201_CREATED, response_model=PostResponse)
async def create_post_endpoint(
    payload: PostCreateRequest,
    session: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> PostResponse:
    caption = _normalize_caption(payload.caption)
    storage_id = _normalize_storage_id(payload.storage_id)
    if not caption and storage_id is None:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
            detail="Post requires a caption or an image",
        )

    try:
        post = await create_post(
            session,
            user_id=current_user.id,
            caption=caption,
            storage_id=storage_id,
        )
    except ServiceError as exc:
        raise to_http_exception(exc) from exc

    # Image URLs are issued per read, never taken from the creation snapshot.
    image_url = await resolve_post_image_url(post)
    return PostResponse.from_view(
        PostView(post=post, image_url=image_url),
        viewer_id=current_user.id,
    )


@router.get("", response_model=list[PostResponse])
async def list_posts(
    response: Response,
    limit: Annotated[int | None, Query(ge=1, le=MAX_PAGE_SIZE)] = None,
    offset: Annotated[int, Query(ge=0)] = 0,
    session: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> list[PostResponse]:
    views = await get_all_posts(
        session,
        limit=limit + 1 if limit is not None else None,
        offset=offset,
    )
    views, has_more = trim_page(views, limit)
    if limit is not None:
        set_next_offset_header(response, offset=offset, limit=limit, has_more=has_more)
    return [PostResponse.from_view(view, viewer_id=current_user.id) for view in views]


@router.get("/{post_id}", response_model=PostResponse)
async def get_post(
    post_id: int,
    session: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> PostResponse:
    view = await get_post_by_id(session, post_id)
    if view is None:
        raise _post_not_found()
    return PostResponse.from_view(view, viewer_id=current_user.id)


@router.delete("/{post_id}", status_code=status.HTTP_200_OK, response_model=DeletePostResponse)
async def delete_post_endpoint(
    post_id: int,
    session: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> DeletePostResponse:
    try:
        await delete_post(session, post_id=post_id, user_id=current_user.id)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc
    return DeletePostResponse(success=True)


@router.post("/{post_id}/like", status_code=status.HTTP_200_OK, response_model=LikeToggleResponse)
async def toggle_post_like(
    post_id: int,
    session: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> LikeToggleResponse:
    try:
        result = await toggle_like(session, post_id=post_id, user_id=current_user.id)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc
    return LikeToggleResponse(liked=result.liked, likes=result.likes)


@router.get("/{post_id}/like", response_model=LikeStatusResponse)
async def get_post_like_status(
    post_id: int,
    session: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> LikeStatusResponse:
    if not await post_exists(session, post_id):
        raise _post_not_found()
    liked = await has_user_liked(session, post_id=post_id, user_id=current_user.id)
    return LikeStatusResponse(liked=liked)
