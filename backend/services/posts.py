"""Post creation, listing and deletion."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, cast

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from db import is_unique_violation, transaction
from models import Like, Post
from . import storage
from .errors import (
    ImageInUseError,
    ImageNotOwnedError,
    PostNotFoundError,
    PostOwnershipError,
    StorageUnavailableError,
    UserNotFoundError,
)
from .post_images import resolve_post_image_urls
from .users import get_user_by_id

logger = logging.getLogger(__name__)


def _eq(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column == value)


def _desc(column: Any) -> Any:
    return cast(Any, column).desc()


@dataclass(frozen=True)
class PostView:
    """A stored post paired with the image URL resolved for this read."""

    post: Post
    image_url: str | None


async def _to_views(posts: list[Post]) -> list[PostView]:
    image_urls = await resolve_post_image_urls(posts)
    return [
        PostView(post=post, image_url=image_url)
        for post, image_url in zip(posts, image_urls)
    ]


async def _image_in_use(session: AsyncSession, storage_id: str) -> bool:
    post_id_column = cast(ColumnElement[int], Post.id)
    result = await session.execute(
        select(post_id_column).where(_eq(Post.image_storage_id, storage_id)).limit(1)
    )
    return result.scalar_one_or_none() is not None


async def create_post(
    session: AsyncSession,
    *,
    user_id: str,
    caption: str,
    storage_id: str | None = None,
) -> Post:
    user = await get_user_by_id(session, user_id)
    if user is None:
        raise UserNotFoundError()

    if storage_id:
        if not storage.is_owned_storage_id(storage_id, user_id):
            raise ImageNotOwnedError()
        if await _image_in_use(session, storage_id):
            raise ImageInUseError()

    image_url: str | None = None
    if storage_id:
        # Stored only as a fallback; reads always re-issue the URL.
        try:
            image_url = await asyncio.to_thread(storage.get_object_url, storage_id)
        except Exception as exc:
            logger.warning(
                "Failed to resolve image URL for new post",
                extra={"user_id": user_id, "storage_id": storage_id},
                exc_info=exc,
            )

    post = Post(
        user_id=user_id,
        author_name=user.name,
        author_avatar=user.avatar_url,
        caption=caption,
        image_url=image_url,
        image_storage_id=storage_id or None,
        likes=0,
    )
    try:
        async with transaction(session):
            session.add(post)
    except IntegrityError as exc:
        # A concurrent create attached the same image first.
        if storage_id and is_unique_violation(exc):
            raise ImageInUseError() from exc
        raise
    await session.refresh(post)

    logger.info(
        "Created post",
        extra={
            "post_id": post.id,
            "user_id": user_id,
            "has_storage_id": bool(storage_id),
            "has_image_url": image_url is not None,
        },
    )
    return post


async def get_all_posts(
    session: AsyncSession,
    *,
    limit: int | None = None,
    offset: int = 0,
) -> list[PostView]:
    """Return posts from every user, newest first."""
    query = select(Post).order_by(
        _desc(Post.created_at),
        _desc(Post.id),
    )
    if offset > 0:
        query = query.offset(offset)
    if limit is not None:
        query = query.limit(limit)

    result = await session.execute(query)
    posts = list(result.scalars().all())
    logger.debug("Fetched feed posts", extra={"count": len(posts)})
    return await _to_views(posts)


async def get_posts_by_user(
    session: AsyncSession,
    user_id: str,
    *,
    limit: int | None = None,
    offset: int = 0,
) -> list[PostView]:
    """Return posts authored by ``user_id``, newest first."""
    query = (
        select(Post)
        .where(_eq(Post.user_id, user_id))
        .order_by(
            _desc(Post.created_at),
            _desc(Post.id),
        )
    )
    if offset > 0:
        query = query.offset(offset)
    if limit is not None:
        query = query.limit(limit)

    result = await session.execute(query)
    return await _to_views(list(result.scalars().all()))


async def get_post_by_id(session: AsyncSession, post_id: int) -> PostView | None:
    result = await session.execute(select(Post).where(_eq(Post.id, post_id)).limit(1))
    post = result.scalar_one_or_none()
    if post is None:
        return None
    views = await _to_views([post])
    return views[0]


async def delete_post(session: AsyncSession, *, post_id: int, user_id: str) -> None:
    """Delete a post owned by ``user_id`` along with its image and likes.

    The stored image is removed before the database rows. A storage failure
    aborts the deletion and leaves the post in place.
    """
    result = await session.execute(select(Post).where(_eq(Post.id, post_id)).limit(1))
    post = result.scalar_one_or_none()
    if post is None:
        raise PostNotFoundError()
    if post.user_id != user_id:
        raise PostOwnershipError()

    storage_id = post.image_storage_id
    if storage_id:
        try:
            await asyncio.to_thread(storage.delete_object, storage_id)
        except Exception as exc:
            logger.warning(
                "Failed to delete post image",
                extra={"post_id": post_id, "storage_id": storage_id},
                exc_info=exc,
            )
            raise StorageUnavailableError() from exc

    async with transaction(session):
        await session.execute(delete(Like).where(_eq(Like.post_id, post_id)))
        await session.delete(post)

    logger.info("Deleted post", extra={"post_id": post_id, "user_id": user_id})


async def post_exists(session: AsyncSession, post_id: int) -> bool:
    post_id_column = cast(ColumnElement[int], Post.id)
    result = await session.execute(
        select(post_id_column).where(_eq(Post.id, post_id)).limit(1)
    )
    return result.scalar_one_or_none() is not None
