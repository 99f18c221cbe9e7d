"""Like toggling and like counter maintenance."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, cast

from sqlalchemy import case, delete, exists, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from db import is_unique_violation, transaction
from models import Like, Post
from .errors import PostNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_RECONCILE_BATCH_SIZE = 500


def _eq(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column == value)


def _ne(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column != value)


@dataclass(frozen=True)
class LikeToggleResult:
    liked: bool
    likes: int


async def _toggle_like_once(
    session: AsyncSession,
    *,
    post_id: int,
    user_id: str,
) -> LikeToggleResult:
    likes_column = cast(Any, Post.likes)
    async with transaction(session):
        removed = await session.execute(
            delete(Like)
            .where(_eq(Like.user_id, user_id), _eq(Like.post_id, post_id))
            .execution_options(synchronize_session=False)
        )
        liked = removed.rowcount == 0
        if liked:
            new_likes = likes_column + 1
        else:
            new_likes = case((likes_column > 0, likes_column - 1), else_=0)

        # The counter moves in the same statement that proves the post exists.
        counter_result = await session.execute(
            update(Post)
            .where(_eq(Post.id, post_id))
            .values(likes=new_likes)
            .returning(likes_column)
            .execution_options(synchronize_session=False)
        )
        likes = counter_result.scalar_one_or_none()
        if likes is None:
            raise PostNotFoundError()

        if liked:
            session.add(Like(user_id=user_id, post_id=post_id))
            await session.flush()

    return LikeToggleResult(liked=liked, likes=int(likes))


async def toggle_like(
    session: AsyncSession,
    *,
    post_id: int,
    user_id: str,
) -> LikeToggleResult:
    """Flip the like of ``user_id`` on ``post_id`` and return the new state.

    The like row and the post counter change in one transaction. A concurrent
    toggle that inserted the same like first is resolved by toggling again
    against the committed state.
    """
    try:
        return await _toggle_like_once(session, post_id=post_id, user_id=user_id)
    except IntegrityError as exc:
        if not is_unique_violation(exc):
            raise
        logger.info(
            "Retrying like toggle after concurrent insert",
            extra={"post_id": post_id, "user_id": user_id},
        )
    return await _toggle_like_once(session, post_id=post_id, user_id=user_id)


async def has_user_liked(
    session: AsyncSession,
    *,
    post_id: int,
    user_id: str,
) -> bool:
    result = await session.execute(
        select(
            exists().where(_eq(Like.user_id, user_id), _eq(Like.post_id, post_id))
        )
    )
    return bool(result.scalar())


async def find_drifted_post_ids(
    session: AsyncSession,
    *,
    limit: int = DEFAULT_RECONCILE_BATCH_SIZE,
) -> list[int]:
    """Return ids of posts whose counter differs from their like rows."""
    like_post_id = cast(ColumnElement[int], Like.post_id)
    like_totals = (
        select(like_post_id.label("post_id"), func.count().label("like_total"))
        .group_by(like_post_id)
        .subquery()
    )
    actual_total = func.coalesce(like_totals.c.like_total, 0)
    post_id_column = cast(ColumnElement[int], Post.id)
    result = await session.execute(
        select(post_id_column)
        .outerjoin(like_totals, _eq(like_totals.c.post_id, Post.id))
        .where(_ne(Post.likes, actual_total))
        .order_by(post_id_column)
        .limit(limit)
    )
    return [int(post_id) for post_id in result.scalars().all()]


async def reconcile_like_counts(
    session: AsyncSession,
    *,
    batch_size: int = DEFAULT_RECONCILE_BATCH_SIZE,
    max_batches: int | None = None,
) -> int:
    """Rewrite drifted post counters from the like rows; return posts fixed."""
    if batch_size <= 0:
        raise ValueError("batch_size must be positive")

    actual_total = (
        select(func.count())
        .where(_eq(Like.post_id, Post.id))
        .correlate(Post)
        .scalar_subquery()
    )
    fixed = 0
    batches = 0
    while max_batches is None or batches < max_batches:
        post_ids = await find_drifted_post_ids(session, limit=batch_size)
        if not post_ids:
            break
        async with transaction(session):
            await session.execute(
                update(Post)
                .where(cast(Any, Post.id).in_(post_ids))
                .values(likes=actual_total)
                .execution_options(synchronize_session=False)
            )
        fixed += len(post_ids)
        batches += 1
        logger.info(
            "Reconciled post like counters",
            extra={"post_count": len(post_ids), "batch": batches},
        )
    return fixed
