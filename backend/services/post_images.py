"""Read-time image URL resolution for posts."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

from models import Post
from . import storage

logger = logging.getLogger(__name__)


async def resolve_post_image_url(post: Post) -> str | None:
    """Return the image URL a client should see for ``post`` right now.

    A stored image always gets a freshly signed URL; the URL persisted on the
    row is only used when the storage reference is absent or no longer
    resolves. Storage failures degrade to no image instead of failing the read.
    """
    fallback_url = post.image_url or None
    storage_id = post.image_storage_id
    if not storage_id:
        return fallback_url

    try:
        fresh_url = await asyncio.to_thread(storage.get_object_url, storage_id)
    except Exception as exc:
        logger.warning(
            "Failed to resolve post image URL",
            extra={"post_id": post.id, "storage_id": storage_id},
            exc_info=exc,
        )
        return None

    if fresh_url:
        return fresh_url
    return fallback_url


async def resolve_post_image_urls(posts: Sequence[Post]) -> list[str | None]:
    """Resolve image URLs for a batch of posts concurrently, keeping input order."""
    if not posts:
        return []
    return list(await asyncio.gather(*(resolve_post_image_url(post) for post in posts)))
