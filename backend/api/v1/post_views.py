"""Shared post view models."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from services import PostView


class PostResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    author_name: str
    author_avatar: str | None = None
    caption: str = ""
    image_url: str | None = None
    image_storage_id: str | None = None
    likes: int = 0
    created_at: datetime

    @classmethod
    def from_view(cls, view: PostView, *, viewer_id: str | None = None) -> "PostResponse":
        """Build the response; the storage key is only shown to the author."""
        post = view.post
        if post.id is None:
            raise ValueError("Post record missing identifier")
        return cls(
            id=post.id,
            user_id=post.user_id,
            author_name=post.author_name,
            author_avatar=post.author_avatar,
            caption=post.caption,
            image_url=view.image_url,
            image_storage_id=post.image_storage_id if viewer_id == post.user_id else None,
            likes=post.likes,
            created_at=post.created_at,
        )


PostResponse.model_rebuild()
