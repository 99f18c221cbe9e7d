"""SQLModel models package."""

from .like import Like
from .post import MAX_POST_CAPTION_LENGTH, Post
from .user import User

__all__ = [
    "User",
    "Post",
    "Like",
    "MAX_POST_CAPTION_LENGTH",
]
