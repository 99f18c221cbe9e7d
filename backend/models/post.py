"""Post domain model."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
    text,
)
from sqlmodel import Field, SQLModel

MAX_POST_CAPTION_LENGTH = 2200


class Post(SQLModel, table=True):
    """Image post with an author snapshot and a denormalized like counter."""

    __tablename__ = "posts"
    __table_args__ = (
        CheckConstraint("likes >= 0", name="ck_posts_likes_non_negative"),
        Index("ix_posts_created_at_id", "created_at", "id"),
        Index("ix_posts_user_created_at_id", "user_id", "created_at", "id"),
    )

    id: int | None = Field(
        default=None,
        sa_column=Column(Integer, primary_key=True, autoincrement=True),
    )
    user_id: str = Field(
        sa_column=Column(
            String(36),
            ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        )
    )
    # Author name/avatar are captured when the post is created and are not
    # rewritten by later profile edits.
    author_name: str = Field(
        sa_column=Column(String(80), nullable=False)
    )
    author_avatar: str | None = Field(
        default=None, sa_column=Column(Text, nullable=True)
    )
    caption: str = Field(
        default="",
        sa_column=Column(
            String(MAX_POST_CAPTION_LENGTH),
            nullable=False,
            server_default=text("''"),
        ),
    )
    # Only a fallback for posts without a storage reference; URLs for stored
    # images are re-issued on every read.
    image_url: str | None = Field(
        default=None, sa_column=Column(Text, nullable=True)
    )
    image_storage_id: str | None = Field(
        default=None, sa_column=Column(String(255), nullable=True, unique=True, index=True)
    )
    likes: int = Field(
        default=0,
        sa_column=Column(Integer, nullable=False, server_default=text("0")),
    )
    created_at: datetime = Field(
        sa_column=Column(
            DateTime(timezone=True), server_default=func.now(), nullable=False
        )
    )
