"""User domain model."""

from __future__ import annotations

from datetime import datetime
from uuid import uuid4

from sqlalchemy import Column, DateTime, String, Text, func
from sqlmodel import Field, SQLModel


class User(SQLModel, table=True):
    """Profile of a person signed in through the identity provider."""

    __tablename__ = "users"

    id: str = Field(default_factory=lambda: str(uuid4()), sa_column=Column(String(36), primary_key=True))
    # Subject identifier issued by the external identity provider.
    external_id: str = Field(
        sa_column=Column(String(255), unique=True, nullable=False, index=True)
    )
    email: str = Field(
        sa_column=Column(String(255), nullable=False)
    )
    name: str = Field(
        sa_column=Column(String(80), nullable=False)
    )
    username: str = Field(
        sa_column=Column(String(64), unique=True, nullable=False, index=True)
    )
    avatar_url: str | None = Field(
        default=None, sa_column=Column(Text, nullable=True)
    )
    bio: str | None = Field(
        default=None, sa_column=Column(Text, nullable=True)
    )
    created_at: datetime = Field(
        sa_column=Column(
            DateTime(timezone=True), server_default=func.now(), nullable=False
        )
    )
    updated_at: datetime = Field(
        sa_column=Column(
            DateTime(timezone=True),
            server_default=func.now(),
            onupdate=func.now(),
            nullable=False,
        )
    )
