"""Shared pagination constants and response header helpers."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TypeVar

from fastapi import Response

MAX_PAGE_SIZE = 100

T = TypeVar("T")


def trim_page(items: Sequence[T], limit: int | None) -> tuple[list[T], bool]:
    """Drop the look-ahead row fetched to detect a following page."""
    if limit is None:
        return list(items), False
    return list(items[:limit]), len(items) > limit


def set_next_offset_header(
    response: Response,
    *,
    offset: int,
    limit: int,
    has_more: bool,
) -> None:
    if has_more:
        response.headers["X-Next-Offset"] = str(offset + limit)
