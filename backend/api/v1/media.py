"""Direct-to-storage upload endpoints."""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel

from api.deps import get_current_user
from models import User
from services import generate_upload_url

router = APIRouter(prefix="/media", tags=["media"])
logger = logging.getLogger(__name__)

MEDIA_NO_STORE_CACHE_CONTROL = "no-store"


class UploadURLResponse(BaseModel):
    storage_id: str
    upload_url: str
    expires_in: int


@router.post("/upload-url", response_model=UploadURLResponse)
async def create_upload_url(
    response: Response,
    current_user: User = Depends(get_current_user),
) -> UploadURLResponse:
    """Issue a pre-signed PUT URL the client uploads an image to.

    The returned ``storage_id`` is what the client passes when creating the post.
    """
    response.headers["Cache-Control"] = MEDIA_NO_STORE_CACHE_CONTROL
    try:
        target = await asyncio.to_thread(generate_upload_url, current_user.id)
    except Exception as exc:
        logger.warning(
            "Failed to issue upload URL",
            extra={"user_id": current_user.id},
            exc_info=exc,
        )
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Media storage is unavailable",
        ) from exc
    return UploadURLResponse(
        storage_id=target.storage_id,
        upload_url=target.upload_url,
        expires_in=target.expires_in,
    )
