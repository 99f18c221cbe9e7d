"""Translation of service errors into HTTP errors."""

from __future__ import annotations

from fastapi import HTTPException, status

from services import (
    ImageInUseError,
    ImageNotOwnedError,
    NotFoundError,
    PostOwnershipError,
    ServiceError,
    StorageUnavailableError,
    UsernameTakenError,
)

_STATUS_BY_ERROR: tuple[tuple[type[ServiceError], int], ...] = (
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (PostOwnershipError, status.HTTP_403_FORBIDDEN),
    (ImageNotOwnedError, status.HTTP_403_FORBIDDEN),
    (ImageInUseError, status.HTTP_409_CONFLICT),
    (UsernameTakenError, status.HTTP_409_CONFLICT),
    (StorageUnavailableError, status.HTTP_502_BAD_GATEWAY),
)


def to_http_exception(error: ServiceError) -> HTTPException:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return HTTPException(status_code=status_code, detail=error.detail)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=error.detail,
    )
