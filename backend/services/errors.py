"""Domain errors raised by the service layer."""

from __future__ import annotations


class ServiceError(Exception):
    """Base class for failures the API layer maps onto HTTP responses."""

    detail = "Request failed"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.detail)
        self.detail = detail or self.detail


class NotFoundError(ServiceError):
    detail = "Not found"


class UserNotFoundError(NotFoundError):
    detail = "User not found"


class PostNotFoundError(NotFoundError):
    detail = "Post not found"


class PostOwnershipError(ServiceError):
    """Raised when a user mutates a post they do not own."""

    detail = "Only the author can delete this post"


class UsernameTakenError(ServiceError):
    detail = "Username is already taken"


class StorageUnavailableError(ServiceError):
    """Raised when the blob store rejects or fails a call."""

    detail = "Media storage is unavailable"


class ImageNotOwnedError(ServiceError):
    """Raised when a post references a storage key reserved for another user."""

    detail = "Image was not uploaded by the current user"


class ImageInUseError(ServiceError):
    detail = "Image is already attached to a post"
