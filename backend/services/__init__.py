"""Business logic services."""

from .errors import (
    ImageInUseError,
    ImageNotOwnedError,
    NotFoundError,
    PostNotFoundError,
    PostOwnershipError,
    ServiceError,
    StorageUnavailableError,
    UserNotFoundError,
    UsernameTakenError,
)
from .likes import LikeToggleResult, has_user_liked, reconcile_like_counts, toggle_like
from .post_images import resolve_post_image_url, resolve_post_image_urls
from .posts import (
    PostView,
    create_post,
    delete_post,
    get_all_posts,
    get_post_by_id,
    get_posts_by_user,
    post_exists,
)
from .storage import (
    UploadTarget,
    delete_object,
    ensure_bucket,
    generate_upload_url,
    get_minio_client,
    is_owned_storage_id,
    get_object_url,
)
from .users import (
    derive_username,
    get_or_create_user,
    get_user_by_external_id,
    get_user_by_id,
    update_user_profile,
)

__all__ = [
    "ServiceError",
    "NotFoundError",
    "UserNotFoundError",
    "PostNotFoundError",
    "PostOwnershipError",
    "UsernameTakenError",
    "StorageUnavailableError",
    "ImageNotOwnedError",
    "ImageInUseError",
    "LikeToggleResult",
    "toggle_like",
    "has_user_liked",
    "reconcile_like_counts",
    "resolve_post_image_url",
    "resolve_post_image_urls",
    "PostView",
    "create_post",
    "delete_post",
    "get_all_posts",
    "get_post_by_id",
    "get_posts_by_user",
    "post_exists",
    "UploadTarget",
    "get_minio_client",
    "ensure_bucket",
    "generate_upload_url",
    "is_owned_storage_id",
    "get_object_url",
    "delete_object",
    "derive_username",
    "get_or_create_user",
    "get_user_by_external_id",
    "get_user_by_id",
    "update_user_profile",
]
