"""MinIO client utilities."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from functools import lru_cache
from uuid import uuid4

from minio import Minio
from minio.error import S3Error

from core import settings

MISSING_OBJECT_CODES = frozenset({"NoSuchKey", "NoSuchObject", "ResourceNotFound"})
POST_OBJECT_PREFIX = "posts"


@dataclass(frozen=True)
class UploadTarget:
    storage_id: str
    upload_url: str
    expires_in: int


@lru_cache
def get_minio_client() -> Minio:
    """Return a cached MinIO client configured from settings."""
    endpoint = settings.minio_endpoint
    access_key = settings.minio_access_key
    secret_key = settings.minio_secret_key
    secure = settings.minio_secure

    return Minio(
        endpoint,
        access_key=access_key,
        secret_key=secret_key,
        secure=secure,
    )


def ensure_bucket(client: Minio | None = None) -> None:
    """Ensure the configured bucket exists."""
    client = client or get_minio_client()
    bucket_name = settings.minio_bucket

    if client.bucket_exists(bucket_name):  # pragma: no cover - network call
        return

    try:
        client.make_bucket(bucket_name)  # pragma: no cover - network call
    except S3Error as exc:  # pragma: no cover - handle race conditions
        allowed_codes = {"BucketAlreadyOwnedByYou", "BucketAlreadyExists"}
        if exc.code not in allowed_codes:
            raise


def _normalize_storage_id(storage_id: str) -> str:
    normalized = storage_id.strip().lstrip("/")
    if not normalized:
        raise ValueError("storage_id must not be empty")
    return normalized


def owner_prefix(owner_id: str) -> str:
    return f"{POST_OBJECT_PREFIX}/{owner_id}/"


def new_storage_id(owner_id: str) -> str:
    return f"{owner_prefix(owner_id)}{uuid4().hex}"


def is_owned_storage_id(storage_id: str, owner_id: str) -> bool:
    """Return True when ``storage_id`` is a key reserved for ``owner_id``."""
    prefix = owner_prefix(owner_id)
    if not storage_id.startswith(prefix):
        return False
    object_name = storage_id[len(prefix):]
    return bool(object_name) and "/" not in object_name


def generate_upload_url(
    owner_id: str,
    *,
    expires_seconds: int | None = None,
    client: Minio | None = None,
) -> UploadTarget:
    """Reserve a storage id under ``owner_id`` and return a pre-signed PUT URL for it.

    The bucket is created once at application startup.
    """
    ttl = expires_seconds if expires_seconds is not None else settings.upload_url_ttl_seconds
    if ttl <= 0:
        raise ValueError("expires_seconds must be positive")

    client = client or get_minio_client()
    storage_id = new_storage_id(owner_id)
    upload_url = client.presigned_put_object(
        settings.minio_bucket,
        storage_id,
        expires=timedelta(seconds=ttl),
    )
    return UploadTarget(storage_id=storage_id, upload_url=upload_url, expires_in=ttl)


def get_object_url(
    storage_id: str,
    *,
    expires_seconds: int | None = None,
    client: Minio | None = None,
) -> str | None:
    """Return a short-lived pre-signed GET URL, or None when the object is gone."""
    normalized_storage_id = _normalize_storage_id(storage_id)
    ttl = expires_seconds if expires_seconds is not None else settings.signed_url_ttl_seconds
    if ttl <= 0:
        raise ValueError("expires_seconds must be positive")

    client = client or get_minio_client()
    try:
        client.stat_object(settings.minio_bucket, normalized_storage_id)
    except S3Error as exc:
        if exc.code in MISSING_OBJECT_CODES:
            return None
        raise
    return client.presigned_get_object(
        settings.minio_bucket,
        normalized_storage_id,
        expires=timedelta(seconds=ttl),
    )


def delete_object(storage_id: str, client: Minio | None = None) -> None:
    """Delete an object from the configured bucket when it exists."""
    normalized_storage_id = _normalize_storage_id(storage_id)
    client = client or get_minio_client()
    try:
        client.remove_object(settings.minio_bucket, normalized_storage_id)
    except S3Error as exc:
        if exc.code not in MISSING_OBJECT_CODES:
            raise
