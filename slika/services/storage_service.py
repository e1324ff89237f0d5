"""S3-compatible object storage for uploaded media."""
from __future__ import annotations

import logging
import re
import secrets
import string
import time
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from urllib.parse import urlparse

from boto3.session import Session
from botocore.client import BaseClient
from botocore.exceptions import BotoCoreError, ClientError
from fastapi import UploadFile
from fastapi.concurrency import run_in_threadpool

from ..config import get_settings
from ..models import MediaType
from ..security import MissingSecretError, is_placeholder, optional_setting, require_setting

logger = logging.getLogger(__name__)

VIDEO_EXTENSIONS = frozenset({".mp4", ".webm", ".mov", ".m4v", ".ogv", ".mkv"})
_BASE36 = string.digits + string.ascii_lowercase


@dataclass(frozen=True)
class StorageConfig:
    """Connection details resolved from settings."""

    access_key: str
    secret_key: str
    region: str | None
    bucket: str
    endpoint: str
    public_base_url: str


@dataclass(frozen=True)
class StorageUploadResult:
    """Where an uploaded object landed and what kind of media it holds."""

    url: str
    key: str
    bucket: str
    content_type: str
    media_type: MediaType


class StorageConfigurationError(RuntimeError):
    """Raised when required object storage settings are missing or invalid."""


class StorageUploadError(RuntimeError):
    """Raised when an upload to object storage fails."""


def _normalize_url(raw: str, name: str) -> str:
    value = raw.strip().rstrip("/")
    parsed = urlparse(value)
    if not parsed.scheme:
        value = f"https://{value.lstrip(':/')}"
        parsed = urlparse(value)
    if not parsed.netloc:
        raise StorageConfigurationError(f"{name} must include a hostname.")
    return parsed.geturl().rstrip("/")


@lru_cache(maxsize=1)
def load_storage_config() -> StorageConfig:
    """Read and validate object storage configuration."""

    settings = get_settings()
    try:
        access_key = require_setting(settings.storage_access_key, "STORAGE_ACCESS_KEY")
        secret_key = require_setting(settings.storage_secret_key, "STORAGE_SECRET_KEY")
        endpoint_raw = require_setting(settings.storage_endpoint, "STORAGE_ENDPOINT")
    except MissingSecretError as exc:
        raise StorageConfigurationError(str(exc)) from exc

    bucket = (settings.storage_bucket or "").strip()
    if is_placeholder(bucket):
        raise StorageConfigurationError("STORAGE_BUCKET must be set to the target bucket name")

    endpoint = _normalize_url(endpoint_raw, "STORAGE_ENDPOINT")
    public_url = optional_setting(settings.storage_public_url)
    if public_url:
        public_base_url = _normalize_url(public_url, "STORAGE_PUBLIC_URL")
    else:
        public_base_url = f"{endpoint}/{bucket}"

    region = optional_setting(settings.storage_region)

    return StorageConfig(
        access_key=access_key,
        secret_key=secret_key,
        region=region,
        bucket=bucket,
        endpoint=endpoint,
        public_base_url=public_base_url,
    )


@lru_cache(maxsize=1)
def get_storage_client() -> BaseClient:
    """Create a singleton boto3 S3 client for the configured endpoint."""

    config = load_storage_config()
    session = Session()
    return session.client(
        "s3",
        region_name=config.region,
        endpoint_url=config.endpoint,
        aws_access_key_id=config.access_key,
        aws_secret_access_key=config.secret_key,
    )


def media_type_for(content_type: str | None, filename: str | None = None) -> MediaType:
    """Classify an upload as image or video from its MIME type, else its extension."""

    normalized = (content_type or "").split(";")[0].strip().lower()
    if normalized.startswith("video/"):
        return MediaType.VIDEO
    if normalized.startswith("image/"):
        return MediaType.IMAGE
    path = urlparse(filename or "").path
    if Path(path).suffix.lower() in VIDEO_EXTENSIONS:
        return MediaType.VIDEO
    return MediaType.IMAGE


def _base36(value: int) -> str:
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36[remainder])
    return "".join(reversed(digits)) or "0"


def object_key(filename: str | None, folder: str, *, now_ms: int | None = None) -> str:
    """``<folder>/<epoch ms>-<random base36><.ext>`` for a new upload."""

    extension = Path(filename or "").suffix.lower()
    if extension and not re.fullmatch(r"\.[a-z0-9]{1,10}", extension):
        extension = ""

    segments = [re.sub(r"[^A-Za-z0-9._-]", "-", part).strip("-.") for part in (folder or "").split("/")]
    safe_folder = "/".join(segment for segment in segments if segment) or "uploads"

    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"{safe_folder}/{stamp}-{_base36(secrets.randbits(52))}{extension}"


def build_public_url(key: str) -> str:
    """Public URL for an object stored under ``key``."""

    config = load_storage_config()
    normalized_key = key.lstrip("/")
    return f"{config.public_base_url}/{normalized_key}" if normalized_key else config.public_base_url


async def upload_file(
    file: UploadFile,
    *,
    folder: str | None = None,
    client: BaseClient | None = None,
) -> StorageUploadResult:
    """Store ``file`` publicly and return its URL and media type."""

    config = load_storage_config()
    s3_client = client or get_storage_client()
    key = object_key(file.filename, folder or get_settings().storage_folder)
    content_type = (file.content_type or "application/octet-stream").strip() or "application/octet-stream"
    file_obj = getattr(file, "file", None)
    if file_obj is None:
        raise StorageUploadError("UploadFile is missing an underlying file buffer.")

    def _upload() -> None:
        try:
            file_obj.seek(0)
            s3_client.upload_fileobj(
                file_obj,
                config.bucket,
                key,
                ExtraArgs={"ACL": "public-read", "ContentType": content_type},
            )
        except (ClientError, BotoCoreError) as exc:  # pragma: no cover - network errors hard to reproduce
            logger.exception("Upload of %s to object storage failed", key)
            raise StorageUploadError("Upload to object storage failed") from exc

    await run_in_threadpool(_upload)

    url = build_public_url(key)
    logger.info("Stored upload %s (%s)", key, content_type)
    return StorageUploadResult(
        url=url,
        key=key,
        bucket=config.bucket,
        content_type=content_type,
        media_type=media_type_for(content_type, file.filename),
    )


__all__ = [
    "StorageConfig",
    "StorageConfigurationError",
    "StorageUploadError",
    "StorageUploadResult",
    "build_public_url",
    "get_storage_client",
    "load_storage_config",
    "media_type_for",
    "object_key",
    "upload_file",
]
