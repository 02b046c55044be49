"""
Image storage backends.

Images are written either to the local upload directory or to an
S3-compatible bucket. Every stored object is tagged with the backend that
holds it, and deletions are routed back to that same backend.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Protocol

import aiofiles
import aiofiles.os
import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from listing_api.config import Settings
from listing_api.models.flat import StorageBackend
from listing_api.utils.exceptions import StorageError
from listing_api.utils.file_utils import UploadedImage, safe_filename

logger = logging.getLogger(__name__)


@dataclass
class StoredObject:
    """Where an uploaded image ended up."""

    storage: str
    url: str
    path: str
    size: int
    filename: str
    content_type: str
    bucket: Optional[str] = None


class ImageStorage(Protocol):
    """Operations the image service needs from a storage backend."""

    tag: str

    async def save(self, image: UploadedImage, folder: str) -> StoredObject:
        ...

    async def delete(self, path: str, bucket: Optional[str] = None) -> None:
        ...


class LocalImageStorage:
    """Stores images under the upload directory, served at the uploads URL prefix."""

    tag = StorageBackend.LOCAL.value

    def __init__(self, upload_dir: str, url_prefix: str, key_prefix: str = "flats"):
        self.upload_dir = Path(upload_dir)
        self.url_prefix = url_prefix.rstrip("/")
        self.key_prefix = key_prefix

    async def save(self, image: UploadedImage, folder: str) -> StoredObject:
        relative_path = f"{self.key_prefix}/{folder}/{safe_filename(image.filename)}"
        file_path = self.upload_dir / relative_path
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(file_path, "wb") as f:
                await f.write(image.data)
        except OSError as e:
            raise StorageError(f"Failed to save image locally: {e}")

        logger.debug(f"Saved image to {file_path}")
        return StoredObject(
            storage=self.tag,
            url=f"{self.url_prefix}/{relative_path}",
            path=relative_path,
            size=image.size,
            filename=image.filename,
            content_type=image.content_type,
        )

    async def delete(self, path: str, bucket: Optional[str] = None) -> None:
        file_path = self.upload_dir / path
        try:
            await aiofiles.os.remove(file_path)
        except FileNotFoundError:
            logger.debug(f"Local image already gone: {file_path}")
        except OSError as e:
            raise StorageError(f"Failed to delete local image {path}: {e}")


@dataclass
class S3ImageStorage:
    """
    S3-compatible object storage.
    The boto3 client is blocking, so calls run in a worker thread.
    """

    bucket: str
    region: Optional[str] = None
    endpoint_url: Optional[str] = None
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    public_base_url: Optional[str] = None
    key_prefix: str = "flats"
    tag: str = field(default=StorageBackend.S3.value, init=False)

    def __post_init__(self):
        config = Config(signature_version="s3v4", retries={"max_attempts": 3})
        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint_url,
            region_name=self.region,
            aws_access_key_id=self.access_key_id,
            aws_secret_access_key=self.secret_access_key,
            config=config,
        )

    def public_url(self, key: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url.rstrip('/')}/{key}"
        if self.endpoint_url:
            return f"{self.endpoint_url.rstrip('/')}/{self.bucket}/{key}"
        return f"https://{self.bucket}.s3.amazonaws.com/{key}"

    async def save(self, image: UploadedImage, folder: str) -> StoredObject:
        key = f"{self.key_prefix}/{folder}/{safe_filename(image.filename)}"
        try:
            await asyncio.to_thread(
                self._client.put_object,
                Bucket=self.bucket,
                Key=key,
                Body=image.data,
                ContentType=image.content_type,
            )
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"Failed to upload image to bucket {self.bucket}: {e}")

        return StoredObject(
            storage=self.tag,
            url=self.public_url(key),
            path=key,
            size=image.size,
            filename=image.filename,
            content_type=image.content_type,
            bucket=self.bucket,
        )

    async def delete(self, path: str, bucket: Optional[str] = None) -> None:
        try:
            await asyncio.to_thread(
                self._client.delete_object,
                Bucket=bucket or self.bucket,
                Key=path,
            )
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"Failed to delete image {path}: {e}")


class ImageStorageRegistry:
    """
    Holds the configured backends.
    New uploads go to the default backend; deletions follow each record's tag.
    """

    def __init__(self, backends: Dict[str, ImageStorage], default: str):
        if default not in backends:
            raise ValueError(f"Default image storage '{default}' is not configured")
        self.backends = backends
        self.default = default

    def for_upload(self) -> ImageStorage:
        return self.backends[self.default]

    def for_record(self, tag: str) -> ImageStorage:
        try:
            return self.backends[tag]
        except KeyError:
            raise StorageError(f"No image storage configured for backend '{tag}'")


def build_image_storage(settings: Settings) -> ImageStorageRegistry:
    """Create the storage registry from settings."""
    backends: Dict[str, ImageStorage] = {
        StorageBackend.LOCAL.value: LocalImageStorage(settings.upload_dir, settings.uploads_url_prefix),
    }
    if settings.s3_bucket:
        backends[StorageBackend.S3.value] = S3ImageStorage(
            bucket=settings.s3_bucket,
            region=settings.s3_region,
            endpoint_url=settings.s3_endpoint_url,
            access_key_id=settings.s3_access_key_id,
            secret_access_key=settings.s3_secret_access_key,
            public_base_url=settings.s3_public_base_url,
            key_prefix=settings.s3_key_prefix,
        )
    return ImageStorageRegistry(backends, default=settings.image_storage_backend)
