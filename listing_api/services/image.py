"""
Image service for flat galleries.

Uploads are validated up front, stored concurrently, and only recorded once
every upload in the batch succeeded. Removal commits the record change first
and then deletes the stored bytes on a best-effort basis.
"""

import asyncio
import logging
import uuid
from typing import List, Optional

from fastapi import UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from listing_api.models.flat import Flat, FlatImage
from listing_api.repositories.flat import FlatRepository
from listing_api.services.storage import ImageStorageRegistry, StoredObject
from listing_api.utils.exceptions import NotFoundError, ValidationError
from listing_api.utils.file_utils import FileValidator, UploadedImage

logger = logging.getLogger(__name__)


class ImageService:
    """Service for appending and removing flat images."""

    def __init__(
        self,
        db_session: AsyncSession,
        storage: ImageStorageRegistry,
        validator: FileValidator,
        max_images_per_request: int = 10
    ):
        self.db_session = db_session
        self.repository = FlatRepository(db_session)
        self.storage = storage
        self.validator = validator
        self.max_images_per_request = max_images_per_request

    async def get_flat(self, flat_id: uuid.UUID) -> Flat:
        flat = await self.repository.get_by_id(flat_id)
        if flat is None:
            raise NotFoundError("Flat", str(flat_id))
        return flat

    async def store_images(self, images: List[UploadedImage], folder: str) -> List[StoredObject]:
        """
        Store a batch concurrently.

        If any upload fails, the ones that succeeded are deleted again and the
        first failure is raised.
        """
        backend = self.storage.for_upload()
        results = await asyncio.gather(
            *(backend.save(image, folder) for image in images),
            return_exceptions=True,
        )

        stored = [result for result in results if isinstance(result, StoredObject)]
        failures = [result for result in results if isinstance(result, BaseException)]
        if failures:
            logger.warning(f"{len(failures)} of {len(images)} uploads failed, discarding the batch")
            await self.discard(stored)
            raise failures[0]
        return stored

    async def discard(self, stored_objects: List[StoredObject]) -> None:
        """Best-effort deletion of bytes that will not be recorded."""
        for stored in stored_objects:
            await self.delete_bytes(stored.storage, stored.path, stored.bucket)

    async def delete_bytes(self, storage: str, path: str, bucket: Optional[str]) -> bool:
        """
        Delete stored bytes through the backend named by the storage tag.

        Failures are logged, never raised.

        Returns:
            True if the bytes were deleted
        """
        try:
            await self.storage.for_record(storage).delete(path, bucket)
            return True
        except Exception as e:
            logger.warning(f"Failed to delete stored image {path} ({storage}): {e}")
            return False

    async def append_images(self, flat_id: uuid.UUID, files: List[UploadFile]) -> Flat:
        """
        Append uploaded images to a flat's gallery.

        Args:
            flat_id: Flat to extend
            files: Uploaded files from the "images" form field

        Returns:
            The flat with its full image list

        Raises:
            NotFoundError: Unknown flat
            ValidationError: No files or too many files
            FileUploadError, UnsupportedFileTypeError, FileSizeExceededError: A file was rejected
        """
        flat = await self.get_flat(flat_id)

        if not files:
            raise ValidationError('No images uploaded. Use form-data with field name "images".')
        if len(files) > self.max_images_per_request:
            raise ValidationError(f"Maximum {self.max_images_per_request} images allowed per upload")

        images = await self.validator.read_uploads(files)
        stored = await self.store_images(images, folder=str(flat.id))

        try:
            await self.repository.append_images(flat, stored)
        except Exception:
            await self.discard(stored)
            raise

        logger.info(f"Appended {len(stored)} images to flat {flat_id}")
        return flat

    async def remove_image(self, flat_id: uuid.UUID, image_id: uuid.UUID) -> Flat:
        """
        Remove one image from a flat.

        The record removal is committed before the stored bytes are deleted;
        a failed byte deletion does not fail the request.

        Raises:
            NotFoundError: Unknown flat or image
        """
        flat = await self.get_flat(flat_id)

        image: Optional[FlatImage] = next((img for img in flat.images if img.id == image_id), None)
        if image is None:
            raise NotFoundError("Image", str(image_id))

        storage, path, bucket = image.storage, image.path, image.bucket
        await self.repository.remove_image(flat, image)
        logger.info(f"Removed image {image_id} from flat {flat_id}")

        await self.delete_bytes(storage, path, bucket)
        return flat
