"""
File upload utilities for image validation and filename handling.
"""

import io
import re
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import List

from PIL import Image, UnidentifiedImageError
from fastapi import UploadFile

from listing_api.utils.exceptions import (
    FileUploadError,
    UnsupportedFileTypeError,
    FileSizeExceededError,
)


@dataclass
class UploadedImage:
    """An uploaded image read into memory and validated."""

    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def extension(self) -> str:
        return Path(self.filename).suffix.lower()


class FileValidator:
    """Validates uploaded images against the extension and MIME allow-list."""

    ALLOWED_EXTENSIONS = [".png", ".jpg", ".jpeg", ".gif", ".webp", ".bmp", ".svg"]

    # Generic binary uploads are accepted when the extension is an image one
    GENERIC_MIME_TYPE = "application/octet-stream"

    # Formats Pillow cannot open, checked by extension only
    UNVERIFIABLE_EXTENSIONS = {".svg"}

    def __init__(self, max_file_size: int):
        self.max_file_size = max_file_size

    def validate_extension(self, filename: str) -> str:
        if not filename:
            raise FileUploadError("Filename is required")

        extension = Path(filename).suffix.lower()
        if extension not in self.ALLOWED_EXTENSIONS:
            raise UnsupportedFileTypeError(extension or filename, self.ALLOWED_EXTENSIONS)
        return extension

    def validate_mime_type(self, mime_type: str) -> str:
        mime_type = (mime_type or "").lower()
        if not (mime_type.startswith("image/") or mime_type == self.GENERIC_MIME_TYPE):
            raise UnsupportedFileTypeError(mime_type or "unknown", ["image/*", self.GENERIC_MIME_TYPE])
        return mime_type

    def validate_size(self, size: int) -> int:
        if size <= 0:
            raise FileUploadError("File is empty")
        if size > self.max_file_size:
            raise FileSizeExceededError(size, self.max_file_size)
        return size

    def verify_image_content(self, data: bytes, extension: str) -> None:
        """Check raster images actually decode."""
        if extension in self.UNVERIFIABLE_EXTENSIONS:
            return
        try:
            with Image.open(io.BytesIO(data)) as img:
                img.verify()
        except (UnidentifiedImageError, OSError, SyntaxError) as e:
            raise FileUploadError(f"Invalid image file: {e}")

    async def read_upload(self, file: UploadFile) -> UploadedImage:
        """
        Read and validate an uploaded file.

        Args:
            file: FastAPI UploadFile object

        Returns:
            UploadedImage holding the validated bytes

        Raises:
            FileUploadError, UnsupportedFileTypeError, FileSizeExceededError
        """
        extension = self.validate_extension(file.filename or "")
        mime_type = self.validate_mime_type(file.content_type or "")

        await file.seek(0)
        data = await file.read(self.max_file_size + 1)
        self.validate_size(len(data))
        self.verify_image_content(data, extension)

        return UploadedImage(filename=file.filename, content_type=mime_type, data=data)

    async def read_uploads(self, files: List[UploadFile]) -> List[UploadedImage]:
        """Validate every file before any of them is stored."""
        return [await self.read_upload(file) for file in files]


def safe_filename(original_name: str) -> str:
    """
    Build a unique, filesystem safe name keeping the original extension.

    Args:
        original_name: Client supplied filename

    Returns:
        Sanitized stem plus a random suffix and the lower-cased extension
    """
    path = Path(original_name or "image")
    stem = re.sub(r"[^A-Za-z0-9_-]", "_", path.stem) or "image"
    return f"{stem}-{uuid.uuid4().hex}{path.suffix.lower()}"
