"""
Circles Backend — Profile Picture Storage Service
===================================================

What:  Validates uploaded profile pictures and stores them on disk.
How:   Checks extension, size and sniffed content type, then writes the bytes
       to a date-organized directory under a UUID filename.
Who:   Called by ProfileService.upload_profile_picture(); the files route
       uses `resolve()` to serve stored images back.

Checks, in order:
    1. Extension in {.png, .jpg, .jpeg}
    2. Size > 0 and <= settings.max_file_size
    3. Content type sniffed by libmagic is image/png or image/jpeg
    4. UUID filename, so no user input ever reaches the path
"""

import logging
import os
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Tuple

import aiofiles

from app.config import settings
from app.exceptions import FileStorageError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

ALLOWED_MIME_TYPES = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
}

ALLOWED_EXTENSIONS = {".png", ".jpg", ".jpeg"}

# URL prefix under which routes/files.py serves the storage root
PUBLIC_PREFIX = "/api/files"


class FileService:
    """
    Manages profile picture validation, storage and lookup.

    Directory Structure:
        storage/
        └── 2024/
            └── 01/
                └── 15/
                    ├── a1b2c3d4-5678.jpg
                    └── e5f6g7h8-9012.png
    """

    def __init__(self, storage_root: Optional[str] = None):
        """
        Args:
            storage_root: Override the default storage path (used in tests).
        """
        self.storage_root = Path(storage_root or settings.storage_root).resolve()
        self.storage_root.mkdir(parents=True, exist_ok=True)
        logger.info("FileService initialized with storage_root=%s", self.storage_root)

    def validate_extension(self, filename: str) -> str:
        """Return the normalized extension, or raise ValidationError."""
        ext = Path(filename).suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                message=(
                    f"File type '{ext}' is not supported. "
                    f"Allowed types: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
                ),
                field="file",
                context={"extension": ext, "allowed": sorted(ALLOWED_EXTENSIONS)},
            )
        return ext

    def validate_size(self, content_length: Optional[int], actual_size: int) -> None:
        """
        Validate file size against settings.max_file_size.

        The reported Content-Length is checked too, since some clients send
        a header that disagrees with the body.
        """
        max_mb = settings.max_file_size / (1024 * 1024)

        if actual_size == 0:
            raise ValidationError(
                message="The uploaded file is empty.",
                field="file",
            )

        if content_length and content_length > settings.max_file_size:
            raise ValidationError(
                message=f"File is too large. Maximum size is {max_mb:.0f}MB.",
                field="file",
                context={"max_size_mb": max_mb, "reported_size": content_length},
            )

        if actual_size > settings.max_file_size:
            raise ValidationError(
                message=(
                    f"File is too large ({actual_size / (1024 * 1024):.1f}MB). "
                    f"Maximum size is {max_mb:.0f}MB."
                ),
                field="file",
                context={"max_size_mb": max_mb, "actual_size": actual_size},
            )

    def validate_mime_type(self, file_content: bytes) -> str:
        """
        Sniff the real content type from the file's magic bytes.

        Returns:
            Detected MIME type string (e.g., "image/jpeg")

        Raises:
            ValidationError if the content is not an allowed image type
            FileStorageError if libmagic itself fails
        """
        import magic

        try:
            mime_type = magic.from_buffer(file_content, mime=True)
        except Exception as e:
            logger.error("MIME type detection failed: %s", str(e))
            raise FileStorageError(
                message="Could not verify file type. Please try again.",
                context={"error": str(e)},
            )

        if mime_type not in ALLOWED_MIME_TYPES:
            raise ValidationError(
                message=(
                    f"File content type '{mime_type}' is not supported. "
                    f"The file must be a valid image (PNG or JPEG)."
                ),
                field="file",
                context={"detected_mime": mime_type, "allowed": list(ALLOWED_MIME_TYPES)},
            )

        return mime_type

    def _generate_storage_path(self, extension: str) -> Tuple[Path, str]:
        """Return (absolute_path, relative_path) for a new YYYY/MM/DD/<uuid> file."""
        now = datetime.now(timezone.utc)
        date_dir = now.strftime("%Y/%m/%d")
        unique_name = f"{uuid.uuid4()}{extension}"

        relative_path = f"{date_dir}/{unique_name}"
        return self.storage_root / relative_path, relative_path

    async def store_file(self, content: bytes, extension: str) -> Tuple[str, str]:
        """
        Write validated file content to disk.

        Returns: Tuple of (absolute_path, relative_path).
        Raises:  FileStorageError if directory creation or file write fails.
        """
        absolute_path, relative_path = self._generate_storage_path(extension)

        try:
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(absolute_path, "wb") as f:
                await f.write(content)

            logger.info("File stored: %s (%d bytes)", relative_path, len(content))
            return str(absolute_path), relative_path

        except OSError as e:
            logger.error("Failed to store file at %s: %s", absolute_path, str(e))
            raise FileStorageError(
                message="Failed to save uploaded image. Please try again.",
                context={"path": str(absolute_path), "os_error": str(e)},
            )

    async def cleanup_file(self, file_path: str) -> None:
        """
        Remove a stored file, e.g. after the profile update that referenced
        it failed. Best-effort: failures are logged, not raised.
        """
        try:
            path = Path(file_path)
            if path.exists():
                os.remove(path)
                logger.info("Cleaned up file: %s", path.name)
            else:
                logger.debug("Cleanup: file already gone: %s", path.name)
        except OSError as e:
            logger.warning("Failed to clean up file %s: %s", file_path, str(e))

    async def validate_and_store(
        self,
        filename: str,
        content: bytes,
        content_length: Optional[int] = None,
    ) -> Tuple[str, str]:
        """
        Full pipeline: extension → size → content type → write.

        Returns: Tuple of (absolute_path, relative_path).
        """
        ext = self.validate_extension(filename)
        self.validate_size(content_length, len(content))
        self.validate_mime_type(content)
        return await self.store_file(content, ext)

    def public_url(self, relative_path: str) -> str:
        """URL clients use to fetch a stored file."""
        return f"{PUBLIC_PREFIX}/{relative_path}"

    def resolve(self, relative_path: str) -> Path:
        """
        Map a client-supplied relative path to a stored file.

        Raises:
            ValidationError if the path escapes the storage root
            NotFoundError if no such file exists
        """
        full_path = (self.storage_root / relative_path).resolve()
        if not full_path.is_relative_to(self.storage_root):
            raise ValidationError(message="Invalid file path", field="path")
        if not full_path.is_file():
            raise NotFoundError(resource="file", resource_id=relative_path)
        return full_path


# ── Singleton Instance ────────────────────────────────────────────────────
file_service = FileService()
