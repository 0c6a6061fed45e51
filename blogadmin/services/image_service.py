"""Image storage for blog posts: validation, local disk storage, removal."""

import logging
import os
import secrets
from io import BytesIO
from pathlib import Path
from typing import Optional

from PIL import Image, UnidentifiedImageError

from blogadmin.core.config import settings
from blogadmin.core.exceptions import InvalidUploadError, StorageError

logger = logging.getLogger("blogadmin.images")

EXTENSION_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
}
ALLOWED_CONTENT_TYPES = {"image/jpeg", "image/png", "image/gif", "image/webp"}
CONTENT_TYPE_ALIASES = {"image/jpg": "image/jpeg", "image/pjpeg": "image/jpeg"}
PIL_FORMATS = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "GIF": "image/gif",
    "WEBP": "image/webp",
}


def sniff_image_type(data: bytes) -> Optional[str]:
    """Return the MIME type Pillow recognises in ``data``, or None."""
    try:
        with Image.open(BytesIO(data)) as img:
            fmt = img.format
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError):
        return None
    return PIL_FORMATS.get(fmt or "")


class ImageService:
    """Stores uploaded images under ``upload_dir`` and returns reference paths."""

    def __init__(
        self,
        upload_dir: Optional[str] = None,
        url_prefix: Optional[str] = None,
        max_bytes: Optional[int] = None,
    ):
        self.upload_dir = Path(upload_dir or settings.UPLOAD_DIR)
        self.url_prefix = (url_prefix or settings.UPLOAD_URL_PREFIX).rstrip("/")
        self.max_bytes = max_bytes or settings.MAX_UPLOAD_SIZE_MB * 1024 * 1024

    def ensure_dir(self) -> None:
        self.upload_dir.mkdir(parents=True, exist_ok=True)

    def save(self, filename: Optional[str], content_type: Optional[str], data: bytes) -> str:
        """Validate and store an image, returning its reference path.

        The bytes are written before the content check; if any check fails
        the written file is removed before the error propagates.

        Raises:
            InvalidUploadError: Wrong extension or declared type, too large,
                or content that is not the declared image type.
        """
        ext = os.path.splitext(filename or "")[1].lower()
        declared = (content_type or "").split(";")[0].strip().lower()
        declared = CONTENT_TYPE_ALIASES.get(declared, declared)
        if ext not in EXTENSION_TYPES or declared not in ALLOWED_CONTENT_TYPES:
            raise InvalidUploadError("Only images allowed")
        if EXTENSION_TYPES[ext] != declared:
            raise InvalidUploadError(
                f"File extension {ext} does not match declared type {declared}"
            )
        if len(data) > self.max_bytes:
            raise InvalidUploadError(
                f"Image exceeds {self.max_bytes // (1024 * 1024)}MB limit"
            )

        self.ensure_dir()
        name = f"{secrets.token_hex(16)}{ext}"
        path = self.upload_dir / name
        try:
            path.write_bytes(data)
            actual = sniff_image_type(path.read_bytes())
            if actual is None:
                raise InvalidUploadError("Invalid file type")
            if actual != declared:
                raise InvalidUploadError(
                    f"Declared type {declared} does not match content ({actual})"
                )
        except InvalidUploadError:
            path.unlink(missing_ok=True)
            raise
        except OSError as e:
            path.unlink(missing_ok=True)
            raise StorageError(f"Could not store image: {e}")

        logger.info("Stored image %s (%s, %d bytes)", name, actual, len(data))
        return f"{self.url_prefix}/{name}"

    def path_for(self, reference: Optional[str]) -> Optional[Path]:
        """Filesystem path for a reference returned by ``save``."""
        if not reference or not reference.startswith(self.url_prefix + "/"):
            return None
        name = reference[len(self.url_prefix) + 1:]
        if not name or Path(name).name != name:
            return None
        return self.upload_dir / name

    def delete(self, reference: Optional[str]) -> None:
        """Remove a stored image; unknown or missing references are ignored."""
        path = self.path_for(reference)
        if path is None:
            return
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Could not delete image %s: %s", reference, e)


image_service = ImageService()
