"""
Cover Image Upload Service.

Stores a single uploaded cover image per request on local disk. Files are
capped in size, restricted to common image types and saved under a random
name inside `<UPLOAD_DIR>/cover-images`. The returned path is the public URL
under the `/uploads` static mount.
"""

import os
import uuid
from typing import Optional

from starlette.datastructures import UploadFile

from core.exceptions import UploadError
from core.logging_config import get_logger

logger = get_logger(__name__)

ALLOWED_IMAGE_TYPES = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
}

PUBLIC_PREFIX = "/uploads/cover-images"


class UploadService:
    """Validates and stores cover images"""

    def __init__(self, directory: str, max_bytes: int, field: str = "coverImage"):
        self.directory = directory
        self.max_bytes = max_bytes
        self.field = field

    async def save_cover_image(self, upload: Optional[UploadFile]) -> Optional[str]:
        """Persist an upload and return its public path, or None if nothing was sent"""
        if upload is None or not upload.filename:
            return None

        content_type = (upload.content_type or "").split(";")[0].strip().lower()
        if content_type not in ALLOWED_IMAGE_TYPES:
            raise UploadError(self.field, "Only image files are allowed")

        data = await upload.read(self.max_bytes + 1)
        if len(data) > self.max_bytes:
            limit_mb = self.max_bytes / (1024 * 1024)
            raise UploadError(self.field, f"File too large. Maximum size is {limit_mb:g}MB")

        extension = ALLOWED_IMAGE_TYPES[content_type]
        filename = f"{uuid.uuid4().hex}{extension}"
        os.makedirs(self.directory, exist_ok=True)
        with open(os.path.join(self.directory, filename), "wb") as fh:
            fh.write(data)

        logger.info(
            f"Cover image stored: {filename}",
            extra={"upload_bytes": len(data), "content_type": content_type},
        )
        return f"{PUBLIC_PREFIX}/{filename}"
