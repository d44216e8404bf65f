# app/services/photo_storage.py - Student photo asset storage backed by Cloudinary
import io
import logging
import time
from typing import Optional
from urllib.parse import urlparse

import cloudinary
import cloudinary.uploader
from cloudinary.exceptions import Error as CloudinaryError

from app.core.config import settings
from app.core.errors import TransientIOError
from app.core.security import security_utils

logger = logging.getLogger(__name__)


class PhotoStorage:
    """Interface for the hosted asset store holding student photos"""

    def upload(self, data: bytes, owner_key: str, extension: str = "jpg") -> str:
        """Store ``data`` and return its public URL"""
        raise NotImplementedError

    def delete(self, url: str) -> None:
        raise NotImplementedError


def public_id_from_url(url: str) -> Optional[str]:
    """
    Recover ``<folder>/<name>`` from a delivery URL such as
    ``https://res.cloudinary.com/demo/image/upload/v1/student-photos/abc-1700.jpg``.
    """
    path = urlparse(url or "").path
    segments = [s for s in path.split("/") if s]
    if len(segments) < 2:
        return None
    folder, filename = segments[-2], segments[-1]
    name = filename.rsplit(".", 1)[0]
    return f"{folder}/{name}" if name else None


def is_managed_photo_url(url: Optional[str], folder: Optional[str] = None) -> bool:
    """True only for https URLs on the delivery host that name a photo in ``folder``"""
    try:
        parsed = urlparse(url or "")
        port = parsed.port
    except ValueError:
        return False
    if parsed.scheme != "https" or port not in (None, 443):
        return False
    if parsed.username or parsed.password or parsed.hostname != settings.PHOTO_DELIVERY_HOST.lower():
        return False
    public_id = public_id_from_url(url)
    return bool(public_id) and public_id.startswith(f"{folder or settings.PHOTO_FOLDER}/")


class CloudinaryPhotoStorage(PhotoStorage):
    """Uploads photos to ``<PHOTO_FOLDER>/<owner>-<timestamp>`` on Cloudinary"""

    def __init__(self, folder: Optional[str] = None):
        self.folder = folder or settings.PHOTO_FOLDER
        self._configured = False

    def _configure(self):
        if self._configured:
            return
        if not settings.cloudinary_configured:
            raise TransientIOError("Photo storage is not configured")
        cloudinary.config(
            cloud_name=settings.CLOUDINARY_CLOUD_NAME,
            api_key=settings.CLOUDINARY_API_KEY,
            api_secret=settings.CLOUDINARY_API_SECRET,
            secure=True,
        )
        self._configured = True
        logger.info(
            f"Photo storage configured for {settings.CLOUDINARY_CLOUD_NAME} "
            f"(key {security_utils.mask_sensitive_data(settings.CLOUDINARY_API_KEY)})"
        )

    def upload(self, data: bytes, owner_key: str, extension: str = "jpg") -> str:
        self._configure()
        owner = security_utils.sanitize_filename(owner_key or "temp")
        public_id = f"{owner}-{int(time.time() * 1000)}"

        try:
            result = cloudinary.uploader.upload(
                io.BytesIO(data),
                folder=self.folder,
                public_id=public_id,
                format=extension,
                resource_type="image",
                overwrite=False,
            )
        except CloudinaryError as e:
            logger.error(f"Upload error: {e}")
            raise TransientIOError("Failed to upload photo")
        except OSError as e:
            logger.error(f"Error uploading photo: {e}")
            raise TransientIOError("Failed to upload photo")

        url = result.get("secure_url") or result.get("url")
        if not url:
            logger.error(f"Upload returned no URL for {self.folder}/{public_id}")
            raise TransientIOError("Failed to upload photo")

        logger.info(f"Photo uploaded: {self.folder}/{public_id}")
        return url

    def delete(self, url: str) -> None:
        self._configure()
        public_id = public_id_from_url(url)
        if not public_id:
            logger.warning(f"Cannot derive photo id from URL: {url}")
            return

        try:
            result = cloudinary.uploader.destroy(public_id, resource_type="image")
        except CloudinaryError as e:
            logger.error(f"Delete error: {e}")
            raise TransientIOError("Failed to delete photo")
        except OSError as e:
            logger.error(f"Error deleting photo: {e}")
            raise TransientIOError("Failed to delete photo")

        if result.get("result") not in ("ok", "not found"):
            logger.error(f"Unexpected delete result for {public_id}: {result}")
            raise TransientIOError("Failed to delete photo")
        logger.info(f"Photo deleted: {public_id}")


_storage: Optional[PhotoStorage] = None


def get_photo_storage() -> PhotoStorage:
    """FastAPI dependency returning the process-wide storage client"""
    global _storage
    if _storage is None:
        _storage = CloudinaryPhotoStorage()
    return _storage


__all__ = ["PhotoStorage", "CloudinaryPhotoStorage", "public_id_from_url", "is_managed_photo_url", "get_photo_storage"]
