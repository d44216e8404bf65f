# app/services/photo_service.py - Upload flow: validate, crop to passport size, store
import logging
from typing import Optional, Tuple

from app.core.config import settings
from app.core.errors import CropFailure, FieldError, TransientIOError, ValidationError
from app.core.security import Identity
from app.services.photo_crop import (
    CropRectangle,
    CropSession,
    CroppedPhoto,
    Size,
    open_image,
    validate_photo_upload,
)
from app.services.photo_storage import PhotoStorage

logger = logging.getLogger(__name__)


class PhotoService:
    """Runs one photo through the crop engine and hands the result to storage"""

    def __init__(self, storage: PhotoStorage, identity: Identity, max_bytes: Optional[int] = None):
        self.storage = storage
        self.identity = identity
        self.max_bytes = max_bytes or settings.max_photo_size_bytes

    def check_upload(self, content_type: Optional[str], size: int) -> None:
        problem = validate_photo_upload(content_type, size, self.max_bytes)
        if problem is not None:
            raise ValidationError([problem])

    def crop(
        self,
        data: bytes,
        rect: Optional[CropRectangle] = None,
        display_size: Optional[Size] = None,
    ) -> CroppedPhoto:
        """
        Crop ``data`` to a 450x600 passport photo.

        ``rect`` is in the coordinates of ``display_size`` (the size the image
        was shown at); without a rectangle the initial centered crop is used.
        """
        image = open_image(data)
        if image is None:
            raise ValidationError([FieldError("file", "Please select an image file")])

        session = CropSession()
        proposed = session.load(image, display_size)
        session.select(rect or proposed)
        result = session.confirm()
        if not result.ok:
            raise CropFailure(result.error)
        return result.photo

    def upload(
        self,
        data: bytes,
        content_type: Optional[str],
        rect: Optional[CropRectangle] = None,
        display_size: Optional[Size] = None,
        owner_key: Optional[str] = None,
        replaces: Optional[str] = None,
    ) -> Tuple[str, CroppedPhoto]:
        self.check_upload(content_type, len(data))
        photo = self.crop(data, rect, display_size)

        url = self.storage.upload(photo.data, owner_key or str(self.identity.id), photo.extension)
        if replaces and replaces != url:
            self.release(replaces)
        return url, photo

    def release(self, url: Optional[str]) -> bool:
        """
        Delete a superseded photo. The new state is already saved, so a
        storage failure here is logged and reported as False.
        """
        if not url:
            return False
        try:
            self.storage.delete(url)
        except TransientIOError as e:
            logger.warning(f"Could not release photo {url}: {e.message}")
            return False
        return True


__all__ = ["PhotoService"]
