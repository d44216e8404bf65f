# app/api/routers/photos.py - Passport photo upload (crop + store) and release
from typing import Optional, Tuple
import logging

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status

from app.core.errors import FieldError, ValidationError
from app.schemas.student import PhotoOut
from app.services.photo_crop import CropRectangle
from app.services.photo_service import PhotoService
from app.services.photo_storage import PhotoStorage, get_photo_storage, is_managed_photo_url
from app.services.student_service import StudentService
from app.api.routers.students import get_student_service

logger = logging.getLogger(__name__)
router = APIRouter()


def _crop_rect(x, y, width, height) -> Optional[CropRectangle]:
    given = [v is not None for v in (x, y, width, height)]
    if not any(given):
        return None
    if not all(given):
        raise ValidationError([FieldError("crop", "x, y, width and height must be sent together")])
    return CropRectangle(x=x, y=y, width=width, height=height)


def _display_size(display_width, display_height) -> Optional[Tuple[float, float]]:
    if display_width is None and display_height is None:
        return None
    if display_width is None or display_height is None:
        raise ValidationError([FieldError("display", "display_width and display_height must be sent together")])
    return display_width, display_height


@router.post("/", response_model=PhotoOut, status_code=status.HTTP_201_CREATED)
async def upload_photo(
    file: UploadFile = File(...),
    x: Optional[float] = Form(None),
    y: Optional[float] = Form(None),
    width: Optional[float] = Form(None, gt=0),
    height: Optional[float] = Form(None, gt=0),
    display_width: Optional[float] = Form(None, gt=0),
    display_height: Optional[float] = Form(None, gt=0),
    owner_key: Optional[str] = Form(None, max_length=100),
    replaces: Optional[str] = Form(None),
    service: StudentService = Depends(get_student_service),
    storage: PhotoStorage = Depends(get_photo_storage),
):
    """
    Crop an uploaded image to a 450x600 passport photo and store it.

    The crop rectangle is given in the coordinates of the image as it was
    displayed (``display_width`` x ``display_height``); without a rectangle
    the centered initial crop is used. ``replaces`` names a previous photo
    URL to release once the new one is stored.
    """
    photos = PhotoService(storage, service.identity)
    # Reject oversized uploads before reading them
    if file.size is not None:
        photos.check_upload(file.content_type, file.size)

    data = await file.read()
    rect = _crop_rect(x, y, width, height)
    display_size = _display_size(display_width, display_height)

    if replaces:
        if not is_managed_photo_url(replaces):
            raise ValidationError([FieldError("replaces", "Not a student photo URL")])
        service.check_photo_release(replaces)

    url, photo = photos.upload(
        data,
        file.content_type,
        rect=rect,
        display_size=display_size,
        owner_key=owner_key,
        replaces=replaces,
    )
    logger.info(f"Photo stored for {service.identity.email or service.identity.id}: {url}")
    return PhotoOut(photo_url=url, width=photo.width, height=photo.height)


@router.delete("/")
async def delete_photo(
    url: str = Query(..., min_length=1),
    service: StudentService = Depends(get_student_service),
    storage: PhotoStorage = Depends(get_photo_storage),
):
    if not is_managed_photo_url(url):
        raise ValidationError([FieldError("url", "Not a student photo URL")])

    service.check_photo_release(url)
    storage.delete(url)
    return {"success": True}
