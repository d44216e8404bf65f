# app/services/photo_crop.py - Passport-style photo crop engine (3:4, 450x600 JPEG)
"""
Photo crop engine.

The pure core is ``crop()``: it maps a rectangle in the source image's native
pixel space onto a fixed-size output by resampling the region to fill the
whole output (a stretch, never a letterbox). ``CropSession`` wraps it in the
interactive lifecycle used by the upload flow::

    IDLE -> IMAGE_LOADED -> CROP_SELECTED -> PROCESSING -> DONE | FAILED

Rectangles handed to a session are in *displayed* coordinates (the size the
image was shown at while the user picked the crop) and are scaled back to
native pixels on confirm.
"""
import enum
import io
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from PIL import Image, ImageOps, UnidentifiedImageError

from app.core.constants import (
    PASSPORT_ASPECT_RATIO,
    PASSPORT_OUTPUT_SIZE,
    INITIAL_CROP_COVERAGE,
    JPEG_QUALITY,
)
from app.core.errors import CropFailure, FieldError

logger = logging.getLogger(__name__)

Size = Tuple[int, int]

NO_SELECTION_MESSAGE = "Please select a crop area"
PROCESSING_FAILED_MESSAGE = "Failed to process image"


@dataclass(frozen=True)
class CropRectangle:
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def aspect(self) -> float:
        return self.width / self.height if self.height else 0.0

    def scaled(self, scale_x: float, scale_y: float) -> "CropRectangle":
        return CropRectangle(
            x=self.x * scale_x,
            y=self.y * scale_y,
            width=self.width * scale_x,
            height=self.height * scale_y,
        )

    def fits_within(self, bounds: Size, tolerance: float = 1e-6) -> bool:
        width, height = bounds
        return (
            self.x >= -tolerance
            and self.y >= -tolerance
            and self.right <= width + tolerance
            and self.bottom <= height + tolerance
        )


class CropState(str, enum.Enum):
    IDLE = "IDLE"
    IMAGE_LOADED = "IMAGE_LOADED"
    CROP_SELECTED = "CROP_SELECTED"
    PROCESSING = "PROCESSING"
    DONE = "DONE"
    FAILED = "FAILED"


@dataclass(frozen=True)
class CroppedPhoto:
    data: bytes
    width: int
    height: int
    content_type: str = "image/jpeg"
    extension: str = "jpg"


@dataclass(frozen=True)
class CropResult:
    photo: Optional[CroppedPhoto] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.photo is not None

    @classmethod
    def failure(cls, message: str) -> "CropResult":
        return cls(error=message)


# ---------------------------------------------------------------------------
# Geometry
# ---------------------------------------------------------------------------

def initial_crop(
    bounds: Size,
    aspect: float = PASSPORT_ASPECT_RATIO,
    coverage: float = INITIAL_CROP_COVERAGE,
) -> CropRectangle:
    """
    Centered crop at ``aspect`` spanning ``coverage`` of the shorter side.

    On tall images the resulting height may not fit; the crop then spans
    ``coverage`` of the height instead.
    """
    width, height = bounds
    if width <= 0 or height <= 0:
        raise ValueError(f"Image bounds must be positive, got {bounds}")

    if width <= height:
        crop_w = width * coverage
        crop_h = crop_w / aspect
        if crop_h > height:
            crop_h = height * coverage
            crop_w = crop_h * aspect
    else:
        crop_h = height * coverage
        crop_w = crop_h * aspect

    return CropRectangle(
        x=(width - crop_w) / 2,
        y=(height - crop_h) / 2,
        width=crop_w,
        height=crop_h,
    )


def constrain_crop(
    rect: CropRectangle,
    bounds: Size,
    aspect: float = PASSPORT_ASPECT_RATIO,
) -> Optional[CropRectangle]:
    """
    Force ``rect`` to ``aspect`` and pull it inside ``bounds``.

    The width drives the height. A rectangle too large for the bounds is shrunk,
    then its origin is clamped. Returns None for an empty selection.
    """
    bound_w, bound_h = bounds
    if rect.width <= 0 or rect.height <= 0 or bound_w <= 0 or bound_h <= 0:
        return None

    crop_w = min(rect.width, bound_w)
    crop_h = crop_w / aspect
    if crop_h > bound_h:
        crop_h = bound_h
        crop_w = crop_h * aspect

    x = min(max(rect.x, 0.0), bound_w - crop_w)
    y = min(max(rect.y, 0.0), bound_h - crop_h)
    return CropRectangle(x=x, y=y, width=crop_w, height=crop_h)


def scale_to_natural(rect: CropRectangle, display_size: Size, natural_size: Size) -> CropRectangle:
    """Map a rectangle from displayed coordinates to the image's native pixels"""
    display_w, display_h = display_size
    natural_w, natural_h = natural_size
    if display_w <= 0 or display_h <= 0:
        raise ValueError(f"Display size must be positive, got {display_size}")
    return rect.scaled(natural_w / display_w, natural_h / display_h)


# ---------------------------------------------------------------------------
# Raster operations
# ---------------------------------------------------------------------------

def open_image(data: bytes) -> Optional[Image.Image]:
    """Decode uploaded bytes, applying EXIF orientation. None if undecodable."""
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        logger.info(f"Rejected undecodable image upload: {e}")
        return None
    return ImageOps.exif_transpose(image)


def _flatten(image: Image.Image) -> Image.Image:
    """RGB copy of ``image``; transparent areas become white"""
    if image.mode in ("RGBA", "LA") or (image.mode == "P" and "transparency" in image.info):
        rgba = image.convert("RGBA")
        background = Image.new("RGB", rgba.size, "WHITE")
        background.paste(rgba, mask=rgba.split()[-1])
        return background
    return image.convert("RGB")


def crop(
    source: Image.Image,
    rect: CropRectangle,
    output_size: Size = PASSPORT_OUTPUT_SIZE,
) -> Image.Image:
    """
    Resample the native-space ``rect`` of ``source`` to exactly ``output_size``.

    The source is not modified. The region is clipped to the image and is at
    least one pixel in each direction.
    """
    src_w, src_h = source.size
    left = min(max(rect.x, 0.0), src_w - 1)
    top = min(max(rect.y, 0.0), src_h - 1)
    right = min(max(rect.right, left + 1), src_w)
    bottom = min(max(rect.bottom, top + 1), src_h)

    flattened = _flatten(source)
    return flattened.resize(
        output_size,
        Image.Resampling.LANCZOS,
        box=(left, top, right, bottom),
    )


def encode_jpeg(image: Image.Image, quality: int = JPEG_QUALITY) -> bytes:
    buf = io.BytesIO()
    image.save(buf, format="JPEG", quality=quality, optimize=True)
    return buf.getvalue()


def validate_photo_upload(content_type: Optional[str], size: int, max_bytes: int) -> Optional[FieldError]:
    """
    Checks run before any crop is attempted: image MIME type, size limit.
    Returns the problem, or None when the upload may proceed.
    """
    if not content_type or not content_type.startswith("image/"):
        return FieldError("file", "Please select an image file")
    if size > max_bytes:
        limit_mb = max_bytes / (1024 * 1024)
        return FieldError("file", f"Image size must be less than {limit_mb:g}MB")
    return None


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------

class CropSession:
    """Holds one photo through selection, confirmation and encoding"""

    def __init__(
        self,
        aspect: float = PASSPORT_ASPECT_RATIO,
        output_size: Size = PASSPORT_OUTPUT_SIZE,
        quality: int = JPEG_QUALITY,
    ):
        self.aspect = aspect
        self.output_size = output_size
        self.quality = quality
        self.cancel()

    def cancel(self) -> None:
        """Drop everything; nothing outside the session is touched"""
        self.state = CropState.IDLE
        self.image: Optional[Image.Image] = None
        self.display_size: Optional[Size] = None
        self.crop: Optional[CropRectangle] = None
        self.completed_crop: Optional[CropRectangle] = None
        self.result: Optional[CropResult] = None

    def load(self, image: Image.Image, display_size: Optional[Size] = None) -> CropRectangle:
        """Attach an image and propose the initial centered crop (displayed coordinates)"""
        self.cancel()
        self.image = image
        self.display_size = tuple(display_size) if display_size else image.size
        self.crop = initial_crop(self.display_size, self.aspect)
        self.state = CropState.IMAGE_LOADED
        return self.crop

    def reopen(self) -> None:
        """Return to IMAGE_LOADED after a failure, keeping the loaded image"""
        if self.image is None:
            raise CropFailure("No image loaded")
        self.completed_crop = None
        self.result = None
        self.state = CropState.IMAGE_LOADED

    def select(self, rect: CropRectangle) -> Optional[CropRectangle]:
        """Adjust the selection; the stored rectangle always honours the aspect and bounds"""
        if self.state not in (CropState.IMAGE_LOADED, CropState.CROP_SELECTED):
            raise CropFailure(f"Cannot select a crop area while {self.state.value}")
        constrained = constrain_crop(rect, self.display_size, self.aspect)
        if constrained is None:
            return None
        self.crop = constrained
        self.completed_crop = constrained
        self.state = CropState.CROP_SELECTED
        return constrained

    def confirm(self) -> CropResult:
        if self.state != CropState.CROP_SELECTED or self.completed_crop is None or self.image is None:
            return self._fail(NO_SELECTION_MESSAGE)

        self.state = CropState.PROCESSING
        native = scale_to_natural(self.completed_crop, self.display_size, self.image.size)
        try:
            output = crop(self.image, native, self.output_size)
            data = encode_jpeg(output, self.quality)
        except (OSError, ValueError) as e:
            logger.error(f"Error cropping image: {e}")
            return self._fail(PROCESSING_FAILED_MESSAGE)

        self.result = CropResult(photo=CroppedPhoto(data=data, width=output.width, height=output.height))
        self.state = CropState.DONE
        return self.result

    def _fail(self, message: str) -> CropResult:
        self.result = CropResult.failure(message)
        self.state = CropState.FAILED
        return self.result


__all__ = [
    "CropRectangle",
    "CropState",
    "CroppedPhoto",
    "CropResult",
    "CropSession",
    "initial_crop",
    "constrain_crop",
    "scale_to_natural",
    "open_image",
    "crop",
    "encode_jpeg",
    "validate_photo_upload",
]
