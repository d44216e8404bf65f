"""
Unit Tests for the passport photo crop engine
"""
import io

import pytest
from PIL import Image

from app.core.errors import CropFailure
from app.services.photo_crop import (
    CropRectangle,
    CropSession,
    CropState,
    constrain_crop,
    crop,
    encode_jpeg,
    initial_crop,
    open_image,
    scale_to_natural,
    validate_photo_upload,
)


def decode(data: bytes) -> Image.Image:
    image = Image.open(io.BytesIO(data))
    image.load()
    return image


class TestInitialCrop:

    def test_landscape_uses_shorter_side(self):
        rect = initial_crop((800, 600))
        assert rect.height == pytest.approx(540)
        assert rect.width == pytest.approx(405)
        assert rect.x == pytest.approx((800 - 405) / 2)
        assert rect.y == pytest.approx(30)

    def test_near_square_portrait_falls_back_to_height(self):
        rect = initial_crop((900, 1000))
        assert rect.height == pytest.approx(900)
        assert rect.width == pytest.approx(675)

    @pytest.mark.parametrize("bounds", [(800, 600), (600, 800), (450, 600), (100, 1000), (1000, 100), (1, 1)])
    def test_always_three_by_four_and_inside(self, bounds):
        rect = initial_crop(bounds)
        assert rect.aspect == pytest.approx(3 / 4)
        assert rect.fits_within(bounds)


class TestConstrainCrop:

    def test_width_drives_height(self):
        rect = constrain_crop(CropRectangle(10, 10, 300, 100), (800, 600))
        assert (rect.width, rect.height) == (pytest.approx(300), pytest.approx(400))

    def test_shrinks_and_clamps_into_bounds(self):
        rect = constrain_crop(CropRectangle(700, 500, 900, 900), (800, 600))
        assert rect.aspect == pytest.approx(3 / 4)
        assert rect.fits_within((800, 600))
        assert rect.height == pytest.approx(600)

    def test_negative_origin_is_clamped(self):
        rect = constrain_crop(CropRectangle(-50, -20, 150, 200), (800, 600))
        assert (rect.x, rect.y) == (0, 0)

    @pytest.mark.parametrize("rect", [CropRectangle(0, 0, 0, 100), CropRectangle(0, 0, 100, -1)])
    def test_empty_selection(self, rect):
        assert constrain_crop(rect, (800, 600)) is None


class TestRasterCrop:

    @pytest.mark.parametrize("source_size, rect", [
        ((800, 600), CropRectangle(100, 50, 300, 400)),
        ((4000, 3000), CropRectangle(0, 0, 4000, 3000)),
        ((30, 40), CropRectangle(0, 0, 30, 40)),
        ((800, 600), CropRectangle(799.5, 599.5, 10, 10)),
        ((640, 480), CropRectangle(-100, -100, 50, 20)),
    ])
    def test_output_is_always_450_by_600(self, source_size, rect):
        source = Image.new("RGB", source_size, (10, 200, 30))
        output = crop(source, rect)
        assert output.size == (450, 600)
        assert source.size == source_size

    def test_transparency_is_flattened_onto_white(self):
        source = Image.new("RGBA", (300, 400), (0, 0, 0, 0))
        output = crop(source, CropRectangle(0, 0, 300, 400))
        assert output.mode == "RGB"
        assert all(channel >= 250 for channel in output.getpixel((225, 300)))

    def test_jpeg_encoding(self):
        data = encode_jpeg(Image.new("RGB", (450, 600), "navy"))
        image = decode(data)
        assert image.format == "JPEG"
        assert image.size == (450, 600)


class TestScaleToNatural:

    def test_scales_each_axis(self):
        rect = scale_to_natural(CropRectangle(10, 20, 30, 40), (400, 300), (800, 900))
        assert rect == CropRectangle(20, 60, 60, 120)

    def test_rejects_empty_display(self):
        with pytest.raises(ValueError):
            scale_to_natural(CropRectangle(0, 0, 3, 4), (0, 300), (800, 600))


class TestOpenImage:

    def test_decodes(self, image_bytes):
        assert open_image(image_bytes()).size == (800, 600)

    def test_garbage_is_rejected(self):
        assert open_image(b"definitely not an image") is None


class TestValidatePhotoUpload:

    def test_accepts_images(self):
        assert validate_photo_upload("image/png", 1024, 5 * 1024 * 1024) is None

    def test_rejects_non_images(self):
        problem = validate_photo_upload("application/pdf", 1024, 5 * 1024 * 1024)
        assert problem.message == "Please select an image file"

    def test_rejects_large_files(self):
        problem = validate_photo_upload("image/jpeg", 6 * 1024 * 1024, 5 * 1024 * 1024)
        assert problem.message == "Image size must be less than 5MB"


class TestCropSession:

    def test_full_lifecycle(self):
        session = CropSession()
        assert session.state == CropState.IDLE

        proposed = session.load(Image.new("RGB", (1600, 1200), "teal"), display_size=(800, 600))
        assert session.state == CropState.IMAGE_LOADED
        assert proposed.fits_within((800, 600))

        session.select(CropRectangle(100, 50, 300, 400))
        assert session.state == CropState.CROP_SELECTED

        result = session.confirm()
        assert result.ok
        assert session.state == CropState.DONE
        assert (result.photo.width, result.photo.height) == (450, 600)
        assert result.photo.content_type == "image/jpeg"
        assert decode(result.photo.data).size == (450, 600)

    def test_confirm_without_selection_fails(self):
        session = CropSession()
        session.load(Image.new("RGB", (800, 600)))

        result = session.confirm()

        assert not result.ok
        assert result.error == "Please select a crop area"
        assert session.state == CropState.FAILED

    def test_reopen_after_failure(self):
        session = CropSession()
        session.load(Image.new("RGB", (800, 600)))
        session.confirm()

        session.reopen()
        session.select(CropRectangle(0, 0, 300, 400))

        assert session.confirm().ok

    def test_select_constrains_aspect(self):
        session = CropSession()
        session.load(Image.new("RGB", (800, 600)))
        stored = session.select(CropRectangle(0, 0, 200, 50))
        assert stored.aspect == pytest.approx(3 / 4)

    def test_empty_selection_is_ignored(self):
        session = CropSession()
        session.load(Image.new("RGB", (800, 600)))
        assert session.select(CropRectangle(0, 0, 0, 0)) is None
        assert session.state == CropState.IMAGE_LOADED

    def test_select_before_load_is_an_error(self):
        with pytest.raises(CropFailure):
            CropSession().select(CropRectangle(0, 0, 30, 40))

    def test_cancel_drops_everything(self):
        session = CropSession()
        session.load(Image.new("RGB", (800, 600)))
        session.select(CropRectangle(0, 0, 300, 400))

        session.cancel()

        assert session.state == CropState.IDLE
        assert session.image is None
        assert session.completed_crop is None
