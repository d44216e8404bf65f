# app/services/id_card.py - Renders a student ID card as a PNG image
import io
import logging
import textwrap
from typing import Optional, Tuple

import requests
from PIL import Image, ImageDraw, ImageFont, ImageColor, ImageOps

from app.core.config import settings
from app.schemas.student import StudentOut
from app.services.dates import DateParts
from app.services.photo_crop import open_image
from app.services.photo_storage import is_managed_photo_url

logger = logging.getLogger(__name__)


class StudentIDCardGenerator:
    """
    Draws the student ID card: gradient background, passport photo (or the
    student's initial), the record fields and an academic-year footer.
    """

    WIDTH, HEIGHT = 600, 900
    MARGIN = 40
    PHOTO_SIZE = (180, 240)

    DEFAULT_COLORS = {
        'background_start': '#2563EB',  # blue
        'background_end': '#7E22CE',    # purple
        'text_light': '#FFFFFF',
        'text_muted': '#E0E7FF',
        'photo_background': '#FFFFFF',
        'initial': '#2563EB',
        'divider': '#C7D2FE',
    }

    FONT_FILES = {
        'title': ("DejaVuSans-Bold.ttf", 40),
        'label': ("DejaVuSans-Bold.ttf", 22),
        'value': ("DejaVuSans.ttf", 22),
        'small': ("DejaVuSans.ttf", 18),
        'initial': ("DejaVuSans-Bold.ttf", 110),
    }

    def __init__(self, student: StudentOut, photo: Optional[Image.Image] = None, academic_year: Optional[str] = None):
        self.student = student
        self.photo = photo
        self.academic_year = academic_year or settings.ACADEMIC_YEAR_LABEL
        self.colors = dict(self.DEFAULT_COLORS)
        self._load_fonts()

    def _load_fonts(self):
        """Loads fonts, falling back to Pillow's built-in font."""
        self.fonts = {}
        for key, (filename, size) in self.FONT_FILES.items():
            try:
                self.fonts[key] = ImageFont.truetype(filename, size)
            except OSError:
                self.fonts[key] = ImageFont.load_default(size=size)

    def _create_canvas(self) -> Tuple[Image.Image, ImageDraw.ImageDraw]:
        """Creates the base image with a vertical gradient."""
        img = Image.new('RGB', (self.WIDTH, self.HEIGHT))
        draw = ImageDraw.Draw(img)

        start_color = ImageColor.getrgb(self.colors['background_start'])
        end_color = ImageColor.getrgb(self.colors['background_end'])
        for y in range(self.HEIGHT):
            r = int(start_color[0] + (end_color[0] - start_color[0]) * y / self.HEIGHT)
            g = int(start_color[1] + (end_color[1] - start_color[1]) * y / self.HEIGHT)
            b = int(start_color[2] + (end_color[2] - start_color[2]) * y / self.HEIGHT)
            draw.line([(0, y), (self.WIDTH, y)], fill=(r, g, b))
        return img, draw

    def _draw_centered(self, draw, y, text, font, fill):
        text_width = draw.textlength(text, font=font)
        draw.text(((self.WIDTH - text_width) / 2, y), text, font=font, fill=fill)

    def _draw_header(self, draw) -> int:
        self._draw_centered(draw, self.MARGIN, "STUDENT ID CARD", self.fonts['title'], self.colors['text_light'])
        return self.MARGIN + 70

    def _draw_photo(self, base_img, draw, y_cursor) -> int:
        photo_w, photo_h = self.PHOTO_SIZE
        x = (self.WIDTH - photo_w) // 2
        frame = [(x - 4, y_cursor - 4), (x + photo_w + 4, y_cursor + photo_h + 4)]
        draw.rounded_rectangle(frame, radius=12, fill=self.colors['photo_background'])

        if self.photo is not None:
            fitted = ImageOps.fit(self.photo.convert('RGB'), self.PHOTO_SIZE, Image.Resampling.LANCZOS)
            base_img.paste(fitted, (x, y_cursor))
        else:
            initial = (self.student.name[:1] or "?").upper()
            font = self.fonts['initial']
            left, top, right, bottom = draw.textbbox((0, 0), initial, font=font)
            draw.text(
                (x + (photo_w - (right - left)) / 2 - left, y_cursor + (photo_h - (bottom - top)) / 2 - top),
                initial,
                font=font,
                fill=self.colors['initial'],
            )
        return y_cursor + photo_h + 40

    def _details(self):
        student = self.student
        dob = student.date_of_birth
        return [
            ("Name:", student.name),
            ("Class:", student.class_name),
            ("Section:", student.section),
            ("Admission No:", student.admission_no),
            ("DOB:", DateParts(dob.day, dob.month, dob.year).display()),
            ("Blood Group:", student.blood_group or "-"),
            ("Contact:", student.contact_no),
        ]

    def _draw_details(self, draw, y_cursor) -> int:
        label_font, value_font = self.fonts['label'], self.fonts['value']
        right_edge = self.WIDTH - self.MARGIN
        for label, value in self._details():
            draw.text((self.MARGIN, y_cursor), label, font=label_font, fill=self.colors['text_light'])
            value_width = draw.textlength(value, font=value_font)
            draw.text((right_edge - value_width, y_cursor), value, font=value_font, fill=self.colors['text_light'])
            y_cursor += 36

        y_cursor += 6
        draw.text((self.MARGIN, y_cursor), "Address:", font=label_font, fill=self.colors['text_light'])
        y_cursor += 32
        for line in textwrap.wrap(self.student.address, width=48)[:4]:
            draw.text((self.MARGIN, y_cursor), line, font=self.fonts['small'], fill=self.colors['text_muted'])
            y_cursor += 24
        return y_cursor

    def _draw_footer(self, draw):
        y = self.HEIGHT - self.MARGIN - 60
        draw.line([(self.MARGIN, y), (self.WIDTH - self.MARGIN, y)], fill=self.colors['divider'], width=2)
        self._draw_centered(draw, y + 12, f"Valid for Academic Year {self.academic_year}", self.fonts['small'], self.colors['text_muted'])
        if self.student.id:
            self._draw_centered(draw, y + 36, f"ID: {self.student.id}", self.fonts['small'], self.colors['text_muted'])

    def generate(self) -> Image.Image:
        base_img, draw = self._create_canvas()
        y_cursor = self._draw_header(draw)
        y_cursor = self._draw_photo(base_img, draw, y_cursor)
        self._draw_details(draw, y_cursor)
        self._draw_footer(draw)
        return base_img

    def to_png(self) -> bytes:
        buf = io.BytesIO()
        self.generate().save(buf, format="PNG")
        return buf.getvalue()


def fetch_photo(url: Optional[str], timeout: Optional[int] = None) -> Optional[Image.Image]:
    """Download a stored photo for the card; None when absent or unreachable."""
    if not url:
        return None
    if not is_managed_photo_url(url):
        logger.warning(f"Refusing to fetch photo outside the photo store: {url}")
        return None
    try:
        response = requests.get(
            url,
            timeout=timeout or settings.PHOTO_FETCH_TIMEOUT_SECONDS,
            allow_redirects=False,
        )
        response.raise_for_status()
    except requests.RequestException as e:
        logger.warning(f"Could not fetch photo for ID card ({url}): {e}")
        return None
    return open_image(response.content)


def render_id_card(student: StudentOut, photo: Optional[Image.Image] = None) -> bytes:
    return StudentIDCardGenerator(student, photo=photo).to_png()


__all__ = ["StudentIDCardGenerator", "fetch_photo", "render_id_card"]
