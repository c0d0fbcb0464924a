"""
Certificate Service
Renders PDF certificates of authenticity for purchased artworks.
"""

import io
import logging
import textwrap
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from PIL import Image, ImageDraw, UnidentifiedImageError

from ..config import get_settings
from .watermark_service import load_font

logger = logging.getLogger(__name__)

# A4 at 150 dpi
PAGE_WIDTH = 1240
PAGE_HEIGHT = 1754
PAGE_DPI = 150
MARGIN = 90

BRAND_COLOR = (42, 214, 158)
TEXT_COLOR = (33, 37, 41)
MUTED_COLOR = (108, 117, 125)
LABEL_WIDTH = 300


def format_vnd(price: Decimal) -> str:
    """Format a price stored in thousands of VND, e.g. `1,500,000 VND`."""
    return f"{int(Decimal(price) * 1000):,} VND"


def certificate_number(order_id: int) -> str:
    return f"PXC-{order_id:06d}"


def certificate_filename(title: str, order_id: int) -> str:
    return f"Certificate_{title.replace(' ', '_')}_{order_id}.pdf"


@dataclass
class CertificateContext:
    """Everything printed on a certificate."""

    order_id: int
    purchase_date: datetime
    artwork_title: str
    artwork_description: Optional[str]
    artwork_dimensions: Optional[str]
    artwork_tags: Optional[str]
    price: Decimal
    artist_name: str
    artist_email: str
    artist_bio: Optional[str]
    artist_specialization: Optional[str]
    artist_experience_years: Optional[int]
    artist_website: Optional[str]
    buyer_name: str
    buyer_email: str
    artwork_image: Optional[bytes] = None


class CertificateService:
    """Lays out a single-page certificate with Pillow and saves it as PDF."""

    def __init__(self, font_path: Optional[str] = None):
        self.font_path = font_path
        self.title_font = load_font(64, font_path)
        self.heading_font = load_font(34, font_path)
        self.body_font = load_font(26, font_path)
        self.small_font = load_font(20, font_path)

    def render(self, context: CertificateContext) -> bytes:
        """
        Render a certificate.

        Returns:
            PDF document bytes
        """
        page = Image.new("RGB", (PAGE_WIDTH, PAGE_HEIGHT), "white")
        draw = ImageDraw.Draw(page)

        # Border
        draw.rectangle(
            (MARGIN // 2, MARGIN // 2, PAGE_WIDTH - MARGIN // 2, PAGE_HEIGHT - MARGIN // 2),
            outline=BRAND_COLOR,
            width=6,
        )

        y = MARGIN + 20
        y = self._centered(draw, "PicX", y, self.heading_font, BRAND_COLOR)
        y = self._centered(draw, "Certificate of Authenticity", y + 10, self.title_font, TEXT_COLOR)
        y = self._centered(
            draw, f"Certificate No: {certificate_number(context.order_id)}", y + 10,
            self.body_font, MUTED_COLOR,
        )

        y = self._paste_artwork(page, context.artwork_image, y + 30)

        y = self._section(draw, "Artwork Details", y + 30)
        y = self._field(draw, "Title", context.artwork_title, y)
        y = self._field(
            draw, "Description", context.artwork_description or "Original digital artwork", y
        )
        y = self._field(draw, "Dimensions", context.artwork_dimensions or "Digital format", y)
        y = self._field(draw, "Tags", context.artwork_tags or "Digital art", y)
        y = self._field(draw, "Price", format_vnd(context.price), y)

        y = self._section(draw, "Artist Information", y + 20)
        y = self._field(draw, "Artist", context.artist_name, y)
        y = self._field(draw, "Biography", context.artist_bio or "Professional digital artist", y)
        y = self._field(draw, "Specialization", context.artist_specialization or "Digital Art", y)
        experience = (
            f"{context.artist_experience_years} years"
            if context.artist_experience_years
            else "Professional"
        )
        y = self._field(draw, "Experience", experience, y)
        contact = context.artist_email
        if context.artist_website:
            contact = f"{contact} | {context.artist_website}"
        y = self._field(draw, "Contact", contact, y)

        y = self._section(draw, "Ownership", y + 20)
        y = self._field(draw, "Owner", context.buyer_name, y)
        y = self._field(draw, "Owner Email", context.buyer_email, y)
        y = self._field(draw, "Purchase Date", context.purchase_date.strftime("%B %d, %Y"), y)

        footer = (
            "This certificate confirms that the artwork above is an original work "
            "sold through PicX. To verify it, contact support@picx.com with the "
            "certificate number."
        )
        footer_y = PAGE_HEIGHT - MARGIN - 110
        for line in textwrap.wrap(footer, width=90):
            footer_y = self._centered(draw, line, footer_y, self.small_font, MUTED_COLOR)

        buffer = io.BytesIO()
        page.save(buffer, format="PDF", resolution=PAGE_DPI)
        logger.info(f"Rendered certificate {certificate_number(context.order_id)}")
        return buffer.getvalue()

    def _centered(self, draw, text, y, font, fill) -> int:
        left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
        x = (PAGE_WIDTH - (right - left)) // 2
        draw.text((x, y), text, font=font, fill=fill)
        return y + (bottom - top) + 14

    def _section(self, draw, title, y) -> int:
        draw.text((MARGIN, y), title, font=self.heading_font, fill=BRAND_COLOR)
        y += 50
        draw.line((MARGIN, y, PAGE_WIDTH - MARGIN, y), fill=BRAND_COLOR, width=2)
        return y + 16

    def _field(self, draw, label, value, y) -> int:
        draw.text((MARGIN, y), f"{label}:", font=self.body_font, fill=MUTED_COLOR)
        lines = textwrap.wrap(str(value), width=52) or [""]
        for line in lines[:4]:
            draw.text((MARGIN + LABEL_WIDTH, y), line, font=self.body_font, fill=TEXT_COLOR)
            y += 36
        return y + 4

    def _paste_artwork(self, page: Image.Image, image_bytes: Optional[bytes], y: int) -> int:
        if not image_bytes:
            return y
        try:
            artwork = Image.open(io.BytesIO(image_bytes))
            artwork.load()
        except (UnidentifiedImageError, OSError) as e:
            logger.warning(f"Artwork image skipped on certificate: {e}")
            return y

        artwork = artwork.convert("RGB")
        artwork.thumbnail((PAGE_WIDTH - 2 * MARGIN, 420))
        x = (PAGE_WIDTH - artwork.width) // 2
        page.paste(artwork, (x, y))
        return y + artwork.height


def get_certificate_service() -> CertificateService:
    return CertificateService(font_path=get_settings().certificate_font_path)
