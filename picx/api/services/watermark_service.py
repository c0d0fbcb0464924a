"""
Watermark Service
Overlays a tiled, rotated text watermark on artwork previews.
"""

import io
import logging
import math
from typing import Optional, Tuple

from PIL import Image, ImageDraw, ImageFont, UnidentifiedImageError

from ..config import get_settings
from ..errors import InvalidRequestError

logger = logging.getLogger(__name__)

WATERMARK_COLOR: Tuple[int, int, int, int] = (42, 214, 158, 20)
WATERMARK_ANGLE_RADIANS = -0.4
WATERMARK_SPACING = 80

_FORMATS_BY_MIME = {
    "image/png": ("PNG", "image/png"),
    "image/jpeg": ("JPEG", "image/jpeg"),
    "image/jpg": ("JPEG", "image/jpeg"),
    "image/webp": ("WEBP", "image/webp"),
}


def mime_type_for_key(key: str) -> str:
    """Guess the image mime type from an object key's extension."""
    lowered = key.lower()
    if lowered.endswith((".jpg", ".jpeg")):
        return "image/jpeg"
    if lowered.endswith(".webp"):
        return "image/webp"
    if lowered.endswith(".gif"):
        return "image/gif"
    return "image/png"


def load_font(size: int, font_path: Optional[str] = None) -> ImageFont.ImageFont:
    """Load a TrueType font, falling back to Pillow's bundled font."""
    if font_path:
        try:
            return ImageFont.truetype(font_path, size)
        except OSError:
            logger.warning(f"Font {font_path} could not be loaded, using default font")
    return ImageFont.load_default(size=size)


class WatermarkService:
    """Renders watermarked copies of images."""

    def __init__(self, text: str = "PicX", font_path: Optional[str] = None):
        self.text = text
        self.font_path = font_path

    def apply(self, image_bytes: bytes, mime_type: str = "image/png") -> Tuple[bytes, str]:
        """
        Watermark an image.

        The text is drawn on a transparent layer big enough to cover the
        image at any rotation, the layer is rotated, cropped back to the
        image size and composited over it.

        Args:
            image_bytes: Encoded source image
            mime_type: Mime type of the source; decides the output format

        Returns:
            Tuple of (encoded watermarked image, output mime type)

        Raises:
            InvalidRequestError: If the bytes are not a decodable image
        """
        try:
            source = Image.open(io.BytesIO(image_bytes))
            source.load()
        except (UnidentifiedImageError, OSError) as e:
            logger.warning(f"Cannot watermark invalid image: {e}")
            raise InvalidRequestError("File is not a valid image")

        width, height = source.size
        font_size = max(1, max(width, height) // 15)
        font = load_font(font_size, self.font_path)

        layer_size = int(math.ceil(math.hypot(width, height)))
        layer = Image.new("RGBA", (layer_size, layer_size), (0, 0, 0, 0))
        draw = ImageDraw.Draw(layer)

        left, top, right, bottom = draw.textbbox((0, 0), self.text, font=font)
        step_x = (right - left) + WATERMARK_SPACING
        step_y = (bottom - top) + WATERMARK_SPACING
        for y in range(0, layer_size, step_y):
            for x in range(0, layer_size, step_x):
                draw.text((x, y), self.text, font=font, fill=WATERMARK_COLOR)

        # PIL rotates counter-clockwise for positive angles
        layer = layer.rotate(-math.degrees(WATERMARK_ANGLE_RADIANS), resample=Image.BICUBIC)
        offset_x = (layer_size - width) // 2
        offset_y = (layer_size - height) // 2
        layer = layer.crop((offset_x, offset_y, offset_x + width, offset_y + height))

        watermarked = Image.alpha_composite(source.convert("RGBA"), layer)

        image_format, output_mime = _FORMATS_BY_MIME.get(mime_type.lower(), ("PNG", "image/png"))
        if image_format == "JPEG":
            watermarked = watermarked.convert("RGB")

        buffer = io.BytesIO()
        watermarked.save(buffer, format=image_format)
        return buffer.getvalue(), output_mime


def convert_to_png(image_bytes: bytes) -> bytes:
    """
    Re-encode an image as PNG.

    Raises:
        InvalidRequestError: If the bytes are not a decodable image
    """
    try:
        image = Image.open(io.BytesIO(image_bytes))
        image.load()
    except (UnidentifiedImageError, OSError):
        raise InvalidRequestError("File is not a valid image")

    if image.mode not in ("RGB", "RGBA", "L", "LA", "P"):
        image = image.convert("RGBA")

    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def get_watermark_service() -> WatermarkService:
    settings = get_settings()
    return WatermarkService(text=settings.watermark_text, font_path=settings.watermark_font_path)
