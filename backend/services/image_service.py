"""
Image processing for uploaded media.

Uses Pillow to produce the responsive derivative ladder and the inline
low-quality placeholder (LQIP). All functions are synchronous and CPU bound;
callers run them through services.async_executor.run_blocking.

Functions:
    render_variant: resize to a target width and encode as JPEG or WebP
    render_lqip: tiny blurred JPEG encoded as a data URI
"""
from __future__ import annotations

import base64
import logging
from io import BytesIO

from PIL import Image, ImageFilter

from domain.constants import LQIP_BLUR_RADIUS, LQIP_QUALITY, LQIP_WIDTH

logger = logging.getLogger(__name__)

# Pillow format names keyed by the extension used in storage keys
FORMATS = {
    "jpg": "JPEG",
    "webp": "WEBP",
}


class ImageProcessingError(Exception):
    """
    Raised when an upload cannot be decoded or re-encoded.

    Derivative generation is best-effort, so callers log this and move on.
    """
    pass


def is_image(content_type: str | None) -> bool:
    return bool(content_type) and content_type.startswith("image/")


def _open(data: bytes) -> Image.Image:
    try:
        img = Image.open(BytesIO(data))
        # Force load to detect corrupt images early
        img.load()
    except (Image.UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
        raise ImageProcessingError(f"Cannot decode image: {e}") from e
    return img


def _convert_to_rgb(img: Image.Image) -> Image.Image:
    """Flatten alpha/palette images onto white so JPEG can encode them."""
    if img.mode in ("RGBA", "LA", "P"):
        img = img.convert("RGBA")
        background = Image.new("RGB", img.size, (255, 255, 255))
        background.paste(img, mask=img.split()[-1])
        return background
    if img.mode != "RGB":
        return img.convert("RGB")
    return img


def _resize_to_width(img: Image.Image, width: int) -> Image.Image:
    original_width, original_height = img.size
    height = max(1, round(original_height * width / original_width))
    return img.resize((width, height), Image.Resampling.LANCZOS)


def render_variant(data: bytes, width: int, ext: str, quality: int) -> bytes:
    """
    Resize ``data`` to ``width`` px (aspect ratio kept) and encode it.

    Args:
        data: Original image bytes
        width: Target width in pixels
        ext: "jpg" or "webp"
        quality: Encoder quality 0-100

    Raises:
        ImageProcessingError: if the image cannot be decoded or encoded
    """
    if ext not in FORMATS:
        raise ImageProcessingError(f"Unsupported derivative format: {ext}")

    img = _convert_to_rgb(_open(data))
    resized = _resize_to_width(img, width)

    buffer = BytesIO()
    try:
        resized.save(buffer, format=FORMATS[ext], quality=quality)
    except (OSError, ValueError) as e:
        raise ImageProcessingError(f"Cannot encode {ext} derivative: {e}") from e
    return buffer.getvalue()


def render_lqip(data: bytes) -> str:
    """Return a ``data:image/jpeg;base64,...`` placeholder a few pixels wide."""
    img = _convert_to_rgb(_open(data))
    tiny = _resize_to_width(img, LQIP_WIDTH).filter(ImageFilter.GaussianBlur(LQIP_BLUR_RADIUS))

    buffer = BytesIO()
    tiny.save(buffer, format="JPEG", quality=LQIP_QUALITY)
    encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
    return f"data:image/jpeg;base64,{encoded}"
