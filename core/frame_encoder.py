"""
Frame encoding helpers.
Downscale + JPEG + base64 on the capture side, strict base64 decoding on the proxy side.
"""

import base64
import binascii
import io
import logging
from typing import Optional

from PIL import Image

from .errors import ValidationError

logger = logging.getLogger(__name__)

TARGET_WIDTH = 960
JPEG_QUALITY = 70  # 0.7 on a 0-1 scale

DATA_URI_PREFIX = "data:"


def downscale(frame: Image.Image, target_width: int = TARGET_WIDTH) -> Image.Image:
    """Resize to target_width keeping aspect ratio. Narrower frames are left as-is."""
    if frame.width <= target_width:
        return frame
    scale = target_width / frame.width
    new_height = max(1, round(frame.height * scale))
    return frame.resize((target_width, new_height), Image.LANCZOS)


def encode_jpeg(frame: Image.Image, quality: int = JPEG_QUALITY) -> bytes:
    if frame.mode != "RGB":
        frame = frame.convert("RGB")
    buffer = io.BytesIO()
    frame.save(buffer, format="JPEG", quality=quality)
    return buffer.getvalue()


def encode_frame(
    frame: Image.Image,
    target_width: int = TARGET_WIDTH,
    quality: int = JPEG_QUALITY
) -> str:
    """
    Prepare a captured frame for POST /frame.

    Returns:
        Base64 JPEG string without a data URI prefix
    """
    data = encode_jpeg(downscale(frame, target_width), quality)
    return base64.b64encode(data).decode("ascii")


def decode_image_base64(value: Optional[str], max_bytes: Optional[int] = None) -> bytes:
    """
    Decode the imageBase64 request field.

    Accepts plain base64 or a data URI. Raises ValidationError when the field
    is missing, not valid base64, or larger than max_bytes once decoded.
    """
    if not value:
        raise ValidationError("imageBase64 is required")

    if value.startswith(DATA_URI_PREFIX):
        _, _, value = value.partition(",")

    try:
        data = base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError("imageBase64 is not valid base64")

    if not data:
        raise ValidationError("imageBase64 is required")
    if max_bytes is not None and len(data) > max_bytes:
        raise ValidationError(f"Image exceeds {max_bytes // (1024 * 1024)}MB limit")
    return data
