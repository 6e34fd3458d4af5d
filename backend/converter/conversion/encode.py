"""Encode a pixel surface into one output codec at a given quality."""
import io
import logging
from typing import Optional

from PIL import Image

from converter.config import ENCODER_EFFORT
from converter.conversion.models import OutputCodec, PixelSurface

logger = logging.getLogger("converter.encode")


def to_pil_quality(quality: float) -> int:
    """Map a 0-1 quality to Pillow's 0-100 scale."""
    return max(0, min(100, int(round(quality * 100))))


def _prepare(img: Image.Image, codec: OutputCodec) -> Image.Image:
    if codec is OutputCodec.JPEG:
        return img if img.mode in ("RGB", "L") else img.convert("RGB")
    if img.mode in ("RGB", "RGBA"):
        return img
    if img.mode == "P" and "transparency" in img.info:
        return img.convert("RGBA")
    if img.mode in ("LA", "PA"):
        return img.convert("RGBA")
    return img.convert("RGB")


def encode_image(surface: PixelSurface, codec: OutputCodec, quality: float) -> Optional[bytes]:
    """
    Encode surface as codec. quality (0-1) is ignored for PNG.
    Returns None when this environment cannot produce the codec at all.
    """
    if not codec.mime_type:
        return None
    q = to_pil_quality(quality)
    if codec is OutputCodec.JPEG:
        save_kw = {"format": "JPEG", "quality": q, "optimize": True}
    elif codec is OutputCodec.PNG:
        save_kw = {"format": "PNG", "optimize": True}
    elif codec is OutputCodec.WEBP:
        save_kw = {"format": "WEBP", "quality": q, "method": ENCODER_EFFORT}
    else:
        save_kw = {"format": codec.pil_format, "quality": q}

    img = _prepare(surface.image, codec)
    buf = io.BytesIO()
    try:
        img.save(buf, **save_kw)
    except (KeyError, OSError, ValueError) as e:
        logger.warning("Encoding %s at quality %s failed: %s", codec.value, q, e)
        return None
    finally:
        if img is not surface.image:
            img.close()
    return buf.getvalue() or None
