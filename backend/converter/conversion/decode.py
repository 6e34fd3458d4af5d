"""Decode uploaded bytes into a pixel surface. HEIC/HEIF goes through pillow-heif, loaded on first use."""
import importlib
import io
import logging
import threading
from pathlib import Path
from types import ModuleType
from typing import Optional

from PIL import Image, ImageOps, UnidentifiedImageError

from converter.config import HEIF_HELPER_MODULE
from converter.conversion.errors import DecodeError
from converter.conversion.models import InputFile, PixelSurface

logger = logging.getLogger("converter.decode")

HEIF_EXTENSIONS = {".heic", ".heif"}


class HeifLoader:
    """
    Imports the HEIF helper module once. State goes unloaded -> loaded or unloaded -> failed
    and is never retried; a failed load makes every later HEIC/HEIF decode fail the same way.
    """

    def __init__(self, module_name: str = HEIF_HELPER_MODULE):
        self.module_name = module_name
        self._lock = threading.Lock()
        self._module: Optional[ModuleType] = None
        self._error: Optional[str] = None

    @property
    def state(self) -> str:
        if self._module is not None:
            return "loaded"
        if self._error is not None:
            return "failed"
        return "unloaded"

    def load(self) -> ModuleType:
        with self._lock:
            if self._module is None and self._error is None:
                try:
                    self._module = importlib.import_module(self.module_name)
                    logger.info("Loaded HEIF helper %s", self.module_name)
                except Exception as e:
                    self._error = f"HEIC/HEIF decoder unavailable: {e}"
                    logger.warning("Could not load HEIF helper %s: %s", self.module_name, e)
        if self._module is None:
            raise DecodeError(self._error)
        return self._module


_heif_loader = HeifLoader()


def is_heif(input_file: InputFile) -> bool:
    content_type = (input_file.content_type or "").lower()
    if "heic" in content_type or "heif" in content_type:
        return True
    return Path(input_file.name or "").suffix.lower() in HEIF_EXTENSIONS


def _decode_native(data: bytes) -> PixelSurface:
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise DecodeError(f"Could not decode image: {e}") from e
    # Apply EXIF orientation so output matches what a viewer shows
    ImageOps.exif_transpose(img, in_place=True)
    return PixelSurface(img)


def _heif_to_png(data: bytes, loader: HeifLoader) -> bytes:
    """Convert HEIC/HEIF bytes to an in-memory lossless PNG."""
    pillow_heif = loader.load()
    try:
        heif_file = pillow_heif.open_heif(io.BytesIO(data))
        buf = io.BytesIO()
        with heif_file.to_pillow() as img:
            img.save(buf, format="PNG")
    except (ValueError, OSError, RuntimeError) as e:
        raise DecodeError(f"HEIC/HEIF conversion failed: {e}") from e
    return buf.getvalue()


def decode_image(input_file: InputFile, heif_loader: Optional[HeifLoader] = None) -> PixelSurface:
    """Decode an input file; raises DecodeError when the bytes are not a readable image."""
    if is_heif(input_file):
        logger.debug("Decoding %s via HEIF helper", input_file.name)
        png = _heif_to_png(input_file.data, heif_loader or _heif_loader)
        return _decode_native(png)
    return _decode_native(input_file.data)
