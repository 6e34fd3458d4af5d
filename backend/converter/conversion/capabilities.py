"""Detect which output codecs Pillow can actually encode in this environment."""
import io
import logging
from dataclasses import dataclass
from typing import Optional

from PIL import Image

from converter.conversion.models import OutputCodec

logger = logging.getLogger("converter.capabilities")

# Codecs whose encoders are optional in Pillow builds
PROBED_CODECS = (OutputCodec.WEBP, OutputCodec.AVIF)


@dataclass(frozen=True)
class Capabilities:
    webp: bool
    avif: bool
    heic: bool = False

    def supports(self, codec: OutputCodec) -> bool:
        if codec is OutputCodec.WEBP:
            return self.webp
        if codec is OutputCodec.AVIF:
            return self.avif
        if codec is OutputCodec.HEIC:
            return self.heic
        return True

    def notes(self) -> list[str]:
        notes = []
        if not self.webp:
            notes.append("WebP output is not supported in this environment.")
        if not self.avif:
            notes.append("AVIF output is not supported in this environment.")
        notes.append("HEIC output is not available yet.")
        return notes


def can_encode(codec: OutputCodec) -> bool:
    """Encode a 1x1 image in memory; True if Pillow produced any bytes."""
    buf = io.BytesIO()
    try:
        with Image.new("RGB", (1, 1)) as img:
            img.save(buf, format=codec.pil_format)
    except (KeyError, OSError, ValueError) as e:
        logger.debug("Probe encode for %s failed: %s", codec.value, e)
        return False
    return buf.tell() > 0


def probe_capabilities() -> Capabilities:
    supported = {codec: can_encode(codec) for codec in PROBED_CODECS}
    caps = Capabilities(webp=supported[OutputCodec.WEBP], avif=supported[OutputCodec.AVIF])
    logger.info("Encoder capabilities: webp=%s avif=%s heic=%s", caps.webp, caps.avif, caps.heic)
    return caps


_capabilities: Optional[Capabilities] = None


def get_capabilities() -> Capabilities:
    global _capabilities
    if _capabilities is None:
        _capabilities = probe_capabilities()
    return _capabilities
