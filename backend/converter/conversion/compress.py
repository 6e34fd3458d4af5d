"""Binary-search encoder quality so output lands at or under a byte budget."""
import logging
from typing import Callable, Optional

from converter.config import (
    DEFAULT_QUALITY,
    SEARCH_ITERATIONS,
    SEARCH_QUALITY_HIGH,
    SEARCH_QUALITY_LOW,
)
from converter.conversion.encode import encode_image
from converter.conversion.models import OutputCodec, PixelSurface

logger = logging.getLogger("converter.compress")

Encoder = Callable[[PixelSurface, OutputCodec, float], Optional[bytes]]


def compress_to_target(
    surface: PixelSurface,
    codec: OutputCodec,
    target_bytes: Optional[int],
    allow_quality: bool,
    encoder: Encoder = encode_image,
) -> Optional[bytes]:
    """
    Without a budget or for fixed-quality codecs: one encode at DEFAULT_QUALITY.
    Otherwise SEARCH_ITERATIONS midpoint encodes over [SEARCH_QUALITY_LOW, SEARCH_QUALITY_HIGH],
    lowering quality when output exceeds the budget and raising it otherwise.

    Returns the last successful encode, which is not necessarily the closest to the
    budget and may still exceed it if every attempt did. Returns None only when the
    first encode fails; a later failure stops the search early.
    """
    if not allow_quality or not target_bytes:
        return encoder(surface, codec, DEFAULT_QUALITY)

    low, high = SEARCH_QUALITY_LOW, SEARCH_QUALITY_HIGH
    best: Optional[bytes] = None
    best_quality = None
    for attempt in range(SEARCH_ITERATIONS):
        mid = (low + high) / 2
        blob = encoder(surface, codec, mid)
        if blob is None:
            logger.warning("Encode attempt %s at quality %.3f returned nothing; stopping", attempt + 1, mid)
            break
        best, best_quality = blob, mid
        logger.debug("Attempt %s: quality=%.3f size=%s target=%s", attempt + 1, mid, len(blob), target_bytes)
        if len(blob) > target_bytes:
            high = mid
        else:
            low = mid

    if best is not None:
        logger.info(
            "Quality search for %s: quality=%.3f size=%s target=%s%s",
            codec.value, best_quality, len(best), target_bytes,
            "" if len(best) <= target_bytes else " (over budget)",
        )
    return best
