"""Map a size preset and the original byte size to a target byte budget."""
import logging
import math
from typing import Optional, Union

from converter.config import SIZE_PRESETS
from converter.conversion.models import SizePreset

logger = logging.getLogger("converter.targets")


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def resolve_target_bytes(
    original_size: Optional[int],
    preset: Union[SizePreset, str],
    custom_kb: Optional[float] = None,
) -> Optional[int]:
    """
    Return the byte budget for one file, or None for "no constraint".
    - same/large/medium/small: fraction of original_size (1.0, 0.75, 0.5, 0.25).
    - custom: custom_kb * 1024, or None when custom_kb is missing, not finite or not positive.
    Without an original size there is no baseline, so the result is always None.
    """
    if not original_size or original_size <= 0:
        return None
    name = preset.value if isinstance(preset, SizePreset) else (preset or "").strip().lower()
    if name == SizePreset.CUSTOM.value:
        budget = (custom_kb or 0) * 1024
        if not math.isfinite(budget) or budget <= 0:
            return None
        return _round_half_up(budget) or None
    ratio = SIZE_PRESETS.get(name)
    if ratio is None:
        logger.warning("Unknown size preset %r, using original size", preset)
        return original_size
    return _round_half_up(original_size * ratio) or None
