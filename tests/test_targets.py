import pytest

from converter.conversion.models import SizePreset
from converter.conversion.targets import resolve_target_bytes


@pytest.mark.parametrize(
    "preset, expected",
    [("same", 2_000_000), ("large", 1_500_000), ("medium", 1_000_000), ("small", 500_000)],
)
def test_presets_scale_original(preset, expected):
    assert resolve_target_bytes(2_000_000, preset) == expected


def test_rounds_half_up():
    assert resolve_target_bytes(1001, "medium") == 501
    assert resolve_target_bytes(1001, "small") == 250
    assert resolve_target_bytes(999, "large") == 749


def test_accepts_enum_preset():
    assert resolve_target_bytes(4000, SizePreset.SMALL) == 1000


def test_custom_kb():
    assert resolve_target_bytes(10, "custom", 150) == 150 * 1024
    assert resolve_target_bytes(10, "custom", 1.5) == 1536


@pytest.mark.parametrize("custom_kb", [None, 0, -5, float("nan"), float("inf"), float("-inf")])
def test_custom_without_positive_value_is_unconstrained(custom_kb):
    assert resolve_target_bytes(50_000, "custom", custom_kb) is None


@pytest.mark.parametrize("preset", ["same", "large", "medium", "small", "custom"])
@pytest.mark.parametrize("original", [0, None])
def test_no_baseline_means_no_target(preset, original):
    assert resolve_target_bytes(original, preset, 100) is None


def test_unknown_preset_falls_back_to_original():
    assert resolve_target_bytes(1234, "gigantic") == 1234


def test_tiny_original_never_resolves_to_zero():
    assert resolve_target_bytes(1, "small") is None
