"""Unit conversion helpers between CSS lengths and WordprocessingML measurements."""
from __future__ import annotations

from typing import Optional

TWIPS_PER_POINT = 20
TWIPS_PER_INCH = 1440
PIXELS_PER_INCH = 96
EMU_PER_PIXEL = 9525
BASE_FONT_POINTS = 11.0

_TWIPS_PER_UNIT = {
    "pt": TWIPS_PER_POINT,
    "px": TWIPS_PER_INCH / PIXELS_PER_INCH,
    "in": TWIPS_PER_INCH,
    "cm": TWIPS_PER_INCH / 2.54,
    "mm": TWIPS_PER_INCH / 25.4,
    "pc": TWIPS_PER_POINT * 12,
    "em": BASE_FONT_POINTS * TWIPS_PER_POINT,
    "rem": BASE_FONT_POINTS * TWIPS_PER_POINT,
}


def points_to_twips(value: float) -> int:
    """Convert points to twips (1/20th of a point)."""
    return int(round(value * TWIPS_PER_POINT))


def points_to_half_points(value: float) -> int:
    """Convert points to the half-point unit used by ``w:sz``."""
    return int(round(value * 2))


def pixels_to_emu(value: int) -> int:
    """Convert 96 DPI pixels to English Metric Units."""
    return int(value) * EMU_PER_PIXEL


def length_to_twips(value: float, unit: str) -> Optional[int]:
    """Convert a CSS length to twips; ``None`` for units without a fixed size."""
    factor = _TWIPS_PER_UNIT.get(unit.lower())
    if factor is None:
        return None
    return int(round(value * factor))


def length_to_points(value: float, unit: str) -> Optional[float]:
    """Convert a CSS length to points; percentages are relative to the base font."""
    unit = unit.lower()
    if unit == "%":
        return BASE_FONT_POINTS * value / 100.0
    twips = length_to_twips(value, unit)
    if twips is None:
        return None
    return twips / TWIPS_PER_POINT
