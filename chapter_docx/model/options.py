"""Conversion settings shared by every stage of a batch."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; chapter-docx)"


@dataclass(frozen=True, slots=True)
class ConversionOptions:
    """Tunable constants and capability flags for one conversion."""

    reference_width_px: int = 600
    fallback_aspect_ratio: Tuple[int, int] = (4, 3)
    fetch_timeout: float = 15.0
    user_agent: str = DEFAULT_USER_AGENT
    reserved_relationship_ids: int = 1

    images: bool = True
    captions: bool = True
    rich_css: bool = True
    parametric_classes: bool = True

    link_color: str = "0563C1"
    heading_style_id: str = "Heading1"
    heading_outline_level: int = 0
    heading_size_half_points: int = 28
    heading_spacing_before_twips: int = 480
    heading_spacing_after_twips: int = 240
    body_spacing_after_twips: int = 120
    image_spacing_after_twips: int = 120
    caption_spacing_after_twips: int = 240
    caption_size_half_points: int = 20
