"""Common helpers shared by renderer implementations."""
from __future__ import annotations

import base64
from typing import Dict

from chapter_docx.model.elements import ImageAsset, StyleAttributes
from chapter_docx.utils.units import TWIPS_PER_POINT

CSS_TEXT_ALIGN = {"left": "left", "center": "center", "right": "right", "justify": "justify"}


def style_to_css(style: StyleAttributes) -> Dict[str, str]:
    """Convert formatting attributes into CSS properties."""
    css: Dict[str, str] = {}
    if style.bold:
        css["font-weight"] = "700"
    if style.italic:
        css["font-style"] = "italic"
    if style.underline:
        css["text-decoration"] = "underline"
    if style.color:
        css["color"] = f"#{style.color}"
    if style.font_size_half_points:
        css["font-size"] = f"{style.font_size_half_points / 2:g}pt"
    if style.justification in CSS_TEXT_ALIGN:
        css["text-align"] = CSS_TEXT_ALIGN[style.justification]
    if style.left_indent_twips:
        css["margin-left"] = _points(style.left_indent_twips)
    if style.hanging_indent_twips:
        css["text-indent"] = f"-{_points(style.hanging_indent_twips)}"
    elif style.first_line_indent_twips:
        css["text-indent"] = _points(style.first_line_indent_twips)
    if style.spacing_before_twips is not None:
        css["margin-top"] = _points(style.spacing_before_twips)
    if style.spacing_after_twips is not None:
        css["margin-bottom"] = _points(style.spacing_after_twips)
    return css


def css_declarations(css: Dict[str, str]) -> str:
    return "; ".join(f"{key}: {value}" for key, value in css.items())


def image_data_uri(asset: ImageAsset) -> str:
    mime = "image/jpeg" if asset.extension == "jpg" else f"image/{asset.extension}"
    return f"data:{mime};base64,{base64.b64encode(asset.binary_data).decode('ascii')}"


def _points(twips: int) -> str:
    return f"{twips / TWIPS_PER_POINT:g}pt"
