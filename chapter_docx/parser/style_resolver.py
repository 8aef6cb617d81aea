"""Map editor class names and inline CSS onto formatting attributes."""
from __future__ import annotations

import colorsys
import re
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from bs4 import Tag
from PIL import ImageColor

from chapter_docx.model.elements import StyleAttributes
from chapter_docx.model.options import ConversionOptions
from chapter_docx.utils.entities import decode_entities
from chapter_docx.utils.logger import get_logger
from chapter_docx.utils.markup import class_names, style_attribute
from chapter_docx.utils.units import (
    length_to_points,
    length_to_twips,
    points_to_half_points,
    points_to_twips,
)

LOGGER = get_logger(__name__)

INDENT_STEP_TWIPS = 720

CLASS_REGISTRY: Dict[str, StyleAttributes] = {
    # alignment
    "text-left": StyleAttributes(justification="left"),
    "text-start": StyleAttributes(justification="left"),
    "text-center": StyleAttributes(justification="center"),
    "text-right": StyleAttributes(justification="right"),
    "text-end": StyleAttributes(justification="right"),
    "text-justify": StyleAttributes(justification="justify"),
    "align-left": StyleAttributes(justification="left"),
    "align-center": StyleAttributes(justification="center"),
    "align-right": StyleAttributes(justification="right"),
    "align-justify": StyleAttributes(justification="justify"),
    "center": StyleAttributes(justification="center"),
    # indentation
    "indent-a": StyleAttributes(first_line_indent_twips=INDENT_STEP_TWIPS),
    "indent": StyleAttributes(left_indent_twips=INDENT_STEP_TWIPS),
    "indent-1": StyleAttributes(left_indent_twips=INDENT_STEP_TWIPS),
    "indent-2": StyleAttributes(left_indent_twips=INDENT_STEP_TWIPS * 2),
    "indent-3": StyleAttributes(left_indent_twips=INDENT_STEP_TWIPS * 3),
    "indent-4": StyleAttributes(left_indent_twips=INDENT_STEP_TWIPS * 4),
    "hanging": StyleAttributes(left_indent_twips=INDENT_STEP_TWIPS, hanging_indent_twips=INDENT_STEP_TWIPS),
    # weight, style, decoration
    "bold": StyleAttributes(bold=True),
    "font-bold": StyleAttributes(bold=True),
    "fw-bold": StyleAttributes(bold=True),
    "font-normal": StyleAttributes(bold=False),
    "italic": StyleAttributes(italic=True),
    "font-italic": StyleAttributes(italic=True),
    "fst-italic": StyleAttributes(italic=True),
    "underline": StyleAttributes(underline=True),
    "text-underline": StyleAttributes(underline=True),
    "text-decoration-underline": StyleAttributes(underline=True),
    # size palette (half-points)
    "text-tiny": StyleAttributes(font_size_half_points=14),
    "text-small": StyleAttributes(font_size_half_points=18),
    "text-big": StyleAttributes(font_size_half_points=28),
    "text-huge": StyleAttributes(font_size_half_points=36),
    # color palette
    "text-red": StyleAttributes(color="FF0000"),
    "text-green": StyleAttributes(color="008000"),
    "text-blue": StyleAttributes(color="0000FF"),
    "text-orange": StyleAttributes(color="FFA500"),
    "text-purple": StyleAttributes(color="800080"),
    "text-gray": StyleAttributes(color="808080"),
    "text-muted": StyleAttributes(color="6C757D"),
    "text-black": StyleAttributes(color="000000"),
    "text-white": StyleAttributes(color="FFFFFF"),
    # semantic tokens
    "quote": StyleAttributes(italic=True, left_indent_twips=INDENT_STEP_TWIPS),
    "warning": StyleAttributes(bold=True, color="C00000"),
    "note": StyleAttributes(italic=True, color="595959"),
    "caption": StyleAttributes(italic=True, font_size_half_points=20, justification="center"),
    "thought": StyleAttributes(italic=True),
    "system": StyleAttributes(bold=True, color="1F4E79"),
}

PARAMETRIC_TEXT_SIZE = re.compile(r"^text-(\d+(?:\.\d+)?)$")
PARAMETRIC_MARGIN = re.compile(r"^m([tb])?-(\d+)$")
PARAMETRIC_PADDING = re.compile(r"^pl?-(\d+)$")

CSS_JUSTIFICATION = {
    "left": "left",
    "start": "left",
    "center": "center",
    "right": "right",
    "end": "right",
    "justify": "justify",
}

FONT_SIZE_KEYWORDS = {
    "xx-small": 7.0,
    "x-small": 7.5,
    "small": 10.0,
    "medium": 12.0,
    "large": 13.5,
    "x-large": 18.0,
    "xx-large": 24.0,
}

LENGTH_PATTERN = re.compile(r"^(-?\d+(?:\.\d+)?)\s*(px|pt|em|rem|cm|mm|in|pc|%)?$", re.IGNORECASE)
HEX6_PATTERN = re.compile(r"^#([0-9a-fA-F]{6})$")
HEX3_PATTERN = re.compile(r"^#([0-9a-fA-F]{3})$")
RGB_PATTERN = re.compile(
    r"^rgba?\(\s*(\d{1,3}(?:\.\d+)?%?)\s*[, ]\s*(\d{1,3}(?:\.\d+)?%?)\s*[, ]\s*(\d{1,3}(?:\.\d+)?%?)\s*(?:[,/]\s*[\d.]+%?\s*)?\)$",
    re.IGNORECASE,
)
HSL_PATTERN = re.compile(
    r"^hsla?\(\s*(-?\d+(?:\.\d+)?)(?:deg)?\s*[, ]\s*(\d+(?:\.\d+)?)%\s*[, ]\s*(\d+(?:\.\d+)?)%\s*(?:[,/]\s*[\d.]+%?\s*)?\)$",
    re.IGNORECASE,
)


def parse_declarations(inline: Optional[str]) -> List[Tuple[str, str]]:
    """Split an inline ``style`` value into ordered ``(property, value)`` pairs."""
    if not inline:
        return []
    declarations: List[Tuple[str, str]] = []
    for chunk in inline.split(";"):
        name, sep, value = chunk.partition(":")
        if not sep:
            continue
        name = name.strip().lower()
        value = value.replace("!important", "").strip()
        if name and value:
            declarations.append((name, value))
    return declarations


def parse_color(value: str, allow_extended: bool = True) -> Optional[str]:
    """Return ``RRGGBB`` for a CSS color, or ``None`` when it cannot be read.

    ``None`` means the color stays unset, which is different from explicit black.
    """
    token = value.strip().lower()
    match = HEX6_PATTERN.match(token)
    if match:
        return match.group(1).upper()
    if not allow_extended:
        return None

    match = HEX3_PATTERN.match(token)
    if match:
        return "".join(digit * 2 for digit in match.group(1)).upper()

    match = RGB_PATTERN.match(token)
    if match:
        channels = [_rgb_channel(component) for component in match.groups()]
        return "".join(f"{channel:02X}" for channel in channels)

    match = HSL_PATTERN.match(token)
    if match:
        hue = (float(match.group(1)) % 360.0) / 360.0
        saturation = min(float(match.group(2)), 100.0) / 100.0
        lightness = min(float(match.group(3)), 100.0) / 100.0
        red, green, blue = colorsys.hls_to_rgb(hue, lightness, saturation)
        return "".join(f"{int(round(channel * 255)):02X}" for channel in (red, green, blue))

    if token in ImageColor.colormap:
        red, green, blue = ImageColor.getrgb(token)[:3]
        return f"{red:02X}{green:02X}{blue:02X}"
    return None


def _rgb_channel(component: str) -> int:
    if component.endswith("%"):
        value = float(component[:-1]) * 255.0 / 100.0
    else:
        value = float(component)
    return max(0, min(255, int(round(value))))


def _parse_length(value: str) -> Optional[Tuple[float, str]]:
    match = LENGTH_PATTERN.match(value.strip())
    if not match:
        return None
    number = float(match.group(1))
    unit = (match.group(2) or "px").lower()
    return number, unit


class StyleResolver:
    """Resolve ``class`` tokens and ``style`` declarations into :class:`StyleAttributes`."""

    def __init__(self, options: Optional[ConversionOptions] = None) -> None:
        self._options = options or ConversionOptions()
        self._handlers: Dict[str, Callable[[str], StyleAttributes]] = {
            "text-align": self._text_align,
            "color": self._color,
        }
        if self._options.rich_css:
            self._handlers.update(
                {
                    "font-weight": self._font_weight,
                    "font-style": self._font_style,
                    "text-decoration": self._text_decoration,
                    "text-decoration-line": self._text_decoration,
                    "font-size": self._font_size,
                    "margin-left": self._left_indent,
                    "padding-left": self._left_indent,
                    "text-indent": self._text_indent,
                    "margin-top": self._spacing_before,
                    "margin-bottom": self._spacing_after,
                }
            )

    def resolve(self, class_tokens: Iterable[str], inline: Optional[str] = None) -> StyleAttributes:
        """Class attributes first, then inline declarations, which win on conflict."""
        attributes = StyleAttributes()
        for token in class_tokens:
            attributes = attributes.merge(self.resolve_class(token))
        return attributes.merge(self.resolve_inline(inline))

    def resolve_element(self, tag: Tag) -> StyleAttributes:
        """Resolve the ``class`` and ``style`` attributes of a parsed element."""
        return self.resolve(class_names(tag), decode_entities(style_attribute(tag)))

    def resolve_class(self, token: str) -> Optional[StyleAttributes]:
        token = token.strip().lower()
        known = CLASS_REGISTRY.get(token)
        if known is not None:
            return known
        if not self._options.parametric_classes:
            return None

        match = PARAMETRIC_TEXT_SIZE.match(token)
        if match:
            return StyleAttributes(font_size_half_points=points_to_half_points(float(match.group(1))))

        match = PARAMETRIC_MARGIN.match(token)
        if match:
            twips = points_to_twips(int(match.group(2)))
            side = match.group(1)
            if side == "t":
                return StyleAttributes(spacing_before_twips=twips)
            if side == "b":
                return StyleAttributes(spacing_after_twips=twips)
            return StyleAttributes(spacing_before_twips=twips, spacing_after_twips=twips)

        match = PARAMETRIC_PADDING.match(token)
        if match:
            return StyleAttributes(left_indent_twips=points_to_twips(int(match.group(1))))

        LOGGER.debug("Dropping unknown class %r", token)
        return None

    def resolve_inline(self, inline: Optional[str]) -> StyleAttributes:
        attributes = StyleAttributes()
        for name, value in parse_declarations(inline):
            handler = self._handlers.get(name)
            if handler is None:
                continue
            attributes = attributes.merge(handler(value))
        return attributes

    # ------------------------------------------------------------------
    # Declaration handlers

    def _text_align(self, value: str) -> StyleAttributes:
        return StyleAttributes(justification=CSS_JUSTIFICATION.get(value.strip().lower()))

    def _color(self, value: str) -> StyleAttributes:
        return StyleAttributes(color=parse_color(value, allow_extended=self._options.rich_css))

    def _font_weight(self, value: str) -> StyleAttributes:
        token = value.strip().lower()
        if token in ("bold", "bolder"):
            return StyleAttributes(bold=True)
        if token in ("normal", "lighter"):
            return StyleAttributes(bold=False)
        if token.isdigit():
            return StyleAttributes(bold=int(token) >= 600)
        return StyleAttributes()

    def _font_style(self, value: str) -> StyleAttributes:
        token = value.strip().lower()
        if token.startswith(("italic", "oblique")):
            return StyleAttributes(italic=True)
        if token == "normal":
            return StyleAttributes(italic=False)
        return StyleAttributes()

    def _text_decoration(self, value: str) -> StyleAttributes:
        tokens = value.strip().lower().split()
        if "underline" in tokens:
            return StyleAttributes(underline=True)
        if "none" in tokens:
            return StyleAttributes(underline=False)
        return StyleAttributes()

    def _font_size(self, value: str) -> StyleAttributes:
        token = value.strip().lower()
        if token in FONT_SIZE_KEYWORDS:
            return StyleAttributes(font_size_half_points=points_to_half_points(FONT_SIZE_KEYWORDS[token]))
        parsed = _parse_length(token)
        if parsed is None:
            return StyleAttributes()
        points = length_to_points(*parsed)
        if points is None or points <= 0:
            return StyleAttributes()
        return StyleAttributes(font_size_half_points=points_to_half_points(points))

    def _twips(self, value: str) -> Optional[int]:
        parsed = _parse_length(value)
        if parsed is None or parsed[1] == "%":
            return None
        return length_to_twips(*parsed)

    def _left_indent(self, value: str) -> StyleAttributes:
        twips = self._twips(value)
        if twips is None or twips < 0:
            return StyleAttributes()
        return StyleAttributes(left_indent_twips=twips)

    def _text_indent(self, value: str) -> StyleAttributes:
        twips = self._twips(value)
        if twips is None:
            return StyleAttributes()
        if twips < 0:
            return StyleAttributes(hanging_indent_twips=-twips)
        return StyleAttributes(first_line_indent_twips=twips)

    def _spacing_before(self, value: str) -> StyleAttributes:
        twips = self._twips(value)
        if twips is None or twips < 0:
            return StyleAttributes()
        return StyleAttributes(spacing_before_twips=twips)

    def _spacing_after(self, value: str) -> StyleAttributes:
        twips = self._twips(value)
        if twips is None or twips < 0:
            return StyleAttributes()
        return StyleAttributes(spacing_after_twips=twips)
