"""Resolve figure/image markup into registered image assets."""
from __future__ import annotations

import re
from dataclasses import dataclass
from io import BytesIO
from typing import Callable, Iterable, List, Optional, Tuple

from bs4 import Tag
from PIL import Image, UnidentifiedImageError

from chapter_docx.model.diagnostics import DiagnosticKind
from chapter_docx.model.elements import ImageAsset
from chapter_docx.model.options import ConversionOptions
from chapter_docx.parser.context import ConversionContext
from chapter_docx.parser.image_fetcher import FetchedImage, ImageFetcher, ImageFetchError
from chapter_docx.parser.style_resolver import StyleResolver, parse_declarations
from chapter_docx.utils.entities import decode_entities
from chapter_docx.utils.logger import get_logger
from chapter_docx.utils.markup import COLLAPSIBLE_WHITESPACE, class_names, outer_markup, raw_text, style_attribute

LOGGER = get_logger(__name__)

DEFAULT_ALIGNMENT = "left"

ALIGN_CLASS_PATTERN = re.compile(r"(?:^|-)align-?(left|center|right)$")
SIDE_CLASSES = {"image-style-side": "right"}
PERCENT_PATTERN = re.compile(r"^(\d+(?:\.\d+)?)\s*%$")
PIXEL_PATTERN = re.compile(r"^(\d+(?:\.\d+)?)\s*(?:px)?$")
NATURAL_WIDTH_KEYWORDS = ("auto", "fit-content", "max-content", "min-content")

# Formats Word embeds as-is, mapped to the file extension used in the package.
EMBEDDABLE_FORMATS = {"PNG": "png", "JPEG": "jpg", "GIF": "gif", "BMP": "bmp", "TIFF": "tiff"}
CONTENT_TYPE_EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/gif": "gif",
    "image/bmp": "bmp",
    "image/tiff": "tiff",
}


@dataclass(frozen=True)
class FigureOccurrence:
    """Elements that together describe one image in the chapter body.

    ``figure`` is set for ``<figure>`` markup, ``wrapper`` for a paragraph
    holding nothing but the image, ``trailing`` for the blank alignment-only
    paragraph that may follow a figure.
    """

    image: Tag
    figure: Optional[Tag] = None
    wrapper: Optional[Tag] = None
    trailing: Optional[Tag] = None

    @property
    def markup(self) -> str:
        outer = self.figure or self.wrapper or self.image
        return outer_markup(outer)

    @property
    def source(self) -> str:
        src = self.image.get("src") or self.image.get("data-src") or ""
        return decode_entities(src).strip()

    def caption_text(self) -> Optional[str]:
        if self.figure is None:
            return None
        caption = self.figure.find("figcaption")
        if caption is None:
            return None
        text = COLLAPSIBLE_WHITESPACE.sub(" ", decode_entities(raw_text(caption))).strip()
        return text or None


@dataclass(frozen=True, slots=True)
class ImageGeometry:
    width_px: int
    height_px: int


class ImageResolver:
    """Fetch, measure and register images found by the segmenter."""

    def __init__(
        self,
        fetcher: Optional[ImageFetcher] = None,
        style_resolver: Optional[StyleResolver] = None,
        options: Optional[ConversionOptions] = None,
    ) -> None:
        self._options = options or ConversionOptions()
        self._fetcher = fetcher or ImageFetcher(self._options)
        self._styles = style_resolver or StyleResolver(self._options)

    def resolve(self, occurrence: FigureOccurrence, context: ConversionContext) -> Optional[ImageAsset]:
        """Return the registered asset, or ``None`` after recording why it was dropped."""
        url = occurrence.source
        if not url:
            context.report(DiagnosticKind.IMAGE_FETCH_FAILED, "image without a source", fragment=occurrence.markup)
            return None

        alignment = self.resolve_alignment(occurrence)
        try:
            fetched = self._fetcher.fetch(url)
        except ImageFetchError as exc:
            context.report(DiagnosticKind.IMAGE_FETCH_FAILED, exc.reason, url=url, fragment=occurrence.markup)
            return None

        data, extension, natural = self._normalize(fetched)
        geometry = self.compute_geometry(occurrence, natural)
        caption = occurrence.caption_text() if self._options.captions else None
        return context.register_image(
            source_url=url,
            binary_data=data,
            extension=extension,
            width_px=geometry.width_px,
            height_px=geometry.height_px,
            alignment=alignment,
            caption=caption,
        )

    # ------------------------------------------------------------------
    # Alignment

    def resolve_alignment(self, occurrence: FigureOccurrence) -> str:
        """First match wins: trailing paragraph, wrapping paragraph, figure, image."""
        sources: List[Tuple[str, Callable[[], Optional[str]]]] = [
            ("trailing paragraph", lambda: self._paragraph_alignment(occurrence.trailing, inline_only=False)),
            ("wrapping paragraph", lambda: self._paragraph_alignment(occurrence.wrapper, inline_only=True)),
            ("figure", lambda: self._element_alignment(occurrence.figure)),
            ("image", lambda: self._element_alignment(occurrence.image)),
        ]
        for label, lookup in sources:
            alignment = lookup()
            if alignment:
                LOGGER.debug("Image alignment %s from %s", alignment, label)
                return alignment
        return DEFAULT_ALIGNMENT

    def _paragraph_alignment(self, paragraph: Optional[Tag], inline_only: bool) -> Optional[str]:
        if paragraph is None:
            return None
        if inline_only:
            attributes = self._styles.resolve_inline(decode_entities(style_attribute(paragraph)))
        else:
            attributes = self._styles.resolve_element(paragraph)
        return _image_alignment(attributes.justification)

    def _element_alignment(self, element: Optional[Tag]) -> Optional[str]:
        if element is None:
            return None
        declarations = dict(parse_declarations(decode_entities(style_attribute(element))))

        aligned = _image_alignment(declarations.get("text-align", "").lower())
        if aligned:
            return aligned
        for token in class_names(element):
            token = token.lower()
            if token in SIDE_CLASSES:
                return SIDE_CLASSES[token]
            match = ALIGN_CLASS_PATTERN.search(token)
            if match:
                return match.group(1)
        aligned = _image_alignment(str(element.get("align") or "").lower())
        if aligned:
            return aligned
        floated = declarations.get("float", "").lower()
        if floated in ("left", "right"):
            return floated
        return None

    # ------------------------------------------------------------------
    # Geometry

    def compute_geometry(self, occurrence: FigureOccurrence, natural: Optional[Tuple[int, int]]) -> ImageGeometry:
        """Display size in pixels; true dimensions drive the aspect ratio whenever known."""
        reference = self._options.reference_width_px
        figure_css = self._declarations(occurrence.figure)
        image_css = self._declarations(occurrence.image)
        wrapper_css = self._declarations(occurrence.wrapper)

        width: Optional[float] = None
        percent = _first(_percent(css.get("width")) for css in (figure_css, image_css, wrapper_css))
        if percent is not None:
            width = reference * percent / 100.0
        else:
            absolute = _first(
                (
                    _pixels(image_css.get("width")),
                    _pixels(figure_css.get("width")),
                    _pixels(occurrence.image.get("width")),
                )
            )
            if absolute is not None:
                width = absolute
            elif any(css.get("width", "").lower() in NATURAL_WIDTH_KEYWORDS for css in (image_css, figure_css)):
                width = natural[0] if natural else reference

        if width is None:
            width = min(natural[0], reference) if natural else reference

        for css in (image_css, figure_css):
            limit = css.get("max-width")
            if not limit:
                continue
            limit_percent = _percent(limit)
            limit_px = reference * limit_percent / 100.0 if limit_percent is not None else _pixels(limit)
            if limit_px is not None and width > limit_px:
                width = limit_px

        width_px = max(1, int(width))
        if natural and natural[0] > 0:
            height_px = int(round(width_px * natural[1] / natural[0]))
        else:
            ratio_w, ratio_h = self._options.fallback_aspect_ratio
            height_px = width_px * ratio_h // ratio_w
        return ImageGeometry(width_px=width_px, height_px=max(1, height_px))

    @staticmethod
    def _declarations(element: Optional[Tag]) -> dict:
        if element is None:
            return {}
        return {name: value for name, value in parse_declarations(decode_entities(style_attribute(element)))}

    # ------------------------------------------------------------------
    # Payload

    def _normalize(self, fetched: FetchedImage) -> Tuple[bytes, str, Optional[Tuple[int, int]]]:
        """Measure the image and re-encode formats Word cannot embed as PNG."""
        fallback_extension = CONTENT_TYPE_EXTENSIONS.get(fetched.content_type, "jpg")
        try:
            with Image.open(BytesIO(fetched.data)) as image:
                size = image.size
                extension = EMBEDDABLE_FORMATS.get((image.format or "").upper())
                if extension is not None:
                    return fetched.data, extension, size
                LOGGER.info("Re-encoding %s image as PNG: %s", image.format, fetched.url[:80])
                if image.mode not in ("1", "L", "LA", "P", "RGB", "RGBA"):
                    image = image.convert("RGBA")
                buffer = BytesIO()
                image.save(buffer, format="PNG")
                return buffer.getvalue(), "png", size
        except (UnidentifiedImageError, OSError, ValueError) as exc:
            LOGGER.debug("Could not decode image %s: %s", fetched.url[:80], exc)
            return fetched.data, fallback_extension, None


def _image_alignment(value: Optional[str]) -> Optional[str]:
    if value in ("left", "center", "right"):
        return value
    if value == "start":
        return "left"
    if value == "end":
        return "right"
    return None


def _first(values: Iterable[Optional[float]]) -> Optional[float]:
    for value in values:
        if value is not None:
            return value
    return None


def _percent(value: Optional[str]) -> Optional[float]:
    if not value:
        return None
    match = PERCENT_PATTERN.match(value.strip())
    return float(match.group(1)) if match else None


def _pixels(value) -> Optional[float]:
    if not value or not isinstance(value, str):
        return None
    match = PIXEL_PATTERN.match(value.strip().lower())
    return float(match.group(1)) if match else None
