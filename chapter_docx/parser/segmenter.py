"""Split a chapter body into ordered text and figure segments."""
from __future__ import annotations

import copy
from typing import List, Optional, Union

from bs4 import BeautifulSoup, Comment, NavigableString, Tag

from chapter_docx.model.diagnostics import DiagnosticKind
from chapter_docx.model.elements import FigureSegment, Segment, StyleAttributes, TextSegment
from chapter_docx.model.options import ConversionOptions
from chapter_docx.parser.context import ConversionContext
from chapter_docx.parser.image_resolver import FigureOccurrence, ImageResolver
from chapter_docx.parser.style_resolver import StyleResolver
from chapter_docx.utils.entities import decode_entities
from chapter_docx.utils.logger import get_logger
from chapter_docx.utils.markup import (
    MarkupError,
    class_names,
    inner_markup,
    next_element_sibling,
    outer_markup,
    parse_fragment,
    raw_text,
    strip_tags,
    style_attribute,
)

LOGGER = get_logger(__name__)

# Blocks that become exactly one paragraph each.
LEAF_BLOCKS = frozenset({"p", "h1", "h2", "h3", "h4", "h5", "h6", "li", "pre", "td", "th", "caption", "dt", "dd"})
# Blocks whose attributes are inherited by the paragraphs inside them.
CONTAINER_BLOCKS = frozenset({
    "div", "section", "article", "main", "header", "footer", "aside",
    "ul", "ol", "dl", "blockquote", "table", "thead", "tbody", "tfoot", "tr",
})
# A leaf holding one of these is walked like a container.
NESTED_BLOCKS = LEAF_BLOCKS | CONTAINER_BLOCKS | {"figure"}
DECORATIVE_TAGS = ["hr", "details"]
DECORATIVE_CLASSES = frozenset({"spoiler", "spoiler-box", "spoilerbox"})

HEADING_SIZES = {"h1": 32, "h2": 28, "h3": 26, "h4": 24, "h5": 22, "h6": 20}
HEADING_SPACING_AFTER_TWIPS = 200
LIST_INDENT_TWIPS = 720

CONTAINER_TOKENS = {"blockquote": ["quote"]}

InlinePiece = Union[str, Tag]


class ParagraphSegmenter:
    """Scan a body left to right, emitting figures and paragraph-sized text blocks."""

    def __init__(
        self,
        style_resolver: Optional[StyleResolver] = None,
        image_resolver: Optional[ImageResolver] = None,
        options: Optional[ConversionOptions] = None,
    ) -> None:
        self._options = options or ConversionOptions()
        self._styles = style_resolver or StyleResolver(self._options)
        self._images = image_resolver
        self._base = StyleAttributes(spacing_after_twips=self._options.body_spacing_after_twips)

    def segment(self, body: str, context: Optional[ConversionContext] = None) -> List[Segment]:
        context = context or ConversionContext(self._options)
        try:
            fragment = parse_fragment(body)
        except MarkupError as exc:
            context.report(DiagnosticKind.MARKUP_UNPARSEABLE, f"body kept as one block: {exc}", fragment=body)
            return [TextSegment(body, self._base)] if not _is_blank(body) else []

        self._strip_decorations(fragment)
        segments: List[Segment] = []
        self._walk_container(fragment, self._base, segments, context)
        LOGGER.debug("Segmented body into %d segments", len(segments))
        return segments

    # ------------------------------------------------------------------

    @staticmethod
    def _strip_decorations(fragment: BeautifulSoup) -> None:
        for comment in fragment.find_all(string=lambda node: isinstance(node, Comment)):
            comment.extract()
        for tag in fragment.find_all(DECORATIVE_TAGS):
            tag.decompose()
        for tag in fragment.find_all(class_=lambda value: value in DECORATIVE_CLASSES):
            if not tag.decomposed:
                tag.decompose()

    def _walk_container(self, node: Tag, inherited: StyleAttributes, segments: List[Segment], context: ConversionContext) -> None:
        loose: List[object] = []
        consumed: set = set()

        def flush() -> None:
            if loose:
                markup = "".join(outer_markup(item) for item in loose)
                if not _is_blank(markup):
                    segments.append(TextSegment(markup, inherited))
                loose.clear()

        for child in list(node.children):
            if id(child) in consumed:
                continue
            if isinstance(child, NavigableString):
                loose.append(child)
                continue
            if not isinstance(child, Tag):
                continue

            name = child.name.lower()
            if name == "figure":
                flush()
                self._figure(child, inherited, segments, context, consumed)
            elif name in LEAF_BLOCKS:
                flush()
                self._leaf_block(child, name, inherited, segments, context)
            elif name in CONTAINER_BLOCKS:
                flush()
                self._walk_container(child, self._block_attributes(child, name, inherited), segments, context)
            else:
                image = _lone_image(child)
                if image is not None:
                    flush()
                    self._emit_figure(FigureOccurrence(image=image), segments, context)
                    continue
                for piece in _split_at_images(child):
                    if isinstance(piece, Tag):
                        flush()
                        self._emit_figure(FigureOccurrence(image=piece), segments, context)
                    else:
                        loose.append(piece)
        flush()

    def _figure(
        self,
        figure: Tag,
        inherited: StyleAttributes,
        segments: List[Segment],
        context: ConversionContext,
        consumed: set,
    ) -> None:
        image = figure.find("img")
        if image is None:
            # Figures without an image (quotes, tables) are read as plain containers.
            self._walk_container(figure, inherited, segments, context)
            return
        trailing = self._trailing_alignment_paragraph(figure)
        if trailing is not None:
            consumed.add(id(trailing))
        self._emit_figure(FigureOccurrence(image=image, figure=figure, trailing=trailing), segments, context)

    def _trailing_alignment_paragraph(self, figure: Tag) -> Optional[Tag]:
        sibling = next_element_sibling(figure)
        if sibling is None or sibling.name.lower() != "p" or sibling.find("img") is not None:
            return None
        if not _is_blank(inner_markup(sibling)):
            return None
        if self._styles.resolve_element(sibling).justification is None:
            return None
        return sibling

    def _leaf_block(
        self,
        block: Tag,
        name: str,
        inherited: StyleAttributes,
        segments: List[Segment],
        context: ConversionContext,
    ) -> None:
        attributes = self._block_attributes(block, name, inherited)

        if any(isinstance(child, Tag) and child.name.lower() in NESTED_BLOCKS for child in block.children):
            # <li>text<ul>...</ul></li>: the inline prefix and each nested block become paragraphs.
            self._walk_container(block, attributes, segments, context)
            return

        image = _lone_image(block)
        if image is not None:
            self._emit_figure(FigureOccurrence(image=image, wrapper=block), segments, context)
            return

        if block.find("img") is None:
            # Empty and nbsp-only blocks still yield a paragraph.
            markup = "" if _is_blank(inner_markup(block)) else inner_markup(block)
            segments.append(TextSegment(markup, attributes))
            return

        # Text and images mixed inside one block: split around each image, however deeply nested.
        pending: List[str] = []

        def flush() -> None:
            markup = "".join(pending)
            if not _is_blank(markup):
                segments.append(TextSegment(markup, attributes))
            pending.clear()

        for piece in _inline_pieces(block):
            if isinstance(piece, Tag):
                flush()
                self._emit_figure(FigureOccurrence(image=piece, wrapper=block), segments, context)
            else:
                pending.append(piece)
        flush()

    def _block_attributes(self, block: Tag, name: str, inherited: StyleAttributes) -> StyleAttributes:
        attributes = inherited.merge(_tag_defaults(name, inherited))
        tokens = CONTAINER_TOKENS.get(name, []) + class_names(block)
        return attributes.merge(self._styles.resolve(tokens, decode_entities(style_attribute(block))))

    def _emit_figure(self, occurrence: FigureOccurrence, segments: List[Segment], context: ConversionContext) -> None:
        if not self._options.images or self._images is None:
            LOGGER.debug("Images disabled; dropping %s", occurrence.source[:80])
            return
        asset = self._images.resolve(occurrence, context)
        if asset is not None:
            segments.append(FigureSegment(asset))


def _tag_defaults(name: str, inherited: StyleAttributes) -> Optional[StyleAttributes]:
    if name in HEADING_SIZES:
        return StyleAttributes(
            bold=True,
            font_size_half_points=HEADING_SIZES[name],
            spacing_after_twips=HEADING_SPACING_AFTER_TWIPS,
        )
    if name == "li":
        # Each list level indents one step further than its parent.
        return StyleAttributes(left_indent_twips=(inherited.left_indent_twips or 0) + LIST_INDENT_TWIPS)
    if name == "th":
        return StyleAttributes(bold=True)
    return None


def _split_at_images(node) -> List[InlinePiece]:
    """Raw markup pieces and ``<img>`` tags of ``node``, in document order.

    Inline wrappers are closed before each image and reopened after it, so text
    on either side keeps its formatting: ``<b>a<img>b</b>`` yields
    ``["<b>a</b>", <img>, "<b>b</b>"]``.
    """
    if not isinstance(node, Tag):
        return [outer_markup(node)]
    if node.name.lower() == "img":
        return [node]
    if node.find("img") is None:
        return [outer_markup(node)]
    shell = copy.copy(node)
    shell.clear()
    closing = f"</{node.name}>"
    opening = outer_markup(shell)[: -len(closing)]
    return [
        opening + piece + closing if isinstance(piece, str) else piece
        for piece in _inline_pieces(node)
    ]


def _inline_pieces(node: Tag) -> List[InlinePiece]:
    pieces: List[InlinePiece] = []
    for child in node.children:
        for piece in _split_at_images(child):
            if isinstance(piece, str) and pieces and isinstance(pieces[-1], str):
                pieces[-1] += piece
            else:
                pieces.append(piece)
    return pieces


def _lone_image(tag: Tag) -> Optional[Tag]:
    """The single ``<img>`` that is all of ``tag``'s content, if any."""
    if tag.name.lower() == "img":
        return tag
    images = tag.find_all("img")
    if len(images) != 1:
        return None
    if decode_entities(raw_text(tag)).strip():
        return None
    return images[0]


def _is_blank(markup: str) -> bool:
    """True when the decoded, tag-stripped content is empty or only spaces."""
    return not decode_entities(strip_tags(markup)).strip()
