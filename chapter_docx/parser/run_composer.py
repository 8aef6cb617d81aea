"""Turn inline-formatted markup into styled text runs."""
from __future__ import annotations

from typing import Dict, List, Optional

from bs4 import NavigableString, Tag
from bs4.element import PreformattedString

from chapter_docx.model.diagnostics import DiagnosticKind
from chapter_docx.model.elements import Run, StyleAttributes
from chapter_docx.model.options import ConversionOptions
from chapter_docx.parser.context import ConversionContext
from chapter_docx.parser.style_resolver import StyleResolver
from chapter_docx.utils.entities import EntityDecoder
from chapter_docx.utils.logger import get_logger
from chapter_docx.utils.markup import (
    COLLAPSIBLE_WHITESPACE,
    MarkupError,
    parse_fragment,
    strip_tags,
)

LOGGER = get_logger(__name__)

NBSP = "\u00a0"

TAG_ATTRIBUTES: Dict[str, StyleAttributes] = {
    "b": StyleAttributes(bold=True),
    "strong": StyleAttributes(bold=True),
    "i": StyleAttributes(italic=True),
    "em": StyleAttributes(italic=True),
    "cite": StyleAttributes(italic=True),
    "u": StyleAttributes(underline=True),
    "ins": StyleAttributes(underline=True),
}

# Elements whose content never reaches the text flow.
SKIPPED_TAGS = frozenset({"script", "style", "img", "figure", "picture", "video", "audio", "iframe", "object", "svg"})


class _Piece:
    """Mutable run under construction."""

    __slots__ = ("text", "attributes", "is_line_break")

    def __init__(self, text: str, attributes: StyleAttributes, is_line_break: bool = False) -> None:
        self.text = text
        self.attributes = attributes
        self.is_line_break = is_line_break


class _RunBuilder:
    """Accumulates text, starting a new run whenever attributes change or a break occurs."""

    def __init__(self) -> None:
        self.pieces: List[_Piece] = []
        self._buffer: List[str] = []
        self._attributes: Optional[StyleAttributes] = None

    def add_text(self, text: str, attributes: StyleAttributes) -> None:
        if not text:
            return
        if self._buffer and attributes != self._attributes:
            self._flush(attributes)
        if not self._buffer:
            self._attributes = attributes
        self._buffer.append(text)

    def add_break(self, attributes: StyleAttributes) -> None:
        self._flush(attributes, force=True)
        self.pieces.append(_Piece("", attributes, is_line_break=True))

    def finish(self, attributes: StyleAttributes) -> List[_Piece]:
        trailing_break = bool(self.pieces) and self.pieces[-1].is_line_break
        self._flush(attributes, force=not self.pieces or trailing_break)
        return self.pieces

    def _flush(self, fallback: StyleAttributes, force: bool = False) -> None:
        if self._buffer or force:
            attributes = self._attributes if self._buffer else fallback
            self.pieces.append(_Piece("".join(self._buffer), attributes))
        self._buffer = []
        self._attributes = None


class RunComposer:
    """Walk a parsed fragment recursively, merging inherited attributes field by field."""

    def __init__(self, style_resolver: Optional[StyleResolver] = None, options: Optional[ConversionOptions] = None) -> None:
        self._options = options or ConversionOptions()
        self._resolver = style_resolver or StyleResolver(self._options)
        self._decoder = EntityDecoder(nbsp_replacement=NBSP)
        self._link_attributes = StyleAttributes(color=self._options.link_color, underline=True)

    def compose(
        self,
        markup: str,
        inherited: Optional[StyleAttributes] = None,
        context: Optional[ConversionContext] = None,
    ) -> List[Run]:
        """Return the ordered runs for ``markup``; always at least one run."""
        base = (inherited or StyleAttributes()).run_properties()
        try:
            fragment = parse_fragment(markup)
        except MarkupError as exc:
            if context is not None:
                context.report(DiagnosticKind.MARKUP_UNPARSEABLE, f"falling back to plain text: {exc}", fragment=markup)
            return self._plain_runs(markup, base, context)

        builder = _RunBuilder()
        self._walk(fragment, base, None, builder, context)
        return self._freeze(builder.finish(base))

    def _walk(
        self,
        node: Tag,
        attributes: StyleAttributes,
        pinned: Optional[StyleAttributes],
        builder: _RunBuilder,
        context: Optional[ConversionContext],
    ) -> None:
        for child in node.children:
            if isinstance(child, PreformattedString):
                continue
            if isinstance(child, NavigableString):
                builder.add_text(self._decode_text(str(child), context), attributes)
                continue
            if not isinstance(child, Tag):
                continue

            name = child.name.lower()
            if name == "br":
                builder.add_break(attributes)
                continue
            if name in SKIPPED_TAGS:
                LOGGER.debug("Dropping <%s> inside text", name)
                continue

            child_attributes, child_pinned = self._attributes_for(child, name, attributes, pinned)
            self._walk(child, child_attributes, child_pinned, builder, context)

    def _attributes_for(
        self,
        tag: Tag,
        name: str,
        attributes: StyleAttributes,
        pinned: Optional[StyleAttributes],
    ) -> tuple[StyleAttributes, Optional[StyleAttributes]]:
        merged = attributes.merge(TAG_ATTRIBUTES.get(name))
        if tag.get("class") or tag.get("style"):
            merged = merged.merge(self._resolver.resolve_element(tag).run_properties())
        if name == "a" and tag.get("href"):
            pinned = self._link_attributes.merge(pinned)
        if pinned is not None:
            merged = merged.merge(pinned)
        return merged, pinned

    def _decode_text(self, raw: str, context: Optional[ConversionContext]) -> str:
        collapsed = COLLAPSIBLE_WHITESPACE.sub(" ", raw)
        hook = context.report_unresolved_entity if context is not None else None
        return self._decoder.decode(collapsed, on_unresolved=hook)

    def _plain_runs(self, markup: str, base: StyleAttributes, context: Optional[ConversionContext]) -> List[Run]:
        text = self._decode_text(strip_tags(markup), context).strip(" ")
        return [Run(text=text.replace(NBSP, " "), attributes=base)]

    @staticmethod
    def _freeze(pieces: List[_Piece]) -> List[Run]:
        lines: List[List[_Piece]] = [[]]
        for piece in pieces:
            if piece.is_line_break:
                lines.append([])
            else:
                lines[-1].append(piece)

        # A line left with no text keeps its first piece as an empty run.
        placeholders = set()
        for line in lines:
            _trim_line(line)
            if line and not any(piece.text for piece in line):
                placeholders.add(id(line[0]))

        runs: List[Run] = []
        for piece in pieces:
            if piece.is_line_break:
                runs.append(Run.line_break(piece.attributes))
            elif piece.text or id(piece) in placeholders:
                runs.append(Run(text=piece.text.replace(NBSP, " "), attributes=piece.attributes))
        return runs


def _trim_line(line: List[_Piece]) -> None:
    """Strip collapsible spaces at line edges and where two pieces meet."""
    for piece in line:
        piece.text = piece.text.lstrip(" ")
        if piece.text:
            break
    for piece in reversed(line):
        piece.text = piece.text.rstrip(" ")
        if piece.text:
            break
    previous = None
    for piece in line:
        if previous is not None and previous.text.endswith(" ") and piece.text.startswith(" "):
            piece.text = piece.text[1:]
        if piece.text:
            previous = piece
