"""Helpers to parse editor HTML fragments without losing raw character references.

Ampersands are shielded before parsing so that text nodes and attribute values
keep their references verbatim (``&nbsp;`` stays ``&nbsp;``); decoding is left
to :class:`~chapter_docx.utils.entities.EntityDecoder`, applied where the text
is finally used.
"""
from __future__ import annotations

import re
from typing import Iterator, List, Optional

from bs4 import BeautifulSoup, Comment, NavigableString, Tag
from bs4.builder import ParserRejectedMarkup

HTML_PARSER = "html.parser"

TAG_PATTERN = re.compile(r"<[^>]*>")
COLLAPSIBLE_WHITESPACE = re.compile(r"[ \t\r\n\f]+")


class MarkupError(ValueError):
    """Raised when a fragment cannot be turned into a tree."""


def parse_fragment(markup: str) -> BeautifulSoup:
    """Parse an HTML fragment, keeping character references undecoded."""
    try:
        return BeautifulSoup(markup.replace("&", "&amp;"), HTML_PARSER)
    except (ParserRejectedMarkup, AssertionError) as exc:
        raise MarkupError(str(exc)) from exc


def inner_markup(tag: Tag) -> str:
    """Serialize the children of ``tag`` back to raw markup."""
    return tag.decode_contents(formatter=None)


def outer_markup(node) -> str:
    """Serialize a node (tag or string) back to raw markup."""
    if isinstance(node, Tag):
        return node.decode(formatter=None)
    return str(node)


def strip_tags(markup: str) -> str:
    """Remove anything that looks like a tag, leaving text and raw references."""
    return TAG_PATTERN.sub("", markup)


def class_names(tag: Tag) -> List[str]:
    value = tag.get("class")
    if value is None:
        return []
    if isinstance(value, str):
        return value.split()
    return [name for name in value if name]


def style_attribute(tag: Tag) -> str:
    value = tag.get("style")
    return value if isinstance(value, str) else ""


def iter_text(node) -> Iterator[str]:
    """Yield the raw text of ``node`` and its descendants, skipping comments."""
    if isinstance(node, Comment):
        return
    if isinstance(node, NavigableString):
        yield str(node)
        return
    for child in node.children:
        yield from iter_text(child)


def raw_text(node) -> str:
    return "".join(iter_text(node))


def is_whitespace(node) -> bool:
    """True for comments and whitespace-only strings between tags."""
    if isinstance(node, Comment):
        return True
    return isinstance(node, NavigableString) and not str(node).strip()


def next_element_sibling(tag: Tag) -> Optional[Tag]:
    """Next sibling tag, skipping whitespace strings; ``None`` if text intervenes."""
    sibling = tag.next_sibling
    while sibling is not None:
        if isinstance(sibling, Tag):
            return sibling
        if not is_whitespace(sibling):
            return None
        sibling = sibling.next_sibling
    return None
