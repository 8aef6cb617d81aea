"""Helper functions to work with XML namespaces and serialization."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional
from xml.etree import ElementTree as ET


@dataclass(frozen=True)
class Namespaces:
    """Common OpenXML namespace prefixes used by the writer."""

    WORD: Dict[str, str] = None  # type: ignore[assignment]
    RELS: Dict[str, str] = None  # type: ignore[assignment]
    DRAWING: Dict[str, str] = None  # type: ignore[assignment]
    PACKAGE: Dict[str, str] = None  # type: ignore[assignment]

    def __post_init__(self) -> None:  # pragma: no cover
        raise RuntimeError("Namespaces should not be instantiated")


Namespaces.WORD = {  # type: ignore[attr-defined]
    "w": "http://schemas.openxmlformats.org/wordprocessingml/2006/main",
    "r": "http://schemas.openxmlformats.org/officeDocument/2006/relationships",
}
Namespaces.RELS = {  # type: ignore[attr-defined]
    "rel": "http://schemas.openxmlformats.org/package/2006/relationships",
}
Namespaces.DRAWING = {  # type: ignore[attr-defined]
    "a": "http://schemas.openxmlformats.org/drawingml/2006/main",
    "wp": "http://schemas.openxmlformats.org/drawingml/2006/wordprocessingDrawing",
    "pic": "http://schemas.openxmlformats.org/drawingml/2006/picture",
}
Namespaces.PACKAGE = {  # type: ignore[attr-defined]
    "ct": "http://schemas.openxmlformats.org/package/2006/content-types",
    "cp": "http://schemas.openxmlformats.org/package/2006/metadata/core-properties",
    "dc": "http://purl.org/dc/elements/1.1/",
    "dcterms": "http://purl.org/dc/terms/",
    "xsi": "http://www.w3.org/2001/XMLSchema-instance",
    "ep": "http://schemas.openxmlformats.org/officeDocument/2006/extended-properties",
}

_ALL_PREFIXES: Dict[str, str] = {}
for _table in (Namespaces.WORD, Namespaces.RELS, Namespaces.DRAWING, Namespaces.PACKAGE):
    _ALL_PREFIXES.update(_table)

for _prefix, _uri in _ALL_PREFIXES.items():
    ET.register_namespace(_prefix, _uri)

# Predefined by XML itself; never registered.
_ALL_PREFIXES["xml"] = "http://www.w3.org/XML/1998/namespace"


def qn(tag: str) -> str:
    """Expand ``prefix:name`` into Clark notation, e.g. ``w:p`` -> ``{...}p``."""
    if tag.startswith("{"):
        return tag
    prefix, _, local = tag.partition(":")
    if not local:
        return tag
    return f"{{{_ALL_PREFIXES[prefix]}}}{local}"


def sub_element(parent: ET.Element, tag: str, attrib: Optional[Dict[str, str]] = None, text: Optional[str] = None) -> ET.Element:
    """Append a child with prefixed attribute names resolved through :func:`qn`."""
    element = ET.SubElement(parent, qn(tag), {qn(key): value for key, value in (attrib or {}).items()})
    if text is not None:
        element.text = text
    return element


def serialize(root: ET.Element, default_namespace: Optional[str] = None) -> bytes:
    """Serialize an element tree with an XML declaration, as Word expects."""
    if default_namespace is not None:
        return ET.tostring(root, encoding="UTF-8", xml_declaration=True, default_namespace=default_namespace)
    return ET.tostring(root, encoding="UTF-8", xml_declaration=True)


def parse_xml(data: bytes) -> ET.ElementTree:
    """Parse XML from raw bytes with sane defaults."""
    return ET.ElementTree(ET.fromstring(data))

