"""Package a DocumentPlan into a WordprocessingML (.docx) archive."""
from __future__ import annotations

import zipfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, Optional
from xml.etree import ElementTree as ET

from chapter_docx.model.document_model import DocumentPlan
from chapter_docx.model.elements import ImageAsset, ImageBlock, PageBreak, Paragraph, Run, StyleAttributes
from chapter_docx.model.options import ConversionOptions
from chapter_docx.utils.logger import get_logger
from chapter_docx.utils.xml_utils import Namespaces, qn, serialize, sub_element

LOGGER = get_logger(__name__)

CONTENT_TYPES_PATH = "[Content_Types].xml"
PACKAGE_REL_PATH = "_rels/.rels"
DOCUMENT_XML_PATH = "word/document.xml"
STYLES_XML_PATH = "word/styles.xml"
DOCUMENT_RELS_PATH = "word/_rels/document.xml.rels"
CORE_PROPS_PATH = "docProps/core.xml"
APP_PROPS_PATH = "docProps/app.xml"

STYLES_RELATIONSHIP_ID = "rId1"

REL_TYPE_BASE = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"
REL_OFFICE_DOCUMENT = f"{REL_TYPE_BASE}/officeDocument"
REL_STYLES = f"{REL_TYPE_BASE}/styles"
REL_IMAGE = f"{REL_TYPE_BASE}/image"
REL_EXTENDED_PROPERTIES = f"{REL_TYPE_BASE}/extended-properties"
REL_CORE_PROPERTIES = "http://schemas.openxmlformats.org/package/2006/relationships/metadata/core-properties"

CT_DOCUMENT = "application/vnd.openxmlformats-officedocument.wordprocessingml.document.main+xml"
CT_STYLES = "application/vnd.openxmlformats-officedocument.wordprocessingml.styles+xml"
CT_CORE = "application/vnd.openxmlformats-package.core-properties+xml"
CT_APP = "application/vnd.openxmlformats-officedocument.extended-properties+xml"
CT_RELATIONSHIPS = "application/vnd.openxmlformats-package.relationships+xml"

IMAGE_CONTENT_TYPES = {
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "bmp": "image/bmp",
    "tiff": "image/tiff",
}

# A4 portrait with one-inch margins, in twips.
PAGE_WIDTH_TWIPS = 11906
PAGE_HEIGHT_TWIPS = 16838
PAGE_MARGIN_TWIPS = 1440

BODY_FONT = "Calibri"
BODY_SIZE_HALF_POINTS = 22

WORD_JUSTIFICATION = {"left": "left", "center": "center", "right": "right", "justify": "both"}
PICTURE_URI = "http://schemas.openxmlformats.org/drawingml/2006/picture"


class DocxWriter:
    """Write the block sequence and its image assets into a .docx archive."""

    def __init__(self, output_path: Path, options: Optional[ConversionOptions] = None, title: Optional[str] = None) -> None:
        self._output_path = Path(output_path)
        self._options = options or ConversionOptions()
        self._title = title

    def write(self, plan: DocumentPlan) -> Path:
        parts: Dict[str, bytes] = {
            CONTENT_TYPES_PATH: self.build_content_types(plan.assets),
            PACKAGE_REL_PATH: self.build_package_relationships(),
            APP_PROPS_PATH: self.build_app_properties(),
            CORE_PROPS_PATH: self.build_core_properties(self._title or self._output_path.stem),
            STYLES_XML_PATH: self.build_styles(),
            DOCUMENT_XML_PATH: self.build_document(plan),
            DOCUMENT_RELS_PATH: self.build_document_relationships(plan.assets),
        }

        self._output_path.parent.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(self._output_path, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            for name, data in parts.items():
                archive.writestr(name, data)
            for asset in plan.assets:
                archive.writestr(f"word/{asset.media_path}", asset.binary_data)

        LOGGER.info("Wrote %s (%d blocks, %d images)", self._output_path, len(plan.blocks), len(plan.assets))
        return self._output_path

    # ------------------------------------------------------------------
    # Package plumbing

    @staticmethod
    def build_content_types(assets: Iterable[ImageAsset]) -> bytes:
        namespace = Namespaces.PACKAGE["ct"]
        root = ET.Element(f"{{{namespace}}}Types")
        defaults = {"rels": CT_RELATIONSHIPS, "xml": "application/xml"}
        for asset in assets:
            defaults.setdefault(asset.extension, IMAGE_CONTENT_TYPES.get(asset.extension, "application/octet-stream"))
        for extension, content_type in defaults.items():
            ET.SubElement(root, f"{{{namespace}}}Default", {"Extension": extension, "ContentType": content_type})
        for part, content_type in (
            (DOCUMENT_XML_PATH, CT_DOCUMENT),
            (STYLES_XML_PATH, CT_STYLES),
            (CORE_PROPS_PATH, CT_CORE),
            (APP_PROPS_PATH, CT_APP),
        ):
            ET.SubElement(root, f"{{{namespace}}}Override", {"PartName": f"/{part}", "ContentType": content_type})
        return serialize(root, default_namespace=namespace)

    @staticmethod
    def build_package_relationships() -> bytes:
        return _relationships(
            [
                ("rId1", REL_OFFICE_DOCUMENT, DOCUMENT_XML_PATH),
                ("rId2", REL_CORE_PROPERTIES, CORE_PROPS_PATH),
                ("rId3", REL_EXTENDED_PROPERTIES, APP_PROPS_PATH),
            ]
        )

    @staticmethod
    def build_document_relationships(assets: Iterable[ImageAsset]) -> bytes:
        entries = [(STYLES_RELATIONSHIP_ID, REL_STYLES, "styles.xml")]
        entries.extend((asset.relationship_id, REL_IMAGE, asset.media_path) for asset in assets)
        return _relationships(entries)

    @staticmethod
    def build_app_properties() -> bytes:
        namespace = Namespaces.PACKAGE["ep"]
        root = ET.Element(f"{{{namespace}}}Properties")
        ET.SubElement(root, f"{{{namespace}}}Application").text = "chapter-docx"
        ET.SubElement(root, f"{{{namespace}}}DocSecurity").text = "0"
        return serialize(root, default_namespace=namespace)

    @staticmethod
    def build_core_properties(title: str) -> bytes:
        root = ET.Element(qn("cp:coreProperties"))
        sub_element(root, "dc:title", text=title)
        sub_element(root, "dc:creator", text="chapter-docx")
        stamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
        for name in ("dcterms:created", "dcterms:modified"):
            sub_element(root, name, {"xsi:type": "dcterms:W3CDTF"}, text=stamp)
        return serialize(root)

    def build_styles(self) -> bytes:
        root = ET.Element(qn("w:styles"))
        defaults = sub_element(root, "w:docDefaults")
        run_defaults = sub_element(sub_element(defaults, "w:rPrDefault"), "w:rPr")
        sub_element(run_defaults, "w:rFonts", {"w:ascii": BODY_FONT, "w:hAnsi": BODY_FONT, "w:cs": BODY_FONT})
        sub_element(run_defaults, "w:sz", {"w:val": str(BODY_SIZE_HALF_POINTS)})
        sub_element(run_defaults, "w:szCs", {"w:val": str(BODY_SIZE_HALF_POINTS)})
        sub_element(sub_element(defaults, "w:pPrDefault"), "w:pPr")

        normal = sub_element(root, "w:style", {"w:type": "paragraph", "w:default": "1", "w:styleId": "Normal"})
        sub_element(normal, "w:name", {"w:val": "Normal"})
        sub_element(normal, "w:qFormat")

        heading_id = self._options.heading_style_id
        heading = sub_element(root, "w:style", {"w:type": "paragraph", "w:styleId": heading_id})
        sub_element(heading, "w:name", {"w:val": "heading 1"})
        sub_element(heading, "w:basedOn", {"w:val": "Normal"})
        sub_element(heading, "w:next", {"w:val": "Normal"})
        sub_element(heading, "w:qFormat")
        heading_paragraph = sub_element(heading, "w:pPr")
        sub_element(heading_paragraph, "w:keepNext")
        sub_element(
            heading_paragraph,
            "w:spacing",
            {
                "w:before": str(self._options.heading_spacing_before_twips),
                "w:after": str(self._options.heading_spacing_after_twips),
            },
        )
        sub_element(heading_paragraph, "w:outlineLvl", {"w:val": str(self._options.heading_outline_level)})
        heading_run = sub_element(heading, "w:rPr")
        sub_element(heading_run, "w:b")
        sub_element(heading_run, "w:sz", {"w:val": str(self._options.heading_size_half_points)})
        sub_element(heading_run, "w:szCs", {"w:val": str(self._options.heading_size_half_points)})
        return serialize(root)

    # ------------------------------------------------------------------
    # Document body

    def build_document(self, plan: DocumentPlan) -> bytes:
        root = ET.Element(qn("w:document"))
        body = sub_element(root, "w:body")
        for index, block in enumerate(plan.blocks, start=1):
            if isinstance(block, Paragraph):
                self._paragraph(body, block)
            elif isinstance(block, ImageBlock):
                self._image(body, block.asset, drawing_id=index)
            elif isinstance(block, PageBreak):
                run = sub_element(sub_element(body, "w:p"), "w:r")
                sub_element(run, "w:br", {"w:type": "page"})

        section = sub_element(body, "w:sectPr")
        sub_element(section, "w:pgSz", {"w:w": str(PAGE_WIDTH_TWIPS), "w:h": str(PAGE_HEIGHT_TWIPS)})
        margin = str(PAGE_MARGIN_TWIPS)
        sub_element(
            section,
            "w:pgMar",
            {
                "w:top": margin,
                "w:right": margin,
                "w:bottom": margin,
                "w:left": margin,
                "w:header": "720",
                "w:footer": "720",
                "w:gutter": "0",
            },
        )
        return serialize(root)

    def _paragraph(self, body: ET.Element, paragraph: Paragraph) -> None:
        element = sub_element(body, "w:p")
        _paragraph_properties(element, paragraph.attributes, paragraph.style_id, paragraph.outline_level)
        for run in paragraph.runs:
            _run(element, run)

    def _image(self, body: ET.Element, asset: ImageAsset, drawing_id: int) -> None:
        element = sub_element(body, "w:p")
        _paragraph_properties(
            element,
            StyleAttributes(justification=asset.alignment, spacing_after_twips=self._options.image_spacing_after_twips),
        )
        drawing = sub_element(sub_element(element, "w:r"), "w:drawing")
        inline = sub_element(drawing, "wp:inline", {"distT": "0", "distB": "0", "distL": "0", "distR": "0"})
        extent = {"cx": str(asset.width_emu), "cy": str(asset.height_emu)}
        sub_element(inline, "wp:extent", extent)
        sub_element(inline, "wp:effectExtent", {"l": "0", "t": "0", "r": "0", "b": "0"})
        sub_element(inline, "wp:docPr", {"id": str(drawing_id), "name": f"Picture {asset.sequence}"})
        frame = sub_element(inline, "wp:cNvGraphicFramePr")
        sub_element(frame, "a:graphicFrameLocks", {"noChangeAspect": "1"})

        graphic_data = sub_element(sub_element(inline, "a:graphic"), "a:graphicData", {"uri": PICTURE_URI})
        picture = sub_element(graphic_data, "pic:pic")
        properties = sub_element(picture, "pic:nvPicPr")
        sub_element(properties, "pic:cNvPr", {"id": "0", "name": asset.assigned_filename})
        sub_element(properties, "pic:cNvPicPr")
        fill = sub_element(picture, "pic:blipFill")
        sub_element(fill, "a:blip", {"r:embed": asset.relationship_id})
        sub_element(sub_element(fill, "a:stretch"), "a:fillRect")
        shape = sub_element(picture, "pic:spPr")
        transform = sub_element(shape, "a:xfrm")
        sub_element(transform, "a:off", {"x": "0", "y": "0"})
        sub_element(transform, "a:ext", extent)
        geometry = sub_element(shape, "a:prstGeom", {"prst": "rect"})
        sub_element(geometry, "a:avLst")


def _relationships(entries: Iterable[tuple]) -> bytes:
    namespace = Namespaces.RELS["rel"]
    root = ET.Element(f"{{{namespace}}}Relationships")
    for relationship_id, relationship_type, target in entries:
        ET.SubElement(
            root,
            f"{{{namespace}}}Relationship",
            {"Id": relationship_id, "Type": relationship_type, "Target": target},
        )
    return serialize(root, default_namespace=namespace)


def _paragraph_properties(
    paragraph: ET.Element,
    attributes: StyleAttributes,
    style_id: Optional[str] = None,
    outline_level: Optional[int] = None,
) -> None:
    """Emit ``w:pPr`` children in schema order."""
    properties = sub_element(paragraph, "w:pPr")
    if style_id:
        sub_element(properties, "w:pStyle", {"w:val": style_id})

    spacing: Dict[str, str] = {}
    if attributes.spacing_before_twips is not None:
        spacing["w:before"] = str(attributes.spacing_before_twips)
    if attributes.spacing_after_twips is not None:
        spacing["w:after"] = str(attributes.spacing_after_twips)
    if spacing:
        sub_element(properties, "w:spacing", spacing)

    indent: Dict[str, str] = {}
    if attributes.left_indent_twips is not None:
        indent["w:left"] = str(attributes.left_indent_twips)
    if attributes.hanging_indent_twips is not None:
        indent["w:hanging"] = str(attributes.hanging_indent_twips)
    elif attributes.first_line_indent_twips is not None:
        indent["w:firstLine"] = str(attributes.first_line_indent_twips)
    if indent:
        sub_element(properties, "w:ind", indent)

    justification = WORD_JUSTIFICATION.get(attributes.justification or "")
    if justification:
        sub_element(properties, "w:jc", {"w:val": justification})
    if outline_level is not None:
        sub_element(properties, "w:outlineLvl", {"w:val": str(outline_level)})


def _run(paragraph: ET.Element, run: Run) -> None:
    element = sub_element(paragraph, "w:r")
    attributes = run.attributes
    if not attributes.run_properties().is_empty:
        properties = sub_element(element, "w:rPr")
        if attributes.bold is not None:
            sub_element(properties, "w:b", None if attributes.bold else {"w:val": "0"})
        if attributes.italic is not None:
            sub_element(properties, "w:i", None if attributes.italic else {"w:val": "0"})
        if attributes.color:
            sub_element(properties, "w:color", {"w:val": attributes.color})
        if attributes.font_size_half_points:
            size = str(attributes.font_size_half_points)
            sub_element(properties, "w:sz", {"w:val": size})
            sub_element(properties, "w:szCs", {"w:val": size})
        if attributes.underline is not None:
            sub_element(properties, "w:u", {"w:val": "single" if attributes.underline else "none"})

    if run.is_line_break:
        sub_element(element, "w:br")
    else:
        sub_element(element, "w:t", {"xml:space": "preserve"}, text=run.text)
