"""Drive the per-chapter pipeline and collect the final block sequence."""
from __future__ import annotations

from typing import Iterable, List, Optional

from chapter_docx.model.diagnostics import DiagnosticKind, DiagnosticReport
from chapter_docx.model.document_model import DocumentPlan
from chapter_docx.model.elements import (
    BlockElement,
    ChapterRecord,
    FigureSegment,
    ImageAsset,
    ImageBlock,
    PageBreak,
    Paragraph,
    Run,
    StyleAttributes,
)
from chapter_docx.model.options import ConversionOptions
from chapter_docx.parser.context import ConversionContext
from chapter_docx.parser.image_fetcher import ImageFetcher
from chapter_docx.parser.image_resolver import ImageResolver
from chapter_docx.parser.run_composer import RunComposer
from chapter_docx.parser.segmenter import ParagraphSegmenter
from chapter_docx.parser.style_resolver import StyleResolver
from chapter_docx.utils.entities import decode_entities
from chapter_docx.utils.logger import get_logger
from chapter_docx.utils.markup import COLLAPSIBLE_WHITESPACE, strip_tags

LOGGER = get_logger(__name__)


class DocumentAssembler:
    """Build a :class:`DocumentPlan` from chapter records, in input order."""

    def __init__(self, options: Optional[ConversionOptions] = None, fetcher: Optional[ImageFetcher] = None) -> None:
        self._options = options or ConversionOptions()
        self._owns_fetcher = fetcher is None and self._options.images
        self._fetcher = fetcher
        if self._owns_fetcher:
            self._fetcher = ImageFetcher(self._options)

        styles = StyleResolver(self._options)
        images = ImageResolver(self._fetcher, styles, self._options) if self._options.images else None
        self._composer = RunComposer(styles, self._options)
        self._segmenter = ParagraphSegmenter(styles, images, self._options)

    def assemble(self, records: Iterable[ChapterRecord], diagnostics: Optional[DiagnosticReport] = None) -> DocumentPlan:
        """Compile every well-formed record; a fresh context is used per call."""
        context = ConversionContext(self._options, diagnostics)
        blocks: List[BlockElement] = []
        chapters = 0

        for position, record in enumerate(records, start=1):
            context.record_id = record.id or f"row {position}"
            if not record.is_complete:
                context.report(DiagnosticKind.INPUT_RECORD_MALFORMED, "record needs an id, a title and a body; skipped")
                continue

            if chapters:
                blocks.append(PageBreak())
            blocks.append(self.heading(record.title))
            body = self.compile_body(record.body, context)
            blocks.extend(body)
            chapters += 1
            LOGGER.info("Assembled chapter %s (%d blocks)", record.id, len(body) + 1)

        context.record_id = None
        assets = context.images
        LOGGER.info("Assembled %d chapters with %d images", chapters, len(assets))
        return DocumentPlan(blocks=blocks, assets=assets, diagnostics=context.diagnostics, chapter_count=chapters)

    def heading(self, title: str) -> Paragraph:
        """Navigation heading for a chapter title."""
        text = COLLAPSIBLE_WHITESPACE.sub(" ", decode_entities(strip_tags(title))).strip()
        run = Run(text=text, attributes=StyleAttributes(bold=True, font_size_half_points=self._options.heading_size_half_points))
        return Paragraph(
            runs=(run,),
            attributes=StyleAttributes(
                spacing_before_twips=self._options.heading_spacing_before_twips,
                spacing_after_twips=self._options.heading_spacing_after_twips,
            ),
            style_id=self._options.heading_style_id,
            outline_level=self._options.heading_outline_level,
        )

    def compile_body(self, body: str, context: ConversionContext) -> List[BlockElement]:
        blocks: List[BlockElement] = []
        for segment in self._segmenter.segment(body, context):
            if isinstance(segment, FigureSegment):
                blocks.append(ImageBlock(segment.asset))
                caption = self._caption(segment.asset)
                if caption is not None:
                    blocks.append(caption)
                continue
            runs = self._composer.compose(segment.markup, segment.block_attributes, context)
            blocks.append(Paragraph(runs=tuple(runs), attributes=segment.block_attributes.paragraph_properties()))
        return blocks

    def _caption(self, asset: ImageAsset) -> Optional[Paragraph]:
        if not self._options.captions or not asset.caption:
            return None
        run = Run(text=asset.caption, attributes=StyleAttributes(italic=True, font_size_half_points=self._options.caption_size_half_points))
        return Paragraph(
            runs=(run,),
            attributes=StyleAttributes(
                justification=asset.alignment,
                spacing_after_twips=self._options.caption_spacing_after_twips,
            ),
        )

    def close(self) -> None:
        if self._owns_fetcher and self._fetcher is not None:
            self._fetcher.close()
