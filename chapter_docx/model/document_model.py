"""Aggregate produced by one conversion batch."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

from chapter_docx.model.diagnostics import DiagnosticReport
from chapter_docx.model.elements import BlockElement, ImageAsset, PageBreak, Paragraph


@dataclass(slots=True)
class DocumentPlan:
    """Ordered block sequence plus the images it references."""

    blocks: List[BlockElement] = field(default_factory=list)
    assets: List[ImageAsset] = field(default_factory=list)
    diagnostics: DiagnosticReport = field(default_factory=DiagnosticReport)
    chapter_count: int = 0

    @property
    def paragraphs(self) -> List[Paragraph]:
        return [block for block in self.blocks if isinstance(block, Paragraph)]

    @property
    def page_break_count(self) -> int:
        return sum(1 for block in self.blocks if isinstance(block, PageBreak))
