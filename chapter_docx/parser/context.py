"""Per-batch state: relationship ids, image registry and diagnostics."""
from __future__ import annotations

import hashlib
from typing import List, Optional

from chapter_docx.model.diagnostics import DiagnosticKind, DiagnosticReport
from chapter_docx.model.elements import ImageAsset
from chapter_docx.model.options import ConversionOptions
from chapter_docx.utils.logger import get_logger

LOGGER = get_logger(__name__)


class ConversionContext:
    """Mutable state owned by one assembler run and threaded through every stage.

    Never shared between batches; every counter starts fresh per instance.
    """

    def __init__(
        self,
        options: Optional[ConversionOptions] = None,
        diagnostics: Optional[DiagnosticReport] = None,
    ) -> None:
        self.options = options or ConversionOptions()
        self.diagnostics = diagnostics if diagnostics is not None else DiagnosticReport()
        self.record_id: Optional[str] = None
        self._next_relationship = self.options.reserved_relationship_ids + 1
        self._next_sequence = 1
        self._images: List[ImageAsset] = []

    @property
    def images(self) -> List[ImageAsset]:
        return list(self._images)

    def report(self, kind: DiagnosticKind, message: str, *, url: Optional[str] = None, fragment: Optional[str] = None) -> None:
        self.diagnostics.add(kind, message, record_id=self.record_id, url=url, fragment=fragment)

    def report_unresolved_entity(self, reference: str) -> None:
        self.report(DiagnosticKind.ENTITY_UNRESOLVABLE, "character reference left literal", fragment=reference)

    def register_image(
        self,
        *,
        source_url: str,
        binary_data: bytes,
        extension: str,
        width_px: int,
        height_px: int,
        alignment: str,
        caption: Optional[str],
    ) -> ImageAsset:
        """Assign sequence, filename and relationship id, then append to the registry.

        This is the only place ids are handed out, so ids and registry order
        stay in step.
        """
        sequence = self._next_sequence
        relationship_id = f"rId{self._next_relationship}"
        digest = hashlib.md5(binary_data).hexdigest()[:8]
        asset = ImageAsset(
            source_url=source_url,
            binary_data=binary_data,
            assigned_filename=f"image{sequence}_{digest}.{extension}",
            relationship_id=relationship_id,
            width_px=width_px,
            height_px=height_px,
            alignment=alignment,
            caption=caption,
            extension=extension,
            sequence=sequence,
        )
        self._next_sequence += 1
        self._next_relationship += 1
        self._images.append(asset)
        LOGGER.debug("Registered %s as %s (%dx%d)", asset.assigned_filename, relationship_id, width_px, height_px)
        return asset
