"""Read chapter records from a directory holding one HTML file per chapter."""
from __future__ import annotations

import re
from pathlib import Path
from typing import List, Optional, Tuple

from chapter_docx.model.diagnostics import DiagnosticKind, DiagnosticReport
from chapter_docx.model.elements import ChapterRecord
from chapter_docx.utils.logger import get_logger

LOGGER = get_logger(__name__)

HTML_SUFFIXES = frozenset({".html", ".htm"})
_DIGITS = re.compile(r"(\d+)")


def _natural_key(path: Path) -> Tuple[object, ...]:
    """Sort ``chapter2.html`` before ``chapter10.html``."""
    parts = _DIGITS.split(path.name)
    return tuple(int(part) if index % 2 else part.lower() for index, part in enumerate(parts))


class ChapterDirectoryReader:
    """Turn ``<dir>/<stem>.html`` files into records whose id and title are the stem."""

    def __init__(self, path: Path, *, encoding: str = "utf-8-sig") -> None:
        self.path = Path(path)
        self.encoding = encoding

    def read(self, diagnostics: Optional[DiagnosticReport] = None) -> List[ChapterRecord]:
        if not self.path.is_dir():
            raise FileNotFoundError(f"Chapter directory not found: {self.path}")
        diagnostics = diagnostics if diagnostics is not None else DiagnosticReport()

        files = sorted(
            (entry for entry in self.path.iterdir() if entry.is_file() and entry.suffix.lower() in HTML_SUFFIXES),
            key=_natural_key,
        )
        records: List[ChapterRecord] = []
        for file in files:
            try:
                body = file.read_text(encoding=self.encoding)
            except UnicodeDecodeError as exc:
                diagnostics.add(
                    DiagnosticKind.INPUT_RECORD_MALFORMED,
                    f"{file.name}: not {self.encoding} text ({exc.reason})",
                    record_id=file.stem,
                )
                continue
            records.append(ChapterRecord.from_row([file.stem, file.stem, body]))

        LOGGER.info("Read %d chapter files from %s", len(records), self.path.name)
        return records
