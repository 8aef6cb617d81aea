"""Read chapter records from a CSV export."""
from __future__ import annotations

import csv
import sys
from pathlib import Path
from typing import List, Optional

from chapter_docx.model.diagnostics import DiagnosticKind, DiagnosticReport
from chapter_docx.model.elements import ChapterRecord
from chapter_docx.utils.logger import get_logger

LOGGER = get_logger(__name__)

# Chapter bodies routinely exceed the csv module's 128 KiB default.
FIELD_SIZE_LIMIT = min(sys.maxsize, 2**31 - 1)


class ChapterCsvReader:
    """Parse ``id,title,body`` rows, skipping the header and malformed lines."""

    def __init__(self, path: Path, *, has_header: bool = True, encoding: str = "utf-8-sig") -> None:
        self.path = Path(path)
        self.has_header = has_header
        self.encoding = encoding

    def read(self, diagnostics: Optional[DiagnosticReport] = None) -> List[ChapterRecord]:
        if not self.path.exists():
            raise FileNotFoundError(f"CSV file not found: {self.path}")
        diagnostics = diagnostics if diagnostics is not None else DiagnosticReport()
        csv.field_size_limit(FIELD_SIZE_LIMIT)

        records: List[ChapterRecord] = []
        with self.path.open("r", encoding=self.encoding, newline="") as handle:
            reader = csv.reader(handle, skipinitialspace=True)
            line = 0
            while True:
                try:
                    row = next(reader)
                except StopIteration:
                    break
                except csv.Error as exc:
                    diagnostics.add(DiagnosticKind.INPUT_RECORD_MALFORMED, f"unreadable CSV line {reader.line_num}: {exc}")
                    continue
                line += 1
                if line == 1 and self.has_header:
                    continue
                if not any(value.strip() for value in row):
                    continue
                try:
                    records.append(ChapterRecord.from_row(row))
                except ValueError as exc:
                    record_id = row[0].strip() if row else None
                    diagnostics.add(
                        DiagnosticKind.INPUT_RECORD_MALFORMED,
                        f"line {reader.line_num}: {exc}",
                        record_id=record_id or None,
                    )

        LOGGER.info("Read %d chapter records from %s", len(records), self.path.name)
        return records
