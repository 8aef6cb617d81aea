"""Test cases for reading chapter records from CSV."""

import tempfile
import unittest
from pathlib import Path

from chapter_docx.model.diagnostics import DiagnosticKind, DiagnosticReport
from chapter_docx.parser.csv_loader import ChapterCsvReader


class ChapterCsvReaderTest(unittest.TestCase):
    """Test header handling, malformed rows and encodings."""

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.directory = Path(self._tmp.name)

    def tearDown(self):
        self._tmp.cleanup()

    def _write(self, text, encoding="utf-8"):
        path = self.directory / "chapters.csv"
        path.write_text(text, encoding=encoding)
        return path

    def test_reads_records_after_header(self):
        path = self._write('id,title,body\n1,First,"<p>Hello, world</p>"\n2, Second ,"<p>multi\nline</p>"\n')
        records = ChapterCsvReader(path).read()
        self.assertEqual([record.id for record in records], ["1", "2"])
        self.assertEqual(records[0].body, "<p>Hello, world</p>")
        self.assertEqual(records[1].title, "Second")
        self.assertEqual(records[1].body, "<p>multi\nline</p>")

    def test_short_rows_are_reported_and_skipped(self):
        diagnostics = DiagnosticReport()
        path = self._write("id,title,body\n1,Only title\n2,T,<p>ok</p>\n")
        records = ChapterCsvReader(path).read(diagnostics)
        self.assertEqual([record.id for record in records], ["2"])
        [diagnostic] = diagnostics.of_kind(DiagnosticKind.INPUT_RECORD_MALFORMED)
        self.assertEqual(diagnostic.record_id, "1")

    def test_blank_lines_are_ignored(self):
        path = self._write("id,title,body\n\n1,T,B\n,,\n")
        self.assertEqual(len(ChapterCsvReader(path).read()), 1)

    def test_byte_order_mark_is_stripped(self):
        path = self._write("id,title,body\n1,T,B\n", encoding="utf-8-sig")
        reader = ChapterCsvReader(path, has_header=False)
        records = reader.read()
        self.assertEqual(records[0].id, "id")

    def test_missing_file(self):
        with self.assertRaises(FileNotFoundError):
            ChapterCsvReader(self.directory / "absent.csv").read()


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
