"""
Integration tests for the complete CSV to DOCX pipeline.

Drives CSV ingestion, assembly and packaging with a scripted image fetcher.
"""

import json
import tempfile
import unittest
import zipfile
from pathlib import Path

from chapter_docx.main import build_document_plan, main, render_outputs, summarize
from chapter_docx.model.diagnostics import DiagnosticKind
from chapter_docx.model.elements import ImageBlock, PageBreak
from chapter_docx.model.options import ConversionOptions
from chapter_docx.tests.fixtures import image_bytes, scripted_fetcher

URL = "https://cdn.example.com/map.png"

CSV_TEXT = """id,title,body
1,The Road,"<p class=""text-center""><b>Day one</b></p><figure class=""image image-style-align-center""><img src=""https://cdn.example.com/map.png""><figcaption>The map</figcaption></figure><p>We left&nbsp;at dawn.<br>It rained.</p>"
2,The River,"<p></p><p style=""color:#336699"">Water &amp; stone</p><figure><img src=""https://cdn.example.com/missing.png""></figure>"
3,Orphan
"""


class IntegrationTest(unittest.TestCase):
    """Integration tests for the complete conversion pipeline."""

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.directory = Path(self._tmp.name)
        self.csv_path = self.directory / "book.csv"
        self.csv_path.write_text(CSV_TEXT, encoding="utf-8")
        self.fetcher = scripted_fetcher({URL: image_bytes(1200, 600)})

    def tearDown(self):
        self._tmp.cleanup()

    def test_pipeline_builds_plan(self):
        plan = build_document_plan(self.csv_path, fetcher=self.fetcher)

        self.assertEqual(plan.chapter_count, 2)
        self.assertEqual(plan.page_break_count, 1)
        self.assertEqual(len(plan.assets), 1)
        asset = plan.assets[0]
        self.assertEqual((asset.width_px, asset.height_px), (600, 300))
        self.assertEqual(asset.alignment, "center")
        self.assertEqual(asset.relationship_id, "rId2")

        texts = [paragraph.text for paragraph in plan.paragraphs]
        self.assertEqual(
            texts,
            ["The Road", "Day one", "The map", "We left at dawn.\nIt rained.", "The River", "", "Water & stone"],
        )
        self.assertEqual(sum(isinstance(block, ImageBlock) for block in plan.blocks), 1)

        kinds = [diagnostic.kind for diagnostic in plan.diagnostics]
        self.assertIn(DiagnosticKind.IMAGE_FETCH_FAILED, kinds)
        self.assertIn(DiagnosticKind.INPUT_RECORD_MALFORMED, kinds)
        self.assertIn("image-fetch-failed: 1", summarize(plan))

    def test_render_outputs_writes_all_artifacts(self):
        plan = build_document_plan(self.csv_path, fetcher=self.fetcher)
        output = self.directory / "book.docx"
        render_outputs(plan, output, html=True, debug_dir=self.directory / "debug")

        with zipfile.ZipFile(output) as archive:
            self.assertIn(f"word/{plan.assets[0].media_path}", archive.namelist())
            document = archive.read("word/document.xml").decode("utf-8")
        self.assertIn("Water &amp; stone", document)
        self.assertIn('w:type="page"', document)

        preview = output.with_suffix(".html").read_text(encoding="utf-8")
        self.assertIn("data:image/png;base64,", preview)

        dump = json.loads((self.directory / "debug" / "document_plan.json").read_text(encoding="utf-8"))
        self.assertEqual(dump["chapter_count"], 2)
        self.assertTrue(dump["assets"][0]["binary_data"].endswith("bytes>"))

    def test_main_without_images(self):
        output = self.directory / "plain.docx"
        plan = main(str(self.csv_path), str(output), options=ConversionOptions(images=False))
        self.assertTrue(output.exists())
        self.assertEqual(plan.assets, [])
        self.assertEqual(plan.diagnostics.of_kind(DiagnosticKind.IMAGE_FETCH_FAILED), [])

    def test_main_reads_a_directory_of_chapter_files(self):
        chapters = self.directory / "novel"
        chapters.mkdir()
        (chapters / "01-intro.html").write_text("<p>Hello</p>", encoding="utf-8")
        (chapters / "02-end.html").write_text("<p>Bye</p>", encoding="utf-8")

        plan = main(str(chapters), options=ConversionOptions(images=False))

        self.assertEqual(plan.chapter_count, 2)
        self.assertEqual(sum(isinstance(block, PageBreak) for block in plan.blocks), 1)
        self.assertTrue((self.directory / "novel.docx").exists())

    def test_main_rejects_missing_csv(self):
        with self.assertRaises(FileNotFoundError):
            main(str(self.directory / "absent.csv"))


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
