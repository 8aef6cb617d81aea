"""Test cases for inline markup to run composition."""

import unittest
from unittest import mock

from chapter_docx.model.diagnostics import DiagnosticKind
from chapter_docx.model.elements import StyleAttributes
from chapter_docx.parser.context import ConversionContext
from chapter_docx.parser.run_composer import RunComposer
from chapter_docx.utils.markup import MarkupError


class RunComposerTest(unittest.TestCase):
    """Test nesting, precedence and line break handling."""

    def setUp(self):
        self.composer = RunComposer()

    def _texts(self, runs):
        return [("<br>" if run.is_line_break else run.text) for run in runs]

    def test_plain_and_bold_runs(self):
        runs = self.composer.compose("Hello <b>world</b>")
        self.assertEqual(self._texts(runs), ["Hello ", "world"])
        self.assertIsNone(runs[0].attributes.bold)
        self.assertTrue(runs[1].attributes.bold)

    def test_line_breaks_split_text(self):
        runs = self.composer.compose("one<br>two<br/>three")
        self.assertEqual(self._texts(runs), ["one", "<br>", "two", "<br>", "three"])

    def test_n_breaks_yield_n_plus_one_text_runs(self):
        for count in range(0, 5):
            markup = "x" + "<br>" * count + "y"
            runs = self.composer.compose(markup)
            breaks = [run for run in runs if run.is_line_break]
            texts = [run for run in runs if not run.is_line_break]
            self.assertEqual(len(breaks), count)
            self.assertEqual(len(texts), count + 1, f"Failed for {markup!r}")

    def test_leading_and_trailing_breaks_keep_empty_runs(self):
        runs = self.composer.compose("<br>")
        self.assertEqual(self._texts(runs), ["", "<br>", ""])

    def test_nested_span_keeps_color_under_bold(self):
        runs = self.composer.compose('<span style="color:#ff0000"><b>hot</b> text</span>')
        self.assertEqual(runs[0].text, "hot")
        self.assertTrue(runs[0].attributes.bold)
        self.assertEqual(runs[0].attributes.color, "FF0000")
        self.assertEqual(runs[1].attributes.color, "FF0000")
        self.assertIsNone(runs[1].attributes.bold)

    def test_link_attributes_are_not_overridden(self):
        runs = self.composer.compose('<a href="https://example.com"><span style="color:green;text-decoration:none">link</span></a>')
        self.assertEqual(runs[0].attributes.color, "0563C1")
        self.assertTrue(runs[0].attributes.underline)

    def test_inherited_attributes_apply(self):
        runs = self.composer.compose("body", StyleAttributes(italic=True, justification="center"))
        self.assertTrue(runs[0].attributes.italic)
        self.assertIsNone(runs[0].attributes.justification)

    def test_whitespace_collapses_but_nbsp_survives_trimming(self):
        runs = self.composer.compose("  a \n\t b  ")
        self.assertEqual(self._texts(runs), ["a b"])
        runs = self.composer.compose("&nbsp;&nbsp;indented")
        self.assertEqual(runs[0].text, "  indented")

    def test_space_between_runs_is_not_doubled(self):
        runs = self.composer.compose("a <i> b</i>")
        self.assertEqual("".join(run.text for run in runs), "a b")

    def test_empty_markup_yields_one_empty_run(self):
        for markup in ("", "   ", "<span></span>"):
            runs = self.composer.compose(markup)
            self.assertEqual(len(runs), 1)
            self.assertEqual(runs[0].text, "")

    def test_unknown_tags_are_stripped(self):
        runs = self.composer.compose("<font face='x'>kept</font> <script>alert(1)</script>")
        self.assertEqual(self._texts(runs), ["kept"])

    def test_entities_are_decoded(self):
        runs = self.composer.compose("Fish &amp; chips &mdash; &#169;")
        self.assertEqual(runs[0].text, "Fish & chips — ©")

    def test_unresolved_entity_is_reported(self):
        context = ConversionContext()
        runs = self.composer.compose("odd &zork; ref", context=context)
        self.assertEqual(runs[0].text, "odd &zork; ref")
        self.assertEqual(len(context.diagnostics.of_kind(DiagnosticKind.ENTITY_UNRESOLVABLE)), 1)

    def test_unparseable_markup_degrades_to_plain_text(self):
        context = ConversionContext()
        markup = "<b>Fish</b> &amp; <i>chips</i>"
        with mock.patch("chapter_docx.parser.run_composer.parse_fragment", side_effect=MarkupError("x")):
            runs = self.composer.compose(markup, StyleAttributes(bold=True), context=context)
        self.assertEqual(len(runs), 1)
        self.assertEqual(runs[0].text, "Fish & chips")
        self.assertTrue(runs[0].attributes.bold)
        [diagnostic] = context.diagnostics.of_kind(DiagnosticKind.MARKUP_UNPARSEABLE)
        self.assertEqual(diagnostic.fragment, markup)


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
