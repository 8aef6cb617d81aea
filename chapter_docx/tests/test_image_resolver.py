"""Test cases for image alignment, geometry and registration."""

import unittest

from chapter_docx.model.diagnostics import DiagnosticKind
from chapter_docx.model.options import ConversionOptions
from chapter_docx.parser.context import ConversionContext
from chapter_docx.parser.image_fetcher import FetchedImage
from chapter_docx.parser.image_resolver import FigureOccurrence, ImageResolver
from chapter_docx.tests.fixtures import image_bytes, scripted_fetcher
from chapter_docx.utils.markup import next_element_sibling, parse_fragment

URL = "https://example.com/pic.png"


def figure_occurrence(markup):
    fragment = parse_fragment(markup)
    figure = fragment.find("figure")
    trailing = next_element_sibling(figure) if figure is not None else None
    return FigureOccurrence(image=fragment.find("img"), figure=figure, trailing=trailing)


def wrapped_occurrence(markup):
    fragment = parse_fragment(markup)
    return FigureOccurrence(image=fragment.find("img"), wrapper=fragment.find("p"))


class ImageResolverTest(unittest.TestCase):
    """Test the resolver against a scripted fetcher."""

    def setUp(self):
        self.fetcher = scripted_fetcher({URL: image_bytes(800, 400)})
        self.resolver = ImageResolver(self.fetcher)
        self.context = ConversionContext()

    def test_percentage_width_scales_reference(self):
        occurrence = figure_occurrence(f'<figure style="width:50%"><img src="{URL}"></figure>')
        asset = self.resolver.resolve(occurrence, self.context)
        self.assertEqual(asset.width_px, 300)
        self.assertEqual(asset.height_px, 150)
        self.assertEqual(asset.alignment, "left")

    def test_true_dimensions_override_fallback_ratio(self):
        occurrence = figure_occurrence(f'<figure><img src="{URL}" width="200"></figure>')
        asset = self.resolver.resolve(occurrence, self.context)
        self.assertEqual((asset.width_px, asset.height_px), (200, 100))

    def test_fallback_ratio_when_dimensions_unknown(self):
        self.fetcher.fetch.side_effect = lambda url: FetchedImage(url, b"not really an image", "image/jpeg")
        occurrence = figure_occurrence(f'<figure><img src="{URL}" style="width:400px"></figure>')
        asset = self.resolver.resolve(occurrence, self.context)
        self.assertEqual((asset.width_px, asset.height_px), (400, 300))
        self.assertEqual(asset.extension, "jpg")

    def test_natural_width_is_clamped_to_reference(self):
        occurrence = figure_occurrence(f'<figure><img src="{URL}"></figure>')
        asset = self.resolver.resolve(occurrence, self.context)
        self.assertEqual((asset.width_px, asset.height_px), (600, 300))

    def test_auto_width_keeps_natural_size(self):
        occurrence = figure_occurrence(f'<figure><img src="{URL}" style="width:auto"></figure>')
        asset = self.resolver.resolve(occurrence, self.context)
        self.assertEqual(asset.width_px, 800)

    def test_max_width_clamps(self):
        occurrence = figure_occurrence(f'<figure><img src="{URL}" style="width:500px;max-width:250px"></figure>')
        asset = self.resolver.resolve(occurrence, self.context)
        self.assertEqual(asset.width_px, 250)

    def test_alignment_precedence(self):
        cases = [
            (f'<figure class="image-style-align-right"><img src="{URL}"></figure><p class="text-center"></p>', "center"),
            (f'<figure class="image-style-align-right"><img src="{URL}"></figure>', "right"),
            (f'<figure class="image-style-side"><img src="{URL}"></figure>', "right"),
            (f'<figure style="text-align:center"><img src="{URL}" style="float:right"></figure>', "center"),
            (f'<figure><img src="{URL}" style="float:right"></figure>', "right"),
            (f'<figure><img src="{URL}" class="align-center"></figure>', "center"),
            (f'<figure align="right"><img src="{URL}"></figure>', "right"),
        ]
        for markup, expected in cases:
            self.assertEqual(self.resolver.resolve_alignment(figure_occurrence(markup)), expected, markup)

    def test_wrapping_paragraph_inline_alignment(self):
        occurrence = wrapped_occurrence(f'<p style="text-align:right"><img src="{URL}" class="align-left"></p>')
        self.assertEqual(self.resolver.resolve_alignment(occurrence), "right")

    def test_caption_is_extracted(self):
        occurrence = figure_occurrence(f'<figure><img src="{URL}"><figcaption>A  red &amp; wide box</figcaption></figure>')
        asset = self.resolver.resolve(occurrence, self.context)
        self.assertEqual(asset.caption, "A red & wide box")

    def test_captions_can_be_disabled(self):
        resolver = ImageResolver(self.fetcher, options=ConversionOptions(captions=False))
        occurrence = figure_occurrence(f'<figure><img src="{URL}"><figcaption>Hidden</figcaption></figure>')
        self.assertIsNone(resolver.resolve(occurrence, self.context).caption)

    def test_fetch_failure_is_reported(self):
        occurrence = figure_occurrence('<figure><img src="https://example.com/gone.png"></figure>')
        self.context.record_id = "7"
        self.assertIsNone(self.resolver.resolve(occurrence, self.context))
        self.assertEqual(self.context.images, [])
        [diagnostic] = self.context.diagnostics.of_kind(DiagnosticKind.IMAGE_FETCH_FAILED)
        self.assertEqual(diagnostic.url, "https://example.com/gone.png")
        self.assertEqual(diagnostic.record_id, "7")

    def test_relationship_ids_increase_for_repeated_urls(self):
        first = self.resolver.resolve(figure_occurrence(f'<figure><img src="{URL}"></figure>'), self.context)
        second = self.resolver.resolve(figure_occurrence(f'<figure><img src="{URL}"></figure>'), self.context)
        self.assertEqual((first.relationship_id, second.relationship_id), ("rId2", "rId3"))
        self.assertNotEqual(first.assigned_filename, second.assigned_filename)
        self.assertTrue(first.assigned_filename.startswith("image1_"))
        self.assertEqual(self.fetcher.fetch.call_count, 2)

    def test_unembeddable_formats_become_png(self):
        webp = image_bytes(40, 20, fmt="WEBP")
        self.fetcher.fetch.side_effect = lambda url: FetchedImage(url, webp, "image/webp")
        asset = self.resolver.resolve(figure_occurrence(f'<figure><img src="{URL}"></figure>'), self.context)
        self.assertEqual(asset.extension, "png")
        self.assertTrue(asset.binary_data.startswith(b"\x89PNG"))
        self.assertEqual((asset.width_px, asset.height_px), (40, 20))

    def test_source_entities_are_decoded(self):
        url = "https://example.com/pic.png?a=1&b=2"
        fetcher = scripted_fetcher({url: image_bytes(10, 10)})
        resolver = ImageResolver(fetcher)
        asset = resolver.resolve(figure_occurrence('<figure><img src="https://example.com/pic.png?a=1&amp;b=2"></figure>'), self.context)
        self.assertEqual(asset.source_url, url)


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
